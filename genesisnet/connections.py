"""Connectivity graph of a testnet and the partitions it splits into."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass

__all__ = [
    "Connection",
    "Connections",
    "find_possible_peers",
    "filter_peers",
    "merge_unique_peers",
    "contains_peer",
]

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class Connection:
    """A one-way link from one node to another."""

    to: int
    from_: int

    def to_dict(self) -> dict[str, int]:
        """Return the JSON form of the connection."""
        return {"to": self.to, "from": self.from_}


class Connections:
    """A directed graph of which nodes can reach which, indexed [from][to]."""

    def __init__(self, nodes: int) -> None:
        self.cons: list[list[bool]] = [[True] * nodes for _ in range(nodes)]

    def remove_all(self, conns: Iterable[Connection]) -> None:
        """Mark every given connection as cut."""
        for conn in conns:
            self.cons[conn.from_][conn.to] = False

    def networks(self) -> list[list[int]]:
        """Return the distinct, completely separate partitions of the network."""
        nodes: list[int] = []
        finalized: list[int] = []
        to_try: list[int] = []
        out: list[list[int]] = []
        total = len(self.cons)

        while len(finalized) < total:
            log.debug(
                "calculating networks: nodes=%s finalized=%s to_try=%s",
                nodes, finalized, to_try,
            )
            if not to_try:
                if nodes:
                    finalized = merge_unique_peers(nodes, finalized)
                    out.append(nodes)
                    nodes = []
                start = next((i for i in range(total) if i not in finalized), None)
                if start is not None:
                    to_try = find_possible_peers(self.cons, start)
                    nodes = merge_unique_peers([start], to_try)
            else:
                current = to_try[0]
                new_peers = find_possible_peers(self.cons, current)
                nodes = merge_unique_peers(nodes, [current])
                new_peers = filter_peers(new_peers, nodes)
                to_try = merge_unique_peers(to_try[1:], new_peers)
        return out


def find_possible_peers(cons: Sequence[Sequence[bool]], node: int) -> list[int]:
    """Return the nodes connected to node in either direction."""
    return [
        i
        for i, con in enumerate(cons[node])
        if i != node and (con or cons[i][node])
    ]


def filter_peers(peers: list[int], already_done: Sequence[int]) -> list[int]:
    """Return the peers that are not in already_done."""
    if not already_done:
        return peers
    return [peer for peer in peers if not contains_peer(already_done, peer)]


def merge_unique_peers(peers1: Sequence[int], peers2: Iterable[int]) -> list[int]:
    """Return peers1 followed by the peers of peers2 not already present."""
    out = list(peers1)
    for peer in peers2:
        if not contains_peer(out, peer):
            out.append(peer)
    return out


def contains_peer(peers: Iterable[int], peer: int) -> bool:
    """Return whether peer is among peers."""
    return peer in peers