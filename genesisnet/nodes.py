"""Nodes and side cars of a testnet, and their persistence."""

from __future__ import annotations

import sqlite3
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from typing import Any

from genesisnet.store import NODES_TABLE, NotFoundError, Store, StoreError

__all__ = [
    "Node",
    "SideCar",
    "get_all_nodes_by_server",
    "get_all_nodes_by_testnet",
    "get_all_nodes",
    "get_node",
    "insert_node",
    "get_node_by_local_id",
    "get_node_by_abs_num",
    "divide_nodes_by_abs_match",
    "get_unique_server_ids",
]

_COLUMNS = "id,test_net,server,local_id,ip,label,abs_num,image,protocol"


@dataclass
class Node:
    """A node within a testnet."""

    id: str = ""
    absolute_num: int = 0
    testnet_id: str = ""
    server: int = 0
    local_id: int = 0
    ip: str = ""
    label: str = ""
    image: str = ""
    protocol: str = ""

    def node_name(self, prefix: str) -> str:
        """Return the container name of this node."""
        return f"{prefix}{self.absolute_num}"


@dataclass
class SideCar:
    """A supporting container attached to a node."""

    id: str = ""
    node_id: str = ""
    absolute_node_num: int = 0
    testnet_id: str = ""
    server: int = 0
    local_id: int = 0
    network_index: int = 0
    ip: str = ""
    image: str = ""
    type: str = ""

    def node_name(self, prefix: str) -> str:
        """Return the container name of this side car."""
        return f"{prefix}{self.absolute_node_num}-{self.network_index}"


def _query(store: Store, where: str = "", params: tuple[Any, ...] = ()) -> list[Node]:
    query = f"SELECT {_COLUMNS} FROM {NODES_TABLE}"
    if where:
        query += " " + where
    try:
        rows = store.connection.execute(query, params).fetchall()
    except sqlite3.Error as err:
        raise StoreError("unable to query nodes") from err
    return [
        Node(
            id=node_id or "",
            testnet_id=testnet or "",
            server=server or 0,
            local_id=local_id or 0,
            ip=ip or "",
            label=label or "",
            absolute_num=abs_num or 0,
            image=image or "",
            protocol=protocol or "",
        )
        for node_id, testnet, server, local_id, ip, label, abs_num, image, protocol in rows
    ]


def get_all_nodes_by_server(store: Store, server_id: int) -> list[Node]:
    """Return every node that has ever existed on a server."""
    return _query(store, "WHERE server = ?", (server_id,))


def get_all_nodes_by_testnet(store: Store, testnet_id: str) -> list[Node]:
    """Return every node belonging to the given testnet."""
    return _query(store, "WHERE test_net = ?", (testnet_id,))


def get_all_nodes(store: Store) -> list[Node]:
    """Return every node that has ever existed."""
    return _query(store)


def get_node(store: Store, node_id: str) -> Node:
    """Return the node with the given id."""
    nodes = _query(store, "WHERE id = ?", (node_id,))
    if not nodes:
        raise NotFoundError(f"node {node_id} not found")
    return nodes[0]


def insert_node(store: Store, node: Node) -> int:
    """Store a node and return its row id."""
    try:
        with store.connection:
            cursor = store.connection.execute(
                f"INSERT INTO {NODES_TABLE} ({_COLUMNS}) VALUES (?,?,?,?,?,?,?,?,?)",
                (
                    node.id,
                    node.testnet_id,
                    node.server,
                    node.local_id,
                    node.ip,
                    node.label,
                    node.absolute_num,
                    node.image,
                    node.protocol,
                ),
            )
    except sqlite3.Error as err:
        raise StoreError("unable to insert node") from err
    return int(cursor.lastrowid)


def get_node_by_local_id(nodes: Iterable[Node], local_id: int) -> Node:
    """Find a node by its number on its server."""
    for node in nodes:
        if node.local_id == local_id:
            return node
    raise NotFoundError(f"node {local_id} not found")


def get_node_by_abs_num(nodes: Iterable[Node], abs_num: int) -> Node:
    """Find a node by its absolute number in the testnet."""
    for node in nodes:
        if node.absolute_num == abs_num:
            return node
    raise NotFoundError(f"node {abs_num} not found")


def divide_nodes_by_abs_match(
    nodes: Sequence[Node], node_nums: Sequence[int]
) -> tuple[list[Node], list[Node]]:
    """Split nodes into those whose absolute number is listed and the rest.

    Matches come in the order of node_nums; each number must match a node
    not already taken.
    """
    if not node_nums:
        raise ValueError("no node numbers given")
    matches: list[Node] = []
    remaining = list(nodes)
    for num in node_nums:
        index = next(
            (i for i, node in enumerate(remaining) if node.absolute_num == num), None
        )
        if index is None:
            raise NotFoundError(f"node {num} not found")
        matches.append(remaining.pop(index))
    return matches, remaining


def get_unique_server_ids(nodes: Iterable[Node]) -> list[int]:
    """Return the distinct server ids of the nodes, in order of first use."""
    return list(dict.fromkeys(node.server for node in nodes))