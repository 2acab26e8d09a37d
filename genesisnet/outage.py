"""Connection outages between nodes, enforced with iptables DROP rules."""

from __future__ import annotations

import itertools
import logging
import re
from collections.abc import Callable, Iterable, Mapping, Sequence
from concurrent.futures import ThreadPoolExecutor

from genesisnet.connections import Connection, Connections
from genesisnet.netconf import Client
from genesisnet.nodes import Node, get_unique_server_ids
from genesisnet.settings import get_config

__all__ = [
    "remove_all_outages",
    "remove_all_on_server",
    "make_outage_commands",
    "make_outage",
    "remove_outage",
    "create_partition_outage",
    "get_cut_connections",
    "calculate_partitions",
]

log = logging.getLogger(__name__)

_LIST_RULES = "sudo iptables --list-rules | grep wb_bridge | grep DROP | grep FORWARD || true"
_LIST_CUTS = (
    "sudo iptables --list-rules | grep wb_bridge | grep DROP | grep FORWARD"
    " | awk '{print $4,$6}' | sed -e 's/\\/32//g' || true"
)
_INT = re.compile(r"[+-]?[0-9]+")


def _client_for(clients: Mapping[int, Client], server: int) -> Client:
    try:
        return clients[server]
    except KeyError:
        raise KeyError(f"no client for server {server}") from None


def _delete_rule(client: Client, rule: str) -> None:
    try:
        client.run(f"sudo iptables -D {rule}")
    except Exception as err:  # each rule is removed independently
        log.error("failed to remove rule %r: %s", rule, err)


def remove_all_outages(client: Client) -> None:
    """Remove every blocked connection on the client's server."""
    res = client.run(_LIST_RULES)
    if not res:
        return
    rules = [rule for rule in res.replace("-A ", "").split("\n") if rule]
    if not rules:
        return
    with ThreadPoolExecutor() as pool:
        list(pool.map(lambda rule: _delete_rule(client, rule), rules))


def remove_all_on_server(client: Client, nodes: int) -> None:
    """Clear the conditions of the first `nodes` bridges and every outage on a server."""
    prefix = get_config().bridge_prefix
    for i in range(nodes):
        try:
            client.run(f"sudo tc qdisc del dev {prefix}{i} root")
        except Exception as err:  # a bridge without rules is not an error
            log.debug("nothing to clear on %s%d: %s", prefix, i, err)
    try:
        remove_all_outages(client)
    except Exception as err:
        log.error("failed to remove outages: %s", err)


def make_outage_commands(node1: Node, node2: Node) -> list[str]:
    """Return the rules that drop traffic between two nodes, one per direction."""
    prefix = get_config().bridge_prefix
    return [
        f"FORWARD -i {prefix}{node1.absolute_num} -d {node2.ip} -j DROP",
        f"FORWARD -i {prefix}{node2.absolute_num} -d {node1.ip} -j DROP",
    ]


def _make_or_remove(
    clients: Mapping[int, Client], node1: Node, node2: Node, create: bool
) -> None:
    flag = "-I" if create else "-D"
    first, second = make_outage_commands(node1, node2)
    _client_for(clients, node1.server).run(f"sudo iptables {flag} {first}")
    _client_for(clients, node2.server).run(f"sudo iptables {flag} {second}")


def make_outage(clients: Mapping[int, Client], node1: Node, node2: Node) -> None:
    """Stop the two nodes from reaching each other."""
    _make_or_remove(clients, node1, node2, True)


def remove_outage(clients: Mapping[int, Client], node1: Node, node2: Node) -> None:
    """Let the two nodes reach each other again."""
    _make_or_remove(clients, node1, node2, False)


def create_partition_outage(
    clients: Mapping[int, Client], side1: Iterable[Node], side2: Iterable[Node]
) -> None:
    """Cut every connection between the two sides; failures are logged."""

    def cut(pair: tuple[Node, Node]) -> None:
        try:
            make_outage(clients, *pair)
        except Exception as err:
            log.error("failed to create outage: %s", err)

    pairs = list(itertools.product(side1, side2))
    if not pairs:
        return
    with ThreadPoolExecutor() as pool:
        list(pool.map(cut, pairs))


def get_cut_connections(client: Client, node_of_ip: Callable[[str], int]) -> list[Connection]:
    """Return the connections cut on the client's server.

    node_of_ip maps a node's address to its number.
    """
    prefix = get_config().bridge_prefix
    res = client.run(_LIST_CUTS)
    out: list[Connection] = []
    if not res:
        return out
    for cut in res.split("\n"):
        if not cut:
            continue
        pair = cut.split(" ")
        if len(pair) != 2:
            raise ValueError(f'unexpected result "{cut}" for cut pair')
        ip, interface = pair
        to_node = node_of_ip(ip)
        if len(interface) <= len(prefix):
            raise ValueError(f'unexpected source interface, found "{interface}"')
        number = interface[len(prefix):]
        if not _INT.fullmatch(number):
            raise ValueError(f"invalid node number {number!r} in interface {interface!r}")
        from_node = int(number)
        out.append(Connection(to=to_node, from_=from_node))
        log.debug("found a disconnection from %d to %d", from_node, to_node)
    return out


def calculate_partitions(
    clients: Mapping[int, Client],
    nodes: Sequence[Node],
    node_of_ip: Callable[[str], int],
) -> list[list[int]]:
    """Return the current partitions of the network formed by the nodes."""
    cut: list[Connection] = []
    for server in get_unique_server_ids(nodes):
        cut.extend(get_cut_connections(_client_for(clients, server), node_of_ip))
    conns = Connections(len(nodes))
    conns.remove_all(cut)
    return conns.networks()