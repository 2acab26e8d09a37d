"""Servers on which testnets are built, and their persistence."""

from __future__ import annotations

import re
import sqlite3
from collections.abc import Iterable
from dataclasses import dataclass

from genesisnet.store import NODES_TABLE, SERVER_TABLE, NotFoundError, Store, StoreError

__all__ = [
    "Server",
    "get_all_servers",
    "get_servers",
    "get_server",
    "insert_server",
    "delete_server",
    "update_server",
    "update_server_nodes",
    "get_host_ips_by_testnet",
]

_ADDR = re.compile(r"[0-9]{1,3}\.[0-9]{1,3}\.[0-9]{1,3}\.[0-9]{1,3}", re.MULTILINE)
_COLUMNS = "id,server_id,addr,nodes,max,name"


@dataclass
class Server:
    """A host on which nodes can be built."""

    addr: str = ""
    nodes: int = 0
    max_nodes: int = 0
    id: int = 0
    subnet_id: int = 0

    def validate(self) -> None:
        """Raise ValueError if the server holds invalid data."""
        if not _ADDR.search(self.addr):
            raise ValueError("invalid addr")
        if self.nodes < 0:
            raise ValueError("invalid nodes")
        if self.nodes > self.max_nodes:
            raise ValueError("invalid max")
        if self.subnet_id < 1:
            raise ValueError("invalid SubnetID")


def _fetch(store: Store, where: str = "", params: tuple = ()) -> list[tuple[str, Server]]:
    query = f"SELECT {_COLUMNS} FROM {SERVER_TABLE}"
    if where:
        query += " " + where
    try:
        rows = store.connection.execute(query, params).fetchall()
    except sqlite3.Error as err:
        raise StoreError("unable to query servers") from err
    return [
        (
            name or "",
            Server(addr=addr, nodes=nodes or 0, max_nodes=max_nodes or 0,
                   id=row_id, subnet_id=subnet_id or 0),
        )
        for row_id, subnet_id, addr, nodes, max_nodes, name in rows
    ]


def get_all_servers(store: Store) -> dict[str, Server]:
    """Return all servers keyed by name."""
    return dict(_fetch(store))


def get_server(store: Store, server_id: int) -> tuple[Server, str]:
    """Return the server with the given id and its name."""
    found = _fetch(store, "WHERE id = ?", (server_id,))
    if not found:
        raise NotFoundError("not found")
    name, server = found[0]
    return server, name


def get_servers(store: Store, ids: Iterable[int]) -> list[Server]:
    """Return the servers with the given ids, in the same order."""
    return [get_server(store, server_id)[0] for server_id in ids]


def insert_server(store: Store, name: str, server: Server) -> int:
    """Store a new server and return its id."""
    try:
        with store.connection:
            cursor = store.connection.execute(
                f"INSERT INTO {SERVER_TABLE} (addr,server_id,nodes,max,name) VALUES (?,?,?,?,?)",
                (server.addr, server.subnet_id, server.nodes, server.max_nodes, name),
            )
    except sqlite3.Error as err:
        raise StoreError("unable to insert server") from err
    return int(cursor.lastrowid)


def delete_server(store: Store, server_id: int) -> None:
    """Delete the server with the given id."""
    try:
        with store.connection:
            store.connection.execute(f"DELETE FROM {SERVER_TABLE} WHERE id = ?", (server_id,))
    except sqlite3.Error as err:
        raise StoreError("unable to delete server") from err


def update_server(store: Store, server_id: int, server: Server) -> None:
    """Overwrite the stored details of a server."""
    try:
        with store.connection:
            store.connection.execute(
                f"UPDATE {SERVER_TABLE} SET server_id = ?, addr = ?, nodes = ?, max = ? WHERE id = ?",
                (server.subnet_id, server.addr, server.nodes, server.max_nodes, server_id),
            )
    except sqlite3.Error as err:
        raise StoreError("unable to update server") from err


def update_server_nodes(store: Store, server_id: int, nodes: int) -> None:
    """Set the number of nodes a server holds."""
    try:
        with store.connection:
            store.connection.execute(
                f"UPDATE {SERVER_TABLE} SET nodes = ? WHERE id = ?", (nodes, server_id)
            )
    except sqlite3.Error as err:
        raise StoreError("unable to update server nodes") from err


def get_host_ips_by_testnet(store: Store, server_id: int) -> list[str]:
    """Return the address of the server if any node was ever placed on it."""
    query = (
        f"SELECT addr FROM {SERVER_TABLE} INNER JOIN {NODES_TABLE}"
        f" ON {SERVER_TABLE}.id == {NODES_TABLE}.server"
        f" WHERE {SERVER_TABLE}.id == ? GROUP BY {SERVER_TABLE}.id"
    )
    try:
        rows = store.connection.execute(query, (server_id,)).fetchall()
    except sqlite3.Error as err:
        raise StoreError("unable to query host addresses") from err
    return [addr for (addr,) in rows]