"""SQLite-backed persistent state: schema creation, versioning and meta values."""

from __future__ import annotations

import json
import logging
import sqlite3
from pathlib import Path
from typing import Any

from genesisnet.settings import Config

__all__ = [
    "VERSION",
    "SERVER_TABLE",
    "NODES_TABLE",
    "BUILDS_TABLE",
    "StoreError",
    "NotFoundError",
    "Store",
    "open_store",
]

log = logging.getLogger(__name__)

# A change of this value purges any database written by an older version.
VERSION = "2.2.5"

SERVER_TABLE = "servers"
NODES_TABLE = "nodes"
BUILDS_TABLE = "builds"

_SCHEMA = (
    f"CREATE TABLE {SERVER_TABLE} ("
    "id INTEGER PRIMARY KEY AUTOINCREMENT, server_id INTEGER, addr TEXT NOT NULL,"
    " nodes INTEGER DEFAULT 0, max INTEGER, name TEXT)",
    f"CREATE TABLE {NODES_TABLE} ("
    "id TEXT, abs_num INTEGER, test_net TEXT, server INTEGER, local_id INTEGER,"
    " ip TEXT NOT NULL, label TEXT, image TEXT, protocol TEXT)",
    f"CREATE TABLE {BUILDS_TABLE} ("
    "id INTEGER PRIMARY KEY AUTOINCREMENT, testnet TEXT, servers TEXT, blockchain TEXT,"
    " nodes INTEGER, image TEXT, params TEXT, resources TEXT, environment TEXT,"
    " files TEXT, logs TEXT, extras TEXT, kid TEXT)",
    "CREATE TABLE meta (key TEXT, value TEXT)",
)


class StoreError(Exception):
    """Raised when the persistent store cannot complete an operation."""


class NotFoundError(StoreError):
    """Raised when a requested record does not exist."""


class Store:
    """An open state database; recreated from scratch when its version is stale."""

    def __init__(self, path: str | Path, config: Config) -> None:
        self.path = Path(path)
        self.config = config
        self.connection = self._open()
        if self._stored_version() != VERSION:
            log.info("updating the database")
            self.connection.close()
            self.path.unlink(missing_ok=True)
            self.connection = self._open()
            log.info("database update finished")

    def _open(self) -> sqlite3.Connection:
        fresh = not self.path.exists()
        try:
            connection = sqlite3.connect(str(self.path), check_same_thread=False)
        except sqlite3.Error as err:
            raise StoreError(f"unable to open the database at {self.path}") from err
        if fresh:
            log.info("creating data store at %s", self.path)
            try:
                self._initialise(connection)
            except sqlite3.Error as err:
                connection.close()
                raise StoreError("unable to create the database") from err
        return connection

    def _initialise(self, connection: sqlite3.Connection) -> None:
        with connection:
            for statement in _SCHEMA:
                connection.execute(statement)
            log.warning("creating initial server for host %s", self.config.ssh_host)
            connection.execute(
                f"INSERT INTO {SERVER_TABLE} (addr,server_id,nodes,max,name) VALUES (?,?,?,?,?)",
                (self.config.ssh_host, 1, 0, self.config.max_nodes, "cloud"),
            )
            connection.execute(
                "INSERT INTO meta (key,value) VALUES (?,?)", ("version", VERSION)
            )

    def _stored_version(self) -> str | None:
        try:
            row = self.connection.execute(
                "SELECT value FROM meta WHERE key = ?", ("version",)
            ).fetchone()
        except sqlite3.Error:
            return None
        return None if row is None else row[0]

    def close(self) -> None:
        """Close the underlying connection."""
        self.connection.close()

    def __enter__(self) -> Store:
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()

    def version(self) -> str:
        """Return the schema version recorded in the database."""
        stored = self._stored_version()
        if stored is None:
            raise NotFoundError("no version recorded")
        return stored

    def set_meta(self, key: str, value: Any) -> None:
        """Store a value under key, encoded as JSON."""
        try:
            encoded = json.dumps(value)
        except (TypeError, ValueError) as err:
            raise StoreError(f"cannot encode value for {key!r}") from err
        try:
            with self.connection:
                self.connection.execute(
                    "INSERT INTO meta (key,value) VALUES (?,?)", (key, encoded)
                )
        except sqlite3.Error as err:
            raise StoreError(f"unable to store {key!r}") from err

    def get_meta(self, key: str) -> Any:
        """Return the decoded value stored under key."""
        try:
            row = self.connection.execute(
                "SELECT value FROM meta WHERE key = ? ORDER BY rowid LIMIT 1", (key,)
            ).fetchone()
        except sqlite3.Error as err:
            raise StoreError(f"unable to read {key!r}") from err
        if row is None:
            raise NotFoundError(f"no meta value for {key!r}")
        try:
            return json.loads(row[0])
        except (TypeError, ValueError) as err:
            raise StoreError(f"invalid value stored for {key!r}") from err

    def delete_meta(self, key: str) -> None:
        """Remove every value stored under key."""
        try:
            with self.connection:
                self.connection.execute("DELETE FROM meta WHERE key = ?", (key,))
        except sqlite3.Error as err:
            raise StoreError(f"unable to delete {key!r}") from err


def open_store(config: Config) -> Store:
    """Open the store kept in the configured data directory."""
    return Store(Path(config.data_directory) / ".gdata", config)