"""Deployment details of testnet builds and their persistence."""

from __future__ import annotations

import base64
import json
import sqlite3
from dataclasses import dataclass, field
from typing import Any

from genesisnet.store import BUILDS_TABLE, NotFoundError, Store, StoreError

__all__ = [
    "DeploymentDetails",
    "kid_from_jwt",
    "query_builds",
    "get_all_builds",
    "get_build_by_testnet",
    "get_last_build_by_kid",
    "insert_build",
]

_COLUMNS = (
    "testnet,servers,blockchain,nodes,image,params,resources,files,environment,logs,extras,kid"
)


@dataclass
class DeploymentDetails:
    """The data needed to construct a testnet."""

    id: str = ""
    servers: list[int] | None = None
    blockchain: str = ""
    nodes: int = 0
    images: list[str] | None = None
    params: dict[str, Any] | None = None
    resources: list[dict[str, Any]] | None = None
    environments: list[dict[str, str]] | None = None
    files: list[dict[str, str]] | None = None
    logs: list[dict[str, str]] | None = None
    extras: dict[str, Any] | None = None
    jwt: str = field(default="", repr=False, compare=False)
    kid: str = field(default="", repr=False, compare=False)

    def set_jwt(self, jwt: str) -> None:
        """Store the caller's token and the key id found in its header."""
        self.jwt = jwt
        self.kid = ""
        self.kid = kid_from_jwt(jwt)

    def to_dict(self) -> dict[str, Any]:
        """Return the JSON form; the id is left out when empty."""
        out: dict[str, Any] = {}
        if self.id:
            out["id"] = self.id
        out.update(
            servers=self.servers,
            blockchain=self.blockchain,
            nodes=self.nodes,
            images=self.images,
            params=self.params,
            resources=self.resources,
            environments=self.environments,
            files=self.files,
            logs=self.logs,
            extras=self.extras,
        )
        return out

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> DeploymentDetails:
        """Build from the JSON form; missing fields take their empty values."""
        return cls(
            id=data.get("id") or "",
            servers=data.get("servers"),
            blockchain=data.get("blockchain") or "",
            nodes=data.get("nodes") or 0,
            images=data.get("images"),
            params=data.get("params"),
            resources=data.get("resources"),
            environments=data.get("environments"),
            files=data.get("files"),
            logs=data.get("logs"),
            extras=data.get("extras"),
        )


def kid_from_jwt(jwt: str) -> str:
    """Return the key id from a JWT's header."""
    segments = jwt.split(".")
    if len(segments) != 3:
        raise ValueError("jwt must have three segments")
    header_segment = segments[0]
    padded = header_segment + "=" * (-len(header_segment) % 4)
    try:
        header = json.loads(base64.urlsafe_b64decode(padded))
    except ValueError as err:
        raise ValueError("invalid jwt header") from err
    kid = header.get("kid") if isinstance(header, dict) else None
    if not isinstance(kid, str):
        raise ValueError("jwt header has no kid")
    return kid


def _decode(raw: Any, column: str) -> Any:
    try:
        return json.loads(raw)
    except (TypeError, ValueError) as err:
        raise StoreError(f"invalid {column} value in build record") from err


def query_builds(
    store: Store, where: str = "", params: tuple[Any, ...] | list[Any] = ()
) -> list[DeploymentDetails]:
    """Fetch builds, optionally narrowed by a SQL clause with bound parameters."""
    query = f"SELECT {_COLUMNS} FROM {BUILDS_TABLE}"
    if where:
        query += " " + where
    try:
        rows = store.connection.execute(query, tuple(params)).fetchall()
    except sqlite3.Error as err:
        raise StoreError("unable to query builds") from err
    builds = []
    for (testnet, servers, blockchain, nodes, images, build_params, resources,
         files, environment, logs, extras, kid) in rows:
        builds.append(
            DeploymentDetails(
                id=testnet or "",
                servers=_decode(servers, "servers"),
                blockchain=blockchain or "",
                nodes=nodes or 0,
                images=_decode(images, "image"),
                params=_decode(build_params, "params"),
                resources=_decode(resources, "resources"),
                environments=_decode(environment, "environment"),
                files=_decode(files, "files"),
                logs=_decode(logs, "logs"),
                extras=_decode(extras, "extras"),
                kid=kid or "",
            )
        )
    return builds


def get_all_builds(store: Store) -> list[DeploymentDetails]:
    """Return every stored build."""
    return query_builds(store)


def get_build_by_testnet(store: Store, testnet_id: str) -> DeploymentDetails:
    """Return the build of the given testnet."""
    details = query_builds(store, "WHERE testnet = ?", (testnet_id,))
    if not details:
        raise NotFoundError("no results found")
    return details[0]


def get_last_build_by_kid(store: Store, kid: str) -> DeploymentDetails:
    """Return the most recent build made with the given key id."""
    details = query_builds(store, "WHERE kid = ? ORDER BY id DESC LIMIT 1", (kid,))
    if not details:
        raise NotFoundError("no results found")
    return details[0]


def insert_build(store: Store, details: DeploymentDetails, testnet_id: str) -> None:
    """Store the details of a build under its testnet id."""
    try:
        values = (
            testnet_id,
            json.dumps(details.servers),
            details.blockchain,
            details.nodes,
            json.dumps(details.images),
            json.dumps(details.params),
            json.dumps(details.resources),
            json.dumps(details.files),
            json.dumps(details.environments),
            json.dumps(details.logs),
            json.dumps(details.extras),
            details.kid,
        )
    except (TypeError, ValueError) as err:
        raise StoreError("cannot encode build details") from err
    try:
        with store.connection:
            store.connection.execute(
                f"INSERT INTO {BUILDS_TABLE} ({_COLUMNS}) VALUES (?,?,?,?,?,?,?,?,?,?,?,?)",
                values,
            )
    except sqlite3.Error as err:
        raise StoreError("unable to insert build") from err