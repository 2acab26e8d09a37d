"""Descriptions of the containers that make up a testnet."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field

from genesisnet.nodes import Node, SideCar
from genesisnet.settings import get_config

__all__ = [
    "ContainerType",
    "Resources",
    "ContainerDetails",
    "new_node_container",
    "new_side_car_container",
]


class ContainerType(enum.IntEnum):
    """The role a container plays in the network."""

    NODE = 0
    SIDE_CAR = 1
    SERVICE = 2


@dataclass
class Resources:
    """The resource allocation and exposure of a container."""

    cpus: str = ""
    memory: str = ""
    volumes: list[str] = field(default_factory=list)
    ports: list[str] = field(default_factory=list)


@dataclass
class ContainerDetails:
    """What is needed to start one container."""

    image: str
    node: int
    ip_address: str
    environment: dict[str, str] | None = None
    resources: Resources = field(default_factory=Resources)
    network_index: int = 0
    type: ContainerType = ContainerType.NODE

    @property
    def ip(self) -> str:
        """The address of the container."""
        if self.type not in (ContainerType.NODE, ContainerType.SIDE_CAR):
            raise ValueError("unsupported container type")
        return self.ip_address

    @property
    def name(self) -> str:
        """The name and host name of the container."""
        prefix = get_config().node_prefix
        if self.type is ContainerType.NODE:
            return f"{prefix}{self.node}"
        if self.type is ContainerType.SIDE_CAR:
            return f"{prefix}{self.node}-{self.network_index}"
        raise ValueError("unsupported container type")

    @property
    def network_name(self) -> str:
        """The docker network the container joins."""
        return f"{get_config().node_network_prefix}{self.node}"

    @property
    def ports(self) -> list[str]:
        """The ports to publish, when forwarding is enabled."""
        return self.resources.ports


def new_node_container(
    node: Node, env: dict[str, str] | None, resources: Resources, ip: str
) -> ContainerDetails:
    """Describe the container of a regular node."""
    return ContainerDetails(
        image=node.image,
        node=node.local_id,
        ip_address=ip,
        environment=env,
        resources=resources,
        network_index=0,
        type=ContainerType.NODE,
    )


def new_side_car_container(
    sidecar: SideCar, env: dict[str, str] | None, resources: Resources, ip: str
) -> ContainerDetails:
    """Describe the container of a side car."""
    return ContainerDetails(
        image=sidecar.image,
        node=sidecar.local_id,
        ip_address=ip,
        environment=env,
        resources=resources,
        network_index=sidecar.network_index,
        type=ContainerType.SIDE_CAR,
    )