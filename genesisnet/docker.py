"""Docker commands run over server connections to manage node containers."""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable, Mapping
from concurrent.futures import ThreadPoolExecutor

from genesisnet.containers import ContainerDetails, Resources
from genesisnet.netconf import Client
from genesisnet.settings import get_config

__all__ = [
    "kill_node",
    "kill",
    "kill_all",
    "network_create_command",
    "network_create",
    "network_destroy",
    "network_destroy_all",
    "login",
    "logout",
    "pull",
    "docker_run_command",
    "run",
    "service_docker_run_command",
    "stop_services",
]

log = logging.getLogger(__name__)

_MEMORY = re.compile(r"([0-9]+)\s*([kKmMgGtT]?)[bB]?")
_UNITS = {"": 1, "k": 1000, "m": 1000**2, "g": 1000**3, "t": 1000**4}


def kill_node(client: Client, node: int) -> None:
    """Remove the container of a single node on a server."""
    client.run(f"docker rm -f {get_config().node_prefix}{node}")


def kill(client: Client, node: int) -> None:
    """Remove a node's container together with all of its side cars."""
    client.run(f'docker rm -f $(docker ps -aq -f name="{get_config().node_prefix}{node}")')


def kill_all(client: Client) -> None:
    """Remove every node container on a server."""
    client.run(f'docker rm -f $(docker ps -aq -f name="{get_config().node_prefix}")')


def network_create_command(subnet: str, gateway: str, network: int, name: str) -> str:
    """Return the command that creates a docker network on its own bridge."""
    bridge = f"{get_config().bridge_prefix}{network}"
    return (
        f"docker network create --subnet {subnet} --gateway {gateway}"
        f' -o "com.docker.network.bridge.name={bridge}" {name}'
    )


def network_create(client: Client, subnet: str, gateway: str, node: int) -> None:
    """Create the docker network of a node."""
    name = f"{get_config().node_network_prefix}{node}"
    client.run(network_create_command(subnet, gateway, node, name))


def network_destroy(client: Client, node: int) -> None:
    """Remove the docker network of a single node."""
    client.run(f"docker network rm {get_config().node_network_prefix}{node}")


def network_destroy_all(client: Client) -> None:
    """Remove every node network on a server."""
    prefix = get_config().node_network_prefix
    client.run(
        f"for net in $(docker network ls | grep {prefix} | awk '{{print $1}}');"
        " do docker network rm $net; done"
    )


def _escape_quotes(text: str) -> str:
    return text.replace('"', '\\"')


def login(client: Client, username: str, password: str) -> None:
    """Log the server's docker client in to a registry."""
    client.run(f'docker login -u "{_escape_quotes(username)}" -p "{_escape_quotes(password)}"')


def logout(client: Client) -> None:
    """Log the server's docker client out."""
    client.run("docker logout")


def pull(clients: Iterable[Client], image: str) -> None:
    """Pull an image on every given server, stopping at the first failure."""
    for client in clients:
        client.run(f"docker pull {image}")


def _memory_bytes(memory: str) -> int:
    match = _MEMORY.fullmatch(memory.strip())
    if match is None:
        raise ValueError("invalid value for memory")
    amount, unit = match.groups()
    return int(amount) * _UNITS[unit.lower()]


def _has_cpu_limit(resources: Resources) -> bool:
    return bool(resources.cpus)


def _has_memory_limit(resources: Resources) -> bool:
    return bool(resources.memory)


def docker_run_command(container: ContainerDetails) -> str:
    """Return the command that starts the given container."""
    config = get_config()
    resources = container.resources
    parts = [f"docker run -itd --entrypoint /bin/sh --network {container.network_name}"]
    if _has_cpu_limit(resources):
        parts.append(f"--cpus {resources.cpus}")
    if resources.volumes is not None and config.enable_docker_volumes:
        parts.extend(f"-v {volume}" for volume in resources.volumes)
    if config.enable_port_forwarding:
        parts.extend(f"-p {port}" for port in container.ports)
    if _has_memory_limit(resources):
        parts.append(f"--memory {_memory_bytes(resources.memory)}")
    for key, value in (container.environment or {}).items():
        parts.append(f'-e "{key}={value}"')
    name = container.name
    parts.append(f"--ip {container.ip}")
    parts.append(f"--hostname {name}")
    parts.append(f"--name {name}")
    parts.append(container.image)
    return " ".join(parts)


def run(client: Client, container: ContainerDetails) -> None:
    """Start the given container on the client's server."""
    client.run(docker_run_command(container))


def service_docker_run_command(
    network: str,
    ip: str,
    name: str,
    env: Mapping[str, str] | None,
    volumes: Iterable[str] | None,
    ports: Iterable[str] | None,
    image: str,
    cmd: str,
) -> str:
    """Return the command that starts a service container."""
    config = get_config()
    env_flags = "".join(f'-e "{key}={value}" ' for key, value in (env or {}).items())
    env_flags += f'-e "BIND_ADDR={ip}"'
    ip_flag = f"--ip {ip}" if ip else ""
    volume_flags = (
        "".join(f"-v {volume} " for volume in volumes or ())
        if config.enable_docker_volumes
        else ""
    )
    port_flags = (
        "".join(f"-p {port} " for port in ports or ())
        if config.enable_port_forwarding
        else ""
    )
    return (
        f"docker run -itd --network {network} {ip_flag} --hostname {name} --name {name}"
        f" {env_flags} {volume_flags} {port_flags} {image} {cmd}"
    )


def _stop_services_on(client: Client) -> None:
    config = get_config()
    try:
        client.run(f"docker rm -f $(docker ps -aq -f name={config.service_prefix})")
    except Exception as err:  # nothing to remove is not a failure
        log.info("no service containers to remove: %s", err)
    try:
        client.run(f"docker network rm {config.service_network_name}")
    except Exception as err:
        log.info("no service network to remove: %s", err)


def stop_services(clients: Iterable[Client]) -> None:
    """Remove all service containers and the service network on every server."""
    targets = list(clients)
    if not targets:
        return
    with ThreadPoolExecutor() as pool:
        list(pool.map(_stop_services_on, targets))