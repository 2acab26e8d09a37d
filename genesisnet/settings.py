"""Process-wide configuration shared by the database and network modules."""

from __future__ import annotations

import threading
from dataclasses import dataclass

__all__ = ["Config", "get_config", "set_config"]


@dataclass
class Config:
    """Settings that control where state is kept and how nodes are named."""

    data_directory: str = "."
    ssh_host: str = "127.0.0.1"
    max_nodes: int = 200
    node_prefix: str = "whiteblock-node"
    node_network_prefix: str = "wb_vlan"
    bridge_prefix: str = "wb_bridge"
    service_prefix: str = "wb_service"
    service_network_name: str = "wb_builtin_services"
    enable_docker_volumes: bool = False
    enable_port_forwarding: bool = False
    remove_nodes_on_failure: bool = True


_lock = threading.Lock()
_current: Config | None = None


def get_config() -> Config:
    """Return the active configuration, creating the default one on first use."""
    global _current
    with _lock:
        if _current is None:
            _current = Config()
        return _current


def set_config(config: Config) -> None:
    """Replace the active configuration."""
    global _current
    if not isinstance(config, Config):
        raise TypeError("config must be a Config instance")
    with _lock:
        _current = config