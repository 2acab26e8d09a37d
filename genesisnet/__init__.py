"""Test network bookkeeping, docker command building and network impairments."""

__version__ = "0.1.0"

__all__ = [
    "builds",
    "connections",
    "containers",
    "docker",
    "mesh",
    "netconf",
    "nodes",
    "outage",
    "servers",
    "settings",
    "store",
    "validators",
]