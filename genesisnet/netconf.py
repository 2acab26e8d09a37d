"""Traffic-control commands that simulate network conditions on node bridges."""

from __future__ import annotations

import dataclasses
import logging
import re
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Protocol

from genesisnet.settings import get_config

__all__ = ["Client", "Netconf", "create_commands", "apply", "parse_items", "get_config_on_server"]

log = logging.getLogger(__name__)

_MARK = 6
_DECIMAL = re.compile(r"[0-9]+\.[0-9]+", re.MULTILINE)
_INT = re.compile(r"[+-]?[0-9]+")


class Client(Protocol):
    """A connection to a server that runs shell commands, raising on failure."""

    def run(self, command: str) -> str:
        """Run a command and return its output."""
        ...


@dataclass
class Netconf:
    """The impairments applied to one node's bridge."""

    node: int = 0
    limit: int = 0
    loss: float = 0.0
    delay: int = 0
    rate: str = ""
    duplication: float = 0.0
    corrupt: float = 0.0
    reorder: float = 0.0


def create_commands(netconf: Netconf, gateway: str) -> list[str]:
    """Return the commands that put the given conditions in place.

    The gateway is that of the node's network; traffic not bound for it is marked.
    """
    bridge = f"{get_config().bridge_prefix}{netconf.node}"
    netem = f"sudo -n tc qdisc add dev {bridge} parent 1:1 handle 2: netem"
    if netconf.limit > 0:
        netem += f" limit {netconf.limit}"
    if netconf.loss > 0:
        netem += f" loss {netconf.loss:.4f}"
    if netconf.delay > 0:
        netem += f" delay {netconf.delay}us"
    if netconf.rate:
        netem += f" rate {netconf.rate}"
    if netconf.duplication > 0:
        netem += f" duplicate {netconf.duplication:.4f}"
    if netconf.corrupt > 0:
        # The corrupt percentage is written from the duplication value.
        netem += f" corrupt {netconf.duplication:.4f}"
    if netconf.reorder > 0:
        netem += f" reorder {netconf.reorder:.4f}"
    return [
        f"sudo -n tc qdisc del dev {bridge} root",
        f"sudo -n tc qdisc add dev {bridge} root handle 1: prio",
        netem,
        f"sudo -n tc filter add dev {bridge} parent 1:0 protocol ip pref 55 handle {_MARK} fw flowid 2:1",
        f"sudo -n iptables -t mangle -A PREROUTING  ! -d {gateway} -j MARK --set-mark {_MARK}",
    ]


def apply(client: Client, netconf: Netconf, gateway: str) -> None:
    """Run the commands for the given conditions on the client.

    Failure of the first command, which clears old rules, is ignored.
    """
    clear, *rest = create_commands(netconf, gateway)
    try:
        client.run(clear)
    except Exception as err:  # clearing is best effort; there may be nothing to clear
        log.debug("clearing previous rules failed: %s", err)
    for command in rest:
        client.run(command)


def _parse_int(text: str) -> int:
    if not _INT.fullmatch(text):
        raise ValueError(f"invalid integer {text!r}")
    return int(text)


def _parse_float(text: str) -> float:
    if not text or text != text.strip() or "_" in text:
        raise ValueError(f"invalid number {text!r}")
    return float(text)


def _parse_percent(text: str) -> float:
    return _parse_float(text[:-1])


def _parse_delay(text: str) -> int:
    matches = _DECIMAL.findall(text)
    if not matches:
        raise ValueError(f'unexpected delay value "{text}"')
    value = _parse_float(matches[0])
    unit = text[len(matches[0]):]
    if unit == "s":
        value *= 1000 * 1000
    elif unit == "ms":
        value *= 1000
    return int(value)


def parse_items(items: Sequence[str], netconf: Netconf) -> Netconf:
    """Return netconf updated with the key/value pairs listed by tc.

    Unknown keys are skipped; a trailing unpaired item is ignored.
    """
    changes: dict[str, object] = {}
    for key, value in zip(items[0::2], items[1::2]):
        if key == "limit":
            changes["limit"] = _parse_int(value)
        elif key == "loss":
            changes["loss"] = _parse_percent(value)
        elif key == "delay":
            changes["delay"] = _parse_delay(value)
        elif key == "rate":
            changes["rate"] = value
        elif key == "duplicate":
            changes["duplication"] = _parse_percent(value)
        elif key == "corrupt":
            changes["corrupt"] = _parse_percent(value)
        elif key == "reorder":
            changes["reorder"] = _parse_percent(value)
    return dataclasses.replace(netconf, **changes)


def get_config_on_server(client: Client) -> list[Netconf]:
    """Return the impairments currently applied on the client's server."""
    prefix = get_config().bridge_prefix
    res = client.run(f"sudo -n tc qdisc show | grep {prefix} | grep netem || true")
    out: list[Netconf] = []
    for raw_config in res.split("\n") if res else []:
        raw_items = raw_config.split(" ")
        if len(raw_items) < 5:
            continue
        nconf = Netconf(node=_parse_int(raw_items[4][len(prefix):]))
        if len(raw_items) >= 8:
            nconf = parse_items(raw_items[7:], nconf)
        out.append(nconf)
    return out