"""Naive mesh model: link impairments derived from distances between points."""

from __future__ import annotations

import math
from collections.abc import Callable, Sequence
from dataclasses import asdict, dataclass

__all__ = ["Point", "Calculator", "Link", "default_calculator", "distances", "create_links"]


@dataclass(frozen=True)
class Point:
    """A location on a plane."""

    x: float
    y: float


@dataclass
class Calculator:
    """Functions turning a distance into network impairments."""

    loss: Callable[[float], float]
    delay: Callable[[float], int]
    rate: Callable[[float], str]
    duplication: Callable[[float], float]
    corrupt: Callable[[float], float]
    reorder: Callable[[float], float]


@dataclass
class Link:
    """The impairments applied on the link from one node to another."""

    egress_node: int
    ingress_node: int
    loss: float
    delay: int
    rate: str
    duplication: float
    corrupt: float
    reorder: float

    def to_dict(self) -> dict[str, object]:
        """Return the JSON form of the link."""
        data = asdict(self)
        return {
            "egressNode": data["egress_node"],
            "ingressNode": data["ingress_node"],
            "loss": data["loss"],
            "delay": data["delay"],
            "rate": data["rate"],
            "duplicate": data["duplication"],
            "corrupt": data["corrupt"],
            "reorder": data["reorder"],
        }


def _log_capped(log_fn: Callable[[float], float]) -> Callable[[float], float]:
    def impairment(dist: float) -> float:
        if dist == 0:
            return 0.0
        return min(log_fn(dist), 100.0)

    return impairment


def default_calculator() -> Calculator:
    """Return the calculator used when none is given."""
    return Calculator(
        loss=_log_capped(math.log),
        delay=lambda dist: int(dist * 10),
        rate=lambda dist: "",
        duplication=_log_capped(math.log10),
        corrupt=_log_capped(math.log10),
        reorder=_log_capped(math.log10),
    )


def distances(points: Sequence[Point]) -> list[list[float]]:
    """Return the matrix of Euclidean distances between every pair of points."""
    return [
        [math.dist((a.x, a.y), (b.x, b.y)) for b in points]
        for a in points
    ]


def create_links(
    points: Sequence[Point], calculator: Calculator | None = None
) -> list[list[Link]]:
    """Return the links between every pair of points, indexed [egress][ingress]."""
    calc = calculator if calculator is not None else default_calculator()
    return [
        [
            Link(
                egress_node=i,
                ingress_node=j,
                loss=calc.loss(dist),
                delay=calc.delay(dist),
                rate=calc.rate(dist),
                duplication=calc.duplication(dist),
                corrupt=calc.corrupt(dist),
                reorder=calc.reorder(dist),
            )
            for j, dist in enumerate(row)
        ]
        for i, row in enumerate(distances(points))
    ]