import pytest

from genesisnet.mesh import (
    Calculator,
    Link,
    Point,
    create_links,
    default_calculator,
    distances,
)


def _constant_calculator(loss, delay, rate, duplication, corrupt, reorder):
    return Calculator(
        loss=lambda _: loss,
        delay=lambda _: delay,
        rate=lambda _: rate,
        duplication=lambda _: duplication,
        corrupt=lambda _: corrupt,
        reorder=lambda _: reorder,
    )


@pytest.mark.parametrize(
    "points, calculator, expected",
    [
        (
            [Point(0, 2), Point(3, 2)],
            _constant_calculator(3.5, 2, "0", 0, 0.2, 0.1),
            [
                [Link(0, 0, 3.5, 2, "0", 0, 0.2, 0.1), Link(0, 1, 3.5, 2, "0", 0, 0.2, 0.1)],
                [Link(1, 0, 3.5, 2, "0", 0, 0.2, 0.1), Link(1, 1, 3.5, 2, "0", 0, 0.2, 0.1)],
            ],
        ),
        (
            [Point(5, 4), Point(0, 0)],
            _constant_calculator(1.5, 1, "2", 0.5, 1.5, 0),
            [
                [Link(0, 0, 1.5, 1, "2", 0.5, 1.5, 0), Link(0, 1, 1.5, 1, "2", 0.5, 1.5, 0)],
                [Link(1, 0, 1.5, 1, "2", 0.5, 1.5, 0), Link(1, 1, 1.5, 1, "2", 0.5, 1.5, 0)],
            ],
        ),
    ],
)
def test_create_links(points, calculator, expected):
    assert create_links(points, calculator) == expected


def test_distances_symmetric_with_zero_diagonal():
    result = distances([Point(0, 0), Point(3, 4), Point(6, 8)])
    assert result == [[0.0, 5.0, 10.0], [5.0, 0.0, 5.0], [10.0, 5.0, 0.0]]


def test_distances_empty():
    assert distances([]) == []


def test_default_calculator_zero_distance():
    calc = default_calculator()
    assert calc.loss(0) == 0
    assert calc.delay(0) == 0
    assert calc.rate(0) == ""
    assert calc.duplication(0) == 0
    assert calc.corrupt(0) == 0
    assert calc.reorder(0) == 0


def test_default_calculator_values():
    calc = default_calculator()
    assert calc.delay(5) == 50
    assert calc.delay(0.39) == 3
    assert calc.duplication(10) == pytest.approx(1.0)
    assert calc.corrupt(100) == pytest.approx(2.0)
    assert calc.reorder(1000) == pytest.approx(3.0)
    assert calc.loss(1) == 0


def test_default_calculator_caps_at_100():
    calc = default_calculator()
    assert calc.loss(1e300) == 100.0
    assert calc.duplication(1e300) == 100.0


def test_create_links_uses_default_calculator():
    links = create_links([Point(0, 0), Point(3, 4)])
    assert links[0][0] == Link(0, 0, 0, 0, "", 0, 0, 0)
    assert links[0][1].delay == 50
    assert links[1][0].ingress_node == 0
    assert links[1][0].egress_node == 1


def test_link_to_dict():
    link = Link(1, 2, 0.5, 3, "1mbit", 0.1, 0.2, 0.3)
    assert link.to_dict() == {
        "egressNode": 1,
        "ingressNode": 2,
        "loss": 0.5,
        "delay": 3,
        "rate": "1mbit",
        "duplicate": 0.1,
        "corrupt": 0.2,
        "reorder": 0.3,
    }