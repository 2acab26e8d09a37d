import pytest

from genesisnet.builds import DeploymentDetails
from genesisnet.validators import (
    ValidationError,
    check_for_nil_or_missing,
    validate,
    validate_num_of_nodes,
)

_UNSET = object()


def _details(servers=_UNSET, blockchain="eos", nodes=100, images=_UNSET):
    return DeploymentDetails(
        id="123",
        servers=[4, 5, 6] if servers is _UNSET else servers,
        blockchain=blockchain,
        nodes=nodes,
        images=["d", "A", " "] if images is _UNSET else images,
        params={},
        resources=[{"cpus": " ", "memory": " ", "volumes": [], "ports": []}],
        environments=[],
        files=[],
        logs=[],
        extras={},
    )


def test_num_of_nodes_accepts_then_rejects_too_many():
    validate_num_of_nodes(_details(nodes=100), 200)
    with pytest.raises(ValidationError) as info:
        validate_num_of_nodes(_details(nodes=1000), 200)
    assert str(info.value) == "too many nodes: max of 200 nodes"


def test_num_of_nodes_rejects_zero():
    with pytest.raises(ValidationError) as info:
        validate_num_of_nodes(_details(nodes=0), 200)
    assert str(info.value) == "must have at least 1 node"


def test_num_of_nodes_uses_configured_default():
    with pytest.raises(ValidationError) as info:
        validate_num_of_nodes(_details(nodes=1000))
    assert str(info.value) == "too many nodes: max of 200 nodes"


@pytest.mark.parametrize(
    "details, expected",
    [
        (_details(servers=None), "servers cannot be null"),
        (_details(servers=[], blockchain="geth", images=["~", "", "|"]), "servers cannot be empty"),
        (_details(blockchain="", images=["~", "", "|"]), "blockchain cannot be empty"),
        (_details(images=None), "images cannot be null"),
        (_details(images=[]), "images cannot be empty"),
    ],
)
def test_check_for_nil_or_missing(details, expected):
    with pytest.raises(ValidationError) as info:
        check_for_nil_or_missing(details)
    assert str(info.value) == expected


def test_check_for_nil_or_missing_accepts_complete_then_rejects_empty():
    complete = _details(images=["test", "blah"])
    check_for_nil_or_missing(complete)
    complete.images = []
    with pytest.raises(ValidationError, match="images cannot be empty"):
        check_for_nil_or_missing(complete)


@pytest.mark.parametrize(
    "details, expected",
    [
        (_details(servers=None), "servers cannot be null"),
        (_details(servers=[], blockchain="geth", images=["1"]), "servers cannot be empty"),
    ],
)
def test_validate(details, expected):
    with pytest.raises(ValidationError) as info:
        validate(details, 200)
    assert str(info.value) == expected


def test_validate_checks_node_count_first():
    with pytest.raises(ValidationError) as info:
        validate(_details(servers=None, nodes=0), 200)
    assert str(info.value) == "must have at least 1 node"


def test_validation_error_is_value_error():
    with pytest.raises(ValueError):
        validate(_details(images=[]), 200)