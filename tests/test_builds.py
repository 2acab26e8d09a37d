import base64
import dataclasses
import json

import pytest

from genesisnet.builds import (
    DeploymentDetails,
    get_all_builds,
    get_build_by_testnet,
    get_last_build_by_kid,
    insert_build,
    kid_from_jwt,
    query_builds,
)
from genesisnet.settings import Config
from genesisnet.store import NotFoundError, open_store


def _segment(obj):
    raw = json.dumps(obj).encode()
    return base64.urlsafe_b64encode(raw).rstrip(b"=").decode()


def make_token(header):
    return ".".join([_segment(header), _segment({"sub": "someone"}), "signature"])


@pytest.fixture
def store(tmp_path):
    with open_store(Config(data_directory=str(tmp_path))) as opened:
        yield opened


def sample_details(**overrides):
    base = DeploymentDetails(
        servers=[4, 5, 6],
        blockchain="geth",
        nodes=3,
        images=["image-a", "image-b"],
        params={"chainId": 15468, "nested": {"x": [1, 2]}},
        resources=[{"cpus": "2", "memory": "4GB", "volumes": [], "ports": []}],
        environments=[{"KEY": "value"}],
        files=[{"genesis.json": "content"}],
        logs=[{"geth": "/output.log"}],
        extras={"freezeAfterInfrastructure": True},
    )
    return dataclasses.replace(base, **overrides)


def test_kid_from_jwt_reads_header():
    assert kid_from_jwt(make_token({"alg": "none", "kid": "key-7"})) == "key-7"


@pytest.mark.parametrize(
    "jwt",
    ["", "only.two", "!!!.body.sig", make_token({"alg": "none"}), make_token(["kid"])],
)
def test_kid_from_jwt_rejects_invalid(jwt):
    with pytest.raises(ValueError):
        kid_from_jwt(jwt)


def test_set_jwt_stores_token_and_kid():
    details = sample_details()
    encoded = make_token({"kid": "abc"})
    details.set_jwt(encoded)
    assert details.jwt == encoded
    assert details.kid == "abc"


def test_set_jwt_invalid_keeps_token_and_raises():
    details = sample_details()
    with pytest.raises(ValueError):
        details.set_jwt("token")
    assert details.jwt == "token"
    assert details.kid == ""


def test_dict_round_trip():
    details = sample_details(id="net-1")
    assert DeploymentDetails.from_dict(details.to_dict()) == details


def test_to_dict_omits_empty_id():
    data = sample_details().to_dict()
    assert "id" not in data
    assert data["servers"] == [4, 5, 6]


def test_from_dict_defaults_missing_fields():
    details = DeploymentDetails.from_dict({"blockchain": "eos"})
    assert details.blockchain == "eos"
    assert details.servers is None
    assert details.nodes == 0


def test_insert_and_get_by_testnet(store):
    details = sample_details()
    details.set_jwt(make_token({"kid": "owner"}))
    insert_build(store, details, "testnet-1")
    fetched = get_build_by_testnet(store, "testnet-1")
    assert fetched == dataclasses.replace(details, id="testnet-1")
    assert fetched.kid == "owner"
    assert fetched.jwt == ""


def test_null_fields_round_trip(store):
    details = DeploymentDetails(blockchain="eos", nodes=1)
    insert_build(store, details, "empty")
    fetched = get_build_by_testnet(store, "empty")
    assert fetched == dataclasses.replace(details, id="empty")
    assert fetched.params is None


def test_get_build_by_testnet_missing(store):
    with pytest.raises(NotFoundError, match="no results found"):
        get_build_by_testnet(store, "nothing")


def test_get_last_build_by_kid_returns_latest(store):
    first = sample_details(blockchain="geth", kid="owner")
    second = sample_details(blockchain="parity", kid="owner")
    other = sample_details(blockchain="eos", kid="someone-else")
    insert_build(store, first, "t1")
    insert_build(store, second, "t2")
    insert_build(store, other, "t3")
    latest = get_last_build_by_kid(store, "owner")
    assert latest.id == "t2"
    assert latest.blockchain == "parity"


def test_get_last_build_by_kid_missing(store):
    with pytest.raises(NotFoundError):
        get_last_build_by_kid(store, "nobody")


def test_get_all_builds(store):
    assert get_all_builds(store) == []
    insert_build(store, sample_details(), "a")
    insert_build(store, sample_details(blockchain="eos"), "b")
    builds = get_all_builds(store)
    assert sorted(build.id for build in builds) == ["a", "b"]


def test_query_builds_with_clause(store):
    insert_build(store, sample_details(blockchain="geth"), "a")
    insert_build(store, sample_details(blockchain="eos"), "b")
    found = query_builds(store, "WHERE blockchain = ?", ("eos",))
    assert [build.id for build in found] == ["b"]