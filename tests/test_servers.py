from dataclasses import replace

import pytest

from genesisnet.nodes import Node, insert_node
from genesisnet.servers import (
    Server,
    delete_server,
    get_all_servers,
    get_host_ips_by_testnet,
    get_server,
    get_servers,
    insert_server,
    update_server,
    update_server_nodes,
)
from genesisnet.settings import Config
from genesisnet.store import NotFoundError, Store


@pytest.fixture
def config(tmp_path):
    return Config(data_directory=str(tmp_path), ssh_host="10.0.0.5", max_nodes=50)


@pytest.fixture
def store(tmp_path, config):
    with Store(tmp_path / ".gdata", config) as opened:
        yield opened


def _server():
    return Server(addr="192.168.1.10", nodes=0, max_nodes=10, subnet_id=2)


@pytest.mark.parametrize(
    "change, message",
    [
        ({"addr": "localhost"}, "invalid addr"),
        ({"nodes": -1}, "invalid nodes"),
        ({"nodes": 11}, "invalid max"),
        ({"subnet_id": 0}, "invalid SubnetID"),
    ],
)
def test_validate_rejects(change, message):
    invalid = replace(_server(), **change)
    with pytest.raises(ValueError) as excinfo:
        invalid.validate()
    assert str(excinfo.value) == message


def test_initial_server_present(store, config):
    servers = get_all_servers(store)
    assert servers["cloud"].addr == config.ssh_host
    assert servers["cloud"].max_nodes == config.max_nodes
    assert servers["cloud"].subnet_id == 1


def test_insert_and_get_round_trip(store):
    server = _server()
    new_id = insert_server(store, "alpha", server)
    fetched, name = get_server(store, new_id)
    assert name == "alpha"
    assert fetched == replace(server, id=new_id)
    assert get_all_servers(store)["alpha"] == fetched


def test_get_servers_in_order(store):
    first = insert_server(store, "a", _server())
    second = insert_server(store, "b", replace(_server(), addr="192.168.1.11"))
    servers = get_servers(store, [second, first])
    assert [s.id for s in servers] == [second, first]


def test_get_missing_server(store):
    with pytest.raises(NotFoundError, match="not found"):
        get_server(store, 999)
    with pytest.raises(NotFoundError):
        get_servers(store, [999])


def test_update_and_delete(store):
    new_id = insert_server(store, "alpha", _server())
    updated = replace(_server(), addr="172.16.0.1", nodes=3, subnet_id=7)
    update_server(store, new_id, updated)
    assert get_server(store, new_id)[0] == replace(updated, id=new_id)
    update_server_nodes(store, new_id, 5)
    assert get_server(store, new_id)[0].nodes == 5
    delete_server(store, new_id)
    with pytest.raises(NotFoundError):
        get_server(store, new_id)


def test_host_ips(store):
    new_id = insert_server(store, "alpha", _server())
    assert get_host_ips_by_testnet(store, new_id) == []
    insert_node(store, Node(id="n0", server=new_id, ip="10.2.0.2"))
    insert_node(store, Node(id="n1", server=new_id, ip="10.2.0.6"))
    assert get_host_ips_by_testnet(store, new_id) == [_server().addr]