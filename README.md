# genesisnet

A library for running blockchain test networks made of docker containers
spread over one or more hosts. It provides:

- a small SQLite-backed store for servers, nodes, builds and metadata
  (`genesisnet.store`, `genesisnet.servers`, `genesisnet.nodes`,
  `genesisnet.builds`);
- basic checks on build requests (`genesisnet.validators`);
- generation of the `docker` commands that create node networks and
  containers (`genesisnet.containers`, `genesisnet.docker`);
- network impairment (`tc netem`) commands and parsing of the impairments
  already in place (`genesisnet.netconf`);
- outages between nodes and calculation of the resulting partitions
  (`genesisnet.outage`, `genesisnet.connections`);
- a simple distance-based link model (`genesisnet.mesh`).

Commands are sent to hosts through any object that follows the `Client`
protocol in `genesisnet.netconf`: something with a `run(command)` method that
returns the command's output as a string and raises on failure.

## Configuration

```python
from genesisnet.settings import Config, get_config, set_config

config = get_config()          # created with defaults on first use
set_config(Config(data_directory="/var/lib/genesisnet", max_nodes=50))
```

`Config` holds the data directory, the default SSH host, the node limit, the
prefixes used to name node containers, node networks, bridges and services,
and switches for docker volumes and port forwarding. Every module reads the
active configuration through `get_config()`.

## The store

```python
from genesisnet.settings import get_config
from genesisnet.store import open_store
from genesisnet.servers import get_all_servers
from genesisnet.nodes import get_all_nodes

with open_store(get_config()) as store:
    servers = get_all_servers(store)   # name -> Server
    nodes = get_all_nodes(store)
```

`open_store` opens `.gdata` in the configured data directory; `Store(path,
config)` opens any path. A fresh store is created with the tables and a
default server named `cloud` at the configured SSH host. If the stored schema
version (`Store.version()`) differs from `genesisnet.store.VERSION`, the file
is discarded and rebuilt.

`Store.set_meta`, `get_meta` and `delete_meta` keep JSON-encoded values under
string keys. Lookups that find nothing raise `NotFoundError`, a subclass of
`StoreError`; database failures raise `StoreError`.

- `genesisnet.servers`: `Server` (with `validate()`), and functions to get,
  insert, update and delete servers.
- `genesisnet.nodes`: `Node` and `SideCar`, database lookups
  (`get_node`, `get_all_nodes_by_server`, `get_all_nodes_by_testnet`,
  `insert_node`) and in-memory helpers (`get_node_by_local_id`,
  `get_node_by_abs_num`, `divide_nodes_by_abs_match`,
  `get_unique_server_ids`).
- `genesisnet.builds`: `DeploymentDetails` records with `to_dict` /
  `from_dict`, `insert_build`, `get_all_builds`, `get_build_by_testnet` and
  `get_last_build_by_kid`. `DeploymentDetails.set_jwt` stores a token and the
  `kid` from its header (`kid_from_jwt`), raising `ValueError` if the token
  is malformed.

## Validating a build request

```python
from genesisnet.builds import DeploymentDetails
from genesisnet.validators import ValidationError, validate

details = DeploymentDetails.from_dict({
    "servers": [1],
    "blockchain": "geth",
    "nodes": 4,
    "images": ["geth:latest"],
})
try:
    validate(details, max_nodes=200)
except ValidationError as err:
    print(err)
```

`validate` checks that the node count lies between 1 and the maximum
(`validate_num_of_nodes`) and that servers, blockchain and images are given
and not empty (`check_for_nil_or_missing`).

## Network impairments

`create_commands(netconf, gateway)` builds the `tc` and `iptables` commands
for a `Netconf` (limit, loss, delay in microseconds, rate, duplication,
corruption, reorder); `apply(client, netconf, gateway)` runs them, ignoring
a failure of the first, clearing command. `get_config_on_server(client)`
reads back the impairments active on a host, using `parse_items` to decode
the values `tc` lists.

## Outages and partitions

```python
from genesisnet.connections import Connection, Connections

mesh = Connections(3)
print(mesh.networks())   # [[0, 1, 2]]
```

`genesisnet.outage` works on a mapping of server id to client:
`make_outage`, `remove_outage` and `create_partition_outage` insert or delete
`iptables` DROP rules between nodes, `remove_all_outages` and
`remove_all_on_server` clear them, and `get_cut_connections` /
`calculate_partitions` read the rules back and return the partitions. The
last two take a `node_of_ip` callable that maps a node's address to its
number.

## Docker commands

`genesisnet.containers` describes containers: `new_node_container` and
`new_side_car_container` turn a `Node` or `SideCar`, environment,
`Resources` (cpus, memory, volumes, ports) and address into a
`ContainerDetails`. `genesisnet.docker.docker_run_command` turns one into a
`docker run` command; memory is given as a number with an optional `k`, `m`,
`g` or `t` suffix (powers of 1000). The module also kills containers, creates
and removes node networks, logs in and out of registries, pulls images,
builds service `docker run` commands and stops services on a set of servers.

## Link model

`genesisnet.mesh.create_links(points, calculator)` returns the `Link`
between every pair of `Point`s, with impairments computed from their
distance by a `Calculator`; `default_calculator()` is used when none is
given.

## What the package does not do

- It has no command-line program and no HTTP server; it is used as a library.
- It contains no SSH client: callers supply objects with a `run` method.
- It does not work out addresses: subnets, gateways and container addresses
  are passed in by the caller.
- It has no blockchain-specific build steps and does not orchestrate a whole
  testnet build; it provides the bookkeeping and commands such a build uses.
- Validation does not inspect resource values, image names or blockchain
  names.

## Tests

The test suite uses pytest and is installed with the `test` extra:

```
pip install -e .[test]
pytest
```