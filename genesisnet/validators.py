"""Checks applied to deployment details before a build starts."""

from __future__ import annotations

from genesisnet.builds import DeploymentDetails
from genesisnet.settings import get_config

__all__ = [
    "ValidationError",
    "validate_num_of_nodes",
    "check_for_nil_or_missing",
    "validate",
]


class ValidationError(ValueError):
    """Raised when deployment details are not acceptable."""


def validate_num_of_nodes(details: DeploymentDetails, max_nodes: int | None = None) -> None:
    """Ensure the node count lies between 1 and the maximum."""
    limit = get_config().max_nodes if max_nodes is None else max_nodes
    if details.nodes > limit:
        raise ValidationError(f"too many nodes: max of {limit} nodes")
    if details.nodes < 1:
        raise ValidationError("must have at least 1 node")


def check_for_nil_or_missing(details: DeploymentDetails) -> None:
    """Ensure servers, blockchain and images are given."""
    if details.servers is None:
        raise ValidationError("servers cannot be null")
    if not details.servers:
        raise ValidationError("servers cannot be empty")
    if not details.blockchain:
        raise ValidationError("blockchain cannot be empty")
    if details.images is None:
        raise ValidationError("images cannot be null")
    if not details.images:
        raise ValidationError("images cannot be empty")


def validate(details: DeploymentDetails, max_nodes: int | None = None) -> None:
    """Run every check on the details, raising on the first failure."""
    validate_num_of_nodes(details, max_nodes)
    check_for_nil_or_missing(details)