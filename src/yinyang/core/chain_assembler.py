"""Lineage chain assembly.

Given every record of a pass with its resolved parent link, this module walks
each record up to its root and emits the root-to-record chain.

Two output policies are supported:

``raw``
    One chain per record. A record with descendants also produces the
    shorter chains ending at it, so every chain of an intermediate record is
    a prefix of its descendants' chains.
``maximal``
    Only chains that are not a strict prefix of another chain are kept, i.e.
    one chain per leaf. Roots without children are leaves and still appear as
    length-1 chains.

Chains are returned most recently discovered first: the reverse of the order
in which records appear in the input mapping.

The parent relation should be acyclic, but records come from an external
store, so every walk keeps a visited set and is bounded by the size of the
working set. A walk that revisits a request id or runs past the bound is
reported as a :class:`~yinyang.core.models.ChainError` for that record only.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Literal

from yinyang.core.models import Chain, ChainError, ChainLink, ResolvedRecord

logger = logging.getLogger(__name__)

ChainPolicy = Literal["raw", "maximal"]


@dataclass
class AssemblyResult:
    """Chains assembled for one pass and the records that failed."""

    chains: list[Chain] = field(default_factory=list)
    errors: list[ChainError] = field(default_factory=list)


def walk_ancestry(request_id: str, resolved: Mapping[str, ResolvedRecord]) -> list[str]:
    """Return the request ids from the root down to ``request_id``.

    Args:
        request_id: Record to start from.
        resolved: Every record of the pass.

    Returns:
        Request ids, root first.

    Raises:
        ValueError: If the walk meets a cycle, a parent missing from
            ``resolved``, or runs longer than ``len(resolved)`` steps.
    """
    path: list[str] = []
    visited: set[str] = set()
    current: str | None = request_id
    max_depth = len(resolved)

    while current is not None:
        if current in visited:
            raise ValueError(f"cycle detected at {current}")
        entry = resolved.get(current)
        if entry is None:
            raise ValueError(f"parent {current} is not in the working set")
        if len(path) >= max_depth:
            raise ValueError(f"ancestry deeper than {max_depth} records")

        visited.add(current)
        path.append(current)
        current = entry.parent_link.parent_request_id if entry.parent_link else None

    path.reverse()
    return path


def _drop_prefixes(chains: list[Chain]) -> list[Chain]:
    """Keep only chains that are not a strict prefix of another chain.

    Chains are root-to-record paths, so a chain is a prefix of another
    exactly when its last record is an ancestor of the other's last record.
    """
    ancestors: set[str] = set()
    for chain in chains:
        ancestors.update(link.request_id for link in chain[:-1])
    return [chain for chain in chains if chain[-1].request_id not in ancestors]


def assemble_chains(
    resolved: Mapping[str, ResolvedRecord],
    *,
    image_host: str,
    policy: ChainPolicy = "maximal",
) -> AssemblyResult:
    """Reconstruct lineage chains for every record of a pass.

    Args:
        resolved: Records of the pass keyed by request id, in discovery order.
        image_host: Origin that serves generated images, used for display
            values of records without an input URL.
        policy: ``"raw"`` or ``"maximal"`` (see module docstring).

    Returns:
        An :class:`AssemblyResult` with chains most recently discovered first.
    """
    if policy not in ("raw", "maximal"):
        raise ValueError(f"Unknown chain policy: {policy}")

    result = AssemblyResult()
    displays = {rid: entry.display(image_host) for rid, entry in resolved.items()}

    for request_id in resolved:
        try:
            path = walk_ancestry(request_id, resolved)
        except ValueError as e:
            error = ChainError(request_id=request_id, reason=str(e))
            logger.error(f"Cannot assemble chain for {request_id}: {error.reason}")
            result.errors.append(error)
            continue

        result.chains.append(tuple(ChainLink(rid, displays[rid]) for rid in path))

    if policy == "maximal":
        result.chains = _drop_prefixes(result.chains)

    result.chains.reverse()
    logger.debug(
        f"Assembled {len(result.chains)} chains ({policy}) from {len(resolved)} records, "
        f"{len(result.errors)} errors"
    )
    return result
