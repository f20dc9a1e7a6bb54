"""Parent link resolution for generation records.

A request made from a previously generated image carries that image's public
URL as its ``originalUrl``. Generated images are published as::

    <image_host>/<requestId>.<variant>.<extension>

so the parent request and the variant used can be read straight off the
URL. Anything that does not match this shape exactly, or that names a request
outside the current working set, resolves to no parent and the record is
treated as a root.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Set
from dataclasses import dataclass, field
from urllib.parse import urlsplit

from yinyang.core.models import (
    GenerationRecord,
    ParentLink,
    ResolutionConflict,
    ResolvedRecord,
    Variant,
)

logger = logging.getLogger(__name__)

_VARIANTS = {v.value: v for v in Variant}


def _origin(url: str) -> tuple[str, str] | None:
    """Return ``(scheme, netloc)`` lower-cased, or ``None`` if unparseable."""
    try:
        parts = urlsplit(url)
        # Accessing .port validates it; a bad port raises ValueError.
        parts.port
    except ValueError:
        return None
    if not parts.scheme or not parts.netloc:
        return None
    return parts.scheme.lower(), parts.netloc.lower()


def parse_image_url(url: str, image_host: str) -> ParentLink | None:
    """Split a generated-image URL into its request id and variant.

    Does not check whether the request exists.

    Args:
        url: Candidate image URL.
        image_host: Origin that serves generated images.

    Returns:
        The parsed link, or ``None`` if ``url`` is not a generated-image URL.
    """
    host_origin = _origin(image_host)
    url_origin = _origin(url)
    if host_origin is None or url_origin is None or url_origin != host_origin:
        return None

    path = urlsplit(url).path.lstrip("/")
    parts = path.split(".")
    if len(parts) != 3:
        return None

    request_id, variant_name, extension = parts
    if not request_id or not extension or "/" in request_id:
        return None

    variant = _VARIANTS.get(variant_name)
    if variant is None:
        return None

    return ParentLink(parent_request_id=request_id, variant=variant)


def resolve_parent(
    original_url: str | None,
    known_request_ids: Set[str],
    image_host: str,
) -> ParentLink | None:
    """Decide whether ``original_url`` names an output of a known request.

    Args:
        original_url: The record's input URL, if any.
        known_request_ids: Request ids in the current working set.
        image_host: Origin that serves generated images.

    Returns:
        The parent link, or ``None`` when the record is a root.
    """
    if not original_url:
        return None

    link = parse_image_url(original_url, image_host)
    if link is None:
        return None

    if link.parent_request_id not in known_request_ids:
        logger.info(
            f"Dropping dangling parent reference to {link.parent_request_id} "
            f"from {original_url}"
        )
        return None

    return link


@dataclass
class ResolutionResult:
    """Resolved records for one pass, keyed by request id in first-seen order."""

    resolved: dict[str, ResolvedRecord] = field(default_factory=dict)
    conflicts: list[ResolutionConflict] = field(default_factory=list)


def resolve_parent_links(records: Iterable[GenerationRecord], image_host: str) -> ResolutionResult:
    """Resolve the parent link of every record in a pass.

    The known request id set is built from all of ``records`` before any
    resolution happens. A request id that appears more than once keeps the
    link resolved for its first occurrence; a later occurrence resolving to a
    different parent is logged and reported as a conflict.

    Args:
        records: Every record fetched for the pass.
        image_host: Origin that serves generated images.

    Returns:
        A :class:`ResolutionResult`.
    """
    records = list(records)
    known_request_ids = frozenset(r.request_id for r in records)
    result = ResolutionResult()

    for record in records:
        link = resolve_parent(record.original_url, known_request_ids, image_host)
        existing = result.resolved.get(record.request_id)

        if existing is None:
            result.resolved[record.request_id] = ResolvedRecord(record=record, parent_link=link)
            continue

        if existing.parent_link != link:
            conflict = ResolutionConflict(
                request_id=record.request_id,
                kept=existing.parent_link,
                rejected=link,
            )
            logger.error(conflict.message)
            result.conflicts.append(conflict)

    return result
