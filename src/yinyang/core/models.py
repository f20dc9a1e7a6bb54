"""Data models for generation records and lineage chains."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any


class Variant(str, Enum):
    """The two outputs produced by every generation request."""

    GOOD = "good"
    BAD = "bad"


@dataclass(frozen=True)
class GeneratedImage:
    """One generated output as stored in the image bucket."""

    image_bucket_id: str

    def url(self, image_host: str) -> str:
        """Public URL of this image on ``image_host``."""
        return f"{image_host}/{self.image_bucket_id}"


@dataclass(frozen=True)
class GenerationRecord:
    """A single image-generation request as stored in the record store.

    The store keeps records as JSON documents of the shape::

        {
            "requestId": "...",
            "input": {"originalUrl": "..."},
            "results": {
                "good": {"imageBucketId": "..."},
                "bad": {"imageBucketId": "..."}
            }
        }

    ``original_url`` is ``None`` when the request was not made from an image
    URL. ``good`` and ``bad`` are ``None`` while results are still pending.
    """

    request_id: str
    original_url: str | None = None
    good: GeneratedImage | None = None
    bad: GeneratedImage | None = None

    @classmethod
    def from_dict(cls, data: Any, request_id: str | None = None) -> GenerationRecord:
        """Build a record from the store's JSON document.

        Args:
            data: Decoded JSON value.
            request_id: Key the document was stored under, used when the
                document itself carries no ``requestId``.

        Returns:
            The parsed record.

        Raises:
            ValueError: If ``data`` is not an object or no request id can be
                determined.
        """
        if not isinstance(data, dict):
            raise ValueError(f"expected a JSON object, got {type(data).__name__}")

        rid = data.get("requestId") or request_id
        if not rid or not isinstance(rid, str):
            raise ValueError("missing requestId")

        input_section = data.get("input")
        original_url = None
        if isinstance(input_section, dict):
            candidate = input_section.get("originalUrl")
            if isinstance(candidate, str) and candidate:
                original_url = candidate

        results = data.get("results")
        if not isinstance(results, dict):
            results = {}

        return cls(
            request_id=rid,
            original_url=original_url,
            good=_parse_image(results.get(Variant.GOOD.value)),
            bad=_parse_image(results.get(Variant.BAD.value)),
        )

    def output(self, variant: Variant) -> GeneratedImage | None:
        """Return the output image for ``variant``."""
        return self.good if variant is Variant.GOOD else self.bad


def _parse_image(section: Any) -> GeneratedImage | None:
    if not isinstance(section, dict):
        return None
    bucket_id = section.get("imageBucketId")
    if not isinstance(bucket_id, str) or not bucket_id:
        return None
    return GeneratedImage(image_bucket_id=bucket_id)


@dataclass(frozen=True)
class ParentLink:
    """Which output of which request was used as a record's input."""

    parent_request_id: str
    variant: Variant


@dataclass(frozen=True)
class ResolvedRecord:
    """A record paired with the parent link derived for the current pass.

    Parent links are never written back onto ``GenerationRecord`` or the
    store; they only exist for the lifetime of one reconstruction pass.
    """

    record: GenerationRecord
    parent_link: ParentLink | None = None

    @property
    def request_id(self) -> str:
        return self.record.request_id

    @property
    def is_root(self) -> bool:
        return self.parent_link is None

    def display(self, image_host: str) -> str:
        """Identifying value shown next to the request id in a chain.

        The input URL when there is one, otherwise the good output's URL,
        otherwise the bare request id.
        """
        if self.record.original_url:
            return self.record.original_url
        if self.record.good is not None:
            return self.record.good.url(image_host)
        return self.record.request_id


@dataclass(frozen=True)
class ChainLink:
    """One step of a lineage chain."""

    request_id: str
    display: str


# Root first, leaf last.
Chain = tuple[ChainLink, ...]


def chain_ids(chain: Chain) -> tuple[str, ...]:
    """Return just the request ids of ``chain``."""
    return tuple(link.request_id for link in chain)


@dataclass(frozen=True)
class ChainError:
    """A chain that could not be assembled for a specific record."""

    request_id: str
    reason: str


@dataclass(frozen=True)
class ResolutionConflict:
    """A request id that resolved to two different parents in one pass."""

    request_id: str
    kept: ParentLink | None
    rejected: ParentLink | None

    @property
    def message(self) -> str:
        return (
            f"Request {self.request_id} resolved to conflicting parents: "
            f"kept {self.kept}, rejected {self.rejected}"
        )


@dataclass(frozen=True)
class InputAssociation:
    """A row of the input-URL index."""

    input_url: str
    request_id: str


@dataclass(frozen=True)
class VariantPair:
    """Both output URLs of one request made from a given input URL."""

    request_id: str
    good_url: str | None
    bad_url: str | None
