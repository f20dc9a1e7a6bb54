"""Pydantic request and response models for the admin API.

FastAPI uses these for request validation, response serialisation, and the
OpenAPI schema.

Models
------
ChainsResponse
    Body of ``GET /api/chains``.
InputUrlsResponse
    Body of ``GET /api/inputs``.
InputLookupRequest / InputLookupResponse
    Payload and body of ``POST /api/inputs/lookup``.
StatsResponse
    Body of ``GET /api/stats``.
"""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field

from yinyang.core.chain_cache import ChainsResult
from yinyang.core.models import Chain, VariantPair


class ChainLinkModel(BaseModel):
    """One request in a lineage chain."""

    request_id: str = Field(..., description="Request id.")
    display: str = Field(
        ...,
        description="Input URL of the request, or its good output URL for uploads.",
    )


class ChainsResponse(BaseModel):
    """Response body for ``GET /api/chains``.

    Attributes:
        count: Number of chains returned.
        chains: Chains root first, most recently discovered chain first.
        from_cache: ``True`` if no reconstruction pass ran for this request.
        status: ``fresh``, ``cached``, ``stale`` or ``unavailable``.
        signal: Distinct request count the chains were computed for.
        errors: Problems reported by the pass (skipped records, conflicts,
            broken chains).
    """

    count: int
    chains: list[list[ChainLinkModel]]
    from_cache: bool
    status: Literal["fresh", "cached", "stale", "unavailable"]
    signal: int | None = None
    errors: list[str] = Field(default_factory=list)

    @classmethod
    def from_result(cls, result: ChainsResult) -> ChainsResponse:
        return cls(
            count=len(result.chains),
            chains=[_chain_model(chain) for chain in result.chains],
            from_cache=result.from_cache,
            status=result.status,
            signal=result.signal,
            errors=list(result.errors),
        )


def _chain_model(chain: Chain) -> list[ChainLinkModel]:
    return [ChainLinkModel(request_id=link.request_id, display=link.display) for link in chain]


class InputUrlsResponse(BaseModel):
    """Response body for ``GET /api/inputs``."""

    total: int
    input_urls: list[str]


class InputLookupRequest(BaseModel):
    """Request body for ``POST /api/inputs/lookup``.

    Attributes:
        input_url: Input image URL whose requests should be listed.
    """

    input_url: str = Field(
        ...,
        min_length=1,
        description="Input image URL to look up.",
    )


class VariantPairModel(BaseModel):
    """Good and bad output URLs of one request."""

    request_id: str
    good_url: str | None = None
    bad_url: str | None = None

    @classmethod
    def from_pair(cls, pair: VariantPair) -> VariantPairModel:
        return cls(request_id=pair.request_id, good_url=pair.good_url, bad_url=pair.bad_url)


class InputLookupResponse(BaseModel):
    """Response body for ``POST /api/inputs/lookup``."""

    input_url: str
    results: list[VariantPairModel]


class StatsResponse(BaseModel):
    """Response body for ``GET /api/stats``."""

    distinct_requests: int
    distinct_inputs: int
    cached_signal: int | None = None
    chain_policy: str
    admin_api_host: str
