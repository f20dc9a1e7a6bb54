"""Count-keyed cache in front of chain reconstruction.

:class:`ChainCache` is built once per process and handed to whoever needs
chains. It remembers the chains of the last pass together with the distinct
request count they were computed for, and only runs a new pass when the count
changes.

The count is a cardinality signal, not a content hash: deleting one request
and adding another between two calls leaves the count unchanged and the next
call returns the stale chains. Call :meth:`ChainCache.invalidate` to force a
new pass when that matters.

If the store cannot be reached the cache keeps its last good entry and serves
it flagged as ``"stale"``; with nothing cached it returns an empty result
flagged ``"unavailable"``. Neither case raises.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from typing import Literal

from yinyang.core.config import YinyangConfig
from yinyang.core.errors import RecordStoreUnavailable
from yinyang.core.models import Chain
from yinyang.core.reconstruction import reconstruct_chains
from yinyang.core.record_store import RecordFetcher

logger = logging.getLogger(__name__)

CacheStatus = Literal["fresh", "cached", "stale", "unavailable"]


@dataclass(frozen=True)
class _CacheEntry:
    signal: int
    chains: tuple[Chain, ...]
    errors: tuple[str, ...]


@dataclass(frozen=True)
class ChainsResult:
    """What :meth:`ChainCache.get` returns.

    Attributes:
        chains: Lineage chains, most recently discovered first.
        from_cache: ``True`` when no pass ran for this call.
        status: ``"fresh"`` (computed now), ``"cached"`` (signal unchanged),
            ``"stale"`` (store unreachable, last good result) or
            ``"unavailable"`` (store unreachable, nothing cached).
        signal: Distinct request count the chains belong to, if any.
        errors: Problems reported by the pass that produced the chains.
    """

    chains: tuple[Chain, ...] = ()
    from_cache: bool = False
    status: CacheStatus = "fresh"
    signal: int | None = None
    errors: tuple[str, ...] = field(default_factory=tuple)


class ChainCache:
    """Memoizes reconstructed chains keyed by the distinct request count.

    The cached ``(signal, chains)`` pair is one immutable object replaced in a
    single assignment under a lock, so racing passes can never leave one
    pass's signal next to another pass's chains; the last writer wins.
    """

    def __init__(self, fetcher: RecordFetcher, config: YinyangConfig) -> None:
        self._fetcher = fetcher
        self._config = config
        self._entry: _CacheEntry | None = None
        self._lock = threading.Lock()

    @property
    def signal(self) -> int | None:
        """Signal of the cached entry, or ``None`` if nothing is cached."""
        entry = self._entry
        return entry.signal if entry else None

    def invalidate(self) -> None:
        """Drop the cached entry so the next :meth:`get` runs a pass."""
        with self._lock:
            self._entry = None
        logger.info("Chain cache invalidated")

    def get(self) -> ChainsResult:
        """Return chains for the current record set, recomputing on change."""
        try:
            current = self._fetcher.count_distinct_requests()
        except RecordStoreUnavailable as e:
            return self._degraded(e)

        entry = self._entry
        if entry is not None and entry.signal == current:
            logger.debug(f"Chain cache hit (signal {current})")
            return ChainsResult(
                chains=entry.chains,
                from_cache=True,
                status="cached",
                signal=entry.signal,
                errors=entry.errors,
            )

        logger.info(f"Chain cache miss (cached {self.signal}, current {current}), recomputing")
        try:
            pass_result = reconstruct_chains(
                self._fetcher,
                image_host=self._config.image_host,
                policy=self._config.chain_policy,
                workers=self._config.fetch_workers,
                timeout=self._config.fetch_timeout,
            )
        except RecordStoreUnavailable as e:
            return self._degraded(e)

        fresh = _CacheEntry(
            signal=current,
            chains=tuple(pass_result.chains),
            errors=tuple(pass_result.messages),
        )
        with self._lock:
            self._entry = fresh

        return ChainsResult(
            chains=fresh.chains,
            from_cache=False,
            status="fresh",
            signal=fresh.signal,
            errors=fresh.errors,
        )

    def _degraded(self, error: RecordStoreUnavailable) -> ChainsResult:
        entry = self._entry
        if entry is not None:
            logger.warning(f"Record store unavailable, serving stale chains: {error}")
            return ChainsResult(
                chains=entry.chains,
                from_cache=True,
                status="stale",
                signal=entry.signal,
                errors=entry.errors,
            )

        logger.error(f"Record store unavailable and no chains cached: {error}")
        return ChainsResult(chains=(), from_cache=False, status="unavailable", signal=None)
