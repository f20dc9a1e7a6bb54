"""One full chain reconstruction pass.

A pass runs in three strictly ordered stages:

1. **Fetch** - list the input-URL index, then fetch every distinct request's
   record on a thread pool. The stage ends when every fetch has settled or
   the pass deadline has passed; stragglers are skipped.
2. **Resolve** - derive each record's parent link against the complete set
   of fetched request ids.
3. **Assemble** - walk every record to its root and build the chains.

Missing, unparseable, failed or timed-out fetches are logged and dropped from
the working set; they never abort the pass. A failure to read the index
itself, or a store that could not be reached for any record, propagates as
:class:`~yinyang.core.errors.RecordStoreUnavailable`.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from concurrent.futures import Future, ThreadPoolExecutor, wait
from dataclasses import dataclass, field

from yinyang.core.chain_assembler import ChainPolicy, assemble_chains
from yinyang.core.errors import RecordStoreUnavailable
from yinyang.core.models import Chain, ChainError, GenerationRecord, ResolutionConflict
from yinyang.core.parent_resolver import resolve_parent_links
from yinyang.core.record_store import RecordFetcher

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FetchFailure:
    """A request whose record was left out of the pass."""

    request_id: str
    reason: str


@dataclass
class FetchResult:
    """Records fetched for a pass, in request order, and the ones skipped."""

    records: list[GenerationRecord] = field(default_factory=list)
    failures: list[FetchFailure] = field(default_factory=list)


@dataclass
class ReconstructionResult:
    """Everything one pass produced."""

    chains: list[Chain] = field(default_factory=list)
    record_count: int = 0
    fetch_failures: list[FetchFailure] = field(default_factory=list)
    conflicts: list[ResolutionConflict] = field(default_factory=list)
    chain_errors: list[ChainError] = field(default_factory=list)

    @property
    def messages(self) -> list[str]:
        """Human-readable description of every problem met during the pass."""
        out = [f"{f.request_id}: {f.reason}" for f in self.fetch_failures]
        out.extend(c.message for c in self.conflicts)
        out.extend(f"{e.request_id}: {e.reason}" for e in self.chain_errors)
        return out


def fetch_records(
    fetcher: RecordFetcher,
    request_ids: Iterable[str],
    *,
    workers: int,
    timeout: float,
) -> FetchResult:
    """Fetch records concurrently and wait for all of them to settle.

    Args:
        fetcher: Record source.
        request_ids: Ids to fetch; duplicates are fetched once.
        workers: Thread pool size.
        timeout: Seconds to wait for the whole batch.

    Returns:
        A :class:`FetchResult` whose records follow the order of
        ``request_ids``.

    Raises:
        RecordStoreUnavailable: If every fetch failed because the store could
            not be reached. Individual outages are skipped like any other
            failed fetch.
    """
    ordered = list(dict.fromkeys(request_ids))
    result = FetchResult()
    if not ordered:
        return result

    outages: list[RecordStoreUnavailable] = []
    executor = ThreadPoolExecutor(max_workers=workers, thread_name_prefix="yinyang-fetch")
    try:
        futures: dict[str, Future] = {
            rid: executor.submit(fetcher.get_record, rid) for rid in ordered
        }
        _, pending = wait(futures.values(), timeout=timeout)

        for rid, future in futures.items():
            if future in pending:
                reason = f"fetch timed out after {timeout}s"
            else:
                try:
                    record = future.result()
                except RecordStoreUnavailable as e:
                    outages.append(e)
                    reason = f"fetch failed: {e}"
                except Exception as e:
                    reason = f"fetch failed: {e}"
                else:
                    if record is not None:
                        result.records.append(record)
                        continue
                    reason = "record not found"

            logger.warning(f"Skipping request {rid}: {reason}")
            result.failures.append(FetchFailure(request_id=rid, reason=reason))
    finally:
        # Do not block the pass on fetches that missed the deadline.
        executor.shutdown(wait=False, cancel_futures=True)

    if len(outages) == len(ordered):
        logger.error(f"Record store unreachable for all {len(ordered)} fetches")
        raise RecordStoreUnavailable(f"record store unavailable: {outages[0]}") from outages[0]

    return result


def reconstruct_chains(
    fetcher: RecordFetcher,
    *,
    image_host: str,
    policy: ChainPolicy = "maximal",
    workers: int = 8,
    timeout: float = 10.0,
) -> ReconstructionResult:
    """Run one full fetch, resolve and assemble pass.

    Args:
        fetcher: Record source.
        image_host: Origin that serves generated images.
        policy: Chain output policy, ``"raw"`` or ``"maximal"``.
        workers: Thread pool size for record fetches.
        timeout: Seconds to wait for the pass's fetches.

    Returns:
        A :class:`ReconstructionResult`.

    Raises:
        RecordStoreUnavailable: If the input-URL index cannot be listed, or
            no record could be fetched because the store was unreachable.
    """
    associations = fetcher.list_distinct_input_associations()
    request_ids = [a.request_id for a in associations]

    fetched = fetch_records(fetcher, request_ids, workers=workers, timeout=timeout)
    resolution = resolve_parent_links(fetched.records, image_host)
    assembly = assemble_chains(resolution.resolved, image_host=image_host, policy=policy)

    logger.info(
        f"Reconstructed {len(assembly.chains)} chains from {len(resolution.resolved)} records "
        f"({len(fetched.failures)} skipped, {len(resolution.conflicts)} conflicts, "
        f"{len(assembly.errors)} chain errors)"
    )

    return ReconstructionResult(
        chains=assembly.chains,
        record_count=len(resolution.resolved),
        fetch_failures=fetched.failures,
        conflicts=resolution.conflicts,
        chain_errors=assembly.errors,
    )
