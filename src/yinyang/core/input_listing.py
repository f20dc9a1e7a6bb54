"""Listings over the input-URL index.

These back the admin views that browse requests by input image: the list of
distinct input images, and for one input image the good/bad output pair of
every request made from it. Both list the most recent entries first.
"""

from __future__ import annotations

import logging

from yinyang.core.models import VariantPair
from yinyang.core.reconstruction import fetch_records
from yinyang.core.record_store import SQLiteRecordStore

logger = logging.getLogger(__name__)


def list_distinct_input_urls(store: SQLiteRecordStore) -> list[str]:
    """Return every distinct input URL, most recently first seen first.

    Raises:
        RecordStoreUnavailable: If the index cannot be read.
    """
    urls = store.list_distinct_input_urls()
    urls.reverse()
    return urls


def lookup_input_url(
    store: SQLiteRecordStore,
    input_url: str,
    *,
    image_host: str,
    workers: int = 8,
    timeout: float = 10.0,
) -> list[VariantPair]:
    """Return the output pair of every request made from ``input_url``.

    Records are fetched concurrently; any that are missing, unparseable or
    too slow are logged and left out.

    Args:
        store: Record store.
        input_url: Input image URL to look up.
        image_host: Origin that serves generated images.
        workers: Thread pool size for record fetches.
        timeout: Seconds to wait for the fetches.

    Returns:
        One :class:`VariantPair` per request, newest first.

    Raises:
        RecordStoreUnavailable: If the index cannot be read.
    """
    request_ids = store.request_ids_for_input_url(input_url)
    request_ids.reverse()
    logger.info(f"Looking up {len(request_ids)} requests for input {input_url}")

    fetched = fetch_records(store, request_ids, workers=workers, timeout=timeout)

    return [
        VariantPair(
            request_id=record.request_id,
            good_url=record.good.url(image_host) if record.good else None,
            bad_url=record.bad.url(image_host) if record.bad else None,
        )
        for record in fetched.records
    ]
