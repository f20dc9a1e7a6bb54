"""SQLite-backed request record store and input-URL index.

The admin service reads two collections:

- ``requests_kv`` maps a request id to its JSON record document, exactly as
  the generation service wrote it.
- ``by_input_url`` indexes every request by the URL of its input image.
  Requests made without an input image are indexed with a NULL input URL so
  the index still lists every request id.

Everything above this module depends only on the :class:`RecordFetcher`
protocol, so another backend can be dropped in without touching the chain
logic.
"""

from __future__ import annotations

import json
import logging
import sqlite3
from pathlib import Path
from typing import Any, Protocol

from yinyang.core.errors import RecordParseError, RecordStoreUnavailable
from yinyang.core.models import GenerationRecord, InputAssociation

logger = logging.getLogger(__name__)


class RecordFetcher(Protocol):
    """Read-only view of the record store used by chain reconstruction."""

    def list_distinct_input_associations(self) -> list[InputAssociation]:
        """Return every distinct (input URL, request id) pair, oldest first."""
        ...

    def count_distinct_requests(self) -> int:
        """Return the number of distinct request ids in the index."""
        ...

    def get_record(self, request_id: str) -> GenerationRecord | None:
        """Return the record for ``request_id``, or ``None`` if not stored."""
        ...


class SQLiteRecordStore:
    """Record store kept in a single SQLite file.

    A new connection is opened per call so the store can be shared by the
    fetch thread pool without any locking of its own.
    """

    def __init__(self, db_path: Path, timeout: float = 5.0):
        """Open (and if needed create) the store.

        Args:
            db_path: Path to SQLite database file
            timeout: Seconds SQLite waits on a locked database
        """
        self.db_path = Path(db_path)
        self.timeout = timeout
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._initialize_db()
        logger.info(f"Initialized record store at {self.db_path}")

    def _connect(self) -> sqlite3.Connection:
        return sqlite3.connect(self.db_path, timeout=self.timeout)

    def _initialize_db(self) -> None:
        """Create database schema if it doesn't exist."""
        with self._connect() as conn:
            cursor = conn.cursor()

            cursor.execute("""
                CREATE TABLE IF NOT EXISTS requests_kv (
                    request_id TEXT PRIMARY KEY,
                    value TEXT NOT NULL
                )
                """)

            cursor.execute("""
                CREATE TABLE IF NOT EXISTS by_input_url (
                    input_url TEXT,
                    request_id TEXT NOT NULL
                )
                """)

            cursor.execute("""
                CREATE UNIQUE INDEX IF NOT EXISTS idx_by_input_url_pair
                ON by_input_url(IFNULL(input_url, ''), request_id)
                """)

            conn.commit()

    # ------------------------------------------------------------------
    # RecordFetcher
    # ------------------------------------------------------------------

    def list_distinct_input_associations(self) -> list[InputAssociation]:
        """Return every distinct (input URL, request id) pair, oldest first.

        Raises:
            RecordStoreUnavailable: If the index cannot be read.
        """
        try:
            with self._connect() as conn:
                cursor = conn.cursor()
                cursor.execute("""
                    SELECT input_url, request_id FROM by_input_url ORDER BY rowid
                    """)
                rows = cursor.fetchall()
        except sqlite3.Error as e:
            logger.error(f"Error listing input associations: {e}")
            raise RecordStoreUnavailable(f"input index unavailable: {e}") from e

        return [InputAssociation(input_url=row[0], request_id=row[1]) for row in rows]

    def count_distinct_requests(self) -> int:
        """Return the number of distinct request ids in the index.

        Raises:
            RecordStoreUnavailable: If the index cannot be read.
        """
        try:
            with self._connect() as conn:
                cursor = conn.cursor()
                cursor.execute("SELECT COUNT(DISTINCT request_id) FROM by_input_url")
                result = cursor.fetchone()
        except sqlite3.Error as e:
            logger.error(f"Error counting requests: {e}")
            raise RecordStoreUnavailable(f"input index unavailable: {e}") from e

        return result[0] if result else 0

    def get_record(self, request_id: str) -> GenerationRecord | None:
        """Fetch and parse one record.

        Returns:
            The parsed record, or ``None`` if no record is stored under
            ``request_id``.

        Raises:
            RecordParseError: If the stored value is not a valid record.
            RecordStoreUnavailable: If the store cannot be read.
        """
        try:
            with self._connect() as conn:
                cursor = conn.cursor()
                cursor.execute(
                    "SELECT value FROM requests_kv WHERE request_id = ? LIMIT 1",
                    (request_id,),
                )
                row = cursor.fetchone()
        except sqlite3.Error as e:
            logger.error(f"Error reading record {request_id}: {e}")
            raise RecordStoreUnavailable(f"record store unavailable: {e}") from e

        if row is None:
            return None

        try:
            return GenerationRecord.from_dict(json.loads(row[0]), request_id=request_id)
        except (json.JSONDecodeError, ValueError) as e:
            raise RecordParseError(request_id, str(e)) from e

    # ------------------------------------------------------------------
    # Input-URL index queries
    # ------------------------------------------------------------------

    def list_distinct_input_urls(self) -> list[str]:
        """Return every distinct non-NULL input URL in first-seen order.

        Raises:
            RecordStoreUnavailable: If the index cannot be read.
        """
        try:
            with self._connect() as conn:
                cursor = conn.cursor()
                cursor.execute("""
                    SELECT input_url FROM by_input_url
                    WHERE input_url IS NOT NULL
                    GROUP BY input_url
                    ORDER BY MIN(rowid)
                    """)
                rows = cursor.fetchall()
        except sqlite3.Error as e:
            logger.error(f"Error listing input URLs: {e}")
            raise RecordStoreUnavailable(f"input index unavailable: {e}") from e

        return [row[0] for row in rows]

    def request_ids_for_input_url(self, input_url: str) -> list[str]:
        """Return the request ids made from ``input_url``, oldest first.

        Raises:
            RecordStoreUnavailable: If the index cannot be read.
        """
        try:
            with self._connect() as conn:
                cursor = conn.cursor()
                cursor.execute(
                    "SELECT request_id FROM by_input_url WHERE input_url = ? ORDER BY rowid",
                    (input_url,),
                )
                rows = cursor.fetchall()
        except sqlite3.Error as e:
            logger.error(f"Error looking up input URL {input_url}: {e}")
            raise RecordStoreUnavailable(f"input index unavailable: {e}") from e

        return [row[0] for row in rows]

    # ------------------------------------------------------------------
    # Writes (seeding and tests; the admin API never writes)
    # ------------------------------------------------------------------

    def put_record(self, document: dict[str, Any] | str, request_id: str | None = None) -> str:
        """Store a record document and index it by its input URL.

        Args:
            document: Record as a dict, or a raw JSON string stored verbatim.
            request_id: Key to store under. Defaults to the document's
                ``requestId``.

        Returns:
            The request id the document was stored under.

        Raises:
            ValueError: If no request id is given or found in the document.
        """
        if isinstance(document, dict):
            rid = request_id or document.get("requestId")
            input_section = document.get("input")
            input_url = None
            if isinstance(input_section, dict):
                input_url = input_section.get("originalUrl")
            value = json.dumps(document)
        else:
            rid = request_id
            input_url = None
            value = document

        if not rid:
            raise ValueError("A request id is required to store a record")

        with self._connect() as conn:
            cursor = conn.cursor()
            cursor.execute(
                "INSERT OR REPLACE INTO requests_kv (request_id, value) VALUES (?, ?)",
                (rid, value),
            )
            cursor.execute(
                "INSERT OR IGNORE INTO by_input_url (input_url, request_id) VALUES (?, ?)",
                (input_url or None, rid),
            )
            conn.commit()

        logger.debug(f"Stored record {rid}")
        return rid

    def index_request(self, request_id: str, input_url: str | None = None) -> None:
        """Add an index row without storing a record document."""
        with self._connect() as conn:
            conn.execute(
                "INSERT OR IGNORE INTO by_input_url (input_url, request_id) VALUES (?, ?)",
                (input_url, request_id),
            )
            conn.commit()

    def delete_request(self, request_id: str) -> bool:
        """Remove a record and its index rows.

        Returns:
            True if anything was removed
        """
        with self._connect() as conn:
            cursor = conn.cursor()
            cursor.execute("DELETE FROM requests_kv WHERE request_id = ?", (request_id,))
            removed = cursor.rowcount
            cursor.execute("DELETE FROM by_input_url WHERE request_id = ?", (request_id,))
            removed += cursor.rowcount
            conn.commit()

        if removed:
            logger.info(f"Deleted request {request_id}")
        return removed > 0
