"""Shared test helpers: the test image host, record documents and a fake
in-memory record source."""

from __future__ import annotations

from yinyang.core.errors import RecordStoreUnavailable
from yinyang.core.models import GenerationRecord, InputAssociation

IMAGE_HOST = "https://images.example.test"


def image_url(request_id: str, variant: str = "good", ext: str = "png") -> str:
    """Public URL of a generated image on the test image host."""
    return f"{IMAGE_HOST}/{request_id}.{variant}.{ext}"


def make_document(request_id: str, original_url: str | None = None) -> dict:
    """Build a record document in the store's JSON shape."""
    document = {
        "requestId": request_id,
        "results": {
            "good": {"imageBucketId": f"{request_id}.good.png"},
            "bad": {"imageBucketId": f"{request_id}.bad.png"},
        },
    }
    if original_url is not None:
        document["input"] = {"originalUrl": original_url}
    return document


class FakeFetcher:
    """In-memory RecordFetcher that counts calls.

    Attributes:
        documents: Request id -> record document, in index order.
        count_override: Value reported by ``count_distinct_requests`` instead
            of the real count, when set.
        unavailable: When True, every call raises RecordStoreUnavailable.
    """

    def __init__(self, documents: dict[str, dict] | None = None) -> None:
        self.documents: dict[str, dict] = dict(documents or {})
        self.count_override: int | None = None
        self.unavailable = False
        self.count_calls = 0
        self.list_calls = 0
        self.get_calls = 0

    def add(self, request_id: str, original_url: str | None = None) -> None:
        self.documents[request_id] = make_document(request_id, original_url)

    def list_distinct_input_associations(self) -> list[InputAssociation]:
        self.list_calls += 1
        if self.unavailable:
            raise RecordStoreUnavailable("fake store down")
        associations = []
        for rid, doc in self.documents.items():
            input_url = None
            if isinstance(doc, dict):
                input_url = (doc.get("input") or {}).get("originalUrl")
            associations.append(InputAssociation(input_url=input_url, request_id=rid))
        return associations

    def count_distinct_requests(self) -> int:
        self.count_calls += 1
        if self.unavailable:
            raise RecordStoreUnavailable("fake store down")
        if self.count_override is not None:
            return self.count_override
        return len(self.documents)

    def get_record(self, request_id: str) -> GenerationRecord | None:
        self.get_calls += 1
        if self.unavailable:
            raise RecordStoreUnavailable("fake store down")
        document = self.documents.get(request_id)
        if document is None:
            return None
        return GenerationRecord.from_dict(document, request_id=request_id)
