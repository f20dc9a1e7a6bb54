"""Tests for yinyang.core.models — record and chain data models."""

from __future__ import annotations

import dataclasses

import pytest

from yinyang.core.models import (
    ChainLink,
    GeneratedImage,
    GenerationRecord,
    ParentLink,
    ResolutionConflict,
    ResolvedRecord,
    Variant,
    chain_ids,
)


class TestGenerationRecordFromDict:
    """Test GenerationRecord.from_dict parsing of store documents."""

    def test_full_document(self):
        record = GenerationRecord.from_dict(
            {
                "requestId": "r1",
                "input": {"originalUrl": "https://x.example.com/in.png"},
                "results": {
                    "good": {"imageBucketId": "r1.good.png"},
                    "bad": {"imageBucketId": "r1.bad.png"},
                },
            }
        )
        assert record == GenerationRecord(
            request_id="r1",
            original_url="https://x.example.com/in.png",
            good=GeneratedImage("r1.good.png"),
            bad=GeneratedImage("r1.bad.png"),
        )

    def test_missing_sections_are_none(self):
        record = GenerationRecord.from_dict({"requestId": "r1"})
        assert record.original_url is None
        assert record.good is None
        assert record.bad is None

    def test_empty_original_url_is_none(self):
        record = GenerationRecord.from_dict({"requestId": "r1", "input": {"originalUrl": ""}})
        assert record.original_url is None

    def test_malformed_results_are_ignored(self):
        record = GenerationRecord.from_dict(
            {"requestId": "r1", "results": {"good": "oops", "bad": {"imageBucketId": 7}}}
        )
        assert record.good is None
        assert record.bad is None

    def test_key_fallback(self):
        assert GenerationRecord.from_dict({}, request_id="k").request_id == "k"

    def test_document_id_wins_over_key(self):
        assert GenerationRecord.from_dict({"requestId": "doc"}, request_id="k").request_id == "doc"

    @pytest.mark.parametrize("data", [None, [], "text", 3])
    def test_non_object_raises(self, data):
        with pytest.raises(ValueError):
            GenerationRecord.from_dict(data, request_id="k")

    def test_missing_request_id_raises(self):
        with pytest.raises(ValueError, match="requestId"):
            GenerationRecord.from_dict({"results": {}})


class TestGenerationRecord:
    """Test GenerationRecord behaviour."""

    def test_is_immutable(self):
        record = GenerationRecord("r1")
        with pytest.raises(dataclasses.FrozenInstanceError):
            record.original_url = "x"  # type: ignore[misc]

    def test_output_by_variant(self):
        record = GenerationRecord("r1", good=GeneratedImage("g"), bad=GeneratedImage("b"))
        assert record.output(Variant.GOOD).image_bucket_id == "g"
        assert record.output(Variant.BAD).image_bucket_id == "b"

    def test_image_url(self):
        assert GeneratedImage("r1.good.png").url("https://img") == "https://img/r1.good.png"


class TestResolvedRecord:
    """Test ResolvedRecord helpers."""

    def test_root(self):
        resolved = ResolvedRecord(GenerationRecord("r1"))
        assert resolved.is_root
        assert resolved.request_id == "r1"

    def test_with_parent(self):
        resolved = ResolvedRecord(GenerationRecord("r2"), ParentLink("r1", Variant.BAD))
        assert not resolved.is_root

    def test_parent_link_does_not_touch_record(self):
        record = GenerationRecord("r2", original_url="https://img/r1.bad.png")
        ResolvedRecord(record, ParentLink("r1", Variant.BAD))
        assert not hasattr(record, "parent_link")


class TestChainHelpers:
    """Test chain_ids and ResolutionConflict."""

    def test_chain_ids(self):
        chain = (ChainLink("a", "x"), ChainLink("b", "y"))
        assert chain_ids(chain) == ("a", "b")

    def test_conflict_message(self):
        conflict = ResolutionConflict("c", ParentLink("a", Variant.GOOD), None)
        assert "c" in conflict.message
        assert "conflicting parents" in conflict.message

    def test_variant_values(self):
        assert Variant("good") is Variant.GOOD
        assert Variant.BAD.value == "bad"
