"""Tests for yinyang.core.chain_assembler — lineage chain assembly.

Tests cover:
- The A -> B -> C scenario under both output policies.
- Root inclusion, ancestry correctness and ordering.
- Display values paired with each request id.
- The cycle guard (self references and longer loops).
"""

from __future__ import annotations

import logging

import pytest
from helpers import IMAGE_HOST, image_url

from yinyang.core.chain_assembler import assemble_chains, walk_ancestry
from yinyang.core.models import (
    GeneratedImage,
    GenerationRecord,
    ParentLink,
    ResolvedRecord,
    Variant,
    chain_ids,
)


def _resolved(*specs: tuple[str, str | None]) -> dict[str, ResolvedRecord]:
    """Build a resolved mapping from ``(request_id, parent_id)`` pairs."""
    out: dict[str, ResolvedRecord] = {}
    for request_id, parent_id in specs:
        url = image_url(parent_id) if parent_id else None
        link = ParentLink(parent_id, Variant.GOOD) if parent_id else None
        record = GenerationRecord(
            request_id,
            original_url=url,
            good=GeneratedImage(f"{request_id}.good.png"),
        )
        out[request_id] = ResolvedRecord(record=record, parent_link=link)
    return out


def _ids(result) -> list[tuple[str, ...]]:
    return [chain_ids(chain) for chain in result.chains]


class TestWalkAncestry:
    """Test walk_ancestry — the iterative parent walk."""

    def test_root(self):
        assert walk_ancestry("A", _resolved(("A", None))) == ["A"]

    def test_walks_to_root(self):
        resolved = _resolved(("A", None), ("B", "A"), ("C", "B"))
        assert walk_ancestry("C", resolved) == ["A", "B", "C"]

    def test_self_reference_raises(self):
        with pytest.raises(ValueError, match="cycle"):
            walk_ancestry("X", _resolved(("X", "X")))

    def test_two_node_loop_raises(self):
        with pytest.raises(ValueError, match="cycle"):
            walk_ancestry("P", _resolved(("P", "Q"), ("Q", "P")))

    def test_missing_parent_raises(self):
        with pytest.raises(ValueError, match="not in the working set"):
            walk_ancestry("B", _resolved(("B", "A")))


class TestScenarioRaw:
    """A (root), B from A, C from B with the raw policy."""

    def test_one_chain_per_record(self):
        resolved = _resolved(("A", None), ("B", "A"), ("C", "B"))
        result = assemble_chains(resolved, image_host=IMAGE_HOST, policy="raw")
        assert _ids(result) == [("A", "B", "C"), ("A", "B"), ("A",)]
        assert result.errors == []


class TestScenarioMaximal:
    """A (root), B from A, C from B with the maximal policy."""

    def test_only_the_full_chain(self):
        resolved = _resolved(("A", None), ("B", "A"), ("C", "B"))
        result = assemble_chains(resolved, image_host=IMAGE_HOST, policy="maximal")
        assert _ids(result) == [("A", "B", "C")]

    def test_childless_root_is_kept(self):
        resolved = _resolved(("A", None), ("B", "A"), ("C", "B"), ("D", None))
        result = assemble_chains(resolved, image_host=IMAGE_HOST, policy="maximal")
        assert _ids(result) == [("D",), ("A", "B", "C")]

    def test_branching_keeps_every_leaf(self):
        resolved = _resolved(("A", None), ("B", "A"), ("C", "A"), ("D", "B"))
        result = assemble_chains(resolved, image_host=IMAGE_HOST, policy="maximal")
        assert _ids(result) == [("A", "B", "D"), ("A", "C")]

    def test_default_policy_is_maximal(self):
        resolved = _resolved(("A", None), ("B", "A"))
        result = assemble_chains(resolved, image_host=IMAGE_HOST)
        assert _ids(result) == [("A", "B")]


class TestChainProperties:
    """Properties that hold for any input."""

    @pytest.fixture
    def forest(self):
        return _resolved(
            ("A", None),
            ("B", "A"),
            ("C", "B"),
            ("D", None),
            ("E", "A"),
            ("F", "E"),
            ("G", "D"),
        )

    def test_root_inclusion(self, forest):
        """Every root appears exactly once as a length-1 chain (raw)."""
        result = assemble_chains(forest, image_host=IMAGE_HOST, policy="raw")
        singles = [ids for ids in _ids(result) if len(ids) == 1]
        assert sorted(singles) == [("A",), ("D",)]

    def test_ancestry_correctness(self, forest):
        """Within every chain each record's parent directly precedes it."""
        for policy in ("raw", "maximal"):
            result = assemble_chains(forest, image_host=IMAGE_HOST, policy=policy)
            for ids in _ids(result):
                assert forest[ids[0]].parent_link is None
                for parent, child in zip(ids, ids[1:]):
                    assert forest[child].parent_link.parent_request_id == parent

    def test_each_leaf_has_exactly_one_chain(self, forest):
        result = assemble_chains(forest, image_host=IMAGE_HOST, policy="raw")
        leaves = [ids[-1] for ids in _ids(result)]
        assert sorted(leaves) == sorted(forest)

    def test_reverse_discovery_order(self, forest):
        result = assemble_chains(forest, image_host=IMAGE_HOST, policy="raw")
        assert [ids[-1] for ids in _ids(result)] == list(reversed(list(forest)))

    def test_idempotent(self, forest):
        first = assemble_chains(forest, image_host=IMAGE_HOST, policy="maximal")
        second = assemble_chains(forest, image_host=IMAGE_HOST, policy="maximal")
        assert first.chains == second.chains

    def test_empty_input(self):
        result = assemble_chains({}, image_host=IMAGE_HOST)
        assert result.chains == []
        assert result.errors == []

    def test_unknown_policy_raises(self):
        with pytest.raises(ValueError, match="Unknown chain policy"):
            assemble_chains({}, image_host=IMAGE_HOST, policy="longest")


class TestDisplayValues:
    """Each chain link carries a display value."""

    def test_input_url_is_displayed(self):
        resolved = _resolved(("A", None), ("B", "A"))
        result = assemble_chains(resolved, image_host=IMAGE_HOST, policy="maximal")
        (chain,) = result.chains
        assert chain[1].display == image_url("A")

    def test_root_without_input_shows_its_good_output(self):
        resolved = _resolved(("A", None))
        (chain,) = assemble_chains(resolved, image_host=IMAGE_HOST).chains
        assert chain[0].display == f"{IMAGE_HOST}/A.good.png"

    def test_record_without_outputs_shows_request_id(self):
        resolved = {"A": ResolvedRecord(record=GenerationRecord("A"))}
        (chain,) = assemble_chains(resolved, image_host=IMAGE_HOST).chains
        assert chain[0].display == "A"


class TestCycleGuard:
    """Broken ancestry is reported per record, never looped on."""

    def test_self_reference_is_reported(self, caplog):
        resolved = _resolved(("A", None), ("X", "X"))
        with caplog.at_level(logging.ERROR, logger="yinyang.core.chain_assembler"):
            result = assemble_chains(resolved, image_host=IMAGE_HOST, policy="raw")

        assert _ids(result) == [("A",)]
        assert [e.request_id for e in result.errors] == ["X"]
        assert "cycle" in result.errors[0].reason
        assert "X" in caplog.text

    def test_descendants_of_a_loop_are_reported(self):
        resolved = _resolved(("P", "Q"), ("Q", "P"), ("R", "P"), ("S", None))
        result = assemble_chains(resolved, image_host=IMAGE_HOST, policy="raw")
        assert _ids(result) == [("S",)]
        assert sorted(e.request_id for e in result.errors) == ["P", "Q", "R"]

    def test_other_chains_survive_in_maximal_mode(self):
        resolved = _resolved(("A", None), ("B", "A"), ("X", "X"))
        result = assemble_chains(resolved, image_host=IMAGE_HOST, policy="maximal")
        assert _ids(result) == [("A", "B")]
        assert len(result.errors) == 1
