"""
Tests for bounds.py - boundary trimming, range queries and chunk chains.

A split covers the half-open interval [lower, upper) of a single key space.
These tests pin down the two encodings of that interval:

  BOUNDARY-MARKER MODE  trim_bounds() -> (split_min, split_max)
  RANGE-QUERY MODE      build_range_query() -> {key: {"$gte": lo, "$lt": hi}}

and the validation that keeps range mode honest:

  - compound or mismatched boundaries  -> InvalidBoundaryError
  - filter already on the split key    -> QueryConflictError

The coverage tests walk a synthetic integer key space through a chain of
boundaries and check every key lands in exactly one split.
"""

import pytest
from bson.max_key import MaxKey
from bson.min_key import MinKey

from shardsplit.analysis.bounds import (
    build_range_query,
    chain_bounds,
    check_chunk_chain,
    range_key,
    trim_bounds,
)
from shardsplit.exceptions import (
    InvalidBoundaryError,
    QueryConflictError,
    SplitComputationError,
)


def in_range(value, predicate):
    if "$gte" in predicate and not value >= predicate["$gte"]:
        return False
    if "$lt" in predicate and not value < predicate["$lt"]:
        return False
    return True


def in_bounds(value, key, split_min, split_max):
    if key in split_min and not value >= split_min[key]:
        return False
    if key in split_max and not value < split_max[key]:
        return False
    return True


# =============================================================================
# trim_bounds
# =============================================================================


class TestTrimBounds:
    def test_plain_values_are_copied(self):
        assert trim_bounds({"a": 1}, {"a": 5}) == ({"a": 1}, {"a": 5})

    def test_min_key_lower_is_dropped(self):
        assert trim_bounds({"a": MinKey()}, {"a": 5}) == ({}, {"a": 5})

    def test_max_key_upper_is_dropped(self):
        assert trim_bounds({"a": 5}, {"a": MaxKey()}) == ({"a": 5}, {})

    def test_all_sentinels_equal_no_bounds(self):
        sentinel = trim_bounds(
            {"a": MinKey(), "b": MinKey()}, {"a": MaxKey(), "b": MaxKey()}
        )
        assert sentinel == trim_bounds(None, None) == ({}, {})

    def test_compound_keys_keep_order(self):
        split_min, split_max = trim_bounds({"a": 1, "b": 2}, {"a": 3, "b": 4})
        assert list(split_min) == ["a", "b"]
        assert list(split_max) == ["a", "b"]

    def test_upper_only_keeps_upper(self):
        assert trim_bounds(None, {"a": 10}) == ({}, {"a": 10})

    def test_inputs_are_not_mutated(self):
        lower = {"a": MinKey()}
        upper = {"a": 10}
        trim_bounds(lower, upper)
        assert lower == {"a": MinKey()}
        assert upper == {"a": 10}


# =============================================================================
# range_key
# =============================================================================


class TestRangeKey:
    def test_shared_single_key(self):
        assert range_key({"age": 1}, {"age": 2}) == "age"

    def test_lower_only(self):
        assert range_key({"age": 1}, None) == "age"

    def test_upper_only(self):
        assert range_key(None, {"age": 2}) == "age"

    @pytest.mark.parametrize(
        "lower, upper",
        [
            ({"a": 1, "b": 2}, {"a": 3, "b": 4}),
            ({"a": 1}, {"a": 3, "b": 4}),
            ({"a": 1, "b": 2}, {"a": 3}),
            ({"a": 1, "b": 2}, None),
            ({}, {"a": 1}),
        ],
    )
    def test_compound_boundaries_rejected(self, lower, upper):
        with pytest.raises(InvalidBoundaryError):
            range_key(lower, upper)

    def test_different_keys_rejected(self):
        with pytest.raises(InvalidBoundaryError):
            range_key({"a": 1}, {"b": 2})


# =============================================================================
# build_range_query
# =============================================================================


class TestBuildRangeQuery:
    def test_age_scenario(self):
        assert build_range_query({"age": 18}, {"age": 30}, {}) == {
            "age": {"$gte": 18, "$lt": 30}
        }

    def test_keeps_existing_clauses(self):
        query = {"status": "A"}
        result = build_range_query({"age": 18}, {"age": 30}, query)
        assert result == {"status": "A", "age": {"$gte": 18, "$lt": 30}}
        assert query == {"status": "A"}

    def test_no_bounds_copies_query(self):
        query = {"status": "A"}
        result = build_range_query(None, None, query)
        assert result == query
        assert result is not query

    def test_open_lower(self):
        assert build_range_query(None, {"age": 30}, {}) == {"age": {"$lt": 30}}

    def test_open_upper(self):
        assert build_range_query({"age": 18}, None, {}) == {"age": {"$gte": 18}}

    def test_sentinels_add_no_clause(self):
        assert build_range_query({"age": MinKey()}, {"age": 30}, {}) == {
            "age": {"$lt": 30}
        }
        assert build_range_query({"age": MinKey()}, {"age": MaxKey()}, {}) == {}

    def test_conflict_with_query(self):
        with pytest.raises(QueryConflictError) as exc_info:
            build_range_query({"age": 18}, {"age": 30}, {"age": {"$gt": 20}})
        assert exc_info.value.key == "age"

    def test_conflict_even_when_compatible(self):
        with pytest.raises(QueryConflictError):
            build_range_query({"age": 18}, {"age": 30}, {"age": 25})

    def test_compound_rejected_before_building(self):
        with pytest.raises(InvalidBoundaryError):
            build_range_query({"a": 1, "b": 1}, {"a": 2, "b": 2}, {})

    def test_validation_errors_are_value_errors(self):
        with pytest.raises(ValueError):
            build_range_query({"a": 1, "b": 1}, None, {})

    def test_ascending_key_pattern(self):
        assert build_range_query({"_id": 1}, {"_id": 9}, {}, {"_id": 1}) == {
            "_id": {"$gte": 1, "$lt": 9}
        }

    @pytest.mark.parametrize("direction", [-1, "hashed", "2dsphere", True])
    def test_non_ascending_key_pattern(self, direction):
        with pytest.raises(InvalidBoundaryError, match="ascending"):
            build_range_query({"_id": 300}, {"_id": 200}, {}, {"_id": direction})

    def test_key_missing_from_pattern(self):
        with pytest.raises(InvalidBoundaryError):
            build_range_query({"a": 1}, {"a": 2}, {}, {"b": 1})

    def test_no_bounds_skips_key_pattern(self):
        assert build_range_query(None, None, {"s": "A"}, {"_id": -1}) == {"s": "A"}


# =============================================================================
# coverage
# =============================================================================


class TestCoverage:
    POINTS = [{"k": 10}, {"k": 20}, {"k": 35}]

    def test_range_mode_covers_each_key_once(self):
        queries = [
            build_range_query(lower, upper, {})
            for lower, upper in chain_bounds(self.POINTS)
        ]
        for value in range(-5, 50):
            hits = [q for q in queries if in_range(value, q.get("k", {}))]
            assert len(hits) == 1, value

    def test_marker_mode_covers_each_key_once(self):
        bounds = [trim_bounds(lower, upper) for lower, upper in chain_bounds(self.POINTS)]
        for value in range(-5, 50):
            hits = [b for b in bounds if in_bounds(value, "k", *b)]
            assert len(hits) == 1, value

    def test_chain_bounds_without_points(self):
        assert chain_bounds([]) == [(None, None)]


# =============================================================================
# check_chunk_chain
# =============================================================================


class TestCheckChunkChain:
    def test_contiguous_chain(self):
        check_chunk_chain(
            [
                ({"x": MinKey()}, {"x": 10}),
                ({"x": 10}, {"x": 20}),
                ({"x": 20}, {"x": MaxKey()}),
            ]
        )

    def test_single_chunk(self):
        check_chunk_chain([({"x": MinKey()}, {"x": MaxKey()})])

    def test_empty(self):
        with pytest.raises(SplitComputationError):
            check_chunk_chain([])

    def test_gap(self):
        with pytest.raises(SplitComputationError, match="Chunk 1"):
            check_chunk_chain(
                [
                    ({"x": MinKey()}, {"x": 10}),
                    ({"x": 11}, {"x": MaxKey()}),
                ]
            )

    def test_open_start(self):
        with pytest.raises(SplitComputationError, match="MinKey"):
            check_chunk_chain([({"x": 0}, {"x": MaxKey()})])

    def test_open_end(self):
        with pytest.raises(SplitComputationError, match="MaxKey"):
            check_chunk_chain([({"x": MinKey()}, {"x": 100})])
