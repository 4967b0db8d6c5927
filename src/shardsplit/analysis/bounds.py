"""
Boundary handling for split construction.

================================================================================
TWO WAYS TO EXPRESS A SPLIT
================================================================================

Every split is the half-open key interval [lower, upper). It reaches the
server in one of two forms:

BOUNDARY-MARKER MODE (default)
    The filter is left alone and the interval is passed as cursor min/max
    index bounds:

        find({"status": "A"}).min([("age", 18)]).max([("age", 30)])

    Sentinel values are trimmed first, so an open side is simply absent:

        lower={"age": MinKey()}  upper={"age": 30}
        -> min={}                max={"age": 30}

RANGE-QUERY MODE
    The interval is merged into the filter itself:

        lower={"age": 18}  upper={"age": 30}  query={}
        -> {"age": {"$gte": 18, "$lt": 30}}

    Only a single, non-compound split key can be expressed this way, and the
    filter must not already constrain that key.

COVERAGE
--------------------------------------------------------------------------------

A strategy that feeds the chain  None, b1, b2, ..., bn, None  through
consecutive (lower, upper) pairs produces intervals

    (-inf, b1)  [b1, b2)  ...  [bn, +inf)

which cover the key space with no gaps and no overlaps as long as
b1 < b2 < ... < bn.
================================================================================
"""

import logging
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

from shardsplit.constants import MAX_KEY, MIN_KEY
from shardsplit.exceptions import (
    InvalidBoundaryError,
    QueryConflictError,
    SplitComputationError,
)

logger = logging.getLogger(__name__)

Boundary = Mapping[str, Any]


def is_min_key(value: Any) -> bool:
    return value == MIN_KEY


def is_max_key(value: Any) -> bool:
    return value == MAX_KEY


def trim_bounds(
    lower: Optional[Boundary], upper: Optional[Boundary]
) -> Tuple[Dict[str, Any], Dict[str, Any]]:
    """
    Build the (split_min, split_max) index bounds for boundary-marker mode.

    Keys are taken from the lower bound, or from the upper bound when the
    lower one is absent. A MinKey lower value and a MaxKey upper value mean
    "no restriction" and are dropped.

    Example:
        >>> trim_bounds({"a": MinKey()}, {"a": 10})
        ({}, {'a': 10})
    """
    split_min: Dict[str, Any] = {}
    split_max: Dict[str, Any] = {}

    keys = list(lower) if lower is not None else list(upper or ())
    for key in keys:
        if lower is not None and key in lower and not is_min_key(lower[key]):
            split_min[key] = lower[key]
        if upper is not None and key in upper and not is_max_key(upper[key]):
            split_max[key] = upper[key]

    return split_min, split_max


def _single_key(bound: Optional[Boundary]) -> Optional[Tuple[str, Any]]:
    if bound is None or len(bound) != 1:
        return None
    return next(iter(bound.items()))


def range_key(lower: Optional[Boundary], upper: Optional[Boundary]) -> str:
    """
    Return the single key shared by lower and upper.

    Raises:
        InvalidBoundaryError: a present bound does not have exactly one key,
            or the two bounds name different keys.
    """
    lo = _single_key(lower)
    hi = _single_key(upper)

    if (lower is not None and lo is None) or (upper is not None and hi is None):
        raise InvalidBoundaryError(
            lower, upper, "one or more split boundaries contains a compound key"
        )
    if lo is not None and hi is not None and lo[0] != hi[0]:
        raise InvalidBoundaryError(lower, upper, "split boundaries name different keys")

    return (lo or hi)[0]


def check_ascending_key(
    key: str,
    key_pattern: Mapping[str, Any],
    lower: Optional[Boundary] = None,
    upper: Optional[Boundary] = None,
) -> None:
    """
    Require key_pattern to index key in ascending order.

    $gte/$lt compare raw field values, so bounds taken from a descending
    index arrive in reverse order and bounds from a hashed index are hash
    values. Neither maps onto a value range.

    Raises:
        InvalidBoundaryError: key is missing from key_pattern or its index
            type is anything other than 1
    """
    direction = key_pattern.get(key)
    if isinstance(direction, bool) or direction != 1:
        raise InvalidBoundaryError(
            lower,
            upper,
            f"split key {key!r} is indexed as {direction!r}, "
            "range queries need an ascending (1) index",
        )


def build_range_query(
    lower: Optional[Boundary],
    upper: Optional[Boundary],
    query: Mapping[str, Any],
    key_pattern: Optional[Mapping[str, Any]] = None,
) -> Dict[str, Any]:
    """
    Merge the interval [lower, upper) into a copy of query.

    Both bounds absent returns a plain copy of query. Sentinel values add no
    clause; if neither side adds one the copy is returned unchanged. When
    key_pattern is given the split key must be ascending in it.

    Raises:
        InvalidBoundaryError: compound or mismatched boundaries, or a
            descending or hashed split key
        QueryConflictError: query already has a clause on the split key
    """
    split_query = dict(query)
    if lower is None and upper is None:
        return split_query

    key = range_key(lower, upper)
    if key_pattern is not None:
        check_ascending_key(key, key_pattern, lower, upper)
    if key in query:
        raise QueryConflictError(key, query)

    predicate: Dict[str, Any] = {}
    if lower is not None and not is_min_key(lower[key]):
        predicate["$gte"] = lower[key]
    if upper is not None and not is_max_key(upper[key]):
        predicate["$lt"] = upper[key]

    # {key: {}} would match only documents whose key is an empty document
    if predicate:
        split_query[key] = predicate
    return split_query


def chain_bounds(
    points: Sequence[Boundary],
) -> List[Tuple[Optional[Boundary], Optional[Boundary]]]:
    """
    Turn ordered split points into consecutive (lower, upper) pairs.

    Example:
        >>> chain_bounds([{"x": 10}, {"x": 20}])
        [(None, {'x': 10}), ({'x': 10}, {'x': 20}), ({'x': 20}, None)]
    """
    edges: List[Optional[Boundary]] = [None, *points, None]
    return list(zip(edges[:-1], edges[1:]))


def check_chunk_chain(chunks: Sequence[Tuple[Boundary, Boundary]]) -> None:
    """
    Verify (min, max) chunk ranges tile the whole key space.

    The first min must be all MinKey, the last max all MaxKey, and every min
    must equal the max before it.

    Raises:
        SplitComputationError: the chain has a gap, an overlap or open ends
    """
    if not chunks:
        raise SplitComputationError("No chunks found for sharded collection")

    first_min = chunks[0][0]
    last_max = chunks[-1][1]
    if not all(is_min_key(v) for v in first_min.values()):
        raise SplitComputationError(
            f"First chunk does not start at MinKey: min={dict(first_min)!r}"
        )
    if not all(is_max_key(v) for v in last_max.values()):
        raise SplitComputationError(
            f"Last chunk does not end at MaxKey: max={dict(last_max)!r}"
        )

    for index in range(1, len(chunks)):
        prev_max = chunks[index - 1][1]
        cur_min = chunks[index][0]
        if list(prev_max.items()) != list(cur_min.items()):
            raise SplitComputationError(
                f"Chunk {index} does not start where chunk {index - 1} ends: "
                f"{dict(prev_max)!r} != {dict(cur_min)!r}"
            )

    logger.debug("Chunk chain of %d chunks is contiguous", len(chunks))
