"""
Sample-based strategy.

Estimates boundaries from a random sample instead of walking an index, which
works on any deployment where $sample is available:

    1. collStats.size / split_size  -> number of splits n
    2. $sample  samples_per_split * n  documents, projected to the split key
    3. sort the samples by the split key
    4. every samples_per_split-th sample becomes a boundary

    samples_per_split = 3, n = 3
    samples:  a b c [d] e f [g] h i
    bounds:   (None, d) [d, g) [g, None)

Samples missing any split-key field are discarded before boundaries are
picked, so no split is bounded by a null.

Boundaries are estimates: splits come out roughly, not exactly, equal in size.
"""

import logging
import math
from typing import Any, Dict, List, Mapping, Optional

from pymongo.errors import PyMongoError

from shardsplit.analysis.bounds import chain_bounds
from shardsplit.exceptions import MetadataReadError, SplitComputationError
from shardsplit.models import Split
from shardsplit.splitters.base import CollectionSplitter

logger = logging.getLogger(__name__)

_MB = 1024 * 1024

_MISSING = object()


def _field(doc: Mapping[str, Any], path: str) -> Any:
    value: Any = doc
    for part in path.split("."):
        if not isinstance(value, Mapping) or part not in value:
            return _MISSING
        value = value[part]
    return value


def _split_point(
    doc: Mapping[str, Any], key_pattern: Mapping[str, Any]
) -> Optional[Dict[str, Any]]:
    point = {key: _field(doc, key) for key in key_pattern}
    if any(value is _MISSING for value in point.values()):
        return None
    return point


class SampleSplitter(CollectionSplitter):
    """Splits a collection at evenly spaced keys of a sorted random sample."""

    def _sample_pipeline(self, size: int) -> List[Dict[str, Any]]:
        key_pattern = self.config.split_key
        projection: Dict[str, Any] = {key: 1 for key in key_pattern}
        if "_id" not in projection:
            projection["_id"] = 0
        return [
            {"$sample": {"size": size}},
            {"$project": projection},
            {"$sort": dict(key_pattern)},
        ]

    def calculate_splits(self) -> List[Split]:
        stats = self.collection_stats()
        try:
            size = int(stats.get("size", 0))
        except (TypeError, ValueError) as e:
            raise SplitComputationError(
                f"collStats for {self.namespace} reported an invalid size: "
                f"{stats.get('size')!r}"
            ) from e

        num_splits = math.ceil(size / (self.config.split_size_mb * _MB))
        key_pattern = dict(self.config.split_key)
        if num_splits <= 1:
            logger.info(
                "Collection %s fits in one split (%d bytes)", self.namespace, size
            )
            return [self.create_split_from_bounds(None, None, key_pattern)]

        per_split = self.config.samples_per_split
        pipeline = self._sample_pipeline(per_split * num_splits)
        try:
            samples = list(self.collection.aggregate(pipeline, allowDiskUse=True))
        except PyMongoError as e:
            raise MetadataReadError(f"$sample {self.namespace}", e) from e

        keyed = [
            point
            for point in (_split_point(doc, key_pattern) for doc in samples)
            if point is not None
        ]
        if len(keyed) < len(samples):
            logger.debug(
                "Skipped %d samples from %s missing split key fields",
                len(samples) - len(keyed),
                self.namespace,
            )

        points: List[Dict[str, Any]] = []
        for index in range(per_split, len(keyed), per_split):
            point = keyed[index]
            # equal neighbours would yield an empty [x, x) split
            if points and points[-1] == point:
                continue
            points.append(point)

        splits = [
            self.create_split_from_bounds(lower, upper, key_pattern)
            for lower, upper in chain_bounds(points)
        ]
        logger.info(
            "Calculated %d splits for %s from %d samples",
            len(splits),
            self.namespace,
            len(samples),
        )
        return splits
