"""
splitVector strategy for unsharded collections.

The server walks the split_key index and returns the keys at which the
collection should be cut so each piece holds at most maxChunkSize MB:

    db.command({"splitVector": "app.events",
                "keyPattern": {"_id": 1},
                "maxChunkSize": 8})
    -> {"splitKeys": [{"_id": 1000}, {"_id": 2000}], "ok": 1}

The keys are chained into  (None, k1) [k1, k2) [k2, None).
"""

import logging
from typing import List

from bson.son import SON
from pymongo.errors import PyMongoError

from shardsplit.analysis.bounds import chain_bounds
from shardsplit.exceptions import MetadataReadError, SplitComputationError
from shardsplit.models import Split
from shardsplit.splitters.base import CollectionSplitter

logger = logging.getLogger(__name__)


class SplitVectorSplitter(CollectionSplitter):
    """Splits an unsharded collection at the keys reported by splitVector."""

    def calculate_splits(self) -> List[Split]:
        stats = self.collection_stats()
        if stats.get("sharded"):
            raise SplitComputationError(
                f"Cannot run splitVector on sharded collection {self.namespace}; "
                "use the shard_chunks strategy"
            )

        key_pattern = dict(self.config.split_key)
        command = SON(
            [
                ("splitVector", self.namespace),
                ("keyPattern", key_pattern),
                ("maxChunkSize", self.config.split_size_mb),
            ]
        )
        try:
            result = self.collection.database.command(command)
        except PyMongoError as e:
            raise MetadataReadError(f"splitVector {self.namespace}", e) from e

        if "splitKeys" not in result:
            raise SplitComputationError(
                f"splitVector reply for {self.namespace} has no splitKeys: {result!r}"
            )

        split_keys = result["splitKeys"]
        splits = [
            self.create_split_from_bounds(lower, upper, key_pattern)
            for lower, upper in chain_bounds(split_keys)
        ]
        logger.info(
            "Calculated %d splits for %s from %d split keys",
            len(splits),
            self.namespace,
            len(split_keys),
        )
        return splits
