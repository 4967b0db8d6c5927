"""Shard strategy: one unbounded split per shard, read from the shard itself."""

import logging
from typing import List

from shardsplit.analysis.uri import rewrite_uri
from shardsplit.exceptions import SplitComputationError
from shardsplit.models import Split
from shardsplit.splitters.base import CollectionSplitter

logger = logging.getLogger(__name__)


class ShardSplitter(CollectionSplitter):
    """
    Reads each shard's portion of a sharded collection as a single split.

    Every split carries the full filter and no bounds; the shard it is
    pointed at decides which documents it sees. Orphaned documents left by
    unfinished migrations may be read twice.
    """

    def calculate_splits(self) -> List[Split]:
        shards_map = self.get_shards_map()
        if not shards_map:
            raise SplitComputationError(
                f"No shards listed in config.shards for {self.namespace}"
            )

        template = self.create_split_from_bounds(None, None)
        splits = [
            template.with_uri(rewrite_uri(template.input_uri, hosts))
            for _, hosts in sorted(shards_map.items())
        ]
        logger.warning(
            "Reading %s directly from %d shards; orphaned documents may be included",
            self.namespace,
            len(splits),
        )
        return splits
