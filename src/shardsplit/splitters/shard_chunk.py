"""
Chunk-based strategy for sharded collections.

================================================================================
DATA FLOW - CHUNK METADATA TO SPLITS
================================================================================

STEP 1: config.collections gives the shard key and, on 4.4+ clusters, the
collection UUID that chunk records are keyed by:

    {"_id": "app.events", "key": {"user_id": 1}, "uuid": UUID("...")}

STEP 2: config.chunks, sorted by min, tiles the shard key space:

    {"min": {"user_id": MinKey}, "max": {"user_id": 100},    "shard": "s0"}
    {"min": {"user_id": 100},    "max": {"user_id": 500},    "shard": "s1"}
    {"min": {"user_id": 500},    "max": {"user_id": MaxKey}, "shard": "s0"}

    The chain is checked for gaps and overlaps before any split is built.

STEP 3: one split per chunk via create_split_from_bounds().

STEP 4: routing, optional:
    target_shards  -> each split reads from its chunk's shard directly,
                      host list taken from config.shards
    mongos_hosts   -> splits are spread round-robin across the routers

Reading shards directly bypasses mongos, so documents left behind by an
unfinished migration (orphans) may be returned twice.
================================================================================
"""

import logging
from typing import Any, Dict, List, Mapping, Optional, Tuple

from pymongo import ASCENDING
from pymongo.errors import PyMongoError

from shardsplit.analysis.bounds import check_chunk_chain
from shardsplit.analysis.uri import rewrite_uri
from shardsplit.constants import (
    CHUNKS_COLLECTION,
    COLLECTIONS_COLLECTION,
    CONFIG_DATABASE,
)
from shardsplit.exceptions import MetadataReadError, SplitComputationError
from shardsplit.models import Split
from shardsplit.splitters.base import CollectionSplitter

logger = logging.getLogger(__name__)


class ShardChunkSplitter(CollectionSplitter):
    """One split per chunk of a sharded collection."""

    def _collection_metadata(self) -> Mapping[str, Any]:
        namespace = f"{CONFIG_DATABASE}.{COLLECTIONS_COLLECTION}"
        try:
            doc = self.client[CONFIG_DATABASE][COLLECTIONS_COLLECTION].find_one(
                {"_id": self.namespace}
            )
        except PyMongoError as e:
            raise MetadataReadError(namespace, e) from e

        if doc is None or doc.get("dropped"):
            raise SplitComputationError(
                f"Collection {self.namespace} is not sharded; "
                "use the split_vector or sample strategy"
            )
        return doc

    def _read_chunks(
        self, metadata: Mapping[str, Any]
    ) -> List[Tuple[Dict[str, Any], Dict[str, Any], Optional[str]]]:
        if "uuid" in metadata:
            chunk_filter = {"uuid": metadata["uuid"]}
        else:
            chunk_filter = {"ns": self.namespace}

        namespace = f"{CONFIG_DATABASE}.{CHUNKS_COLLECTION}"
        try:
            with self.client[CONFIG_DATABASE][CHUNKS_COLLECTION].find(
                chunk_filter, sort=[("min", ASCENDING)]
            ) as cursor:
                return [(row["min"], row["max"], row.get("shard")) for row in cursor]
        except PyMongoError as e:
            raise MetadataReadError(namespace, e) from e
        except KeyError as e:
            raise SplitComputationError(
                f"Chunk record in {namespace} is missing field {e}"
            ) from e

    def _route(self, splits: List[Split], shards: List[Optional[str]]) -> List[Split]:
        if self.config.target_shards:
            shards_map = self.get_shards_map()
            routed = []
            for split, shard in zip(splits, shards):
                if shard not in shards_map:
                    raise SplitComputationError(
                        f"Chunk owned by unknown shard {shard!r}; "
                        f"known shards: {sorted(shards_map)}"
                    )
                hosts = shards_map[shard]
                routed.append(split.with_uri(rewrite_uri(split.input_uri, hosts)))
            logger.warning(
                "Reading %s directly from shards; orphaned documents may be included",
                self.namespace,
            )
            return routed

        mongos_hosts = self.config.mongos_hosts
        if mongos_hosts:
            return [
                split.with_uri(
                    rewrite_uri(split.input_uri, mongos_hosts[index % len(mongos_hosts)])
                )
                for index, split in enumerate(splits)
            ]

        return splits

    def calculate_splits(self) -> List[Split]:
        metadata = self._collection_metadata()
        key_pattern = dict(metadata.get("key") or {})
        chunks = self._read_chunks(metadata)
        check_chunk_chain([(lower, upper) for lower, upper, _ in chunks])

        splits = [
            self.create_split_from_bounds(lower, upper, key_pattern or None)
            for lower, upper, _ in chunks
        ]
        splits = self._route(splits, [shard for _, _, shard in chunks])

        logger.info("Calculated %d chunk splits for %s", len(splits), self.namespace)
        return splits
