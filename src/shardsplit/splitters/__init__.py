"""
Splitting strategies and strategy selection.

    SplitStrategy.SINGLE        -> SingleSplitter
    SplitStrategy.SPLIT_VECTOR  -> SplitVectorSplitter
    SplitStrategy.SAMPLE        -> SampleSplitter
    SplitStrategy.SHARD_CHUNKS  -> ShardChunkSplitter
    SplitStrategy.SHARDS        -> ShardSplitter
    SplitStrategy.AUTO          -> ShardChunkSplitter if collStats says the
                                   collection is sharded, else
                                   SplitVectorSplitter
"""

import logging
from typing import Dict, Optional, Type

from shardsplit.config import SplitStrategy, SplitterConfig
from shardsplit.exceptions import SplitterError
from shardsplit.splitters.base import ClientFactory, CollectionSplitter, connect
from shardsplit.splitters.sample import SampleSplitter
from shardsplit.splitters.shard import ShardSplitter
from shardsplit.splitters.shard_chunk import ShardChunkSplitter
from shardsplit.splitters.single import SingleSplitter
from shardsplit.splitters.split_vector import SplitVectorSplitter

logger = logging.getLogger(__name__)

STRATEGIES: Dict[SplitStrategy, Type[CollectionSplitter]] = {
    SplitStrategy.SINGLE: SingleSplitter,
    SplitStrategy.SPLIT_VECTOR: SplitVectorSplitter,
    SplitStrategy.SAMPLE: SampleSplitter,
    SplitStrategy.SHARD_CHUNKS: ShardChunkSplitter,
    SplitStrategy.SHARDS: ShardSplitter,
}


def get_splitter(
    config: SplitterConfig,
    client_factory: Optional[ClientFactory] = None,
) -> CollectionSplitter:
    """
    Build the splitter selected by config.strategy.

    AUTO connects once to inspect the collection; the resulting splitter
    takes ownership of that connection and closes it with close().

    Raises:
        SourceConnectionError: AUTO could not connect
        MetadataReadError: AUTO could not run collStats
    """
    if not config.create_input_splits:
        return SingleSplitter(config, client_factory=client_factory)

    if config.strategy != SplitStrategy.AUTO:
        return STRATEGIES[config.strategy](config, client_factory=client_factory)

    client = connect(config, client_factory)
    try:
        stats_reader = SingleSplitter(config, client=client)
        sharded = bool(stats_reader.collection_stats().get("sharded"))
    except SplitterError:
        client.close()
        raise

    cls = ShardChunkSplitter if sharded else SplitVectorSplitter
    logger.debug("Selected %s for %s", cls.__name__, stats_reader.namespace)
    return cls(config, client=client, owns_client=True)


__all__ = [
    "CollectionSplitter",
    "SingleSplitter",
    "SplitVectorSplitter",
    "SampleSplitter",
    "ShardChunkSplitter",
    "ShardSplitter",
    "STRATEGIES",
    "connect",
    "get_splitter",
]
