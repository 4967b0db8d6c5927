"""
shardsplit - partition MongoDB collections into parallel read splits.

    >>> from shardsplit import SplitterConfig, get_splitter
    >>> config = SplitterConfig(input_uri="mongodb://mongos1:27017/app.events")
    >>> with get_splitter(config) as splitter:
    ...     splits = splitter.calculate_splits()
    >>> cursor = collection.find(**splits[0].find_kwargs())
"""

from shardsplit.config import SplitStrategy, SplitterConfig
from shardsplit.exceptions import (
    AuthenticationError,
    InvalidBoundaryError,
    MalformedDescriptorError,
    MetadataReadError,
    QueryConflictError,
    SourceConnectionError,
    SplitComputationError,
    SplitFailedError,
    SplitterError,
    SplitValidationError,
)
from shardsplit.models import Split
from shardsplit.splitters import (
    CollectionSplitter,
    SampleSplitter,
    ShardChunkSplitter,
    ShardSplitter,
    SingleSplitter,
    SplitVectorSplitter,
    get_splitter,
)
from shardsplit.storage import SplitManifestReader, write_split_manifest

__version__ = "0.1.0"

__all__ = [
    # config
    "SplitterConfig",
    "SplitStrategy",
    # model
    "Split",
    # splitters
    "CollectionSplitter",
    "SingleSplitter",
    "SplitVectorSplitter",
    "SampleSplitter",
    "ShardChunkSplitter",
    "ShardSplitter",
    "get_splitter",
    # storage
    "write_split_manifest",
    "SplitManifestReader",
    # errors
    "SplitterError",
    "SourceConnectionError",
    "AuthenticationError",
    "SplitComputationError",
    "MetadataReadError",
    "SplitFailedError",
    "SplitValidationError",
    "InvalidBoundaryError",
    "QueryConflictError",
    "MalformedDescriptorError",
]
