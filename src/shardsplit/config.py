"""Configuration model for collection splitters.

A SplitterConfig is built once, before any splitter exists, and is frozen.
Changing a setting means building a new config:

    >>> base = SplitterConfig(input_uri="mongodb://localhost/app.events")
    >>> ranged = base.model_copy(update={"use_range_query": True})

Mapping fields (query, fields, sort, split_key) accept either a dict or an
Extended JSON string, so values can come straight from job properties:

    >>> SplitterConfig.from_properties({
    ...     "mongo.input.uri": "mongodb://mongos1/app.events",
    ...     "mongo.input.query": '{"status": "A"}',
    ...     "mongo.input.split.use_range_queries": "true",
    ... })
"""

from enum import Enum
from typing import Any, Dict, List, Mapping, Optional

from bson import json_util
from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator

from shardsplit.analysis.uri import auth_credentials
from shardsplit.constants import (
    DEFAULT_SAMPLES_PER_SPLIT,
    DEFAULT_SPLIT_KEY,
    DEFAULT_SPLIT_SIZE_MB,
    MONGODB_PREFIX,
)


class SplitStrategy(str, Enum):
    """How a collection's split boundaries are derived."""

    AUTO = "auto"
    SINGLE = "single"
    SPLIT_VECTOR = "split_vector"
    SAMPLE = "sample"
    SHARD_CHUNKS = "shard_chunks"
    SHARDS = "shards"


# Splitter class names accepted for mongo.splitter.class, with or without
# their package prefix
SPLITTER_CLASSES: Dict[str, SplitStrategy] = {
    "SingleMongoSplitter": SplitStrategy.SINGLE,
    "StandaloneMongoSplitter": SplitStrategy.SPLIT_VECTOR,
    "SampleSplitter": SplitStrategy.SAMPLE,
    "ShardChunkMongoSplitter": SplitStrategy.SHARD_CHUNKS,
    "ShardMongoSplitter": SplitStrategy.SHARDS,
}


# Job property name -> SplitterConfig field
PROPERTY_NAMES: Dict[str, str] = {
    "mongo.input.uri": "input_uri",
    "mongo.auth.uri": "auth_uri",
    "mongo.input.query": "query",
    "mongo.input.fields": "fields",
    "mongo.input.sort": "sort",
    "mongo.input.split.use_range_queries": "use_range_query",
    "mongo.input.notimeout": "no_timeout",
    "mongo.splitter.class": "strategy",
    "mongo.input.split.strategy": "strategy",
    "mongo.input.split.split_key_pattern": "split_key",
    "mongo.input.split_size": "split_size_mb",
    "mongo.input.samples_per_split": "samples_per_split",
    "mongo.input.split.read_from_shards": "target_shards",
    "mongo.input.mongos_hosts": "mongos_hosts",
    "mongo.input.split.create_input_splits": "create_input_splits",
}


class SplitterConfig(BaseModel):
    """Settings shared by every splitting strategy.

    Attributes:
        input_uri: mongodb:// URI naming the database.collection to split
        auth_uri: URI carrying credentials and the database to authenticate on
        query: Filter applied to every split
        fields: Projection stamped on every split
        sort: Sort stamped on every split
        use_range_query: Express bounds as $gte/$lt filter clauses
        no_timeout: Disable server-side cursor timeouts on every split
        strategy: Which splitter get_splitter() builds
        split_key: Key pattern used by split_vector and sample strategies
        split_size_mb: Target split size in megabytes
        samples_per_split: Samples drawn per split by the sample strategy
        target_shards: Rewrite chunk splits to read from their owning shard
        mongos_hosts: Routers to spread chunk splits across, round-robin
        create_input_splits: False collapses every strategy to one split
    """

    model_config = ConfigDict(frozen=True)

    input_uri: str = Field(..., description="mongodb:// URI of the input collection")
    auth_uri: Optional[str] = Field(None, description="URI carrying credentials")
    query: Dict[str, Any] = Field(default_factory=dict)
    fields: Optional[Dict[str, Any]] = None
    sort: Optional[Dict[str, Any]] = None
    use_range_query: bool = False
    no_timeout: bool = False
    strategy: SplitStrategy = SplitStrategy.AUTO
    split_key: Dict[str, Any] = Field(default_factory=lambda: dict(DEFAULT_SPLIT_KEY))
    split_size_mb: int = Field(DEFAULT_SPLIT_SIZE_MB, ge=1)
    samples_per_split: int = Field(DEFAULT_SAMPLES_PER_SPLIT, ge=1)
    target_shards: bool = False
    mongos_hosts: List[str] = Field(default_factory=list)
    create_input_splits: bool = True

    @field_validator("input_uri", "auth_uri")
    @classmethod
    def _check_scheme(cls, value: Optional[str]) -> Optional[str]:
        if value is not None and not value.startswith(MONGODB_PREFIX):
            raise ValueError(f"URI must start with {MONGODB_PREFIX}")
        return value

    @field_validator("query", "fields", "sort", "split_key", mode="before")
    @classmethod
    def _load_json(cls, value: Any, info: ValidationInfo) -> Any:
        if isinstance(value, str):
            value = json_util.loads(value) if value.strip() else None
        if value is None and info.field_name == "query":
            return {}
        return value

    @field_validator("strategy", mode="before")
    @classmethod
    def _resolve_splitter_class(cls, value: Any) -> Any:
        if isinstance(value, str) and not isinstance(value, SplitStrategy):
            name = value.strip().rsplit(".", 1)[-1]
            if name in SPLITTER_CLASSES:
                return SPLITTER_CLASSES[name]
            if "." in value:
                raise ValueError(f"Unsupported splitter class: {value}")
        return value

    @field_validator("split_key")
    @classmethod
    def _check_split_key(cls, value: Dict[str, Any]) -> Dict[str, Any]:
        if not value:
            raise ValueError("split_key must name at least one field")
        return value

    @field_validator("mongos_hosts", mode="before")
    @classmethod
    def _split_hosts(cls, value: Any) -> Any:
        if isinstance(value, str):
            return [host.strip() for host in value.split(";") if host.strip()]
        return value

    @property
    def auth_database(self) -> Optional[str]:
        """Database the auth URI authenticates against, if it has credentials."""
        credentials = auth_credentials(self.auth_uri)
        return credentials[2] if credentials else None

    @classmethod
    def from_properties(cls, properties: Mapping[str, Any]) -> "SplitterConfig":
        """Build a config from mongo.input.* style job properties.

        Unknown property names are ignored.
        """
        values = {
            PROPERTY_NAMES[name]: value
            for name, value in properties.items()
            if name in PROPERTY_NAMES
        }
        return cls.model_validate(values)
