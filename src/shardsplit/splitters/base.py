"""
Abstract collection splitter.

================================================================================
LIFECYCLE
================================================================================

    config = SplitterConfig(input_uri="mongodb://mongos1/app.events", ...)

    with ShardChunkSplitter(config) as splitter:   # init(): connect + auth once
        splits = splitter.calculate_splits()       # metadata reads, sequential
                                                   # close(): release the client
    for split in splits:                           # frozen, self-contained
        pool.submit(scan, split)

Configuration is frozen before the splitter exists. The splitter owns the
MongoClient it creates in init() and closes it on exit; a client passed in by
the caller is used as-is and left open.

Every concrete strategy turns its metadata into (lower, upper) boundary pairs
and hands each pair to create_split_from_bounds(), which decides between
boundary-marker mode and range-query mode and stamps the shared settings on
the split.
================================================================================
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import replace
from typing import Any, Callable, Dict, List, Mapping, Optional

from pymongo import MongoClient
from pymongo.collection import Collection
from pymongo.errors import OperationFailure, PyMongoError

from shardsplit.analysis.bounds import build_range_query, trim_bounds
from shardsplit.analysis.shards import build_shards_map
from shardsplit.analysis.uri import auth_credentials, parse_namespace, redact_uri
from shardsplit.config import SplitterConfig
from shardsplit.constants import AUTH_FAILED_CODES, CONFIG_DATABASE, SHARDS_COLLECTION
from shardsplit.exceptions import (
    AuthenticationError,
    MalformedDescriptorError,
    MetadataReadError,
    SourceConnectionError,
    SplitComputationError,
    SplitFailedError,
)
from shardsplit.models import Split

logger = logging.getLogger(__name__)

ClientFactory = Callable[..., Any]


def connect(config: SplitterConfig, client_factory: Optional[ClientFactory] = None):
    """
    Open a client for config.input_uri and verify it with a ping.

    When config.auth_uri carries both a username and a password the client
    authenticates with them against the auth URI's database.

    Raises:
        AuthenticationError: the server rejected the credentials
        SourceConnectionError: the URI is invalid or the server unreachable
    """
    factory = client_factory or MongoClient
    safe_uri = redact_uri(config.input_uri)

    kwargs: Dict[str, Any] = {}
    try:
        credentials = auth_credentials(config.auth_uri)
    except MalformedDescriptorError as e:
        raise SourceConnectionError(redact_uri(config.auth_uri or ""), e) from e
    if credentials:
        username, password, database = credentials
        kwargs.update(username=username, password=password, authSource=database)

    client = None
    try:
        client = factory(config.input_uri, **kwargs)
        client.admin.command("ping")
    except OperationFailure as e:
        if client is not None:
            client.close()
        if credentials and e.code in AUTH_FAILED_CODES:
            raise AuthenticationError(safe_uri, credentials[2], e) from e
        raise SourceConnectionError(safe_uri, e) from e
    except PyMongoError as e:
        if client is not None:
            client.close()
        raise SourceConnectionError(safe_uri, e) from e

    logger.debug("Connected to %s", safe_uri)
    return client


class CollectionSplitter(ABC):
    """
    Base class for strategies that partition one collection into splits.

    Args:
        config: Frozen splitter settings
        client: An already connected client to use instead of opening one
        client_factory: Callable building a client from a URI; MongoClient
            by default
        owns_client: Close a passed-in client on close(); by default only
            clients opened by init() are closed
    """

    def __init__(
        self,
        config: SplitterConfig,
        client: Optional[Any] = None,
        client_factory: Optional[ClientFactory] = None,
        owns_client: Optional[bool] = None,
    ):
        self.config = config
        self._client = client
        self._owns_client = client is None if owns_client is None else owns_client
        self._client_factory = client_factory
        self._collection: Optional[Collection] = None

    # -------------------------------------------------------------------------
    # Configuration accessors
    # -------------------------------------------------------------------------

    @property
    def query(self) -> Dict[str, Any]:
        return self.config.query

    @property
    def use_range_query(self) -> bool:
        return self.config.use_range_query

    @property
    def auth_uri(self) -> Optional[str]:
        return self.config.auth_uri

    @property
    def no_timeout(self) -> bool:
        return self.config.no_timeout

    @property
    def fields(self) -> Optional[Dict[str, Any]]:
        return self.config.fields

    @property
    def sort(self) -> Optional[Dict[str, Any]]:
        return self.config.sort

    # -------------------------------------------------------------------------
    # Connection
    # -------------------------------------------------------------------------

    def init(self) -> None:
        """
        Resolve the input URI to a collection handle, connecting if needed.

        Calling init() again once connected does nothing, so credentials are
        presented at most once per splitter.

        Raises:
            SourceConnectionError: URI names no collection or cannot connect
            AuthenticationError: credentials rejected
        """
        if self._collection is not None:
            return

        try:
            database, collection = parse_namespace(self.config.input_uri)
        except MalformedDescriptorError as e:
            raise SourceConnectionError(redact_uri(self.config.input_uri), e) from e
        if not database or not collection:
            raise SourceConnectionError(
                redact_uri(self.config.input_uri),
                message="Input URI must name a database.collection",
            )

        if self._client is None:
            self._client = connect(self.config, self._client_factory)
        self._collection = self._client[database][collection]

    def close(self) -> None:
        """Release the client if this splitter opened it."""
        if self._client is not None and self._owns_client:
            self._client.close()
            self._client = None
        self._collection = None

    def __enter__(self) -> "CollectionSplitter":
        self.init()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    @property
    def client(self):
        self.init()
        return self._client

    @property
    def collection(self) -> Collection:
        self.init()
        return self._collection

    @property
    def namespace(self) -> str:
        """The full database.collection name of the input collection."""
        return self.collection.full_name

    # -------------------------------------------------------------------------
    # Metadata
    # -------------------------------------------------------------------------

    @abstractmethod
    def calculate_splits(self) -> List[Split]:
        """
        Partition the collection into splits.

        Returns the complete, ordered list or raises; never a partial list.

        Raises:
            SplitComputationError: metadata could not be read or interpreted
            SplitFailedError: one split could not be built
        """

    def get_shards_map(self) -> Dict[str, str]:
        """
        Map each shard name to its host list by reading config.shards.

        Raises:
            MetadataReadError: the query failed
            SplitComputationError: a shard record has no host
        """
        namespace = f"{CONFIG_DATABASE}.{SHARDS_COLLECTION}"
        try:
            with self.client[CONFIG_DATABASE][SHARDS_COLLECTION].find() as cursor:
                shards_map = build_shards_map(cursor)
        except PyMongoError as e:
            raise MetadataReadError(namespace, e) from e
        except KeyError as e:
            raise SplitComputationError(
                f"Shard record in {namespace} is missing field {e}"
            ) from e

        logger.debug("Read %d shards from %s", len(shards_map), namespace)
        return shards_map

    def collection_stats(self) -> Dict[str, Any]:
        """
        Run collStats on the input collection.

        Raises:
            MetadataReadError: the command failed
        """
        try:
            return self.collection.database.command("collStats", self.collection.name)
        except PyMongoError as e:
            raise MetadataReadError(f"collStats {self.namespace}", e) from e

    # -------------------------------------------------------------------------
    # Split construction
    # -------------------------------------------------------------------------

    def create_split_from_bounds(
        self,
        lower_bound: Optional[Mapping[str, Any]],
        upper_bound: Optional[Mapping[str, Any]],
        key_pattern: Optional[Mapping[str, Any]] = None,
    ) -> Split:
        """
        Build the split covering [lower_bound, upper_bound).

        With range queries enabled the bounds become $gte/$lt clauses in the
        filter; otherwise they are attached as min/max index bounds with
        MinKey/MaxKey sentinels trimmed away.

        Args:
            lower_bound: Inclusive lower bound, or None for unbounded
            upper_bound: Exclusive upper bound, or None for unbounded
            key_pattern: Index the bounds belong to; defaults to an ascending
                index on the boundary keys

        Raises:
            SplitFailedError: range-query construction failed
        """
        split_min, split_max = trim_bounds(lower_bound, upper_bound)

        split = None
        if self.use_range_query:
            try:
                split = self.create_range_query_split(
                    lower_bound, upper_bound, self.query, key_pattern
                )
            except Exception as e:
                raise SplitFailedError(
                    "Couldn't use range query to create split", e
                ) from e

        if split is None:
            if key_pattern is None and (split_min or split_max):
                key_pattern = {key: 1 for key in (split_min or split_max)}
            split = Split(
                input_uri=self.config.input_uri,
                query=self.query,
                min=split_min,
                max=split_max,
                key_pattern=key_pattern,
            )

        return replace(
            split,
            auth_uri=self.auth_uri,
            fields=self.fields,
            sort=self.sort,
            no_timeout=self.no_timeout,
        )

    def create_range_query_split(
        self,
        lower_bound: Optional[Mapping[str, Any]],
        upper_bound: Optional[Mapping[str, Any]],
        query: Optional[Mapping[str, Any]],
        key_pattern: Optional[Mapping[str, Any]] = None,
    ) -> Split:
        """
        Build a split whose filter is query restricted to [lower, upper).

        Both bounds absent yields a split with a plain copy of query. The
        bounds must share a single, non-compound key that query does not
        already constrain. If key_pattern is given it must index that key
        ascending.

        Raises:
            InvalidBoundaryError: a bound is compound, the keys differ, or the
                key is descending or hashed in key_pattern
            QueryConflictError: query already filters on the split key
        """
        split_query = build_range_query(
            lower_bound, upper_bound, query or {}, key_pattern
        )
        return Split(input_uri=self.config.input_uri, query=split_query)
