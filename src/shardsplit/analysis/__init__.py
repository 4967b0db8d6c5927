"""
Boundary, URI and shard metadata analysis.

Pure helpers shared by every splitting strategy: they never talk to a server.
"""

from shardsplit.analysis.bounds import (
    build_range_query,
    chain_bounds,
    check_ascending_key,
    check_chunk_chain,
    is_max_key,
    is_min_key,
    range_key,
    trim_bounds,
)
from shardsplit.analysis.shards import (
    build_shards_map,
    normalize_shard_host,
)
from shardsplit.analysis.uri import (
    auth_credentials,
    get_hosts,
    parse_namespace,
    redact_uri,
    rewrite_uri,
)

__all__ = [
    # bounds
    "trim_bounds",
    "range_key",
    "build_range_query",
    "check_ascending_key",
    "chain_bounds",
    "check_chunk_chain",
    "is_min_key",
    "is_max_key",
    # shards
    "build_shards_map",
    "normalize_shard_host",
    # uri
    "rewrite_uri",
    "get_hosts",
    "parse_namespace",
    "auth_credentials",
    "redact_uri",
]
