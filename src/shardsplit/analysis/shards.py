"""Shard name -> endpoint mapping built from config.shards records."""

from typing import Any, Dict, Iterable, Mapping


def normalize_shard_host(host: str) -> str:
    """
    Strip a replica set name prefix from a shard host string.

    "rs0/h1:27017,h2:27017" -> "h1:27017,h2:27017"
    "h1:27017"              -> "h1:27017"
    """
    _, slash, hosts = host.partition("/")
    return hosts if slash else host


def build_shards_map(rows: Iterable[Mapping[str, Any]]) -> Dict[str, str]:
    """Map each shard record's _id to its normalized host list."""
    return {str(row["_id"]): normalize_shard_host(row["host"]) for row in rows}
