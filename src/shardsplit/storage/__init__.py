"""Persistence of computed splits for hand-off to workers."""

from shardsplit.storage.manifest import (
    MANIFEST_SCHEMA,
    SplitManifestReader,
    write_split_manifest,
)

__all__ = [
    "MANIFEST_SCHEMA",
    "SplitManifestReader",
    "write_split_manifest",
]
