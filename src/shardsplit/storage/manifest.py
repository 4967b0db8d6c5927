"""
Parquet split manifests.

A job-setup phase computes splits once and ships them to workers that may run
on other machines. The manifest is how they travel.

DATA FLOW
=========

STEP 1: WRITE
-------------
write_split_manifest() stores one row per split, in split order:

    split_index  input_uri                         auth_uri  no_timeout  query  fields  sort  min  max  key_pattern
    0            mongodb://s0a:27018,s0b:27018/..  ...       False       <bson> null    null  <bson> <bson> <bson>
    1            mongodb://s1a:27018/..            ...       False       <bson> null    null  <bson> <bson> <bson>

Mapping columns are BSON-encoded binary, which keeps key order (compound
bounds depend on it) and the MinKey/MaxKey sentinels intact. A null cell means
the split field was None.

STEP 2: READ
------------
SplitManifestReader streams rows back in batches and rebuilds Split objects:

    >>> reader = SplitManifestReader("job-42/splits.parquet")
    >>> for split in reader.iter_splits():
    ...     scan(split)
"""

import logging
from pathlib import Path
from typing import Any, Dict, Iterable, Iterator, List, Mapping, Optional, Union

import bson
import pyarrow as pa
import pyarrow.parquet as pq

from shardsplit.constants import DEFAULT_BATCH_SIZE
from shardsplit.models import Split

logger = logging.getLogger(__name__)

_MAPPING_FIELDS = ("query", "fields", "sort", "min", "max", "key_pattern")

MANIFEST_SCHEMA = pa.schema(
    [
        ("split_index", pa.int64()),
        ("input_uri", pa.string()),
        ("auth_uri", pa.string()),
        ("no_timeout", pa.bool_()),
        *[(name, pa.binary()) for name in _MAPPING_FIELDS],
    ]
)


def _encode(value: Optional[Mapping[str, Any]]) -> Optional[bytes]:
    return None if value is None else bson.encode(value)


def _decode(value: Optional[bytes]) -> Optional[Dict[str, Any]]:
    return None if value is None else bson.decode(value)


def split_to_row(index: int, split: Split) -> Dict[str, Any]:
    row: Dict[str, Any] = {
        "split_index": index,
        "input_uri": split.input_uri,
        "auth_uri": split.auth_uri,
        "no_timeout": split.no_timeout,
    }
    for name in _MAPPING_FIELDS:
        row[name] = _encode(getattr(split, name))
    return row


def row_to_split(row: Mapping[str, Any]) -> Split:
    return Split(
        input_uri=row["input_uri"],
        auth_uri=row["auth_uri"],
        no_timeout=bool(row["no_timeout"]),
        **{name: _decode(row[name]) for name in _MAPPING_FIELDS},
    )


def write_split_manifest(splits: Iterable[Split], path: Union[str, Path]) -> Path:
    """
    Write splits to a Parquet manifest at path.

    Args:
        splits: Splits in the order workers should see them
        path: Destination file; parent directories are created

    Returns:
        The manifest path
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    rows = [split_to_row(index, split) for index, split in enumerate(splits)]
    table = pa.Table.from_pylist(rows, schema=MANIFEST_SCHEMA)
    pq.write_table(table, path)

    logger.info("Wrote %d splits to %s", len(rows), path)
    return path


class SplitManifestReader:
    """
    Reads splits back from a Parquet manifest.

    Example:
        >>> reader = SplitManifestReader(".splits/events.parquet")
        >>> len(reader)
        12
        >>> first = next(reader.iter_splits())
    """

    def __init__(self, path: Union[str, Path]):
        """
        Initialize reader for a manifest file.

        Args:
            path: Manifest written by write_split_manifest()
        """
        self.path = Path(path)

        if not self.path.exists():
            raise FileNotFoundError(f"Split manifest not found: {path}")

    def __len__(self) -> int:
        return pq.ParquetFile(self.path).metadata.num_rows

    def iter_splits(self, batch_size: int = DEFAULT_BATCH_SIZE) -> Iterator[Split]:
        """
        Stream splits from the manifest in split order.

        Args:
            batch_size: Number of rows to read per batch

        Yields:
            Split objects
        """
        parquet_file = pq.ParquetFile(self.path)
        for batch in parquet_file.iter_batches(batch_size=batch_size):
            for row in batch.to_pylist():
                yield row_to_split(row)

    def read_all(self) -> List[Split]:
        return list(self.iter_splits())
