"""
Split descriptor: the unit of parallel scan work.

A Split is created once by a splitter and never changed afterwards. It holds
copies of every mapping it was built from, so a list of splits can be handed
to any number of concurrent workers without sharing splitter state.

BOUNDARY-MARKER SPLIT                    RANGE-QUERY SPLIT
    query = {"status": "A"}                  query = {"status": "A",
    min   = {"_id": 100}                              "_id": {"$gte": 100,
    max   = {"_id": 200}                                      "$lt": 200}}
                                             min = max = None
"""

import copy
from dataclasses import dataclass, field, replace
from typing import Any, Dict, List, Optional, Tuple


def _pairs(mapping: Dict[str, Any]) -> List[Tuple[str, Any]]:
    return list(mapping.items())


@dataclass(frozen=True)
class Split:
    """
    One independently readable slice of the input collection.

    Attributes:
        input_uri: URI the worker connects to (may target a shard or mongos)
        query: Effective filter, including any range clause
        auth_uri: URI whose credentials the worker authenticates with
        fields: Projection
        sort: Sort specification
        no_timeout: Disable the server-side cursor timeout
        min: Inclusive index lower bound (boundary-marker mode only)
        max: Exclusive index upper bound (boundary-marker mode only)
        key_pattern: Index used as the hint for min/max
    """

    input_uri: str
    query: Dict[str, Any] = field(default_factory=dict)
    auth_uri: Optional[str] = None
    fields: Optional[Dict[str, Any]] = None
    sort: Optional[Dict[str, Any]] = None
    no_timeout: bool = False
    min: Optional[Dict[str, Any]] = None
    max: Optional[Dict[str, Any]] = None
    key_pattern: Optional[Dict[str, Any]] = None

    def __post_init__(self):
        for name in ("query", "fields", "sort", "min", "max", "key_pattern"):
            value = getattr(self, name)
            if value is not None:
                object.__setattr__(self, name, copy.deepcopy(dict(value)))

    @property
    def is_bounded(self) -> bool:
        """True when the split carries explicit min/max index bounds."""
        return bool(self.min) or bool(self.max)

    def with_uri(self, input_uri: str) -> "Split":
        """Return a copy of this split that reads from input_uri."""
        return replace(self, input_uri=input_uri)

    def find_kwargs(self) -> Dict[str, Any]:
        """
        Keyword arguments for pymongo Collection.find() that scan this split.

        Example:
            >>> cursor = collection.find(**split.find_kwargs())
        """
        kwargs: Dict[str, Any] = {
            "filter": copy.deepcopy(self.query),
            "no_cursor_timeout": self.no_timeout,
        }
        if self.fields is not None:
            kwargs["projection"] = copy.deepcopy(self.fields)
        if self.sort:
            kwargs["sort"] = _pairs(self.sort)

        if self.is_bounded:
            if self.min:
                kwargs["min"] = _pairs(copy.deepcopy(self.min))
            if self.max:
                kwargs["max"] = _pairs(copy.deepcopy(self.max))
            # min()/max() require a hint on the index the bounds belong to
            pattern = self.key_pattern or {
                key: 1 for key in (self.min or self.max)
            }
            kwargs["hint"] = _pairs(pattern)

        return kwargs
