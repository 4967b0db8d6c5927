"""Single-split strategy: the whole collection as one unit of work."""

import logging
from typing import List

from shardsplit.analysis.uri import redact_uri
from shardsplit.models import Split
from shardsplit.splitters.base import CollectionSplitter

logger = logging.getLogger(__name__)


class SingleSplitter(CollectionSplitter):
    """Produces exactly one unbounded split; needs no metadata."""

    def calculate_splits(self) -> List[Split]:
        split = self.create_split_from_bounds(None, None)
        logger.info("Using a single split for %s", redact_uri(self.config.input_uri))
        return [split]
