"""
Shared constants for shardsplit.

Names of the cluster metadata namespaces, URI syntax markers and the default
tuning values used when a SplitterConfig leaves them unset.
"""

from bson.max_key import MaxKey
from bson.min_key import MinKey

# =============================================================================
# CONNECTION URI
# =============================================================================

MONGODB_PREFIX = "mongodb://"

# =============================================================================
# CLUSTER METADATA
# =============================================================================
# Sharded clusters keep their routing table in the "config" database:
#
#   config.shards       {_id: "shard0", host: "rs0/h1:27018,h2:27018"}
#   config.collections  {_id: "db.coll", key: {...}, uuid: UUID(...)}
#   config.chunks       {ns|uuid, min: {...}, max: {...}, shard: "shard0"}
# =============================================================================

CONFIG_DATABASE = "config"
SHARDS_COLLECTION = "shards"
CHUNKS_COLLECTION = "chunks"
COLLECTIONS_COLLECTION = "collections"

# Server error codes reported when credentials are rejected
AUTH_FAILED_CODES = frozenset({18, 11})

# =============================================================================
# BOUNDARY SENTINELS
# =============================================================================

MIN_KEY = MinKey()
MAX_KEY = MaxKey()

# =============================================================================
# DEFAULTS
# =============================================================================

DEFAULT_SPLIT_KEY = {"_id": 1}
DEFAULT_SPLIT_SIZE_MB = 8
DEFAULT_SAMPLES_PER_SPLIT = 10
DEFAULT_BATCH_SIZE = 1024
