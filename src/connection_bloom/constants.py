import math
from enum import IntEnum

MAX_HASH_FUNCS = 50
MIN_HASH_FUNCS = 1

# Used verbatim by the sizing formula; peers sizing filters the same way
# must see identical doubles.
LN2 = math.log(2)  # 0.6931471805599453
LN2SQUARED = math.pow(math.log(2), 2)  # 0.4804530139182014

BIP37_SEED_MULTIPLIER = 0xFBA4C795
LEVEL_SEED_MULTIPLIER = 1_000_000_000
UINT32_MASK = 0xFFFFFFFF

BLOOM_UPDATE_NONE = 0
BLOOM_UPDATE_ALL = 1
BLOOM_UPDATE_P2PUBKEY_ONLY = 2


class BloomUpdate(IntEnum):
    """How a peer updates the filter when an output matches (not interpreted here)"""
    NONE = BLOOM_UPDATE_NONE
    ALL = BLOOM_UPDATE_ALL
    P2PUBKEY_ONLY = BLOOM_UPDATE_P2PUBKEY_ONLY
