"""
Shared constants for the DEX pool feed.

Event signatures, bootstrap fallbacks and display defaults used across all modules.
"""

# ---------------------------------------------------------------------------
# Uniswap V2 pair event signatures (canonical form, used for topic0 hashes)
# ---------------------------------------------------------------------------

SWAP_SIGNATURE = "Swap(address,uint256,uint256,uint256,uint256,address)"
MINT_SIGNATURE = "Mint(address,uint256,uint256)"
BURN_SIGNATURE = "Burn(address,uint256,uint256,address)"

# Non-indexed data layout per event
SWAP_DATA_TYPES = ["uint256", "uint256", "uint256", "uint256"]  # amount0In, amount1In, amount0Out, amount1Out
MINT_DATA_TYPES = ["uint256", "uint256"]  # amount0, amount1
BURN_DATA_TYPES = ["uint256", "uint256"]  # amount0, amount1

# ---------------------------------------------------------------------------
# Bootstrap fallbacks
# ---------------------------------------------------------------------------

UNKNOWN_SYMBOL = "ERROR"
DEFAULT_TOKEN_DECIMALS = 18

# ---------------------------------------------------------------------------
# Display defaults
# ---------------------------------------------------------------------------

DEFAULT_DISPLAY_TIMEZONE = "America/New_York"
DEFAULT_MIN_SYMBOL_WIDTH = 7
DEFAULT_AMOUNT_PRECISION = 4
DEFAULT_SHORT_HASH_LENGTH = 6

# 78 significant digits covers any uint256 exactly
DEFAULT_DECIMAL_PRECISION = 78
