"""
Shared constants for the swap aggregator router.

Well-known addresses, numeric limits, and default values used across all modules.
"""

from decimal import Decimal

# ---------------------------------------------------------------------------
# Well-known Addresses
# ---------------------------------------------------------------------------

ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"
NATIVE_TOKEN_ADDRESS = "0xEeeeeEeeeEeEeeEeEeEeeEEEeeeeEeeeeeeeEEeE"  # native gas token placeholder

# ---------------------------------------------------------------------------
# Numeric Constants
# ---------------------------------------------------------------------------

BPS_DENOMINATOR = 10_000
MAX_TOKEN_DECIMALS = 255
ZERO = Decimal("0")

# ---------------------------------------------------------------------------
# Default Request Values
# ---------------------------------------------------------------------------

DEFAULT_MAX_SLIPPAGE_BPS = 500  # 5%
DEFAULT_INTEGRATOR = "btr-swap"
DEFAULT_REQUEST_TIMEOUT_SECONDS = 5
DEFAULT_EXPIRY_SECONDS = 5
DEFAULT_RATE_LIMIT_RPS = 2

# ---------------------------------------------------------------------------
# Aggregator Selection
# ---------------------------------------------------------------------------

DEFAULT_AGGREGATORS = ("LIFI", "ONE_INCH", "PARASWAP", "KYBERSWAP", "OPENOCEAN")
CONTRACT_CALL_AGGREGATORS = ("LIFI",)
