"""
Shared data types for the swap aggregator router.

Centralized dataclasses and enums used across all modules.  Wei amounts
are ``int``; human-readable amounts, rates and USD costs are ``Decimal``.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum

from shared.constants import DEFAULT_INTEGRATOR, DEFAULT_RATE_LIMIT_RPS, ZERO

# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------


class AggId(Enum):
    # Meta-aggregators (cross-chain capable)
    LIFI = "LIFI"
    # Passive liquidity aggregators
    ONE_INCH = "ONE_INCH"
    PARASWAP = "PARASWAP"
    KYBERSWAP = "KYBERSWAP"
    OPENOCEAN = "OPENOCEAN"


class StepType(Enum):
    SWAP = "SWAP"
    BRIDGE = "BRIDGE"
    CROSS_CHAIN_SWAP = "CROSS_CHAIN_SWAP"  # swap + bridge or bridge + swap
    TRANSFER = "TRANSFER"  # fee payment, rerouting


class ProtocolType(Enum):
    DEX = "DEX"
    BRIDGE = "BRIDGE"
    AGGREGATOR = "AGGREGATOR"


class OpStatus(Enum):
    WAITING = "WAITING"
    PENDING = "PENDING"
    DONE = "DONE"
    FAILED = "FAILED"
    NOT_FOUND = "NOT_FOUND"


class DisplayMode(Enum):
    ALL = "ALL"  # full records
    BEST = "BEST"
    ALL_COMPACT = "ALL_COMPACT"  # {to, data, value, chain_id} only
    BEST_COMPACT = "BEST_COMPACT"
    RANK = "RANK"  # performance view


# ---------------------------------------------------------------------------
# Request Types
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Token:
    chain_id: int
    address: str
    decimals: int
    symbol: str = ""
    name: str = ""
    price_usd: Decimal | None = None
    logo: str = ""


@dataclass(frozen=True)
class CustomContractCall:
    """Contract call appended to a route (destination call)."""

    call_data: str
    to_address: str | None = None
    gas_limit: int | None = None
    input_position: int | None = None


@dataclass(frozen=True)
class SwapParams:
    input: Token
    output: Token
    input_amount_wei: int
    payer: str
    receiver: str | None = None  # defaults to payer
    test_payer: str | None = None  # stand-in address used while quoting
    max_slippage_bps: int | None = None
    integrator: str | None = None
    referrer: str | None = None
    fee_bps: int | None = None
    aggregator_ids: tuple[AggId, ...] | None = None
    custom_contract_calls: tuple[CustomContractCall, ...] = ()
    bridge_denylist: tuple[str, ...] = ()
    exchange_denylist: tuple[str, ...] = ()
    expiry_seconds: float | None = None
    output_amount_wei: int | None = None  # informational only

    @property
    def quoting_payer(self) -> str:
        return self.test_payer or self.payer

    @property
    def is_cross_chain(self) -> bool:
        return self.input.chain_id != self.output.chain_id


# ---------------------------------------------------------------------------
# Route / Estimate Types
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Protocol:
    id: str
    name: str
    type: ProtocolType
    logo: str = ""


@dataclass(frozen=True)
class Estimate:
    input: Decimal = ZERO
    input_wei: int = 0
    output: Decimal = ZERO
    output_wei: int = 0
    exchange_rate: Decimal = ZERO  # output / input, human units
    slippage: Decimal = ZERO
    price_impact: Decimal = ZERO
    gas_cost_wei: int = 0
    gas_cost_usd: Decimal = ZERO
    fee_cost_wei: int = 0
    fee_cost_usd: Decimal = ZERO


@dataclass(frozen=True)
class SwapStep:
    type: StepType
    input: Token
    output: Token
    input_chain_id: int
    output_chain_id: int
    protocol: Protocol
    estimate: Estimate
    id: str = ""
    description: str = ""
    payer: str | None = None
    receiver: str | None = None


# ---------------------------------------------------------------------------
# Transaction Types
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class TransactionRequest:
    from_address: str
    to: str
    data: str  # hex calldata
    value: int
    chain_id: int
    approval_address: str  # ERC-20 allowance target


@dataclass(frozen=True)
class TransactionRequestWithEstimate(TransactionRequest):
    params: SwapParams
    steps: tuple[SwapStep, ...]
    global_estimate: Estimate
    aggregator_id: AggId | None = None
    latency_ms: int | None = None
    gas_limit: int | None = None

    @property
    def exchange_rate(self) -> Decimal:
        return self.global_estimate.exchange_rate


@dataclass(frozen=True)
class CompactTransaction:
    to: str
    data: str
    value: int
    chain_id: int


@dataclass(frozen=True)
class QuotePerformance:
    aggregator_id: str
    exchange_rate: Decimal
    output: Decimal
    gas_cost_usd: Decimal
    fee_cost_usd: Decimal
    total_cost_usd: Decimal
    latency_ms: int | None
    steps: int
    protocols: tuple[str, ...]
    output_gap_pct: Decimal  # shortfall vs. best route output


# ---------------------------------------------------------------------------
# Status Types
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class StatusParams:
    tx_hash: str
    aggregator_id: AggId | None = None
    input_chain_id: int | None = None
    output_chain_id: int | None = None


@dataclass(frozen=True)
class StatusResponse:
    id: str
    status: OpStatus
    tx_hash: str | None = None
    sending_tx: str | None = None
    receiving_tx: str | None = None
    substatus: str | None = None
    substatus_message: str | None = None


# ---------------------------------------------------------------------------
# Configuration Types
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class AggregatorConfig:
    aggregator_id: AggId
    api_root: str
    api_key: str = ""
    integrator: str = DEFAULT_INTEGRATOR
    referrer: str = ""
    fee_bps: int = 0
    rate_limit_rps: float = DEFAULT_RATE_LIMIT_RPS
    routers: Mapping[int, str] = field(default_factory=dict)
    approval_addresses: Mapping[int, str] = field(default_factory=dict)
    aliases: Mapping[int, str] = field(default_factory=dict)
