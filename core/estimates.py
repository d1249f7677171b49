"""
Estimate normalizer.

Turns vendor amounts, cost lists and raw transaction payloads into the
canonical ``Estimate`` / ``SwapStep`` / ``TransactionRequestWithEstimate``
records.  All functions are pure: the same vendor response always yields
an identical record.

Numeric rules:
    - wei amounts are ``int`` and summed with integer addition
    - human amounts are ``wei / 10**decimals`` as exact ``Decimal``
    - USD costs are ``Decimal``; absent entries count as zero
    - a zero input or output amount raises ``ZeroAmountError``
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from decimal import Decimal, InvalidOperation
from typing import Any

from shared.constants import ZERO
from shared.errors import ZeroAmountError
from shared.types import (
    AggId,
    Estimate,
    SwapParams,
    SwapStep,
    TransactionRequestWithEstimate,
)

# ---------------------------------------------------------------------------
# Parsing helpers
# ---------------------------------------------------------------------------


def to_int(value: Any) -> int:
    """Parse a wei amount from an int, decimal string or ``0x`` hex string."""
    if value is None or value == "":
        return 0
    if isinstance(value, bool):
        raise ValueError(f"Not an amount: {value!r}")
    if isinstance(value, int):
        return value
    text = str(value).strip()
    if text.lower().startswith("0x"):
        return int(text, 16)
    try:
        return int(text)
    except ValueError:
        # Some vendors send integral amounts as "1e+21" or "123.0"
        parsed = to_decimal(text)
        if parsed != parsed.to_integral_value():
            raise ValueError(f"Not an integer amount: {value!r}") from None
        return int(parsed)


def to_decimal(value: Any) -> Decimal:
    """Parse a USD amount or ratio; ``None``/empty is zero."""
    if value is None or value == "":
        return ZERO
    try:
        parsed = Decimal(str(value))
    except InvalidOperation:
        raise ValueError(f"Not a number: {value!r}") from None
    if not parsed.is_finite():
        raise ValueError(f"Not a finite number: {value!r}")
    return parsed


def to_human(wei: int, decimals: int) -> Decimal:
    """Convert a wei amount to token units."""
    return Decimal(wei).scaleb(-decimals)


def exchange_rate(input_amount: Decimal, output_amount: Decimal) -> Decimal:
    """Output per unit of input.  Zero on either side is rejected."""
    if input_amount <= 0 or output_amount <= 0:
        raise ZeroAmountError(
            f"Zero input or output amount in estimate (input={input_amount}, output={output_amount})"
        )
    return output_amount / input_amount


# ---------------------------------------------------------------------------
# Cost lists
# ---------------------------------------------------------------------------


def sum_wei(costs: Iterable[Mapping[str, Any]] | None, key: str = "amount") -> int:
    if not costs:
        return 0
    return sum((to_int(c.get(key)) for c in costs), 0)


def sum_usd(costs: Iterable[Mapping[str, Any]] | None, key: str = "amountUSD") -> Decimal:
    if not costs:
        return ZERO
    return sum((to_decimal(c.get(key)) for c in costs), ZERO)


def cost_fields(
    gas_costs: Sequence[Mapping[str, Any]] | None,
    fee_costs: Sequence[Mapping[str, Any]] | None,
) -> dict[str, Any]:
    """Collapse vendor gas/fee cost lists into ``Estimate`` cost keyword arguments."""
    return {
        "gas_cost_wei": sum_wei(gas_costs),
        "gas_cost_usd": sum_usd(gas_costs),
        "fee_cost_wei": sum_wei(fee_costs),
        "fee_cost_usd": sum_usd(fee_costs),
    }


# ---------------------------------------------------------------------------
# Estimates
# ---------------------------------------------------------------------------


def build_estimate(
    input_wei: Any,
    output_wei: Any,
    input_decimals: int,
    output_decimals: int,
    *,
    gas_cost_wei: Any = 0,
    gas_cost_usd: Any = ZERO,
    fee_cost_wei: Any = 0,
    fee_cost_usd: Any = ZERO,
    slippage: Any = ZERO,
    price_impact: Any = ZERO,
) -> Estimate:
    """Build a single-step estimate from raw vendor values."""
    in_wei = to_int(input_wei)
    out_wei = to_int(output_wei)
    in_amount = to_human(in_wei, input_decimals)
    out_amount = to_human(out_wei, output_decimals)
    return Estimate(
        input=in_amount,
        input_wei=in_wei,
        output=out_amount,
        output_wei=out_wei,
        exchange_rate=exchange_rate(in_amount, out_amount),
        slippage=to_decimal(slippage),
        price_impact=to_decimal(price_impact),
        gas_cost_wei=to_int(gas_cost_wei),
        gas_cost_usd=to_decimal(gas_cost_usd),
        fee_cost_wei=to_int(fee_cost_wei),
        fee_cost_usd=to_decimal(fee_cost_usd),
    )


def aggregate_estimate(steps: Sequence[SwapStep]) -> Estimate:
    """
    Route-level estimate: first step input, last step output, summed costs.

    The exchange rate is computed once from the two endpoints, not averaged
    across steps.
    """
    if not steps:
        raise ValueError("Route has no steps")
    first = steps[0].estimate
    last = steps[-1].estimate
    estimates = [s.estimate for s in steps]
    return Estimate(
        input=first.input,
        input_wei=first.input_wei,
        output=last.output,
        output_wei=last.output_wei,
        exchange_rate=exchange_rate(first.input, last.output),
        slippage=max(e.slippage for e in estimates),
        price_impact=max(e.price_impact for e in estimates),
        gas_cost_wei=sum((e.gas_cost_wei for e in estimates), 0),
        gas_cost_usd=sum((e.gas_cost_usd for e in estimates), ZERO),
        fee_cost_wei=sum((e.fee_cost_wei for e in estimates), 0),
        fee_cost_usd=sum((e.fee_cost_usd for e in estimates), ZERO),
    )


# ---------------------------------------------------------------------------
# Transaction records
# ---------------------------------------------------------------------------


def build_transaction_request(
    tx: Mapping[str, Any],
    params: SwapParams,
    steps: Sequence[SwapStep],
    approval_address: str | None = None,
    aggregator_id: AggId | None = None,
) -> TransactionRequestWithEstimate:
    """
    Assemble the canonical record from a vendor transaction payload.

    ``tx`` uses the common EVM keys (``to``, ``data``, ``value``, ``from``,
    ``chainId``, ``gas``/``gasLimit``).  Raises ``ValueError`` when ``to``
    or ``data`` is missing so no half-built record is returned.
    """
    to = tx.get("to")
    data = tx.get("data")
    if not to or not data or data == "0x":
        raise ValueError("Incomplete transaction request: missing 'to' or 'data'")

    gas_limit = to_int(tx.get("gasLimit") or tx.get("gas"))
    return TransactionRequestWithEstimate(
        from_address=tx.get("from") or params.quoting_payer,
        to=to,
        data=data,
        value=to_int(tx.get("value")),
        chain_id=to_int(tx.get("chainId")) or params.input.chain_id,
        approval_address=approval_address or to,
        params=params,
        steps=tuple(steps),
        global_estimate=aggregate_estimate(steps),
        aggregator_id=aggregator_id,
        gas_limit=gas_limit or None,
    )
