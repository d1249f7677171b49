"""
Swap parameter validation, defaulting and log formatting.

``validate_params`` runs before any network call; every failure is a
``ValidationError``.  Defaulting never overrides a value the caller set.
"""

from __future__ import annotations

import re
from dataclasses import replace
from decimal import Decimal

from shared.constants import BPS_DENOMINATOR, DEFAULT_MAX_SLIPPAGE_BPS, MAX_TOKEN_DECIMALS
from shared.errors import ValidationError
from shared.types import SwapParams, Token, TransactionRequestWithEstimate

_ADDRESS_RE = re.compile(r"^0x[a-fA-F0-9]{40}$")


def is_address(value: str | None) -> bool:
    return bool(value) and _ADDRESS_RE.match(value) is not None


def _validate_token(token: Token, side: str) -> None:
    if not is_address(token.address):
        raise ValidationError(f"Invalid {side} token address: {token.address!r}")
    if isinstance(token.chain_id, bool) or not isinstance(token.chain_id, int) or token.chain_id <= 0:
        raise ValidationError(f"Invalid {side} chain id: {token.chain_id!r}")
    if isinstance(token.decimals, bool) or not isinstance(token.decimals, int):
        raise ValidationError(f"Invalid {side} token decimals: {token.decimals!r}")
    if not 0 <= token.decimals <= MAX_TOKEN_DECIMALS:
        raise ValidationError(f"Invalid {side} token decimals: {token.decimals!r}")


def validate_params(params: SwapParams) -> None:
    """
    Check that a swap request is well-formed.

    Raises ``ValidationError`` on invalid tokens, addresses, a non-positive
    amount, or slippage outside ``(0, 10000]`` bps.
    """
    _validate_token(params.input, "input")
    _validate_token(params.output, "output")

    if params.payer is None:
        raise ValidationError("Missing payer address")
    for label, address in (
        ("payer", params.payer),
        ("receiver", params.receiver),
        ("test payer", params.test_payer),
    ):
        if address is not None and not is_address(address):
            raise ValidationError(f"Invalid {label} address: {address!r}")

    if isinstance(params.input_amount_wei, bool) or not isinstance(params.input_amount_wei, int):
        raise ValidationError(f"Input amount must be an integer: {params.input_amount_wei!r}")
    if params.input_amount_wei <= 0:
        raise ValidationError(f"Input amount must be positive: {params.input_amount_wei}")

    slippage = params.max_slippage_bps
    if slippage is not None and slippage != 0 and not 0 < slippage <= BPS_DENOMINATOR:
        raise ValidationError(f"Slippage out of bounds: {slippage} bps")

    if params.fee_bps is not None and not 0 <= params.fee_bps < BPS_DENOMINATOR:
        raise ValidationError(f"Fee out of bounds: {params.fee_bps} bps")


def apply_defaults(
    params: SwapParams,
    integrator: str | None = None,
    max_slippage_bps: int = DEFAULT_MAX_SLIPPAGE_BPS,
) -> SwapParams:
    """Fill global defaults the caller did not set.  Returns a new ``SwapParams``."""
    return replace(
        params,
        receiver=params.receiver or params.payer,
        integrator=params.integrator or integrator,
        max_slippage_bps=params.max_slippage_bps or max_slippage_bps,
    )


def slippage_fraction(params: SwapParams) -> Decimal:
    """Slippage as a fraction (500 bps -> 0.05)."""
    bps = params.max_slippage_bps or DEFAULT_MAX_SLIPPAGE_BPS
    return Decimal(bps) / Decimal(BPS_DENOMINATOR)


# ---------------------------------------------------------------------------
# Log formatting
# ---------------------------------------------------------------------------


def shorten_address(address: str | None, start: int = 4, end: int = 4, sep: str = ".") -> str:
    if not address:
        return "???"
    if 2 + start + end >= len(address):
        return address
    return address[: 2 + start] + sep + address[-end:]


def params_to_string(params: SwapParams) -> str:
    ids = params.aggregator_ids or ()
    label = f"Meta:{len(ids)}" if len(ids) > 2 else ",".join(a.value for a in ids)
    human = Decimal(params.input_amount_wei).scaleb(-params.input.decimals).normalize()
    amount = format(human, "f")
    return (
        f"[{label}] {amount} {params.input.symbol} "
        f"({params.input.chain_id}:{shorten_address(params.input.address)}) → "
        f"{params.output.symbol} ({params.output.chain_id}:{shorten_address(params.output.address)})"
    )


def tr_to_string(tr: TransactionRequestWithEstimate) -> str:
    est = tr.global_estimate
    agg = tr.aggregator_id.value if tr.aggregator_id else "???"
    return (
        f"[{agg}] router: {shorten_address(tr.to)} → {est.output} {tr.params.output.symbol} "
        f"| Rate: {est.exchange_rate:.6f} | Gas: ${est.gas_cost_usd:.3f} "
        f"| Fee: ${est.fee_cost_usd:.3f} | Steps: {len(tr.steps)}"
    )
