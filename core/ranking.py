"""
Route ranking and read-only display projections.

``sort_by_rate`` orders routes by descending exchange rate; equal rates
keep the order of the requested aggregator list.  The view helpers never
mutate the ranked list.
"""

from __future__ import annotations

from collections.abc import Sequence
from decimal import Decimal
from typing import Any

from shared.constants import ZERO
from shared.types import (
    AggId,
    CompactTransaction,
    DisplayMode,
    QuotePerformance,
    TransactionRequestWithEstimate,
)

_HUNDRED = Decimal(100)


def sort_by_rate(
    trs: Sequence[TransactionRequestWithEstimate],
    order: Sequence[AggId] | None = None,
) -> list[TransactionRequestWithEstimate]:
    """
    Rank routes by descending exchange rate.

    Ties are broken by the position of the route's aggregator in ``order``
    (then by position in ``trs``), never by completion order.
    """
    position = {agg_id: i for i, agg_id in enumerate(order or ())}

    def key(item: tuple[int, TransactionRequestWithEstimate]) -> tuple[Decimal, int, int]:
        index, tr = item
        return (-tr.exchange_rate, position.get(tr.aggregator_id, len(position)), index)

    return [tr for _, tr in sorted(enumerate(trs), key=key)]


# ---------------------------------------------------------------------------
# Performance view
# ---------------------------------------------------------------------------


def get_performance(
    tr: TransactionRequestWithEstimate,
    best_output: Decimal | None = None,
) -> QuotePerformance:
    est = tr.global_estimate
    gap = ZERO
    if best_output is not None and best_output > 0:
        gap = (best_output - est.output) / best_output * _HUNDRED
    return QuotePerformance(
        aggregator_id=tr.aggregator_id.value if tr.aggregator_id else "???",
        exchange_rate=est.exchange_rate,
        output=est.output,
        gas_cost_usd=est.gas_cost_usd,
        fee_cost_usd=est.fee_cost_usd,
        total_cost_usd=est.gas_cost_usd + est.fee_cost_usd,
        latency_ms=tr.latency_ms,
        steps=len(tr.steps),
        protocols=tuple(s.protocol.name for s in tr.steps if s.protocol.name),
        output_gap_pct=gap,
    )


def get_performance_rank(trs: Sequence[TransactionRequestWithEstimate]) -> list[QuotePerformance]:
    """Performance rows for an already-ranked list; gaps are relative to the first route."""
    if not trs:
        return []
    best_output = trs[0].global_estimate.output
    return [get_performance(tr, best_output) for tr in trs]


# ---------------------------------------------------------------------------
# Compact view
# ---------------------------------------------------------------------------


def compact(tr: TransactionRequestWithEstimate) -> CompactTransaction:
    return CompactTransaction(to=tr.to, data=tr.data, value=tr.value, chain_id=tr.chain_id)


def compact_all(trs: Sequence[TransactionRequestWithEstimate]) -> list[CompactTransaction]:
    return [compact(tr) for tr in trs]


def best(trs: Sequence[TransactionRequestWithEstimate]) -> TransactionRequestWithEstimate | None:
    return trs[0] if trs else None


def project(trs: Sequence[TransactionRequestWithEstimate], mode: DisplayMode) -> Any:
    """Return the projection of a ranked list requested by ``mode``."""
    if mode is DisplayMode.ALL:
        return list(trs)
    if mode is DisplayMode.BEST:
        return best(trs)
    if mode is DisplayMode.ALL_COMPACT:
        return compact_all(trs)
    if mode is DisplayMode.BEST_COMPACT:
        return compact_all(trs[:1])
    if mode is DisplayMode.RANK:
        return get_performance_rank(trs)
    raise ValueError(f"Unsupported display mode: {mode}")
