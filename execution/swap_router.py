"""
Aggregator fan-out router.

Queries the selected aggregators concurrently, discards the ones that fail
or miss their deadline, and returns the surviving routes ranked best-first
by exchange rate.

Usage:
    router = SwapRouter()
    trs = await router.get_all_transaction_requests(params)
    best = trs[0]
    await router.close()
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Iterable, Mapping
from dataclasses import replace

from config.loader import get_config, load_aggregator_configs
from config.validate import validate_all_configs
from core.params import apply_defaults, params_to_string, tr_to_string, validate_params
from core.ranking import get_performance_rank, sort_by_rate
from execution.aggregators import BaseAggregator, build_aggregators
from shared.constants import (
    CONTRACT_CALL_AGGREGATORS,
    DEFAULT_AGGREGATORS,
    DEFAULT_EXPIRY_SECONDS,
    DEFAULT_MAX_SLIPPAGE_BPS,
)
from shared.errors import NoRouteError, QuoteError, SwapError, ValidationError
from shared.types import (
    AggId,
    AggregatorConfig,
    StatusParams,
    StatusResponse,
    SwapParams,
    TransactionRequestWithEstimate,
)
from swap_logging.logger_manager import (
    create_module_log_directories,
    log_route_performance,
    setup_module_logger,
)


def _parse_ids(values: Iterable[AggId | str]) -> list[AggId]:
    ids: list[AggId] = []
    for value in values:
        try:
            agg_id = value if isinstance(value, AggId) else AggId(str(value).upper())
        except ValueError:
            raise ValidationError(f"Unknown aggregator id: {value!r}") from None
        if agg_id not in ids:
            ids.append(agg_id)
    return ids


class SwapRouter:
    """
    Fan-out over aggregator adapters with per-adapter failure isolation.

    A failing or slow adapter never affects the others; only when every
    selected adapter fails does the caller see ``NoRouteError``.
    """

    def __init__(
        self,
        aggregators: Mapping[AggId, BaseAggregator] | None = None,
        configs: Mapping[AggId, AggregatorConfig] | None = None,
    ) -> None:
        cfg = get_config()
        agg_cfg = cfg.get_aggregator_config()
        timing_cfg = cfg.get_timing_config()

        self._default_ids = _parse_ids(agg_cfg.get("default_aggregators", DEFAULT_AGGREGATORS))
        self._contract_call_ids = _parse_ids(
            agg_cfg.get("contract_call_aggregators", CONTRACT_CALL_AGGREGATORS)
        )

        # Per-adapter deadline inside the fan-out
        agg_timing = timing_cfg.get("aggregator", {})
        self._expiry: float = float(agg_timing.get("expiry_seconds", DEFAULT_EXPIRY_SECONDS))

        if aggregators is None:
            if configs is None:
                # Shipped JSON: validate before building adapters
                validate_all_configs()
                create_module_log_directories()
                configs = load_aggregator_configs(agg_cfg)
            aggregators = build_aggregators(configs)
        self._aggregators: dict[AggId, BaseAggregator] = dict(aggregators)

        self._logger = setup_module_logger(
            "swap_router", "swap_router.log", module_folder="Router_Logs"
        )

    @property
    def aggregators(self) -> Mapping[AggId, BaseAggregator]:
        return self._aggregators

    # ------------------------------------------------------------------
    # Selection
    # ------------------------------------------------------------------

    def resolve_aggregator_ids(self, params: SwapParams) -> list[AggId]:
        """
        Adapters to query for ``params``, in request order.

        Explicit ids win over the configured default set, which only
        includes adapters this router was built with.  Requests with custom
        contract calls are restricted to contract-call capable adapters.
        Raises ``ValidationError`` for unknown ids or an empty selection.
        """
        if params.aggregator_ids:
            ids = _parse_ids(params.aggregator_ids)
            missing = [a.value for a in ids if a not in self._aggregators]
            if missing:
                raise ValidationError(f"Aggregators not configured: {', '.join(missing)}")
        else:
            default = self._contract_call_ids if params.custom_contract_calls else self._default_ids
            ids = [a for a in default if a in self._aggregators]

        if params.custom_contract_calls:
            ids = [a for a in ids if a in self._contract_call_ids]

        if not ids:
            raise ValidationError("No aggregator selected for this request")
        return ids

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def get_all_transaction_requests(
        self, params: SwapParams
    ) -> list[TransactionRequestWithEstimate]:
        """
        Query every selected adapter and return the routes ranked best-first.

        Raises ``ValidationError`` before any network call for malformed
        params and ``NoRouteError`` when no adapter returns a route.  Every
        returned record has ``from_address`` set to the original payer.
        """
        validate_params(params)
        ids = self.resolve_aggregator_ids(params)
        params = apply_defaults(
            replace(params, aggregator_ids=tuple(ids)),
            max_slippage_bps=DEFAULT_MAX_SLIPPAGE_BPS,
        )
        expiry = params.expiry_seconds or self._expiry
        description = params_to_string(params)
        self._logger.info("Querying %s", description)

        results = await asyncio.gather(
            *(self._fetch_one(agg_id, params, expiry) for agg_id in ids),
            return_exceptions=True,
        )

        trs: list[TransactionRequestWithEstimate] = []
        for agg_id, result in zip(ids, results):
            if isinstance(result, SwapError):
                self._logger.warning("Aggregator %s failed: %s", agg_id.value, result)
                continue
            if isinstance(result, BaseException):
                self._logger.error(
                    "Aggregator %s raised %s: %s", agg_id.value, type(result).__name__, result
                )
                continue
            trs.append(result)

        if not trs:
            raise NoRouteError([a.value for a in ids], description)

        ranked = [replace(tr, from_address=params.payer) for tr in sort_by_rate(trs, ids)]
        for tr in ranked:
            self._logger.info(tr_to_string(tr))
        log_route_performance(get_performance_rank(ranked))
        return ranked

    async def get_transaction_request(self, params: SwapParams) -> TransactionRequestWithEstimate:
        """Best route for ``params``."""
        return (await self.get_all_transaction_requests(params))[0]

    async def get_call_data(self, params: SwapParams) -> str:
        """Calldata of the best route for ``params``."""
        return (await self.get_transaction_request(params)).data

    async def get_status(self, status_params: StatusParams) -> StatusResponse:
        if status_params.aggregator_id is None:
            raise ValidationError("Status lookup requires an aggregator id")
        agg_id = _parse_ids([status_params.aggregator_id])[0]
        aggregator = self._aggregators.get(agg_id)
        if aggregator is None:
            raise ValidationError(f"Aggregator not configured: {agg_id.value}")
        return await aggregator.get_status(status_params)

    async def close(self) -> None:
        """Close every adapter's HTTP session."""
        await asyncio.gather(*(agg.close() for agg in self._aggregators.values()))

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    async def _fetch_one(
        self, agg_id: AggId, params: SwapParams, expiry: float
    ) -> TransactionRequestWithEstimate:
        aggregator = self._aggregators[agg_id]
        start = time.monotonic()
        try:
            tr = await asyncio.wait_for(aggregator.get_transaction_request(params), timeout=expiry)
        except asyncio.TimeoutError as exc:
            raise QuoteError(agg_id.value, f"No response within {expiry}s") from exc
        latency_ms = int((time.monotonic() - start) * 1000)
        return replace(tr, aggregator_id=tr.aggregator_id or agg_id, latency_ms=latency_ms)
