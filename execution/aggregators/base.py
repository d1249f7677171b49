"""
Common contract for swap aggregator adapters.

Each adapter owns one vendor API: it translates ``SwapParams`` into the
vendor's request shape, calls the vendor over HTTP, and normalizes the
response into a ``TransactionRequestWithEstimate``.  Everything that can go
wrong inside a vendor call surfaces as ``QuoteError``; malformed caller
input surfaces as ``ValidationError`` before any network call.

Usage:
    adapter = OneInch(config)
    tr = await adapter.get_transaction_request(params)
    await adapter.close()
"""

from __future__ import annotations

import asyncio
import time
from abc import ABC, abstractmethod
from collections.abc import Iterator, Mapping
from contextlib import contextmanager
from dataclasses import replace
from decimal import Decimal
from typing import Any

import aiohttp

from config.loader import get_config
from core.estimates import to_int
from core.params import validate_params
from shared.constants import (
    DEFAULT_MAX_SLIPPAGE_BPS,
    DEFAULT_REQUEST_TIMEOUT_SECONDS,
    NATIVE_TOKEN_ADDRESS,
    ZERO_ADDRESS,
)
from shared.errors import (
    QuoteError,
    StatusUnsupportedError,
    SwapError,
    ValidationError,
    ZeroAmountError,
)
from shared.types import (
    AggId,
    AggregatorConfig,
    Estimate,
    Protocol,
    ProtocolType,
    StatusParams,
    StatusResponse,
    StepType,
    SwapParams,
    SwapStep,
    TransactionRequestWithEstimate,
)
from swap_logging.logger_manager import setup_module_logger


class BaseAggregator(ABC):
    """
    Base class for vendor adapters.

    Subclasses implement ``_fetch_quote`` and ``_build_transaction_request``;
    the public ``get_quote`` / ``get_transaction_request`` wrappers apply
    defaults, validate, and map vendor failures to ``QuoteError``.
    """

    display_name: str = ""
    cross_chain: bool = False
    supports_contract_calls: bool = False

    def __init__(self, config: AggregatorConfig, timeout: float | None = None) -> None:
        if not config.api_root:
            raise ValueError(f"{config.aggregator_id.value}: missing api_root")
        self.config = config
        self.id: AggId = config.aggregator_id

        if timeout is None:
            agg_timing = get_config().get_timing_config().get("aggregator", {})
            timeout = agg_timing.get("request_timeout_seconds", DEFAULT_REQUEST_TIMEOUT_SECONDS)
        self._timeout = float(timeout)

        rps = config.rate_limit_rps
        self._min_interval: float = 1.0 / rps if rps > 0 else 0.0
        self._last_request: float = 0.0

        # Lazy-init aiohttp session
        self._session: aiohttp.ClientSession | None = None

        self._logger = setup_module_logger(
            "aggregator", "aggregators.log", module_folder="Aggregator_Logs"
        )

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.id.value})"

    # ------------------------------------------------------------------
    # Configuration accessors
    # ------------------------------------------------------------------

    @property
    def api_root(self) -> str:
        return self.config.api_root

    @property
    def api_key(self) -> str:
        return self.config.api_key

    @property
    def integrator(self) -> str:
        return self.config.integrator

    @property
    def referrer(self) -> str:
        return self.config.referrer

    @property
    def fee_bps(self) -> int:
        return self.config.fee_bps

    # ------------------------------------------------------------------
    # Chain support
    # ------------------------------------------------------------------

    def is_chain_supported(self, chain_id: int) -> bool:
        return chain_id in self.config.routers or chain_id in self.config.aliases

    def ensure_chain_supported(self, chain_id: int) -> None:
        if not self.is_chain_supported(chain_id):
            raise ValidationError(f"{self.id.value} does not support chain {chain_id}")

    def get_router_address(self, chain_id: int) -> str | None:
        return self.config.routers.get(chain_id)

    def get_approval_address(self, chain_id: int) -> str | None:
        return self.config.approval_addresses.get(chain_id) or self.get_router_address(chain_id)

    def get_chain_alias(self, chain_id: int) -> str:
        """Vendor name for a chain (``bsc``, ``eth``...); the numeric id when no alias is set."""
        return self.config.aliases.get(chain_id, str(chain_id))

    def get_api_root(self, chain_id: int) -> str:
        self.ensure_chain_supported(chain_id)
        return self.api_root

    # ------------------------------------------------------------------
    # Parameters
    # ------------------------------------------------------------------

    def overload_params(self, params: SwapParams) -> SwapParams:
        """
        Validate ``params`` and fill this adapter's defaults.

        Caller-provided integrator, referrer, fee and slippage always win;
        receiver defaults to the payer.  Raises ``ValidationError``.
        """
        validate_params(params)
        self.ensure_chain_supported(params.input.chain_id)
        if params.is_cross_chain:
            if not self.cross_chain:
                raise ValidationError(f"{self.id.value} does not support cross-chain swaps")
            self.ensure_chain_supported(params.output.chain_id)
        if params.custom_contract_calls and not self.supports_contract_calls:
            raise ValidationError(f"{self.id.value} does not support custom contract calls")

        return replace(
            params,
            receiver=params.receiver or params.payer,
            max_slippage_bps=params.max_slippage_bps or DEFAULT_MAX_SLIPPAGE_BPS,
            integrator=params.integrator or self.integrator,
            referrer=params.referrer or self.referrer or None,
            fee_bps=params.fee_bps if params.fee_bps is not None else self.fee_bps,
        )

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def get_quote(self, params: SwapParams) -> dict[str, Any]:
        """Raw vendor quote (no transaction payload) for ``params``."""
        params = self.overload_params(params)
        with self._vendor_errors("quote"):
            return await self._fetch_quote(params)

    async def get_transaction_request(self, params: SwapParams) -> TransactionRequestWithEstimate:
        """
        Executable transaction plus normalized estimate for ``params``.

        Raises ``ValidationError`` for unusable params and ``QuoteError``
        for any vendor-side failure, including responses missing ``to``,
        ``data`` or an approval address.
        """
        params = self.overload_params(params)
        with self._vendor_errors("transaction request"):
            tr = await self._build_transaction_request(params)

        if not tr.to or not tr.data or not tr.approval_address:
            raise QuoteError(self.id.value, "Incomplete transaction request")
        if tr.aggregator_id is None:
            tr = replace(tr, aggregator_id=self.id)
        self._logger.info(
            "[%s] %s -> %s %s (rate %s)",
            self.id.value,
            params.input.symbol or params.input.address,
            tr.global_estimate.output,
            params.output.symbol or params.output.address,
            tr.global_estimate.exchange_rate,
        )
        return tr

    async def get_status(self, status_params: StatusParams) -> StatusResponse:
        raise StatusUnsupportedError(f"{self.id.value} does not track transaction status")

    async def close(self) -> None:
        """Close the underlying aiohttp session."""
        if self._session is not None and not self._session.closed:
            await self._session.close()
            self._session = None

    # ------------------------------------------------------------------
    # Vendor hooks
    # ------------------------------------------------------------------

    @abstractmethod
    async def _fetch_quote(self, params: SwapParams) -> dict[str, Any]:
        """Call the vendor quote endpoint; ``params`` are already defaulted."""

    @abstractmethod
    async def _build_transaction_request(
        self, params: SwapParams
    ) -> TransactionRequestWithEstimate:
        """Call the vendor and normalize the response."""

    # ------------------------------------------------------------------
    # Helpers for subclasses
    # ------------------------------------------------------------------

    @contextmanager
    def _vendor_errors(self, context: str) -> Iterator[None]:
        """Map transport and parsing failures inside a vendor call to ``QuoteError``."""
        try:
            yield
        except SwapError:
            raise
        except ZeroAmountError as exc:
            raise QuoteError(self.id.value, f"{context}: {exc}") from exc
        except (aiohttp.ClientError, asyncio.TimeoutError) as exc:
            raise QuoteError(
                self.id.value, f"{context}: {type(exc).__name__}: {exc}".rstrip(": ")
            ) from exc
        except (KeyError, IndexError, TypeError, ValueError, AttributeError) as exc:
            raise QuoteError(self.id.value, f"{context}: malformed response ({exc!r})") from exc

    @staticmethod
    def _native(address: str) -> str:
        """Vendor placeholder for the chain's native token."""
        return NATIVE_TOKEN_ADDRESS if address.lower() == ZERO_ADDRESS else address

    @staticmethod
    def _is_native(address: str) -> bool:
        return address.lower() in (ZERO_ADDRESS, NATIVE_TOKEN_ADDRESS.lower())

    @staticmethod
    def _percent(bps: int | None) -> str:
        """Basis points as a percentage string (50 -> "0.5")."""
        return str(Decimal(bps or 0) / Decimal(100))

    def _require_output(self, amount: Any, raw: Any) -> int:
        """Quoted output in wei; a missing or zero output is not a usable quote."""
        wei = to_int(amount)
        if wei <= 0:
            raise QuoteError(self.id.value, f"Quote has no output amount: {amount!r}", raw=raw)
        return wei

    def _check_router(self, chain_id: int, to: str | None) -> None:
        """Reject a transaction that targets a router other than the configured one."""
        expected = self.get_router_address(chain_id)
        if not expected or not to:
            return
        if to.lower() != expected.lower():
            raise QuoteError(
                self.id.value,
                f"Router mismatch on chain {chain_id}: got {to}, expected {expected}",
            )

    def _single_step(self, params: SwapParams, estimate: Estimate) -> SwapStep:
        """One-hop route step for vendors that return a single aggregated swap."""
        return SwapStep(
            type=StepType.SWAP,
            input=params.input,
            output=params.output,
            input_chain_id=params.input.chain_id,
            output_chain_id=params.output.chain_id,
            protocol=Protocol(
                id=self.id.value.lower(),
                name=self.display_name or self.id.value,
                type=ProtocolType.AGGREGATOR,
            ),
            estimate=estimate,
            payer=params.quoting_payer,
            receiver=params.receiver,
        )

    # ------------------------------------------------------------------
    # HTTP helpers with rate limiting
    # ------------------------------------------------------------------

    @staticmethod
    def _query(params: Mapping[str, Any]) -> dict[str, str]:
        """Drop unset query parameters and stringify the rest."""
        query: dict[str, str] = {}
        for key, value in params.items():
            if value is None or value == "" or value == ():
                continue
            if isinstance(value, bool):
                query[key] = "true" if value else "false"
            elif isinstance(value, (list, tuple)):
                query[key] = ",".join(str(v) for v in value)
            else:
                query[key] = str(value)
        return query

    async def _get_json(
        self,
        url: str,
        params: Mapping[str, Any] | None = None,
        headers: dict[str, str] | None = None,
    ) -> Any:
        """GET with rate limiting and timeout."""
        return await self._request(
            "GET", url, params=self._query(params or {}), headers=headers
        )

    async def _post_json(
        self,
        url: str,
        json_data: Mapping[str, Any],
        headers: dict[str, str] | None = None,
        params: Mapping[str, Any] | None = None,
    ) -> Any:
        """POST with rate limiting and timeout."""
        return await self._request(
            "POST", url, json=dict(json_data), headers=headers, params=self._query(params or {})
        )

    async def _request(self, method: str, url: str, **kwargs: Any) -> Any:
        await self._enforce_rate_limit()

        session = await self._ensure_session()
        timeout = aiohttp.ClientTimeout(total=self._timeout)
        self._logger.debug("[%s] %s %s", self.id.value, method, url)
        async with session.request(method, url, timeout=timeout, **kwargs) as resp:
            if resp.status >= 400:
                body = await resp.text()
                raise QuoteError(
                    self.id.value,
                    f"{method} {url} failed: {body[:200]}",
                    http_status=resp.status,
                    raw=body,
                )
            return await resp.json(content_type=None)

    async def _enforce_rate_limit(self) -> None:
        """Sleep if necessary to respect the adapter's rate limit."""
        elapsed = time.monotonic() - self._last_request
        if self._last_request > 0 and elapsed < self._min_interval:
            await asyncio.sleep(self._min_interval - elapsed)
        self._last_request = time.monotonic()

    async def _ensure_session(self) -> aiohttp.ClientSession:
        """Lazy-init aiohttp session."""
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession()
        return self._session
