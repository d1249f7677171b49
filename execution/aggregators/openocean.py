"""
OpenOcean API (v3) adapter.

v3 takes the input amount in token units (not wei) and a gas price in gwei,
so a ``/gasPrice`` lookup precedes ``/swap_quote``.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Any

from core.estimates import build_estimate, build_transaction_request, to_decimal, to_human, to_int
from core.params import slippage_fraction
from execution.aggregators.base import BaseAggregator
from shared.errors import QuoteError
from shared.types import SwapParams, TransactionRequestWithEstimate

_GWEI = Decimal(10**9)


class OpenOcean(BaseAggregator):
    display_name = "OpenOcean"

    def get_api_root(self, chain_id: int) -> str:
        self.ensure_chain_supported(chain_id)
        return f"{self.api_root}/{self.get_chain_alias(chain_id)}"

    def _headers(self) -> dict[str, str]:
        headers = {"accept": "application/json"}
        if self.api_key:
            headers["apikey"] = self.api_key
        return headers

    def _unwrap(self, resp: Any) -> dict[str, Any]:
        """Return ``data`` from an OpenOcean envelope, raising on a non-200 ``code``."""
        if not isinstance(resp, dict):
            raise QuoteError(self.id.value, "Unexpected response type", raw=resp)
        code = resp.get("code")
        if code is not None and to_int(code) != 200:
            raise QuoteError(
                self.id.value,
                str(resp.get("error") or resp.get("message") or "Request failed"),
                http_status=to_int(code),
                raw=resp,
            )
        data = resp.get("data")
        if not isinstance(data, dict):
            raise QuoteError(self.id.value, "Response has no data", raw=resp)
        return data

    async def _gas_price_gwei(self, chain_id: int) -> str:
        data = self._unwrap(
            await self._get_json(f"{self.get_api_root(chain_id)}/gasPrice", headers=self._headers())
        )
        standard = data.get("standard")
        if isinstance(standard, dict):
            standard = standard.get("legacyGasPrice") or standard.get("maxFeePerGas")
        wei = to_int(standard)
        if wei <= 0:
            raise QuoteError(self.id.value, "No gas price available", raw=data)
        return format((Decimal(wei) / _GWEI).normalize(), "f")

    async def _fetch_quote(self, params: SwapParams) -> dict[str, Any]:
        chain_id = params.input.chain_id
        amount = to_human(params.input_amount_wei, params.input.decimals).normalize()
        query: dict[str, Any] = {
            "inTokenAddress": self._native(params.input.address),
            "outTokenAddress": self._native(params.output.address),
            "amount": format(amount, "f"),
            "gasPrice": await self._gas_price_gwei(chain_id),
            "slippage": self._percent(params.max_slippage_bps),
            "account": params.quoting_payer,
            "sender": params.quoting_payer,
            "disabledDexIds": params.exchange_denylist,
        }
        if params.fee_bps and params.referrer:
            query["referrer"] = params.referrer
            query["referrerFee"] = self._percent(params.fee_bps)
        data = self._unwrap(
            await self._get_json(
                f"{self.get_api_root(chain_id)}/swap_quote", params=query, headers=self._headers()
            )
        )
        self._require_output(data.get("outAmount"), data)
        return data

    async def _build_transaction_request(
        self, params: SwapParams
    ) -> TransactionRequestWithEstimate:
        chain_id = params.input.chain_id
        data = await self._fetch_quote(params)
        self._check_router(chain_id, data.get("to"))

        # price_impact is reported as a signed percentage string ("-0.05%")
        impact = str(data.get("price_impact") or "0").rstrip("%")
        estimate = build_estimate(
            data.get("inAmount") or params.input_amount_wei,
            data["outAmount"],
            params.input.decimals,
            params.output.decimals,
            gas_cost_wei=to_int(data.get("estimatedGas")) * to_int(data.get("gasPrice")),
            slippage=slippage_fraction(params),
            price_impact=abs(to_decimal(impact)) / Decimal(100),
        )
        return build_transaction_request(
            {
                "to": data.get("to"),
                "data": data.get("data"),
                "value": data.get("value"),
                "gas": data.get("estimatedGas"),
                "chainId": chain_id,
            },
            params,
            [self._single_step(params, estimate)],
            approval_address=self.get_approval_address(chain_id),
            aggregator_id=self.id,
        )
