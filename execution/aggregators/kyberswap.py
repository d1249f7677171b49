"""
KyberSwap Aggregator API (v1) adapter.

``GET /routes`` returns a ``routeSummary`` that must be posted back to
``/route/build`` unchanged to obtain calldata.
"""

from __future__ import annotations

from typing import Any

from core.estimates import build_estimate, build_transaction_request, to_int
from core.params import slippage_fraction
from execution.aggregators.base import BaseAggregator
from shared.errors import QuoteError
from shared.types import SwapParams, TransactionRequestWithEstimate


class KyberSwap(BaseAggregator):
    display_name = "KyberSwap"

    def get_api_root(self, chain_id: int) -> str:
        self.ensure_chain_supported(chain_id)
        return f"{self.api_root}/{self.get_chain_alias(chain_id)}/api/v1"

    def _headers(self) -> dict[str, str]:
        headers = {"accept": "application/json", "x-client-id": self.integrator}
        if self.api_key:
            headers["x-api-key"] = self.api_key
        return headers

    def _unwrap(self, resp: Any) -> dict[str, Any]:
        if not isinstance(resp, dict):
            raise QuoteError(self.id.value, "Unexpected response type", raw=resp)
        if to_int(resp.get("code")) != 0:
            raise QuoteError(self.id.value, str(resp.get("message") or "Request failed"), raw=resp)
        data = resp.get("data")
        if not isinstance(data, dict):
            raise QuoteError(self.id.value, "Response has no data", raw=resp)
        return data

    async def _fetch_quote(self, params: SwapParams) -> dict[str, Any]:
        query: dict[str, Any] = {
            "tokenIn": self._native(params.input.address),
            "tokenOut": self._native(params.output.address),
            "amountIn": params.input_amount_wei,
            "gasInclude": True,
            "excludedSources": params.exchange_denylist,
            "source": params.integrator,
        }
        if params.fee_bps and params.referrer:
            query.update(
                feeAmount=params.fee_bps,
                chargeFeeBy="currency_in",
                isInBps=True,
                feeReceiver=params.referrer,
            )
        data = self._unwrap(
            await self._get_json(
                f"{self.get_api_root(params.input.chain_id)}/routes",
                params=query,
                headers=self._headers(),
            )
        )
        summary = data.get("routeSummary")
        if not summary:
            raise QuoteError(self.id.value, "No routeSummary in response", raw=data)
        self._require_output(summary.get("amountOut"), data)
        return data

    async def _build_transaction_request(
        self, params: SwapParams
    ) -> TransactionRequestWithEstimate:
        chain_id = params.input.chain_id
        quote = await self._fetch_quote(params)
        summary = quote["routeSummary"]

        built = self._unwrap(
            await self._post_json(
                f"{self.get_api_root(chain_id)}/route/build",
                json_data={
                    "routeSummary": summary,
                    "sender": params.quoting_payer,
                    "recipient": params.receiver,
                    "slippageTolerance": params.max_slippage_bps,
                    "source": params.integrator,
                    # The quoting address may hold no balance or allowance yet
                    "skipSimulateTx": True,
                },
                headers=self._headers(),
            )
        )
        router = built.get("routerAddress") or quote.get("routerAddress")
        self._check_router(chain_id, router)

        gas_units = to_int(built.get("gas") or summary.get("gas"))
        estimate = build_estimate(
            built.get("amountIn") or summary.get("amountIn"),
            built.get("amountOut") or summary["amountOut"],
            params.input.decimals,
            params.output.decimals,
            gas_cost_wei=gas_units * to_int(summary.get("gasPrice")),
            gas_cost_usd=built.get("gasUsd") or summary.get("gasUsd"),
            slippage=slippage_fraction(params),
        )
        value = params.input_amount_wei if self._is_native(params.input.address) else 0
        return build_transaction_request(
            {
                "to": router,
                "data": built.get("data"),
                "value": built.get("transactionValue", value),
                "gas": gas_units,
                "chainId": chain_id,
            },
            params,
            [self._single_step(params, estimate)],
            approval_address=self.get_approval_address(chain_id) or router,
            aggregator_id=self.id,
        )
