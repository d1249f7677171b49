"""
ParaSwap (Velora) API adapter.

Two calls: ``GET /prices`` returns the ``priceRoute``, which is then posted
to ``/transactions/{chainId}`` to build calldata.
"""

from __future__ import annotations

from typing import Any

from core.estimates import build_estimate, build_transaction_request, to_int
from core.params import slippage_fraction
from execution.aggregators.base import BaseAggregator
from shared.errors import QuoteError
from shared.types import SwapParams, TransactionRequestWithEstimate


class ParaSwap(BaseAggregator):
    display_name = "ParaSwap"

    def _headers(self) -> dict[str, str]:
        headers = {"accept": "application/json"}
        if self.api_key:
            headers["x-api-key"] = self.api_key
        return headers

    async def _fetch_quote(self, params: SwapParams) -> dict[str, Any]:
        chain_id = params.input.chain_id
        data = await self._get_json(
            f"{self.get_api_root(chain_id)}/prices",
            params={
                "srcToken": self._native(params.input.address),
                "destToken": self._native(params.output.address),
                "srcDecimals": params.input.decimals,
                "destDecimals": params.output.decimals,
                "amount": params.input_amount_wei,
                "side": "SELL",
                "network": chain_id,
                "userAddress": params.quoting_payer,
                "partner": params.integrator,
                "excludeDEXS": params.exchange_denylist,
                "version": "6.2",
            },
            headers=self._headers(),
        )
        price_route = (data or {}).get("priceRoute")
        if not price_route:
            error = (data or {}).get("error", "No priceRoute in response")
            raise QuoteError(self.id.value, str(error), raw=data)
        self._require_output(price_route.get("destAmount"), data)
        return price_route

    async def _build_transaction_request(
        self, params: SwapParams
    ) -> TransactionRequestWithEstimate:
        chain_id = params.input.chain_id
        price_route = await self._fetch_quote(params)

        body: dict[str, Any] = {
            "srcToken": self._native(params.input.address),
            "destToken": self._native(params.output.address),
            "srcDecimals": params.input.decimals,
            "destDecimals": params.output.decimals,
            "srcAmount": str(price_route.get("srcAmount") or params.input_amount_wei),
            "slippage": params.max_slippage_bps,
            "priceRoute": price_route,
            "userAddress": params.quoting_payer,
            "receiver": params.receiver,
            "partner": params.integrator,
        }
        if params.fee_bps and params.referrer:
            body["partnerAddress"] = params.referrer
            body["partnerFeeBps"] = str(params.fee_bps)

        # The quoting address may hold no balance or allowance yet
        tx = await self._post_json(
            f"{self.get_api_root(chain_id)}/transactions/{chain_id}",
            json_data=body,
            headers=self._headers(),
            params={"ignoreChecks": True},
        )
        if not tx or "error" in tx:
            error = (tx or {}).get("error", "Empty transaction response")
            raise QuoteError(self.id.value, str(error), raw=tx)
        self._check_router(chain_id, tx.get("to"))

        gas_units = to_int(tx.get("gas") or price_route.get("gasCost"))
        estimate = build_estimate(
            price_route.get("srcAmount") or params.input_amount_wei,
            price_route["destAmount"],
            params.input.decimals,
            params.output.decimals,
            gas_cost_wei=gas_units * to_int(tx.get("gasPrice")),
            gas_cost_usd=price_route.get("gasCostUSD"),
            slippage=slippage_fraction(params),
        )
        return build_transaction_request(
            tx,
            params,
            [self._single_step(params, estimate)],
            approval_address=price_route.get("tokenTransferProxy")
            or self.get_approval_address(chain_id),
            aggregator_id=self.id,
        )
