"""
1inch Swap API (v6.0) adapter.

Same-chain only.  ``/swap`` returns the quote and the router transaction in
one call.
"""

from __future__ import annotations

from typing import Any

from core.estimates import build_estimate, build_transaction_request, to_int
from core.params import slippage_fraction
from execution.aggregators.base import BaseAggregator
from shared.errors import QuoteError
from shared.types import SwapParams, TransactionRequestWithEstimate


class OneInch(BaseAggregator):
    display_name = "1inch"

    def get_api_root(self, chain_id: int) -> str:
        self.ensure_chain_supported(chain_id)
        return f"{self.api_root}/{self.get_chain_alias(chain_id)}"

    def _headers(self) -> dict[str, str]:
        headers = {"accept": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        return headers

    def _swap_query(self, params: SwapParams) -> dict[str, Any]:
        query: dict[str, Any] = {
            "src": self._native(params.input.address),
            "dst": self._native(params.output.address),
            "amount": params.input_amount_wei,
            "from": params.quoting_payer,
            "origin": params.quoting_payer,
            "receiver": params.receiver,
            "slippage": self._percent(params.max_slippage_bps),
            "disableEstimate": True,
            "includeGas": True,
            "includeProtocols": True,
            "excludedProtocols": params.exchange_denylist,
        }
        if params.fee_bps and params.referrer:
            query["fee"] = self._percent(params.fee_bps)
            query["referrer"] = params.referrer
        return query

    async def _fetch_quote(self, params: SwapParams) -> dict[str, Any]:
        url = f"{self.get_api_root(params.input.chain_id)}/quote"
        quote = await self._get_json(
            url,
            params={
                "src": self._native(params.input.address),
                "dst": self._native(params.output.address),
                "amount": params.input_amount_wei,
                "includeGas": True,
            },
            headers=self._headers(),
        )
        self._require_output((quote or {}).get("dstAmount"), quote)
        return quote

    async def _build_transaction_request(
        self, params: SwapParams
    ) -> TransactionRequestWithEstimate:
        chain_id = params.input.chain_id
        url = f"{self.get_api_root(chain_id)}/swap"
        swap = await self._get_json(url, params=self._swap_query(params), headers=self._headers())

        tx = swap.get("tx") if swap else None
        if not tx or not swap.get("dstAmount"):
            raise QuoteError(self.id.value, "Swap response has no tx or dstAmount", raw=swap)
        self._check_router(chain_id, tx.get("to"))

        estimate = build_estimate(
            params.input_amount_wei,
            swap["dstAmount"],
            params.input.decimals,
            params.output.decimals,
            gas_cost_wei=to_int(tx.get("gas")) * to_int(tx.get("gasPrice")),
            slippage=slippage_fraction(params),
        )
        return build_transaction_request(
            {**tx, "chainId": chain_id},
            params,
            [self._single_step(params, estimate)],
            approval_address=self.get_approval_address(chain_id),
            aggregator_id=self.id,
        )
