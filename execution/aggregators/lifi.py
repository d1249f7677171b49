"""
LI.FI API adapter.

LI.FI is a meta-aggregator: one quote may chain several tools (DEX swaps,
bridges, fee collection), returned as ``includedSteps`` each carrying its
own ``gasCosts``/``feeCosts`` lists.  It is the only adapter that supports
cross-chain routes, destination contract calls and status tracking.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any

from core.estimates import build_estimate, build_transaction_request, cost_fields, to_decimal
from execution.aggregators.base import BaseAggregator
from shared.constants import BPS_DENOMINATOR
from shared.errors import QuoteError, ValidationError
from shared.types import (
    OpStatus,
    Protocol,
    ProtocolType,
    StatusParams,
    StatusResponse,
    StepType,
    SwapParams,
    SwapStep,
    Token,
    TransactionRequestWithEstimate,
)

_STEP_TYPES = {
    "swap": StepType.SWAP,
    "cross": StepType.BRIDGE,
    "lifi": StepType.CROSS_CHAIN_SWAP,
}

_STATUSES = {
    "NOT_FOUND": OpStatus.NOT_FOUND,
    "INVALID": OpStatus.FAILED,
    "PENDING": OpStatus.PENDING,
    "DONE": OpStatus.DONE,
    "FAILED": OpStatus.FAILED,
}


def _parse_token(raw: Mapping[str, Any], fallback_chain_id: int) -> Token:
    price = raw.get("priceUSD")
    return Token(
        chain_id=int(raw.get("chainId") or fallback_chain_id),
        address=raw.get("address") or "",
        decimals=int(raw["decimals"]),
        symbol=raw.get("symbol") or "",
        name=raw.get("name") or "",
        price_usd=to_decimal(price) if price not in (None, "") else None,
        logo=raw.get("logoURI") or "",
    )


def _fraction(bps: int | None) -> str:
    return str(to_decimal(bps or 0) / BPS_DENOMINATOR)


class LiFi(BaseAggregator):
    display_name = "LI.FI"
    cross_chain = True
    supports_contract_calls = True

    def _headers(self) -> dict[str, str]:
        headers = {"accept": "application/json"}
        if self.api_key:
            headers["x-lifi-api-key"] = self.api_key
        return headers

    def _convert_params(self, params: SwapParams) -> dict[str, Any]:
        query: dict[str, Any] = {
            "fromChain": params.input.chain_id,
            "fromToken": params.input.address,
            "fromAddress": params.quoting_payer,
            "fromAmount": params.input_amount_wei,
            "toChain": self.get_chain_alias(params.output.chain_id),
            "toToken": params.output.address,
            "toAddress": params.receiver,
            "integrator": params.integrator,
            "referrer": params.referrer,
            "order": "CHEAPEST",
            "slippage": _fraction(params.max_slippage_bps),
            "denyBridges": params.bridge_denylist,
            "denyExchanges": params.exchange_denylist,
        }
        if params.fee_bps:
            query["fee"] = _fraction(params.fee_bps)
        return query

    def _contract_calls_body(self, params: SwapParams) -> dict[str, Any]:
        query = self._convert_params(params)
        body: dict[str, Any] = {
            key: query[key]
            for key in (
                "fromChain",
                "fromToken",
                "fromAddress",
                "fromAmount",
                "toChain",
                "toToken",
                "integrator",
                "slippage",
            )
        }
        body["fromAmount"] = str(params.input_amount_wei)
        if params.output_amount_wei:
            body["toAmount"] = str(params.output_amount_wei)
        if params.referrer:
            body["referrer"] = params.referrer
        if params.fee_bps:
            body["fee"] = query["fee"]
        if params.bridge_denylist:
            body["denyBridges"] = list(params.bridge_denylist)
        if params.exchange_denylist:
            body["denyExchanges"] = list(params.exchange_denylist)
        calls = []
        for call in params.custom_contract_calls:
            if not call.to_address:
                raise ValidationError("Custom contract call has no target address")
            calls.append(
                {
                    "fromAmount": str(params.output_amount_wei or params.input_amount_wei),
                    "fromTokenAddress": params.output.address,
                    "toContractAddress": call.to_address,
                    "toContractCallData": call.call_data,
                    "toContractGasLimit": str(call.gas_limit or 0),
                }
            )
        body["contractCalls"] = calls
        return body

    # ------------------------------------------------------------------
    # Response parsing
    # ------------------------------------------------------------------

    def _parse_steps(self, raw_steps: Sequence[Mapping[str, Any]]) -> list[SwapStep]:
        steps = []
        for raw in raw_steps:
            action = raw["action"]
            est = raw["estimate"]
            from_token = _parse_token(action["fromToken"], action.get("fromChainId", 0))
            to_token = _parse_token(action["toToken"], action.get("toChainId", 0))
            tool = raw.get("toolDetails") or {}
            kind = raw.get("type", "")
            name = tool.get("name") or raw.get("tool") or ""
            steps.append(
                SwapStep(
                    id=raw.get("id", ""),
                    type=_STEP_TYPES.get(kind, StepType.TRANSFER),
                    description=f"{name or 'Step'} via LI.FI",
                    input=from_token,
                    output=to_token,
                    input_chain_id=int(action.get("fromChainId") or from_token.chain_id),
                    output_chain_id=int(action.get("toChainId") or to_token.chain_id),
                    payer=action.get("fromAddress"),
                    receiver=action.get("toAddress"),
                    protocol=Protocol(
                        id=tool.get("key") or raw.get("tool") or "",
                        name=name,
                        type=ProtocolType.DEX if kind == "swap" else ProtocolType.BRIDGE,
                        logo=tool.get("logoURI") or "",
                    ),
                    estimate=build_estimate(
                        est["fromAmount"],
                        est["toAmount"],
                        from_token.decimals,
                        to_token.decimals,
                        slippage=action.get("slippage"),
                        **cost_fields(est.get("gasCosts"), est.get("feeCosts")),
                    ),
                )
            )
        return steps

    # ------------------------------------------------------------------
    # Vendor hooks
    # ------------------------------------------------------------------

    async def _fetch_quote(self, params: SwapParams) -> dict[str, Any]:
        root = self.get_api_root(params.input.chain_id)
        if params.custom_contract_calls:
            quote = await self._post_json(
                f"{root}/quote/contractCalls",
                json_data=self._contract_calls_body(params),
                headers=self._headers(),
            )
        else:
            quote = await self._get_json(
                f"{root}/quote", params=self._convert_params(params), headers=self._headers()
            )
        if not quote or not quote.get("action", {}).get("toToken"):
            raise QuoteError(self.id.value, "Quote response missing action", raw=quote)
        self._require_output(quote.get("estimate", {}).get("toAmount"), quote)
        return quote

    async def _build_transaction_request(
        self, params: SwapParams
    ) -> TransactionRequestWithEstimate:
        chain_id = params.input.chain_id
        quote = await self._fetch_quote(params)
        tx = quote.get("transactionRequest")
        if not tx:
            raise QuoteError(self.id.value, "Quote has no transactionRequest", raw=quote)
        self._check_router(chain_id, tx.get("to"))

        steps = self._parse_steps(quote.get("includedSteps") or [quote])
        return build_transaction_request(
            tx,
            params,
            steps,
            approval_address=quote["estimate"].get("approvalAddress")
            or self.get_approval_address(chain_id),
            aggregator_id=self.id,
        )

    # ------------------------------------------------------------------
    # Status
    # ------------------------------------------------------------------

    async def get_status(self, status_params: StatusParams) -> StatusResponse:
        """
        Look up a submitted transaction.

        A 404 from the API is reported as ``NOT_FOUND`` rather than an error.
        """
        if not status_params.tx_hash:
            raise ValidationError("Missing transaction hash")
        query = {
            "txHash": status_params.tx_hash,
            "fromChain": status_params.input_chain_id,
            "toChain": status_params.output_chain_id,
        }
        try:
            with self._vendor_errors("status"):
                resp = await self._get_json(
                    f"{self.api_root}/status", params=query, headers=self._headers()
                )
        except QuoteError as exc:
            if exc.http_status != 404:
                raise
            return StatusResponse(
                id=status_params.tx_hash,
                status=OpStatus.NOT_FOUND,
                tx_hash=status_params.tx_hash,
                substatus_message="Transaction not found by LI.FI",
            )

        if not resp or (not resp.get("status") and not (resp.get("sending") or {}).get("txHash")):
            raise QuoteError(self.id.value, "Invalid status response", raw=resp)

        sending = resp.get("sending") or {}
        receiving = resp.get("receiving") or {}
        status = _STATUSES.get(str(resp.get("status", "")).upper(), OpStatus.PENDING)
        # Source transaction seen but not yet indexed as a transfer
        if status is OpStatus.NOT_FOUND and sending.get("txHash") == status_params.tx_hash:
            status = OpStatus.PENDING
        return StatusResponse(
            id=resp.get("transactionId") or status_params.tx_hash,
            status=status,
            tx_hash=sending.get("txHash") or status_params.tx_hash,
            sending_tx=sending.get("txHash"),
            receiving_tx=receiving.get("txHash"),
            substatus=resp.get("substatus"),
            substatus_message=resp.get("substatusMessage"),
        )
