"""
Shared pytest configuration and fixtures for the swap router tests.

Log files go to a throwaway directory; ``SWAP_LOG_DIR`` must be set before
``swap_logging.logger_manager`` is first imported.
"""

from __future__ import annotations

import os
import tempfile

os.environ.setdefault("SWAP_LOG_DIR", tempfile.mkdtemp(prefix="swap-router-logs-"))

from decimal import Decimal  # noqa: E402
from unittest.mock import MagicMock  # noqa: E402

import pytest  # noqa: E402

from shared.types import (  # noqa: E402
    AggId,
    AggregatorConfig,
    Estimate,
    Protocol,
    ProtocolType,
    StepType,
    SwapParams,
    SwapStep,
    Token,
    TransactionRequestWithEstimate,
)

# ---------------------------------------------------------------------------
# Decimal helper
# ---------------------------------------------------------------------------


def _d(v) -> Decimal:
    """Shorthand Decimal factory."""
    return Decimal(str(v))


# ---------------------------------------------------------------------------
# Sample tokens and addresses (BSC)
# ---------------------------------------------------------------------------

BSC = 56
SAMPLE_PAYER = "0xd8dA6BF26964aF9D7eEd9e03E53415D37aA96045"
SAMPLE_RECEIVER = "0x1234567890abcdef1234567890abcdef12345678"

USDC = Token(
    chain_id=BSC,
    address="0x8AC76a51cc950d9822D68b83fE1Ad97B32Cd580d",
    decimals=18,
    symbol="USDC",
)
WETH = Token(
    chain_id=BSC,
    address="0x2170Ed0880ac9A755fd29B2688956BD959F933F8",
    decimals=18,
    symbol="WETH",
)
USDT_SIX = Token(
    chain_id=BSC,
    address="0x55d398326f99059fF775485246999027B3197955",
    decimals=6,
    symbol="USDT",
)

# 1000 USDC
SAMPLE_AMOUNT_WEI = 1000 * 10**18

STANDARD_APP_CONFIG = {
    "default_integrator": "btr-swap",
    "logging": {"log_dir": "logs"},
}

STANDARD_TIMING_CONFIG = {
    "aggregator": {
        "request_timeout_seconds": 5,
        "expiry_seconds": 5,
    },
}

STANDARD_AGG_CONFIG = {
    "default_aggregators": ["LIFI", "ONE_INCH", "PARASWAP", "KYBERSWAP", "OPENOCEAN"],
    "contract_call_aggregators": ["LIFI"],
    "aggregators": {},
}


def make_swap_params(**overrides) -> SwapParams:
    fields = {
        "input": USDC,
        "output": WETH,
        "input_amount_wei": SAMPLE_AMOUNT_WEI,
        "payer": SAMPLE_PAYER,
    }
    fields.update(overrides)
    return SwapParams(**fields)


def make_tr(
    agg_id: AggId | None,
    output: str | Decimal,
    params: SwapParams | None = None,
    to: str = "0x6352a56caadC4F1E25CD6c75970Fa768A3304e64",
    data: str = "0xdeadbeef",
) -> TransactionRequestWithEstimate:
    """Single-step record with an input of 1000 and the given human output."""
    params = params or make_swap_params()
    out = _d(output)
    inp = _d(1000)
    estimate = Estimate(
        input=inp,
        input_wei=SAMPLE_AMOUNT_WEI,
        output=out,
        output_wei=int(out * 10**18),
        exchange_rate=out / inp,
        gas_cost_usd=_d("0.1"),
    )
    step = SwapStep(
        type=StepType.SWAP,
        input=params.input,
        output=params.output,
        input_chain_id=params.input.chain_id,
        output_chain_id=params.output.chain_id,
        protocol=Protocol(id="test", name="Test", type=ProtocolType.AGGREGATOR),
        estimate=estimate,
    )
    return TransactionRequestWithEstimate(
        from_address=params.test_payer or params.payer,
        to=to,
        data=data,
        value=0,
        chain_id=params.input.chain_id,
        approval_address=to,
        params=params,
        steps=(step,),
        global_estimate=estimate,
        aggregator_id=agg_id,
    )


def make_agg_config(agg_id: AggId, api_root: str, **overrides) -> AggregatorConfig:
    fields = {
        "aggregator_id": agg_id,
        "api_root": api_root,
        "rate_limit_rps": 0,
        "aliases": {},
        "routers": {},
    }
    fields.update(overrides)
    return AggregatorConfig(**fields)


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def swap_params() -> SwapParams:
    return make_swap_params()


@pytest.fixture
def params_factory():
    """Build ``SwapParams`` (1000 USDC -> WETH on BSC) with field overrides."""
    return make_swap_params


@pytest.fixture
def tr_factory():
    """Build a single-step ``TransactionRequestWithEstimate`` for a given output."""
    return make_tr


@pytest.fixture
def agg_config_factory():
    """Build an ``AggregatorConfig`` with rate limiting disabled."""
    return make_agg_config


@pytest.fixture
def mock_config_loader():
    """
    Provide a mock ConfigLoader that returns standard configs.

    Usage in tests:
        def test_something(mock_config_loader):
            mock_config_loader.get_timing_config.return_value = {...}
    """
    loader = MagicMock()
    loader.get_app_config.return_value = dict(STANDARD_APP_CONFIG)
    loader.get_timing_config.return_value = dict(STANDARD_TIMING_CONFIG)
    loader.get_aggregator_config.return_value = dict(STANDARD_AGG_CONFIG)
    return loader
