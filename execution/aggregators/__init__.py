"""Vendor adapters keyed by aggregator id."""

from __future__ import annotations

from collections.abc import Mapping

from execution.aggregators.base import BaseAggregator
from execution.aggregators.kyberswap import KyberSwap
from execution.aggregators.lifi import LiFi
from execution.aggregators.one_inch import OneInch
from execution.aggregators.openocean import OpenOcean
from execution.aggregators.paraswap import ParaSwap
from shared.types import AggId, AggregatorConfig

AGGREGATOR_CLASSES: dict[AggId, type[BaseAggregator]] = {
    AggId.LIFI: LiFi,
    AggId.ONE_INCH: OneInch,
    AggId.PARASWAP: ParaSwap,
    AggId.KYBERSWAP: KyberSwap,
    AggId.OPENOCEAN: OpenOcean,
}


def build_aggregators(configs: Mapping[AggId, AggregatorConfig]) -> dict[AggId, BaseAggregator]:
    """Instantiate one adapter per configured aggregator id."""
    return {
        agg_id: AGGREGATOR_CLASSES[agg_id](cfg)
        for agg_id, cfg in configs.items()
        if agg_id in AGGREGATOR_CLASSES
    }


__all__ = [
    "AGGREGATOR_CLASSES",
    "BaseAggregator",
    "KyberSwap",
    "LiFi",
    "OneInch",
    "OpenOcean",
    "ParaSwap",
    "build_aggregators",
]
