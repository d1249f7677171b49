from execution.aggregators import AGGREGATOR_CLASSES, BaseAggregator, build_aggregators
from execution.swap_router import SwapRouter

__all__ = [
    "AGGREGATOR_CLASSES",
    "BaseAggregator",
    "SwapRouter",
    "build_aggregators",
]
