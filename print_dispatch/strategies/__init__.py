from .base import (
    DispatchResult,
    DispatchStrategy,
    DocumentClass,
    Fragment,
    PrintOptions,
    PrintRequest,
)
from .registry import StrategyRegistry

__all__ = [
    "DispatchResult",
    "DispatchStrategy",
    "DocumentClass",
    "Fragment",
    "PrintOptions",
    "PrintRequest",
    "StrategyRegistry",
]
