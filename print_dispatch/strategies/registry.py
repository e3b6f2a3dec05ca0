from typing import Optional

from .base import DispatchStrategy, DocumentClass


class StrategyRegistry:
    """Registry mapping document classes to dispatch strategies."""

    def __init__(self):
        self._strategies: dict[DocumentClass, DispatchStrategy] = {}

    def register(self, strategy: DispatchStrategy) -> None:
        """Register a strategy under its document class."""
        self._strategies[strategy.document_class] = strategy

    def get(self, document_class: DocumentClass) -> Optional[DispatchStrategy]:
        """Get the strategy for a document class."""
        return self._strategies.get(document_class)

    def list_all(self) -> list[DispatchStrategy]:
        """List all registered strategies."""
        return list(self._strategies.values())
