"""Market data aggregation: quotes, availability caches and price analysis.

Import from the submodules (``market.models``, ``market.aggregator``,
``market.price_analyzer``, ``market.availability``). Venue adapters depend on
``market.models``, so this package does not import the aggregator eagerly.
"""

__all__: list[str] = []
