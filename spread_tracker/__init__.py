"""Top-level package for the cross-venue spread tracker.

Subpackages mirror the runtime layers: ``config`` (YAML + pydantic), ``core``
(shared enums, errors, aliases), ``venues`` (market-data adapters), ``market``
(aggregation and price analysis), ``tracking`` (polling scheduler and
notification throttling), ``interfaces`` (Telegram front-end and message
formatting) and ``telemetry`` (logging and the spread journal).
"""

__all__: list[str] = []
