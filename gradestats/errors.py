"""Error types raised by the statistics engine and its record stores."""

from __future__ import annotations


class StatsError(Exception):
    pass


class DataSourceError(StatsError):
    """Reading score records from the backing store failed."""


class NotFound(StatsError):
    """A class-scoped query matched no score records."""

    def __init__(self, class_id: int) -> None:
        super().__init__(f"No data found for class_id: {class_id}")
        self.class_id = class_id


class ComputationError(StatsError):
    """Input or configuration breaks an invariant the engine relies on."""


__all__ = ["StatsError", "DataSourceError", "NotFound", "ComputationError"]
