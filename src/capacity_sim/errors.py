"""Error taxonomy for capacity analysis runs."""


class CapacityPlanningError(Exception):
    """Base class for all capacity planning errors."""


class DataIntegrityError(CapacityPlanningError):
    """
    An order cannot be simulated as given.

    Raised for empty or malformed stage requirements and for stages that the
    StageModel does not know. The simulator rejects only the offending order.
    """

    def __init__(self, order_id: str, reason: str) -> None:
        super().__init__(f"Order {order_id}: {reason}")
        self.order_id = order_id
        self.reason = reason


class ForecastHorizonExceeded(CapacityPlanningError):
    """Requested horizon is longer than the configured maximum."""

    def __init__(self, requested: int, maximum: int) -> None:
        super().__init__(
            f"Requested horizon of {requested} days exceeds maximum of {maximum}"
        )
        self.requested = requested
        self.maximum = maximum


class ConfigurationError(CapacityPlanningError):
    """The stage pipeline is unusable (no stages, duplicates, bad capacity)."""
