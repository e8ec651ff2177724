import enum
from dataclasses import dataclass, field
from datetime import date


class Priority(enum.Enum):
    URGENT = "urgent"
    HIGH = "high"
    NORMAL = "normal"
    LOW = "low"

    @property
    def rank(self) -> int:
        """Severity number: lower ranks are served first."""
        return _PRIORITY_RANK[self]

    @classmethod
    def parse(cls, value: "str | Priority | None") -> "Priority":
        """Normalize a raw priority value; anything unrecognized is NORMAL."""
        if isinstance(value, Priority):
            return value
        if value is None:
            return cls.NORMAL
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            return cls.NORMAL


_PRIORITY_RANK = {
    Priority.URGENT: 0,
    Priority.HIGH: 1,
    Priority.NORMAL: 2,
    Priority.LOW: 3,
}


@dataclass(frozen=True)
class Stage:
    """
    One step of the manufacturing pipeline with finite concurrent throughput.
    """

    name: str
    order: int  # Position in the pipeline, totally ordered
    max_capacity: int  # Concurrent order slots
    target_duration_days: int = 3

    def __post_init__(self) -> None:
        if not self.name:
            raise ValueError("Stage name cannot be empty")


@dataclass(frozen=True)
class StageRequirement:
    stage_name: str
    duration_days: int


@dataclass(frozen=True)
class Order:
    """
    An active order and the stage sequence it still has to go through.

    If ``in_progress`` is set the order is already being worked on at its
    first required stage and has spent ``elapsed_days`` there.
    """

    id: str
    priority: Priority = Priority.NORMAL
    deadline: date | None = None
    required_stages: tuple[StageRequirement, ...] = ()

    # Display metadata (echoed into the schedule view)
    order_number: str = ""
    customer_name: str = ""

    # Entry state
    in_progress: bool = False
    elapsed_days: int = 0

    def __post_init__(self) -> None:
        if not self.id:
            raise ValueError("Order ID cannot be empty")

    @property
    def sort_key(self) -> tuple[int, int, date, str]:
        """Priority rank, then deadline (undated last), then id."""
        if self.deadline is None:
            return (self.priority.rank, 1, date.max, self.id)
        return (self.priority.rank, 0, self.deadline, self.id)


@dataclass(frozen=True)
class ResourcePool:
    resource_type: str
    allocated: float
    available: float


@dataclass(frozen=True)
class OrderQueueSnapshot:
    """Immutable view of every active order at ``as_of``."""

    as_of: date
    orders: tuple[Order, ...] = field(default_factory=tuple)
    resources: tuple[ResourcePool, ...] = field(default_factory=tuple)

    def get_order(self, order_id: str) -> Order | None:
        for order in self.orders:
            if order.id == order_id:
                return order
        return None
