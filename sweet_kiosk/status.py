import enum

from sweet_kiosk.errors import InvalidStatus, InvalidTransition, ValidationError


class OrderStatus(str, enum.Enum):
    PENDING = "Pending"
    PREPARING = "Preparing"
    READY = "Ready"
    COMPLETED = "Completed"


INITIAL_STATUS = OrderStatus.PENDING

_ORDERED = list(OrderStatus)

# Any status may move to any other, including back from Completed.
FREE_TRANSITIONS = {status: frozenset(OrderStatus) for status in OrderStatus}

# Forward moves only; Completed is terminal.
FORWARD_TRANSITIONS = {
    status: frozenset(_ORDERED[index:]) for index, status in enumerate(_ORDERED)
}


class StatusMachine:
    def __init__(self, transitions=None):
        self.transitions = transitions or FREE_TRANSITIONS

    @classmethod
    def strict(cls) -> "StatusMachine":
        return cls(FORWARD_TRANSITIONS)

    def parse(self, value) -> OrderStatus:
        """Map a raw status value onto the enum, case-sensitively."""
        if value is None or value == "":
            raise ValidationError("Status is required")
        if isinstance(value, OrderStatus):
            return value
        try:
            return OrderStatus(value)
        except ValueError:
            raise InvalidStatus()

    def check(self, current: OrderStatus, new: OrderStatus):
        if new not in self.transitions[current]:
            raise InvalidTransition(current.value, new.value)
