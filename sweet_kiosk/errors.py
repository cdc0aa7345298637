class KioskError(Exception):
    status_code = 500
    message = "Internal Server Error"

    def __init__(self, message: str | None = None):
        if message is not None:
            self.message = message
        super().__init__(self.message)


class ValidationError(KioskError):
    status_code = 400
    message = "Invalid request"


class InvalidStatus(ValidationError):
    message = "Invalid status"


class OutOfInventoryError(KioskError):
    status_code = 400

    def __init__(self, sweet_name: str):
        self.sweet_name = sweet_name
        super().__init__(f"Insufficient stock for {sweet_name}")


class Conflict(KioskError):
    status_code = 409
    message = "Conflict"


class TokenConflict(Conflict):
    # The kiosk clients expect a plain 400 for a reused token.
    status_code = 400
    message = "Token already in use"


class InvalidTransition(Conflict):
    def __init__(self, current: str, new: str):
        super().__init__(f"Cannot change order status from {current} to {new}")


class OrderIdUnavailable(Conflict):
    message = "Could not allocate an order id, please retry"


class NotFound(KioskError):
    status_code = 404
    message = "Not found"


class SweetNotFound(NotFound):
    message = "One or more sweets not found"


class OrderNotFound(NotFound):
    message = "Order not found"


class InternalError(KioskError):
    pass
