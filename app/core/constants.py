import enum

# Offset between a fine's issue date and its payment deadline
FINE_EXPIRY_DAYS = 14


class UserRole(enum.Enum):
    DRIVER = "driver"
    DIVISION = "division"


class FineStatus(enum.Enum):
    NOT_PAID = "not paid"
    PAID = "paid"


class PaymentStatus(enum.Enum):
    SUCCEEDED = "succeeded"


class WebhookEventType(enum.Enum):
    CHECKOUT_SESSION_COMPLETED = "checkout.session.completed"
