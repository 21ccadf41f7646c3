class PaymentStatus:
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"


class OrderStatus:
    PENDING = "pending"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"


class CartStatus:
    ACTIVE = "active"
    CHECKED_OUT = "checked_out"


# payment_status moves forward only; a completed payment is final
ALLOWED_PAYMENT_TRANSITIONS = {
    PaymentStatus.PENDING: [PaymentStatus.COMPLETED, PaymentStatus.FAILED],
    PaymentStatus.FAILED: [PaymentStatus.COMPLETED],
    PaymentStatus.COMPLETED: [],
}
