"""
Order State Machine

Legal edges for order status and payment status. The two graphs are
independent; the only coupling is the stock release the Order Service
performs when an order enters `cancelled`.
"""

from orderdesk.exceptions import InvalidPaymentTransition, InvalidStatusTransition, OrderNotDeletable
from orderdesk.models.order import OrderStatus, PaymentStatus

STATUS_TRANSITIONS: dict[OrderStatus, frozenset[OrderStatus]] = {
    OrderStatus.DRAFT: frozenset({OrderStatus.CONFIRMED, OrderStatus.CANCELLED}),
    OrderStatus.CONFIRMED: frozenset({OrderStatus.PROCESSING, OrderStatus.CANCELLED}),
    OrderStatus.PROCESSING: frozenset({OrderStatus.SHIPPED, OrderStatus.CANCELLED}),
    OrderStatus.SHIPPED: frozenset({OrderStatus.DELIVERED, OrderStatus.CANCELLED}),
    OrderStatus.DELIVERED: frozenset(),
    OrderStatus.CANCELLED: frozenset(),
}

PAYMENT_TRANSITIONS: dict[PaymentStatus, frozenset[PaymentStatus]] = {
    PaymentStatus.PENDING: frozenset({PaymentStatus.PARTIAL}),
    PaymentStatus.PARTIAL: frozenset({PaymentStatus.PAID, PaymentStatus.REFUNDED}),
    PaymentStatus.PAID: frozenset({PaymentStatus.REFUNDED}),
    PaymentStatus.REFUNDED: frozenset(),
}

TERMINAL_STATUSES = frozenset(status for status, targets in STATUS_TRANSITIONS.items() if not targets)


def _coerce_status(value, raw_current, raw_target) -> OrderStatus:
    try:
        return OrderStatus(value)
    except ValueError:
        raise InvalidStatusTransition(str(raw_current), str(raw_target)) from None


def _coerce_payment(value, raw_current, raw_target) -> PaymentStatus:
    try:
        return PaymentStatus(value)
    except ValueError:
        raise InvalidPaymentTransition(str(raw_current), str(raw_target)) from None


def can_transition_status(current: OrderStatus | str, target: OrderStatus | str) -> bool:
    try:
        return OrderStatus(target) in STATUS_TRANSITIONS[OrderStatus(current)]
    except ValueError:
        return False


def allowed_next_statuses(current: OrderStatus | str) -> list[OrderStatus]:
    targets = STATUS_TRANSITIONS[OrderStatus(current)]
    return [status for status in OrderStatus if status in targets]


def is_terminal(status: OrderStatus | str) -> bool:
    return OrderStatus(status) in TERMINAL_STATUSES


def validate_status_transition(current: OrderStatus | str, target: OrderStatus | str) -> OrderStatus:
    """
    Return the target status if `current -> target` is a legal edge.

    Raises:
        InvalidStatusTransition: unknown status or edge not in the graph
    """
    current_status = _coerce_status(current, current, target)
    target_status = _coerce_status(target, current, target)
    if target_status not in STATUS_TRANSITIONS[current_status]:
        raise InvalidStatusTransition(current_status.value, target_status.value)
    return target_status


def validate_payment_transition(current: PaymentStatus | str, target: PaymentStatus | str) -> PaymentStatus:
    """
    Return the target payment status if `current -> target` is a legal edge.

    Raises:
        InvalidPaymentTransition: unknown status or edge not in the graph
    """
    current_status = _coerce_payment(current, current, target)
    target_status = _coerce_payment(target, current, target)
    if target_status not in PAYMENT_TRANSITIONS[current_status]:
        raise InvalidPaymentTransition(current_status.value, target_status.value)
    return target_status


def ensure_deletable(order_id: int, status: OrderStatus | str) -> None:
    """Only drafts may be hard-deleted; everything else must be cancelled."""
    if OrderStatus(status) != OrderStatus.DRAFT:
        raise OrderNotDeletable(order_id, OrderStatus(status).value)
