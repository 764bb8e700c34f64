"""
Lifecycle rules for purchase orders.

    draft -> sent -> partially_received -> received
      \\        \\              \\
       +--------+--------------+--> cancelled

received and cancelled are terminal. A manual override may move a
non-terminal order to any state except draft; the order is then tagged
StatusSource.MANUAL until the next receipt derives the status again.
"""
import logging
from typing import Iterable, Optional

from app.core.exceptions import ValidationError
from app.models.purchase.purchase_order import PurchaseOrder
from app.models.shared.enums import PurchaseOrderStatus, StatusSource

logger = logging.getLogger(__name__)

TERMINAL_STATUSES = frozenset({PurchaseOrderStatus.RECEIVED, PurchaseOrderStatus.CANCELLED})
RECEIVABLE_STATUSES = frozenset({PurchaseOrderStatus.SENT, PurchaseOrderStatus.PARTIALLY_RECEIVED})
DETAIL_EDITABLE_STATUSES = frozenset({PurchaseOrderStatus.DRAFT, PurchaseOrderStatus.SENT})
MANUAL_TARGETS = frozenset({
    PurchaseOrderStatus.SENT,
    PurchaseOrderStatus.PARTIALLY_RECEIVED,
    PurchaseOrderStatus.RECEIVED,
    PurchaseOrderStatus.CANCELLED,
})


def is_terminal(status: PurchaseOrderStatus) -> bool:
    return status in TERMINAL_STATUSES


def ensure_mutable(po: PurchaseOrder) -> None:
    if is_terminal(po.status):
        raise ValidationError(
            f"Purchase order {po.po_number} is {po.status.value} and can no longer be modified"
        )


def ensure_receivable(po: PurchaseOrder) -> None:
    if po.status not in RECEIVABLE_STATUSES:
        raise ValidationError(
            f"Cannot receive items for purchase order {po.po_number} in status {po.status.value}; "
            f"only sent or partially received orders can be received"
        )


def ensure_details_editable(po: PurchaseOrder) -> None:
    if po.status not in DETAIL_EDITABLE_STATUSES:
        raise ValidationError(
            f"Expected date of purchase order {po.po_number} cannot be changed in status {po.status.value}"
        )


def dispatch(po: PurchaseOrder, supplier_email: Optional[str]) -> bool:
    """
    Apply the dispatch event. Returns True when the order moved draft -> sent,
    False for a resend of an already dispatched order.
    """
    ensure_mutable(po)
    if not supplier_email or not supplier_email.strip():
        raise ValidationError(
            f"Supplier of purchase order {po.po_number} has no email address. "
            f"Update the supplier record with an email before sending this purchase order"
        )
    if po.status != PurchaseOrderStatus.DRAFT:
        return False
    po.status = PurchaseOrderStatus.SENT
    po.status_source = StatusSource.DERIVED
    return True


def cancel(po: PurchaseOrder) -> None:
    ensure_mutable(po)
    po.status = PurchaseOrderStatus.CANCELLED
    po.status_source = StatusSource.DERIVED


def apply_manual_override(po: PurchaseOrder, target: PurchaseOrderStatus) -> bool:
    """Administrative escape hatch; returns False when the order already has the target status"""
    ensure_mutable(po)
    if target not in MANUAL_TARGETS:
        raise ValidationError(f"Status {target.value} cannot be set manually")
    if po.status == target:
        return False
    logger.info(f"Manual status override on {po.po_number}: {po.status.value} -> {target.value}")
    po.status = target
    po.status_source = StatusSource.MANUAL
    return True


def derive_receiving_status(current: PurchaseOrderStatus, items: Iterable) -> PurchaseOrderStatus:
    """Status implied by cumulative received quantities"""
    items = list(items)
    ordered = sum(item.quantity for item in items)
    received = sum(item.received_quantity or 0 for item in items)
    if ordered > 0 and received == ordered:
        return PurchaseOrderStatus.RECEIVED
    if received > 0:
        return PurchaseOrderStatus.PARTIALLY_RECEIVED
    return current
