from enum import Enum

class PurchaseOrderStatus(str, Enum):
    DRAFT = "draft"
    SENT = "sent"
    PARTIALLY_RECEIVED = "partially_received"
    RECEIVED = "received"
    CANCELLED = "cancelled"

class StatusSource(str, Enum):
    DERIVED = "derived"    # set by a lifecycle event (dispatch, receipt, cancel)
    MANUAL = "manual"      # set by an administrative override
