from app.models.purchase.supplier import Supplier
from app.models.inventory.product import Product
from app.models.inventory.product_batch import ProductBatch
from app.models.purchase.po_number_sequence import PONumberSequence
from app.models.purchase.purchase_order_item import PurchaseOrderItem
from app.models.purchase.purchase_order import PurchaseOrder
