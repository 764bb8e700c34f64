from fastapi import APIRouter
from app.api.v1.endpoints.inventory import products
from app.api.v1.endpoints.purchase import purchase_orders, suppliers

api_router = APIRouter()

# Purchase routes
api_router.include_router(purchase_orders.router, prefix="/purchase/purchase-orders", tags=["Purchase"])
api_router.include_router(suppliers.router, prefix="/purchase/suppliers", tags=["Purchase"])

# Inventory routes
api_router.include_router(products.router, prefix="/inventory/products", tags=["Inventory"])
