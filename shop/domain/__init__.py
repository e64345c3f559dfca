from shop.domain.order import Order, OrderLine, OrderStatus
from shop.domain.product import Product
from shop.domain.purchase import PurchaseOrder, PurchaseOrderLine, PurchaseOrderStatus

__all__ = [
    "Order",
    "OrderLine",
    "OrderStatus",
    "Product",
    "PurchaseOrder",
    "PurchaseOrderLine",
    "PurchaseOrderStatus",
]
