"""
GraphQL schema definition using Ariadne.
"""
from decimal import Decimal
from pathlib import Path
from uuid import UUID

from ariadne import (
    MutationType,
    QueryType,
    ScalarType,
    load_schema_from_path,
    make_executable_schema,
)

from shop.domain.order import Order, OrderLine
from shop.domain.product import Product
from shop.domain.purchase import PurchaseOrder, PurchaseOrderLine
from shop.services import CatalogService, OrderService, PurchaseService

# Load schema from .graphql files
SCHEMAS_DIR = Path(__file__).parent / "schemas"
type_defs = load_schema_from_path(SCHEMAS_DIR)

query = QueryType()
mutation = MutationType()


def product_to_dict(product: Product) -> dict:
    return {
        "id": product.id,
        "name": product.name,
        "description": product.description,
        "unitPrice": product.unit_price,
        "stock": product.stock,
        "imageRef": product.image_ref,
    }


def order_line_to_dict(order_id: UUID, line: OrderLine) -> dict:
    return {
        "id": line.id,
        "orderId": order_id,
        "productId": line.product_id,
        "quantity": line.quantity,
        "unitPrice": line.unit_price,
    }


def order_to_dict(order: Order) -> dict:
    return {
        "id": order.id,
        "customerId": order.customer_id,
        "totalAmount": order.total_amount,
        "paymentMethod": order.payment_method,
        "status": order.status.value,
        "lines": [order_line_to_dict(order.id, line) for line in order.lines],
    }


def purchase_line_to_dict(purchase_order_id: UUID, line: PurchaseOrderLine) -> dict:
    return {
        "id": line.id,
        "purchaseOrderId": purchase_order_id,
        "productId": line.product_id,
        "quantity": line.quantity,
        "unitCost": line.unit_cost,
    }


def purchase_order_to_dict(purchase_order: PurchaseOrder) -> dict:
    return {
        "id": purchase_order.id,
        "supplierId": purchase_order.supplier_id,
        "status": purchase_order.status.value,
        "totalCost": purchase_order.total_cost,
        "lines": [purchase_line_to_dict(purchase_order.id, line) for line in purchase_order.lines],
    }


@query.field("product")
def resolve_product(_, info, id):
    """Resolve product query; null when the product does not exist."""
    product = CatalogService().get_product(id)
    if product is None:
        return None
    return product_to_dict(product)


@query.field("order")
def resolve_order(_, info, id):
    """Resolve order query."""
    order = OrderService().get_order(id)
    if order is None:
        return None
    return order_to_dict(order)


@query.field("ordersByCustomer")
def resolve_orders_by_customer(_, info, customerId, limit=50, offset=0):
    """Resolve orders by customer query with pagination."""
    orders = OrderService().get_orders_by_customer(customerId, limit=limit, offset=offset)
    return [order_to_dict(order) for order in orders]


@mutation.field("createOrder")
def resolve_create_order(_, info, input: dict):
    """Resolve create order mutation."""
    result = OrderService().create_order(
        customer_id=input["customerId"],
        total_amount=input["totalAmount"],
        payment_method=input["paymentMethod"],
        idempotency_key=input.get("idempotencyKey"),
    )
    return {
        "orderId": result["order_id"],
        "status": result["status"],
        "replayed": result["replayed"],
    }


@mutation.field("createOrderLine")
def resolve_create_order_line(_, info, input: dict):
    """Resolve create order line mutation (decrements stock)."""
    line = OrderService().add_order_line(
        order_id=input["orderId"],
        product_id=input["productId"],
        quantity=input["quantity"],
        unit_price=input["unitPrice"],
    )
    return order_line_to_dict(input["orderId"], line)


@mutation.field("updateOrderStatus")
def resolve_update_order_status(_, info, orderId, status):
    """Resolve admin order status mutation."""
    order = OrderService().set_status(orderId, status)
    return order_to_dict(order)


@mutation.field("confirmDelivery")
def resolve_confirm_delivery(_, info, orderId, customerId):
    """Resolve customer delivery confirmation mutation."""
    order = OrderService().confirm_delivery(orderId, customerId)
    return order_to_dict(order)


@mutation.field("createPurchaseOrder")
def resolve_create_purchase_order(_, info, input: dict):
    """Resolve create purchase order mutation."""
    purchase_order = PurchaseService().create_purchase_order(input["supplierId"])
    return purchase_order_to_dict(purchase_order)


@mutation.field("createPurchaseOrderLine")
def resolve_create_purchase_order_line(_, info, input: dict):
    """Resolve create purchase order line mutation (increments stock)."""
    line = PurchaseService().add_purchase_line(
        purchase_order_id=input["purchaseOrderId"],
        product_id=input["productId"],
        quantity=input["quantity"],
        unit_cost=input["unitCost"],
    )
    return purchase_line_to_dict(input["purchaseOrderId"], line)


# Define custom scalars
decimal_scalar = ScalarType("Decimal")
uuid_scalar = ScalarType("UUID")


@decimal_scalar.serializer
def serialize_decimal(value):
    """Serialize Decimal to string."""
    return str(value)


@decimal_scalar.value_parser
def parse_decimal_value(value):
    """Parse Decimal from string."""
    return Decimal(str(value))


@uuid_scalar.serializer
def serialize_uuid(value):
    """Serialize UUID to string."""
    return str(value)


@uuid_scalar.value_parser
def parse_uuid_value(value):
    """Parse UUID from string."""
    if isinstance(value, UUID):
        return value
    return UUID(str(value))


@uuid_scalar.literal_parser
def parse_uuid_literal(ast, variable_values=None):
    """Parse UUID from GraphQL literal."""
    return UUID(str(ast.value))


# Create executable schema
schema = make_executable_schema(
    type_defs,
    query,
    mutation,
    decimal_scalar,
    uuid_scalar,
)
