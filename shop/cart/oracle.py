"""
Stock Oracle: the remote product/order service as seen by the cart engine.

The engine consumes three operations (product lookup, order header creation,
order line creation) plus the order status calls used by the tracker.
`GraphQLStockOracle` speaks to the shop's GraphQL endpoint over HTTP.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Protocol
from uuid import UUID, uuid4

import requests

from shop.cart.errors import NetworkFailure, RemoteRejection

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProductSnapshot:
    """Product price and stock as reported by the oracle right now."""
    id: UUID
    name: str
    unit_price: Decimal
    stock: int
    image_ref: str = ""
    description: str = ""


@dataclass(frozen=True)
class OrderReceipt:
    order_id: UUID
    status: str
    replayed: bool = False


@dataclass(frozen=True)
class OrderLineReceipt:
    id: UUID
    order_id: UUID
    product_id: UUID
    quantity: int
    unit_price: Decimal


class StockOracle(Protocol):
    def get_product(self, product_id: UUID) -> ProductSnapshot | None:
        ...

    def create_order(
        self,
        customer_id: UUID,
        total_amount: Decimal,
        payment_method: str,
        idempotency_key: str | None = None,
    ) -> OrderReceipt:
        ...

    def create_order_line(
        self,
        order_id: UUID,
        product_id: UUID,
        quantity: int,
        unit_price: Decimal,
    ) -> OrderLineReceipt:
        """Server decrements the product's stock by `quantity` as a side effect."""
        ...


class OrderStatusGateway(Protocol):
    def get_order_status(self, order_id: UUID) -> str | None:
        ...

    def update_order_status(self, order_id: UUID, status: str) -> str:
        ...

    def confirm_delivery(self, order_id: UUID, customer_id: UUID) -> str:
        ...


PRODUCT_QUERY = """
    query GetProduct($id: UUID!) {
        product(id: $id) {
            id
            name
            description
            unitPrice
            stock
            imageRef
        }
    }
"""

CREATE_ORDER_MUTATION = """
    mutation CreateOrder($input: CreateOrderInput!) {
        createOrder(input: $input) {
            orderId
            status
            replayed
        }
    }
"""

CREATE_ORDER_LINE_MUTATION = """
    mutation CreateOrderLine($input: CreateOrderLineInput!) {
        createOrderLine(input: $input) {
            id
            orderId
            productId
            quantity
            unitPrice
        }
    }
"""

ORDER_STATUS_QUERY = """
    query GetOrderStatus($id: UUID!) {
        order(id: $id) {
            id
            status
        }
    }
"""

UPDATE_ORDER_STATUS_MUTATION = """
    mutation UpdateOrderStatus($orderId: UUID!, $status: OrderStatus!) {
        updateOrderStatus(orderId: $orderId, status: $status) {
            id
            status
        }
    }
"""

CONFIRM_DELIVERY_MUTATION = """
    mutation ConfirmDelivery($orderId: UUID!, $customerId: UUID!) {
        confirmDelivery(orderId: $orderId, customerId: $customerId) {
            id
            status
        }
    }
"""


class GraphQLStockOracle:
    """Oracle client for the shop GraphQL API."""

    def __init__(
        self,
        url: str,
        session: requests.Session | None = None,
        timeout: float | None = None,
    ):
        self.url = url
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.update({
            "Content-Type": "application/json",
        })

    def get_product(self, product_id: UUID) -> ProductSnapshot | None:
        data = self.execute(PRODUCT_QUERY, {"id": str(product_id)}, "GetProduct")
        product = data.get("product")
        if product is None:
            return None
        return ProductSnapshot(
            id=UUID(product["id"]),
            name=product["name"],
            unit_price=Decimal(product["unitPrice"]),
            stock=int(product["stock"]),
            image_ref=product.get("imageRef") or "",
            description=product.get("description") or "",
        )

    def create_order(
        self,
        customer_id: UUID,
        total_amount: Decimal,
        payment_method: str,
        idempotency_key: str | None = None,
    ) -> OrderReceipt:
        variables = {
            "input": {
                "customerId": str(customer_id),
                "totalAmount": str(total_amount),
                "paymentMethod": payment_method,
                "idempotencyKey": idempotency_key,
            }
        }
        result = self.execute(CREATE_ORDER_MUTATION, variables, "CreateOrder")["createOrder"]
        return OrderReceipt(
            order_id=UUID(result["orderId"]),
            status=result["status"],
            replayed=bool(result.get("replayed")),
        )

    def create_order_line(
        self,
        order_id: UUID,
        product_id: UUID,
        quantity: int,
        unit_price: Decimal,
    ) -> OrderLineReceipt:
        variables = {
            "input": {
                "orderId": str(order_id),
                "productId": str(product_id),
                "quantity": quantity,
                "unitPrice": str(unit_price),
            }
        }
        result = self.execute(CREATE_ORDER_LINE_MUTATION, variables, "CreateOrderLine")["createOrderLine"]
        return OrderLineReceipt(
            id=UUID(result["id"]),
            order_id=UUID(result["orderId"]),
            product_id=UUID(result["productId"]),
            quantity=int(result["quantity"]),
            unit_price=Decimal(result["unitPrice"]),
        )

    def get_order_status(self, order_id: UUID) -> str | None:
        order = self.execute(ORDER_STATUS_QUERY, {"id": str(order_id)}, "GetOrderStatus").get("order")
        if order is None:
            return None
        return order["status"]

    def update_order_status(self, order_id: UUID, status: str) -> str:
        variables = {"orderId": str(order_id), "status": status}
        result = self.execute(UPDATE_ORDER_STATUS_MUTATION, variables, "UpdateOrderStatus")
        return result["updateOrderStatus"]["status"]

    def confirm_delivery(self, order_id: UUID, customer_id: UUID) -> str:
        variables = {"orderId": str(order_id), "customerId": str(customer_id)}
        result = self.execute(CONFIRM_DELIVERY_MUTATION, variables, "ConfirmDelivery")
        return result["confirmDelivery"]["status"]

    def execute(self, query: str, variables: dict, operation_name: str) -> dict:
        """
        Execute a GraphQL document and return its `data`.

        Raises NetworkFailure for transport problems and RemoteRejection for
        GraphQL errors reported by the server. No retries.
        """
        payload = {
            "query": query,
            "variables": variables,
            "operationName": operation_name,
        }
        headers = {"X-Request-ID": str(uuid4())}

        try:
            response = self.session.post(
                self.url,
                json=payload,
                headers=headers,
                timeout=self.timeout,
            )
            body = response.json()
        except requests.RequestException as e:
            logger.warning(
                "oracle_transport_error",
                extra={"operation": operation_name, "error": str(e)},
            )
            raise NetworkFailure(f"{operation_name} failed: {e}") from e
        except ValueError as e:
            raise NetworkFailure(f"{operation_name} returned an invalid body") from e

        errors = body.get("errors") if isinstance(body, dict) else None
        if errors:
            first = errors[0]
            code = (first.get("extensions") or {}).get("code", RemoteRejection.code)
            logger.warning(
                "oracle_remote_error",
                extra={"operation": operation_name, "error": f"{code}: {first.get('message')}"},
            )
            raise RemoteRejection(first.get("message", "Remote error"), code=code)

        if response.status_code >= 400 or not isinstance(body, dict) or body.get("data") is None:
            raise NetworkFailure(f"{operation_name} failed with HTTP {response.status_code}")

        return body["data"]
