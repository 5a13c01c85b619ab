"""
Order placement

Validates a cart against current inventory, reserves stock per size and
records the order. Either every cart item is reserved and the order is
stored, or inventory is left as it was.
"""
from collections import defaultdict
from datetime import datetime
from typing import Callable, Dict, List, Tuple

from bson import ObjectId

from errors import NotFoundError, StoreError, StoreTimeoutError, ValidationError
from logging_config import add_context, clear_context, get_logger
from schemas import CartItem, Order, OrderConfirmation, PlaceOrderRequest
from stores import InventoryStore, OrderStore

logger = get_logger(__name__)


def format_order_date(moment: datetime) -> str:
    return f"{moment.month}/{moment.day}/{moment.year}"


def format_order_time(moment: datetime) -> str:
    hour = moment.hour % 12 or 12
    suffix = "AM" if moment.hour < 12 else "PM"
    return f"{hour}:{moment.minute:02d}:{moment.second:02d} {suffix}"


def insufficient_stock(size: str, available: int) -> ValidationError:
    return ValidationError(f"Insufficient stock for size {size}. Available: {available}")


def find_size(product: dict, size: str):
    for entry in product.get("sizes") or []:
        if entry.get("size") == size:
            return entry
    return None


class OrderPlacementEngine:
    def __init__(self, inventory: InventoryStore, orders: OrderStore,
                 clock: Callable[[], datetime] = datetime.now):
        self.inventory = inventory
        self.orders = orders
        self.clock = clock

    def place_order(self, request: PlaceOrderRequest) -> OrderConfirmation:
        add_context(order_items=len(request.products))
        try:
            logger.info("placing_order", phone=request.userDetails.phone)
            self._check_availability(request.products)
            reserved = self._reserve(request.products)

            now = self.clock()
            order = self._build_order(request, now)
            order_number = self._insert(order, reserved)

            logger.info("order_placed", order_number=order_number)
            return OrderConfirmation(
                orderNumber=order_number,
                orderDate=order.orderDate,
                orderTime=order.orderTime,
            )
        finally:
            clear_context()

    def _check_availability(self, cart: List[CartItem]) -> None:
        """
        Check every item against one fresh read per product, in cart order.
        Quantities asked for the same size by several items add up.
        """
        products: Dict[str, dict] = {}
        demand: Dict[Tuple[str, str], int] = defaultdict(int)

        for item in cart:
            if item.productId not in products:
                product = self.inventory.get_product(item.productId)
                if product is None:
                    logger.info("order_rejected", reason="product_not_found", product_id=item.productId)
                    raise NotFoundError("Product not found.")
                products[item.productId] = product

            size_data = find_size(products[item.productId], item.selectedSize)
            if size_data is None:
                logger.info("order_rejected", reason="size_not_found",
                            product_id=item.productId, size=item.selectedSize)
                raise ValidationError(f"Size {item.selectedSize} not found.")

            key = (item.productId, item.selectedSize)
            demand[key] += item.quantity
            if size_data.get("stock", 0) < demand[key]:
                logger.info("order_rejected", reason="insufficient_stock",
                            product_id=item.productId, size=item.selectedSize)
                raise insufficient_stock(item.selectedSize, size_data.get("stock", 0))

    def _reserve(self, cart: List[CartItem]) -> List[CartItem]:
        # One conditional write per cart item, issued one after another.
        reserved: List[CartItem] = []
        for item in cart:
            try:
                ok = self.inventory.reserve_stock(item.productId, item.selectedSize, item.quantity)
            except StoreError:
                self._release(reserved)
                raise
            if not ok:
                # stock moved since the availability check
                logger.warning("reservation_contended", product_id=item.productId, size=item.selectedSize)
                self._release(reserved)
                raise insufficient_stock(item.selectedSize, self._available(item))
            reserved.append(item)
        return reserved

    def _insert(self, order: Order, reserved: List[CartItem]) -> str:
        """
        Store the order under an id chosen here, so a timed out insert can be
        checked for before its reservations are given back.
        """
        order_id = ObjectId()
        try:
            return self.orders.insert_order(order, order_id=order_id)
        except StoreTimeoutError as timeout:
            logger.error("order_insert_timed_out", order_number=str(order_id))
            try:
                committed = self.orders.order_exists(order_id)
            except StoreError:
                # unknown outcome: keep the stock held rather than risk overselling
                logger.error("order_insert_unverified", order_number=str(order_id))
                raise timeout
            if not committed:
                self._release(reserved)
            raise
        except StoreError:
            logger.error("order_insert_failed")
            self._release(reserved)
            raise

    def _release(self, reserved: List[CartItem]) -> None:
        """Give back every reservation; the first failure is raised once all were attempted"""
        first_error = None
        for item in reversed(reserved):
            logger.info("releasing_reservation", product_id=item.productId,
                        size=item.selectedSize, quantity=item.quantity)
            try:
                self.inventory.release_stock(item.productId, item.selectedSize, item.quantity)
            except StoreError as e:
                logger.error("release_failed", product_id=item.productId,
                             size=item.selectedSize, quantity=item.quantity, error=e.message)
                first_error = first_error or e
        if first_error is not None:
            raise first_error

    def _available(self, item: CartItem) -> int:
        product = self.inventory.get_product(item.productId)
        size_data = find_size(product, item.selectedSize) if product else None
        return size_data.get("stock", 0) if size_data else 0

    def _build_order(self, request: PlaceOrderRequest, now: datetime) -> Order:
        details = request.userDetails
        return Order(
            name=details.name,
            phone=details.phone,
            address=details.address,
            note=details.note,
            cart=[item.model_dump() for item in request.products],
            deliveryCharge=request.deliveryCharge,
            totalPrice=request.totalPrice,
            orderDate=format_order_date(now),
            orderTime=format_order_time(now),
        )
