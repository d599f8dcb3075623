from loguru import logger

from .errors import InsufficientStock, InvalidArgument, NotFound
from .gateway import StorageGateway
from .models import MAX_QUANTITY, Product


def _require_positive_amount(amount: int) -> None:
    if isinstance(amount, bool) or not isinstance(amount, int) or amount <= 0:
        raise InvalidArgument("Amount must be a positive integer")
    if amount > MAX_QUANTITY:
        raise InvalidArgument(f"Amount cannot exceed {MAX_QUANTITY}")


def create_product(
    gateway: StorageGateway,
    name: str,
    description: str = "",
    stock_quantity: int = 0,
    low_stock_threshold: int = 10,
) -> Product:
    name = (name or "").strip()
    if not name:
        raise InvalidArgument("Product name is required and must be a non-empty string")
    if stock_quantity < 0:
        raise InvalidArgument("Initial stock quantity cannot be negative")
    if low_stock_threshold < 0:
        raise InvalidArgument("Low stock threshold cannot be negative")
    if stock_quantity > MAX_QUANTITY or low_stock_threshold > MAX_QUANTITY:
        raise InvalidArgument(f"Stock quantity and low stock threshold cannot exceed {MAX_QUANTITY}")

    values = {
        "name": name,
        "description": (description or "").strip(),
        "stock_quantity": int(stock_quantity),
        "low_stock_threshold": int(low_stock_threshold),
    }
    product_id = gateway.insert(values)
    logger.info("Created product {} ({!r}) with stock {}", product_id, name, values["stock_quantity"])
    return Product(id=product_id, **values)


def get_products(gateway: StorageGateway) -> list[Product]:
    return gateway.find_all()


def get_product(gateway: StorageGateway, product_id: int) -> Product:
    product = gateway.find_by_id(product_id)
    if product is None:
        raise NotFound()
    return product


def update_product(
    gateway: StorageGateway,
    product_id: int,
    *,
    name: str | None = None,
    description: str | None = None,
) -> Product:
    """Update name and/or description; stock is only changed by the stock operations."""
    fields = {}
    if name is not None:
        name = name.strip()
        if not name:
            raise InvalidArgument("Product name must be a non-empty string")
        fields["name"] = name
    if description is not None:
        fields["description"] = description.strip()

    if not fields:
        raise InvalidArgument("At least one field (name or description) must be provided")

    product = gateway.update_fields(product_id, fields)
    if product is None:
        raise NotFound()
    logger.info("Updated product {} fields {}", product_id, sorted(fields))
    return product


def delete_product(gateway: StorageGateway, product_id: int) -> None:
    if not gateway.delete_by_id(product_id):
        raise NotFound()
    logger.info("Deleted product {}", product_id)


def increase_stock(gateway: StorageGateway, product_id: int, amount: int) -> Product:
    _require_positive_amount(amount)

    # The stock_quantity >= 0 guard never fails while the CHECK constraint holds,
    # so zero affected rows means the product is gone.
    if gateway.increment_stock(product_id, amount) == 0:
        raise NotFound()
    logger.info("Increased stock of product {} by {}", product_id, amount)
    return get_product(gateway, product_id)


def decrease_stock(gateway: StorageGateway, product_id: int, amount: int) -> Product:
    """Remove ``amount`` units without ever letting stock go negative.

    The row is locked before its stock is read, so concurrent decreases of
    the same product run one after another and each sees the value the
    previous one committed. Any failure rolls the whole transaction back.
    """
    _require_positive_amount(amount)

    with gateway.transaction() as tx:
        current_stock = tx.lock_row_for_update(product_id)
        if current_stock is None:
            raise NotFound()

        if current_stock < amount:
            logger.info(
                "Rejected decrease of product {}: available {}, requested {}",
                product_id,
                current_stock,
                amount,
            )
            raise InsufficientStock(available=current_stock, requested=amount)

        # The row is locked, so it cannot have vanished since the read
        if tx.decrement_stock(product_id, amount) != 1:
            raise NotFound()

    logger.info("Decreased stock of product {} by {}", product_id, amount)
    return get_product(gateway, product_id)


def get_low_stock_products(gateway: StorageGateway) -> list[Product]:
    return gateway.find_low_stock()
