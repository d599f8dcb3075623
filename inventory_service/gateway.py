"""Transactional access to the ``products`` table.

All SQL for the service lives here. Callers get detached ``Product``
instances back and never see a session.
"""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

from loguru import logger
from sqlalchemy import delete, select, text, update
from sqlalchemy.engine import Engine
from sqlalchemy.exc import DataError, IntegrityError, OperationalError
from sqlalchemy.orm import Session, sessionmaker

from .errors import InvalidArgument, StoreUnavailable
from .models import MAX_QUANTITY, Product

# Per-dialect statement bounding how long a row-writing scope may wait for a lock.
# SQLite has none; its busy timeout is set on the connection instead.
# MySQL has no transaction-scoped form: the value stays on the pooled connection,
# and every locking scope of this gateway sets it again to the same value.
_LOCK_TIMEOUT_STATEMENTS = {
    "postgresql": "SET LOCAL lock_timeout = '{ms}ms'",
    "mysql": "SET SESSION innodb_lock_wait_timeout = {seconds}",
}


class StockTransaction:
    """Handle for the locking read and decrement of one open transaction."""

    def __init__(self, session: Session) -> None:
        self._session = session

    def lock_row_for_update(self, product_id: int) -> int | None:
        """Lock the product row and return its stock, or None if it does not exist."""
        return self._session.execute(
            select(Product.stock_quantity)
            .where(Product.id == product_id)
            .with_for_update()
        ).scalar_one_or_none()

    def decrement_stock(self, product_id: int, amount: int) -> int:
        result = self._session.execute(
            update(Product)
            .where(Product.id == product_id)
            .values(stock_quantity=Product.stock_quantity - amount)
        )
        return result.rowcount


class StorageGateway:
    def __init__(self, session_factory: sessionmaker, lock_timeout_ms: int = 5000) -> None:
        self._session_factory = session_factory
        self.lock_timeout_ms = lock_timeout_ms

    @property
    def engine(self) -> Engine:
        return self._session_factory.kw["bind"]

    @contextmanager
    def session_scope(self) -> Iterator[Session]:
        """Commit on success, roll back on any failure, always close."""
        db = self._session_factory()
        try:
            yield db
            db.commit()
        except OperationalError as exc:
            db.rollback()
            logger.error(
                "Database transaction failed: {}: {}",
                type(exc.orig).__name__,
                exc.orig,
            )
            raise StoreUnavailable("Storage temporarily unavailable, please retry") from exc
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()

    @contextmanager
    def locking_scope(self) -> Iterator[Session]:
        """A session_scope whose lock waits are bounded by ``lock_timeout_ms``.

        Used for every statement that writes or locks existing rows.
        """
        with self.session_scope() as db:
            self._apply_lock_timeout(db)
            yield db

    @contextmanager
    def transaction(self) -> Iterator[StockTransaction]:
        with self.locking_scope() as db:
            yield StockTransaction(db)

    def _apply_lock_timeout(self, db: Session) -> None:
        statement = _LOCK_TIMEOUT_STATEMENTS.get(db.get_bind().dialect.name)
        if statement is None:
            return
        ms = int(self.lock_timeout_ms)
        db.execute(text(statement.format(ms=ms, seconds=max(1, ms // 1000))))

    def insert(self, values: dict[str, Any]) -> int:
        with self.session_scope() as db:
            product = Product(**values)
            db.add(product)
            db.flush()
            return product.id

    def find_by_id(self, product_id: int) -> Product | None:
        with self.session_scope() as db:
            return db.get(Product, product_id)

    def find_all(self) -> list[Product]:
        with self.session_scope() as db:
            return list(db.scalars(select(Product).order_by(Product.id)))

    def find_low_stock(self) -> list[Product]:
        with self.session_scope() as db:
            return list(
                db.scalars(
                    select(Product)
                    .where(Product.stock_quantity < Product.low_stock_threshold)
                    .order_by(Product.stock_quantity.asc(), Product.id.asc())
                )
            )

    def update_fields(self, product_id: int, fields: dict[str, Any]) -> Product | None:
        with self.locking_scope() as db:
            result = db.execute(
                update(Product).where(Product.id == product_id).values(**fields)
            )
            if result.rowcount == 0:
                return None
            return db.execute(
                select(Product).where(Product.id == product_id)
            ).scalar_one()

    def delete_by_id(self, product_id: int) -> bool:
        with self.locking_scope() as db:
            result = db.execute(delete(Product).where(Product.id == product_id))
            return result.rowcount > 0

    def increment_stock(self, product_id: int, amount: int) -> int:
        with self.locking_scope() as db:
            try:
                result = db.execute(
                    update(Product)
                    .where(Product.id == product_id, Product.stock_quantity >= 0)
                    .values(stock_quantity=Product.stock_quantity + amount)
                )
            except (DataError, IntegrityError) as exc:
                # Column overflow (DataError) or the upper-bound CHECK (IntegrityError)
                raise InvalidArgument(
                    f"Stock quantity cannot exceed {MAX_QUANTITY}"
                ) from exc
            return result.rowcount
