"""Storage gateway tests: lock timeouts per dialect and overflow translation."""

from unittest.mock import MagicMock

import pytest
from sqlalchemy.dialects import mysql, postgresql, sqlite
from sqlalchemy.exc import DataError

from inventory_service import crud
from inventory_service.errors import InvalidArgument
from inventory_service.gateway import StorageGateway
from inventory_service.models import MAX_QUANTITY

DIALECTS = {
    "postgresql": postgresql.dialect(),
    "mysql": mysql.dialect(),
    "sqlite": sqlite.dialect(),
}


def _gateway_on(dialect_name, lock_timeout_ms=200):
    """A gateway whose sessions are mocks reporting ``dialect_name``."""
    session = MagicMock()
    session.get_bind.return_value.dialect.name = dialect_name
    return StorageGateway(lambda: session, lock_timeout_ms=lock_timeout_ms), session


def _executed(session, dialect_name):
    dialect = DIALECTS[dialect_name]
    return [str(call.args[0].compile(dialect=dialect)) for call in session.execute.call_args_list]


class TestLockTimeout:
    def test_postgresql_sets_local_timeout_before_locking_read(self):
        gateway, session = _gateway_on("postgresql")

        with gateway.transaction() as tx:
            tx.lock_row_for_update(1)

        statements = _executed(session, "postgresql")
        assert statements[0] == "SET LOCAL lock_timeout = '200ms'"
        assert statements[1].startswith("SELECT products.stock_quantity")
        assert statements[1].endswith("FOR UPDATE")
        session.commit.assert_called_once()
        session.close.assert_called_once()

    def test_mysql_sets_lock_wait_timeout_in_whole_seconds(self):
        gateway, session = _gateway_on("mysql", lock_timeout_ms=2500)

        with gateway.transaction() as tx:
            tx.lock_row_for_update(1)

        assert _executed(session, "mysql")[0] == "SET SESSION innodb_lock_wait_timeout = 2"

    def test_mysql_timeout_is_at_least_one_second(self):
        gateway, session = _gateway_on("mysql", lock_timeout_ms=200)

        with gateway.transaction():
            pass

        assert _executed(session, "mysql") == ["SET SESSION innodb_lock_wait_timeout = 1"]

    def test_sqlite_relies_on_busy_timeout(self):
        gateway, session = _gateway_on("sqlite")

        with gateway.transaction() as tx:
            tx.lock_row_for_update(1)

        assert len(_executed(session, "sqlite")) == 1

    @pytest.mark.parametrize(
        "write",
        [
            lambda gw: gw.increment_stock(1, 5),
            lambda gw: gw.update_fields(1, {"name": "X"}),
            lambda gw: gw.delete_by_id(1),
        ],
        ids=["increment", "update", "delete"],
    )
    def test_every_row_write_is_bounded(self, write):
        gateway, session = _gateway_on("postgresql")

        write(gateway)

        statements = _executed(session, "postgresql")
        assert statements[0] == "SET LOCAL lock_timeout = '200ms'"
        assert len(statements) >= 2

    def test_increase_and_decrease_both_apply_timeout(self, gateway, monkeypatch):
        calls: list[str] = []
        original = StorageGateway._apply_lock_timeout

        def recording(self, db):
            calls.append(db.get_bind().dialect.name)
            return original(self, db)

        monkeypatch.setattr(StorageGateway, "_apply_lock_timeout", recording)
        product = crud.create_product(gateway, name="Bolt", stock_quantity=5)

        crud.increase_stock(gateway, product.id, 1)
        assert len(calls) == 1
        crud.decrease_stock(gateway, product.id, 1)
        assert len(calls) == 2


class TestOverflow:
    def test_increase_past_column_maximum(self, gateway):
        product = crud.create_product(gateway, name="Bulk", stock_quantity=MAX_QUANTITY - 1)

        with pytest.raises(InvalidArgument):
            crud.increase_stock(gateway, product.id, 5)

        assert crud.get_product(gateway, product.id).stock_quantity == MAX_QUANTITY - 1

    def test_store_out_of_range_error_is_invalid_argument(self):
        gateway, session = _gateway_on("postgresql")
        session.execute.side_effect = [
            MagicMock(),
            DataError("UPDATE products", {}, Exception("integer out of range")),
        ]

        with pytest.raises(InvalidArgument):
            gateway.increment_stock(1, 5)

        session.rollback.assert_called_once()
        session.close.assert_called_once()
