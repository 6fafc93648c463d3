"""
Tests for the unit of work and storage error translation
"""

import pytest
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, OperationalError

from conftest import stock_of
from orderdesk.database import translate_db_error, unit_of_work
from orderdesk.exceptions import ConcurrencyConflict, InsufficientStock, PersistenceError
from orderdesk.models import Product


class _DriverError(Exception):
    def __init__(self, message, sqlstate=None):
        super().__init__(message)
        self.sqlstate = sqlstate


class TestTranslateDbError:
    @pytest.mark.parametrize("sqlstate", ["40001", "40P01", "55P03"])
    def test_transient_sqlstates(self, sqlstate):
        exc = OperationalError("UPDATE ...", {}, _DriverError("conflict", sqlstate))
        assert isinstance(translate_db_error(exc, "create_order"), ConcurrencyConflict)

    def test_sqlite_lock(self):
        exc = OperationalError("UPDATE ...", {}, _DriverError("database is locked"))
        assert isinstance(translate_db_error(exc), ConcurrencyConflict)

    def test_unique_violation(self):
        exc = IntegrityError("INSERT ...", {}, _DriverError("duplicate key", "23505"))
        assert isinstance(translate_db_error(exc), ConcurrencyConflict)

    def test_other_integrity_error(self):
        exc = IntegrityError("INSERT ...", {}, _DriverError("CHECK constraint failed", "23514"))
        translated = translate_db_error(exc, "create_product")

        assert isinstance(translated, PersistenceError)
        assert "CHECK" not in translated.message
        assert translated.details == {"operation": "create_product"}


class TestUnitOfWork:
    @pytest.mark.asyncio
    async def test_commits_on_success(self, db, session_factory, tenants):
        async with unit_of_work(db):
            product = (await db.execute(select(Product).where(Product.id == tenants.gadget.id))).scalars().one()
            product.stock_quantity = 7

        assert await stock_of(session_factory, tenants.gadget.id) == 7

    @pytest.mark.asyncio
    async def test_rolls_back_on_domain_error(self, db, session_factory, tenants):
        with pytest.raises(InsufficientStock):
            async with unit_of_work(db):
                product = (await db.execute(select(Product).where(Product.id == tenants.gadget.id))).scalars().one()
                product.stock_quantity = 7
                await db.flush()
                raise InsufficientStock(product.id, 99, 7)

        assert await stock_of(session_factory, tenants.gadget.id) == 50

    @pytest.mark.asyncio
    async def test_check_constraint_becomes_persistence_error(self, db, session_factory, tenants):
        with pytest.raises(PersistenceError):
            async with unit_of_work(db, "oversell"):
                product = (await db.execute(select(Product).where(Product.id == tenants.gadget.id))).scalars().one()
                product.stock_quantity = -1

        assert await stock_of(session_factory, tenants.gadget.id) == 50
