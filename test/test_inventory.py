"""
Inventory ledger tests

Reservations, releases and manual adjustments, including two sessions
racing for the last units of one product.
"""

import asyncio

import pytest

from conftest import stock_of
from orderdesk.database import unit_of_work
from orderdesk.exceptions import InsufficientStock, InvalidQuantity, ProductNotFound, ValidationError
from orderdesk.services.inventory_service import InventoryLedger, list_low_stock


class TestReserve:
    @pytest.mark.asyncio
    async def test_reserve_decrements(self, db, session_factory, tenants):
        async with unit_of_work(db):
            await InventoryLedger(db, tenants.ctx_a).reserve(tenants.widget.id, 3)

        assert await stock_of(session_factory, tenants.widget.id) == 2

    @pytest.mark.asyncio
    async def test_reserve_exact_stock_reaches_zero(self, db, session_factory, tenants):
        async with unit_of_work(db):
            await InventoryLedger(db, tenants.ctx_a).reserve(tenants.widget.id, 5)

        assert await stock_of(session_factory, tenants.widget.id) == 0

    @pytest.mark.asyncio
    async def test_insufficient_stock_reports_available(self, db, session_factory, tenants):
        with pytest.raises(InsufficientStock) as exc_info:
            async with unit_of_work(db):
                await InventoryLedger(db, tenants.ctx_a).reserve(tenants.widget.id, 6)

        assert exc_info.value.details == {"product_id": tenants.widget.id, "requested": 6, "available": 5}
        assert await stock_of(session_factory, tenants.widget.id) == 5

    @pytest.mark.asyncio
    async def test_other_org_product_not_found(self, db, session_factory, tenants):
        with pytest.raises(ProductNotFound):
            async with unit_of_work(db):
                await InventoryLedger(db, tenants.ctx_a).reserve(tenants.foreign.id, 1)

        assert await stock_of(session_factory, tenants.foreign.id) == 100

    @pytest.mark.asyncio
    async def test_inactive_product_not_found(self, db, tenants):
        with pytest.raises(ProductNotFound):
            await InventoryLedger(db, tenants.ctx_a).reserve(tenants.retired.id, 1)

    @pytest.mark.asyncio
    @pytest.mark.parametrize("quantity", [0, -2])
    async def test_non_positive_quantity(self, db, tenants, quantity):
        with pytest.raises(InvalidQuantity):
            await InventoryLedger(db, tenants.ctx_a).reserve(tenants.widget.id, quantity)

    @pytest.mark.asyncio
    async def test_reserve_many_rolls_back_as_a_unit(self, db, session_factory, tenants):
        with pytest.raises(InsufficientStock):
            async with unit_of_work(db):
                await InventoryLedger(db, tenants.ctx_a).reserve_many([(tenants.gadget.id, 10), (tenants.widget.id, 9)])

        assert await stock_of(session_factory, tenants.gadget.id) == 50
        assert await stock_of(session_factory, tenants.widget.id) == 5


class TestRelease:
    @pytest.mark.asyncio
    async def test_release_restores(self, db, session_factory, tenants):
        ledger = InventoryLedger(db, tenants.ctx_a)
        async with unit_of_work(db):
            await ledger.reserve(tenants.widget.id, 4)
        async with unit_of_work(db):
            await ledger.release(tenants.widget.id, 4)

        assert await stock_of(session_factory, tenants.widget.id) == 5

    @pytest.mark.asyncio
    async def test_release_into_inactive_product(self, db, session_factory, tenants):
        async with unit_of_work(db):
            await InventoryLedger(db, tenants.ctx_a).release(tenants.retired.id, 2)

        assert await stock_of(session_factory, tenants.retired.id) == 12

    @pytest.mark.asyncio
    async def test_release_foreign_product_rejected(self, db, tenants):
        with pytest.raises(ProductNotFound):
            await InventoryLedger(db, tenants.ctx_a).release(tenants.foreign.id, 1)


class TestAdjust:
    @pytest.mark.asyncio
    async def test_positive_and_negative_adjustments(self, db, tenants):
        ledger = InventoryLedger(db, tenants.ctx_a)
        async with unit_of_work(db):
            assert await ledger.adjust(tenants.widget.id, 10) == 15
        async with unit_of_work(db):
            assert await ledger.adjust(tenants.widget.id, -15) == 0

    @pytest.mark.asyncio
    async def test_adjust_below_zero_rejected(self, db, session_factory, tenants):
        with pytest.raises(InsufficientStock):
            async with unit_of_work(db):
                await InventoryLedger(db, tenants.ctx_a).adjust(tenants.widget.id, -6)

        assert await stock_of(session_factory, tenants.widget.id) == 5

    @pytest.mark.asyncio
    async def test_zero_delta_rejected(self, db, tenants):
        with pytest.raises(ValidationError):
            await InventoryLedger(db, tenants.ctx_a).adjust(tenants.widget.id, 0)


class TestLowStock:
    @pytest.mark.asyncio
    async def test_lists_active_products_at_or_below_threshold(self, db, tenants):
        async with unit_of_work(db):
            await InventoryLedger(db, tenants.ctx_a).reserve(tenants.widget.id, 3)

        products = await list_low_stock(tenants.ctx_a, db)
        assert [p.sku for p in products] == ["SKU-100"]


class TestConcurrentReservations:
    @pytest.mark.asyncio
    async def test_racing_reservations_never_oversell(self, session_factory, tenants):
        """Two sessions each want 3 of the 5 widgets: exactly one wins."""

        async def reserve_three():
            async with session_factory() as session:
                async with unit_of_work(session):
                    await InventoryLedger(session, tenants.ctx_a).reserve(tenants.widget.id, 3)

        results = await asyncio.gather(reserve_three(), reserve_three(), return_exceptions=True)

        failures = [r for r in results if isinstance(r, Exception)]
        assert len(failures) == 1
        assert isinstance(failures[0], InsufficientStock)
        assert await stock_of(session_factory, tenants.widget.id) == 2
