"""
Holiday-market tests.
"""

import pytest
from sqlalchemy import update

from comptoir.extensions import db
from comptoir.models import MarketProduct, MarketSale
from comptoir.services import market_service
from comptoir.services.week_service import WeekContext
from comptoir.validation import InsufficientStockError, NotFoundError, ValidationError
from conftest import reload


WEEK = WeekContext(week_id=2)


@pytest.fixture
def mulled_wine(db_session):
    return market_service.create_product(
        {"name": "Vin chaud", "category": "Boissons", "price": 6, "cost": 2, "stock": 10}
    )


@pytest.fixture
def gingerbread(db_session):
    return market_service.create_product(
        {"name": "Pain d'épices", "category": "Gourmandises", "description": "Maison", "price": 4.5, "cost": 1.5, "stock": 3}
    )


class TestMarketCatalog:

    def test_create_requires_fields(self):
        with pytest.raises(ValidationError):
            market_service.create_product({"name": "Sans prix", "category": "Divers"})

    def test_unknown_field(self, mulled_wine):
        with pytest.raises(ValidationError):
            market_service.update_product(mulled_wine.id, {"barcode": "123"})

    def test_list_is_cached_until_change(self, mulled_wine):
        assert [p["name"] for p in market_service.list_products()] == ["Vin chaud"]

        market_service.update_product(mulled_wine.id, {"name": "Vin chaud épicé"})
        assert [p["name"] for p in market_service.list_products()] == ["Vin chaud épicé"]

    def test_delete(self, mulled_wine):
        market_service.delete_product(mulled_wine.id)
        with pytest.raises(NotFoundError):
            market_service.get_product(mulled_wine.id)


class TestMarketSale:

    def test_sale_moves_stock(self, employee, mulled_wine, gingerbread):
        sale = market_service.create_sale(
            [
                {"product_id": mulled_wine.id, "quantity": 2},
                {"product_id": gingerbread.id, "quantity": 1},
            ],
            seller_id=employee.id,
            week=WEEK,
        )

        assert sale.week_id == 2
        assert sale.total_amount == pytest.approx(16.5)
        assert sale.total_cost == pytest.approx(5.5)
        assert sale.margin == pytest.approx(11)
        assert len(sale.lines) == 2
        assert reload(mulled_wine).stock == 8
        assert reload(gingerbread).stock == 2

    def test_shortfall_leaves_all_stock(self, employee, mulled_wine, gingerbread):
        with pytest.raises(InsufficientStockError):
            market_service.create_sale(
                [
                    {"product_id": mulled_wine.id, "quantity": 2},
                    {"product_id": gingerbread.id, "quantity": 2},
                    {"product_id": gingerbread.id, "quantity": 2},
                ],
                seller_id=employee.id,
                week=WEEK,
            )

        assert reload(mulled_wine).stock == 10
        assert reload(gingerbread).stock == 3
        assert db.session.query(MarketSale).count() == 0

    def test_concurrent_decrement_rolls_back_earlier_items(self, employee, mulled_wine, gingerbread):
        # Stale identity map: gingerbread reads 3 in memory while the row holds 0
        assert gingerbread.stock == 3
        db.session.execute(
            update(MarketProduct)
            .where(MarketProduct.id == gingerbread.id)
            .values(stock=0)
            .execution_options(synchronize_session=False)
        )

        with pytest.raises(InsufficientStockError) as excinfo:
            market_service.create_sale(
                [
                    {"product_id": mulled_wine.id, "quantity": 2},
                    {"product_id": gingerbread.id, "quantity": 1},
                ],
                seller_id=employee.id,
                week=WEEK,
            )

        # Raised by the conditional UPDATE, not the in-memory check
        assert excinfo.value.details == {"product_id": gingerbread.id, "requested_quantity": 1}
        assert reload(mulled_wine).stock == 10
        assert db.session.query(MarketSale).count() == 0

    def test_unknown_product(self, employee, mulled_wine):
        with pytest.raises(NotFoundError):
            market_service.create_sale(
                [{"product_id": mulled_wine.id, "quantity": 1}, {"product_id": 999, "quantity": 1}],
                seller_id=employee.id,
                week=WEEK,
            )
        assert reload(mulled_wine).stock == 10

    @pytest.mark.parametrize("items", [None, [], [{"product_id": 1, "quantity": 0}], ["x"]])
    def test_malformed_items(self, employee, items):
        with pytest.raises(ValidationError):
            market_service.create_sale(items, seller_id=employee.id, week=WEEK)

    def test_list_sales_by_week(self, employee, mulled_wine):
        market_service.create_sale([{"product_id": mulled_wine.id, "quantity": 1}], seller_id=employee.id, week=WEEK)
        market_service.create_sale([{"product_id": mulled_wine.id, "quantity": 1}], seller_id=employee.id, week=WeekContext(3))

        assert len(market_service.list_sales()) == 2
        assert [s.week_id for s in market_service.list_sales(WEEK)] == [2]

    def test_market_stock_is_separate(self, employee, burger, mulled_wine):
        market_service.create_sale([{"product_id": mulled_wine.id, "quantity": 1}], seller_id=employee.id, week=WEEK)
        assert reload(burger).stock == 5
        assert db.session.query(MarketProduct).count() == 1
