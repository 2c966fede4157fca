from decimal import Decimal

import pytest

from conftest import TENANT_A
from stockledger.exceptions import InsufficientStockError, InvalidStateError, NotFoundError, ValidationError
from stockledger.schemas.ledger import ActionType, MovementKind
from stockledger.schemas.recipe import IngredientInput, RecipeCreate, RecipeUpdate
from stockledger.schemas.sale import SaleCreate, SaleStatus
from stockledger.schemas.stock import StockItemCreate, StockItemUpdate
from stockledger.services import (
    action_log_service,
    movement_service,
    recipe_service,
    report_service,
    sale_service,
    stock_service,
)


@pytest.fixture
def butter(ledger, actor_a):
    return stock_service.add_item(
        ledger, TENANT_A,
        StockItemCreate(name="Butter", quantity=Decimal("1"), unit="kg", cost=Decimal("8")),
        actor_a,
    )


def _recipe(*ingredients, name="Brioche", price="20"):
    return RecipeCreate(
        name=name,
        price=Decimal(price),
        ingredients=[
            IngredientInput(stock_item_id=i[0], quantity=Decimal(str(i[1])), unit=i[2] if len(i) > 2 else None)
            for i in ingredients
        ],
    )


class TestRecipes:
    def test_ingredient_unit_converted_to_stock_unit(self, ledger, actor_a, flour):
        recipe = recipe_service.add_recipe(ledger, TENANT_A, _recipe((flour.id, 250, "g")), actor_a)
        assert recipe.ingredients[0].quantity == Decimal("0.25")
        assert recipe.ingredients[0].unit == "kg"
        assert recipe.ingredients[0].name == "Flour"

    def test_unknown_ingredient(self, ledger, actor_a):
        with pytest.raises(NotFoundError):
            recipe_service.add_recipe(ledger, TENANT_A, _recipe((77, 1)), actor_a)

    def test_no_ingredients_rejected(self, ledger, actor_a):
        with pytest.raises(ValidationError):
            recipe_service.add_recipe(ledger, TENANT_A, _recipe(), actor_a)

    def test_add_does_not_consume(self, ledger, actor_a, flour, bread):
        assert stock_service.get_stock_item(ledger, TENANT_A, flour.id).quantity == Decimal("10")

    def test_search_is_case_insensitive(self, ledger, actor_a, bread):
        assert [r.name for r in recipe_service.list_recipes(ledger, TENANT_A, search="BRE")] == ["Bread"]
        assert recipe_service.list_recipes(ledger, TENANT_A, search="cake") == []

    def test_update_and_delete(self, ledger, actor_a, bread):
        updated = recipe_service.update_recipe(
            ledger, TENANT_A, bread.id, RecipeUpdate(price=Decimal("22")), actor_a
        )
        assert updated.price == Decimal("22")
        assert updated.updated_at is not None

        recipe_service.delete_recipe(ledger, TENANT_A, bread.id, actor_a)
        with pytest.raises(NotFoundError):
            recipe_service.get_recipe(ledger, TENANT_A, bread.id)

        history = action_log_service.list_history(ledger, TENANT_A, action_type=ActionType.RECIPE_ADD)
        assert history[0].details["deleted"] is True
        assert history[0].details["name"] == "Bread"

    def test_update_with_stock_check_does_not_deduct(self, ledger, actor_a, flour, bread):
        with pytest.raises(InsufficientStockError):
            recipe_service.update_recipe(
                ledger, TENANT_A, bread.id,
                RecipeUpdate(ingredients=[IngredientInput(stock_item_id=flour.id, quantity=Decimal("11"))]),
                actor_a,
                consume_stock=True,
            )
        assert recipe_service.get_recipe(ledger, TENANT_A, bread.id).ingredients[0].quantity == Decimal("2")

        recipe_service.update_recipe(
            ledger, TENANT_A, bread.id,
            RecipeUpdate(ingredients=[IngredientInput(stock_item_id=flour.id, quantity=Decimal("3"))]),
            actor_a,
            consume_stock=True,
        )
        assert stock_service.get_stock_item(ledger, TENANT_A, flour.id).quantity == Decimal("10")


class TestRecipeWithStockConsumption:
    def test_consumes_every_ingredient(self, ledger, actor_a, flour, butter):
        recipe = recipe_service.add_recipe_with_stock_consumption(
            ledger, TENANT_A, _recipe((flour.id, 1), (butter.id, 200, "g")), actor_a
        )
        assert stock_service.get_stock_item(ledger, TENANT_A, flour.id).quantity == Decimal("9")
        assert stock_service.get_stock_item(ledger, TENANT_A, butter.id).quantity == Decimal("0.8")

        caused = [m for m in movement_service.list_movements(ledger, TENANT_A) if m.caused_by == f"recipe:{recipe.id}"]
        assert len(caused) == 2
        assert all(m.kind == MovementKind.CONSUME for m in caused)

    def test_short_ingredient_deducts_nothing(self, ledger, actor_a, flour, butter):
        with pytest.raises(InsufficientStockError) as exc:
            recipe_service.add_recipe_with_stock_consumption(
                ledger, TENANT_A, _recipe((flour.id, 1), (butter.id, 2)), actor_a
            )
        assert exc.value.stock_item_id == butter.id
        assert stock_service.get_stock_item(ledger, TENANT_A, flour.id).quantity == Decimal("10")
        assert recipe_service.list_recipes(ledger, TENANT_A) == []

    def test_duplicate_ingredients_are_aggregated(self, ledger, actor_a, flour):
        with pytest.raises(InsufficientStockError) as exc:
            recipe_service.add_recipe_with_stock_consumption(
                ledger, TENANT_A, _recipe((flour.id, 6), (flour.id, 6)), actor_a
            )
        assert exc.value.required == Decimal("12")
        assert exc.value.available == Decimal("10")


class TestSales:
    def test_flour_bread_scenario(self, ledger, actor_a, flour, bread):
        sale = sale_service.create_sale(ledger, TENANT_A, SaleCreate(recipe_id=bread.id, quantity=3), actor_a)
        assert sale.total_price == Decimal("60")
        assert sale.client == "anonymous"

        validated = sale_service.validate_sale(ledger, TENANT_A, sale.id, actor_a)

        assert stock_service.get_stock_item(ledger, TENANT_A, flour.id).quantity == Decimal("4")
        assert validated.cost_total == Decimal("12")
        assert validated.profit == Decimal("48")
        assert validated.status == SaleStatus.VALIDATED

        consumed = [m for m in movement_service.list_movements(ledger, TENANT_A) if m.kind == MovementKind.CONSUME]
        assert len(consumed) == 1
        assert consumed[0].delta == Decimal("-6")
        assert consumed[0].caused_by == f"sale:{sale.id}"

        reports = report_service.list_reports(ledger, TENANT_A)
        assert reports.total_revenue == Decimal("60")
        assert reports.total_profit == Decimal("48")
        assert reports.net_profit == Decimal("60") - Decimal("20")

    def test_second_validation_changes_nothing(self, ledger, actor_a, flour, bread):
        sale = sale_service.create_sale(ledger, TENANT_A, SaleCreate(recipe_id=bread.id, quantity=3), actor_a)
        sale_service.validate_sale(ledger, TENANT_A, sale.id, actor_a)

        with pytest.raises(InvalidStateError):
            sale_service.validate_sale(ledger, TENANT_A, sale.id, actor_a)

        assert stock_service.get_stock_item(ledger, TENANT_A, flour.id).quantity == Decimal("4")
        reports = report_service.list_reports(ledger, TENANT_A)
        assert len(reports.revenue) == 1
        assert len(reports.profit) == 1

    def test_insufficient_stock_leaves_sale_pending(self, ledger, actor_a, flour, bread):
        sale = sale_service.create_sale(ledger, TENANT_A, SaleCreate(recipe_id=bread.id, quantity=6), actor_a)
        with pytest.raises(InsufficientStockError):
            sale_service.validate_sale(ledger, TENANT_A, sale.id, actor_a)

        assert sale_service.get_sale(ledger, TENANT_A, sale.id).status == SaleStatus.PENDING
        assert stock_service.get_stock_item(ledger, TENANT_A, flour.id).quantity == Decimal("10")
        assert report_service.list_reports(ledger, TENANT_A).revenue == []

    def test_cost_uses_purchase_cost_at_validation(self, ledger, actor_a, flour, bread):
        sale = sale_service.create_sale(ledger, TENANT_A, SaleCreate(recipe_id=bread.id, quantity=1), actor_a)
        stock_service.update_item(ledger, TENANT_A, flour.id, StockItemUpdate(cost=Decimal("3")), actor_a)
        validated = sale_service.validate_sale(ledger, TENANT_A, sale.id, actor_a)
        assert validated.cost_total == Decimal("6")

    def test_deleted_ingredient_is_not_found(self, ledger, actor_a, flour, bread):
        sale = sale_service.create_sale(ledger, TENANT_A, SaleCreate(recipe_id=bread.id, quantity=1), actor_a)
        stock_service.delete_item(ledger, TENANT_A, flour.id, actor_a)

        with pytest.raises(NotFoundError):
            sale_service.validate_sale(ledger, TENANT_A, sale.id, actor_a)
        assert report_service.list_reports(ledger, TENANT_A).revenue == []

    def test_deleted_recipe_is_not_found(self, ledger, actor_a, bread):
        sale = sale_service.create_sale(ledger, TENANT_A, SaleCreate(recipe_id=bread.id, quantity=1), actor_a)
        recipe_service.delete_recipe(ledger, TENANT_A, bread.id, actor_a)
        with pytest.raises(NotFoundError):
            sale_service.validate_sale(ledger, TENANT_A, sale.id, actor_a)

    def test_sale_keeps_recipe_name(self, ledger, actor_a, bread):
        sale = sale_service.create_sale(ledger, TENANT_A, SaleCreate(recipe_id=bread.id), actor_a)
        recipe_service.delete_recipe(ledger, TENANT_A, bread.id, actor_a)
        assert sale_service.get_sale(ledger, TENANT_A, sale.id).recipe_name == "Bread"

    def test_create_for_missing_recipe(self, ledger, actor_a):
        with pytest.raises(NotFoundError):
            sale_service.create_sale(ledger, TENANT_A, SaleCreate(recipe_id=5), actor_a)

    def test_non_positive_quantity_rejected(self, ledger, actor_a, bread):
        with pytest.raises(ValidationError):
            sale_service.create_sale(ledger, TENANT_A, SaleCreate(recipe_id=bread.id, quantity=0), actor_a)

    def test_list_sales_by_status(self, ledger, actor_a, bread):
        first = sale_service.create_sale(ledger, TENANT_A, SaleCreate(recipe_id=bread.id), actor_a)
        sale_service.create_sale(ledger, TENANT_A, SaleCreate(recipe_id=bread.id, client="Table 4"), actor_a)
        sale_service.validate_sale(ledger, TENANT_A, first.id, actor_a)

        pending = sale_service.list_sales(ledger, TENANT_A, status=SaleStatus.PENDING)
        assert [s.client for s in pending] == ["Table 4"]
