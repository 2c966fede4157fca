import logging
from datetime import datetime, timezone
from decimal import Decimal

from stockledger.config import settings
from stockledger.exceptions import InsufficientStockError, NotFoundError, ValidationError
from stockledger.schemas.identity import Actor
from stockledger.schemas.ledger import ActionType, MovementKind, TenantSnapshot
from stockledger.schemas.recipe import Ingredient, IngredientInput, Recipe, RecipeCreate, RecipeUpdate
from stockledger.schemas.stock import StockItem
from stockledger.services import units
from stockledger.services.action_log_service import append_action
from stockledger.services.movement_service import apply_movement
from stockledger.services.stock_service import get_item_or_404, require_name, require_non_negative
from stockledger.services.transaction import TenantLedger

logger = logging.getLogger(__name__)


def get_recipe_or_404(snapshot: TenantSnapshot, recipe_id: int) -> Recipe:
    recipe = snapshot.recipe(recipe_id)
    if recipe is None:
        raise NotFoundError("Recipe", recipe_id)
    return recipe


def _build_ingredients(snapshot: TenantSnapshot, inputs: list[IngredientInput]) -> list[Ingredient]:
    if not inputs:
        raise ValidationError("A recipe needs at least one ingredient", field="ingredients")
    ingredients = []
    for idx, data in enumerate(inputs):
        quantity = require_non_negative(data.quantity, f"ingredients[{idx}].quantity")
        if quantity == 0:
            raise ValidationError("Ingredient quantity must be positive", field=f"ingredients[{idx}].quantity")
        item = get_item_or_404(snapshot, data.stock_item_id)
        if data.unit is not None:
            quantity = units.convert(quantity, data.unit, item.unit)
        ingredients.append(Ingredient(stock_item_id=item.id, name=item.name, quantity=quantity, unit=item.unit))
    return ingredients


def required_stock(
    snapshot: TenantSnapshot, ingredients: list[Ingredient], portions: int = 1
) -> list[tuple[StockItem, Decimal]]:
    """Aggregate ingredient needs per stock item and check them all.

    Raises for the first missing or short item; returns the pairs to deduct
    only when every one of them can be covered.
    """
    needs: dict[int, Decimal] = {}
    for ing in ingredients:
        needs[ing.stock_item_id] = needs.get(ing.stock_item_id, Decimal("0")) + ing.quantity * portions

    plan = []
    for stock_item_id, needed in needs.items():
        item = get_item_or_404(snapshot, stock_item_id)
        if item.quantity < needed:
            raise InsufficientStockError(item.id, item.name, required=needed, available=item.quantity)
        plan.append((item, needed))
    return plan


def _recipe_details(recipe: Recipe) -> dict:
    return {
        "recipe_id": recipe.id,
        "name": recipe.name,
        "price": recipe.price,
        "category": recipe.category,
        "ingredients": [ing.model_dump() for ing in recipe.ingredients],
    }


def _new_recipe(snapshot: TenantSnapshot, data: RecipeCreate, actor: Actor) -> Recipe:
    name = require_name(data.name)
    price = require_non_negative(data.price, "price")
    recipe = Recipe(
        id=snapshot.next_id("recipes"),
        tenant_id=snapshot.tenant_id,
        name=name,
        price=price,
        ingredients=_build_ingredients(snapshot, data.ingredients),
        category=data.category or settings.DEFAULT_CATEGORY,
        description=data.description,
        created_by=actor.actor_id,
        created_at=datetime.now(timezone.utc),
    )
    snapshot.recipes.append(recipe)
    return recipe


def add_recipe(ledger: TenantLedger, tenant_id: str, data: RecipeCreate, actor: Actor) -> Recipe:
    with ledger.transaction(tenant_id) as snapshot:
        recipe = _new_recipe(snapshot, data, actor)
        append_action(snapshot, ActionType.RECIPE_ADD, actor, _recipe_details(recipe))
    return recipe


def add_recipe_with_stock_consumption(
    ledger: TenantLedger, tenant_id: str, data: RecipeCreate, actor: Actor
) -> Recipe:
    """Create a recipe and immediately consume one batch of its ingredients.

    Every ingredient is checked before any is deducted.
    """
    with ledger.transaction(tenant_id) as snapshot:
        recipe = _new_recipe(snapshot, data, actor)
        plan = required_stock(snapshot, recipe.ingredients)
        reference = f"recipe:{recipe.id}"
        for item, needed in plan:
            apply_movement(
                snapshot, item, MovementKind.CONSUME, -needed, actor,
                caused_by=reference,
                details={"recipe": recipe.name},
            )
        append_action(snapshot, ActionType.RECIPE_USE_STOCK, actor, _recipe_details(recipe))
    logger.info("Recipe %s created with stock consumption for tenant %s", recipe.id, tenant_id)
    return recipe


def update_recipe(
    ledger: TenantLedger,
    tenant_id: str,
    recipe_id: int,
    data: RecipeUpdate,
    actor: Actor,
    consume_stock: bool = False,
) -> Recipe:
    """Patch a recipe. With ``consume_stock`` the updated ingredients must be in stock; nothing is deducted."""
    patch = data.model_dump(exclude_unset=True)
    if "name" in patch:
        patch["name"] = require_name(patch["name"])
    if "price" in patch:
        patch["price"] = require_non_negative(patch["price"], "price")
    if "category" in patch:
        patch["category"] = require_name(patch["category"], "category")

    with ledger.transaction(tenant_id) as snapshot:
        recipe = get_recipe_or_404(snapshot, recipe_id)
        before = _recipe_details(recipe)
        if "ingredients" in patch:
            recipe.ingredients = _build_ingredients(snapshot, data.ingredients or [])
        for field in ("name", "price", "category"):
            if field in patch:
                setattr(recipe, field, patch[field])
        if "description" in patch:
            recipe.description = patch["description"] or ""
        recipe.updated_at = datetime.now(timezone.utc)

        if consume_stock:
            required_stock(snapshot, recipe.ingredients)

        append_action(snapshot, ActionType.RECIPE_UPDATE, actor, {
            **_recipe_details(recipe),
            "name_before": before["name"],
            "price_before": before["price"],
        })
    return recipe


def delete_recipe(ledger: TenantLedger, tenant_id: str, recipe_id: int, actor: Actor) -> Recipe:
    with ledger.transaction(tenant_id) as snapshot:
        recipe = get_recipe_or_404(snapshot, recipe_id)
        snapshot.recipes.remove(recipe)
        append_action(snapshot, ActionType.RECIPE_DELETE, actor, _recipe_details(recipe))
    return recipe


def get_recipe(ledger: TenantLedger, tenant_id: str, recipe_id: int) -> Recipe:
    return get_recipe_or_404(ledger.read(tenant_id), recipe_id)


def list_recipes(ledger: TenantLedger, tenant_id: str, search: str | None = None) -> list[Recipe]:
    recipes = ledger.read(tenant_id).recipes
    if search:
        key = search.strip().casefold()
        recipes = [r for r in recipes if key in r.name.casefold()]
    return recipes
