from fastapi import APIRouter, Depends

from stockledger.api.deps import get_actor, get_ledger
from stockledger.schemas.identity import Actor
from stockledger.schemas.recipe import Recipe, RecipeCreate, RecipeUpdate
from stockledger.services import recipe_service
from stockledger.services.transaction import TenantLedger

router = APIRouter(prefix="/recipes", tags=["Recipes"])


@router.post("", response_model=Recipe, status_code=201)
def add_recipe(
    data: RecipeCreate,
    consume_stock: bool = False,
    actor: Actor = Depends(get_actor),
    ledger: TenantLedger = Depends(get_ledger),
):
    if consume_stock:
        return recipe_service.add_recipe_with_stock_consumption(ledger, actor.tenant_id, data, actor)
    return recipe_service.add_recipe(ledger, actor.tenant_id, data, actor)


@router.get("", response_model=list[Recipe])
def list_recipes(
    search: str | None = None, actor: Actor = Depends(get_actor), ledger: TenantLedger = Depends(get_ledger)
):
    return recipe_service.list_recipes(ledger, actor.tenant_id, search=search)


@router.get("/{recipe_id}", response_model=Recipe)
def get_recipe(recipe_id: int, actor: Actor = Depends(get_actor), ledger: TenantLedger = Depends(get_ledger)):
    return recipe_service.get_recipe(ledger, actor.tenant_id, recipe_id)


@router.patch("/{recipe_id}", response_model=Recipe)
def update_recipe(
    recipe_id: int,
    data: RecipeUpdate,
    consume_stock: bool = False,
    actor: Actor = Depends(get_actor),
    ledger: TenantLedger = Depends(get_ledger),
):
    return recipe_service.update_recipe(ledger, actor.tenant_id, recipe_id, data, actor, consume_stock=consume_stock)


@router.delete("/{recipe_id}", response_model=Recipe)
def delete_recipe(recipe_id: int, actor: Actor = Depends(get_actor), ledger: TenantLedger = Depends(get_ledger)):
    return recipe_service.delete_recipe(ledger, actor.tenant_id, recipe_id, actor)
