"""Recipes endpoints for the recipe API"""

import logging
from typing import List, Optional
from fastapi import APIRouter, Depends, Query, status
from fastapi.responses import JSONResponse

from core.config import settings
from core.exceptions import DatabaseException, NotFoundException, RecipeAPIException
from db.db_core import Database
from dependencies.database import get_db
from models.requests import (
    BulkRecipeCreateRequest,
    BulkRecipeDeleteRequest,
    FodmapLevel,
    RecipeCreate,
    RecipeIngredientsReplace,
    RecipeUpdate,
    SafeFodmapLevel,
)
from models.responses import (
    BulkCreateEnvelope,
    BulkDeleteEnvelope,
    RecipeEnvelope,
    RecipeIngredientsEnvelope,
    RecipePage,
    RecipeReferenceEnvelope,
    RecipeResponse,
    RecipeSummaryResponse,
)
from utils.pagination import PageRequest, build_pagination_metadata, resolve_pagination
from utils.responses import bulk_response, paginated_response, success_response

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/recipes", tags=["recipes"])


def page_request(page: Optional[str], limit: Optional[str]) -> PageRequest:
    return resolve_pagination(
        page,
        limit,
        default_limit=settings.pagination_default_limit,
        max_limit=settings.pagination_max_limit,
    )


def recipe_page(rows: List[dict], total_count: int, paging: PageRequest, message: str) -> dict:
    return paginated_response(
        [RecipeSummaryResponse(**row) for row in rows],
        build_pagination_metadata(paging.page, paging.limit, total_count),
        message,
    )


@router.get("", response_model=RecipePage)
async def list_recipes(
    page: Optional[str] = Query(None, description="Page number (1-based)"),
    limit: Optional[str] = Query(None, description="Number of items per page (1-100)"),
    category_id: Optional[int] = Query(None, gt=0, description="Only this category"),
    category_ids: Optional[List[int]] = Query(None, description="Any of these categories"),
    search: Optional[str] = Query(None, max_length=255, description="Text in title or description"),
    tag: Optional[str] = Query(None, max_length=255, description="Tag name (partial match)"),
    prep_time_min: Optional[int] = Query(None, gt=0, description="Minimum preparation time (minutes)"),
    prep_time_max: Optional[int] = Query(None, gt=0, description="Maximum preparation time (minutes)"),
    fodmap_max_level: Optional[FodmapLevel] = Query(None, description="Highest FODMAP level allowed"),
    db: Database = Depends(get_db),
):
    """List recipes with optional filters and pagination"""
    paging = page_request(page, limit)
    filters = {
        "category_id": category_id,
        "category_ids": category_ids,
        "search": search,
        "tag": tag,
        "prep_time_min": prep_time_min,
        "prep_time_max": prep_time_max,
        "fodmap_max_level": fodmap_max_level.value if fodmap_max_level else None,
    }
    try:
        logger.info(f"Listing recipes: page={paging.page}, limit={paging.limit}, filters={filters}")
        rows, total_count = await db.get_recipes(filters, paging.limit, paging.offset)
        return recipe_page(rows, total_count, paging, "Recipes retrieved successfully")
    except RecipeAPIException:
        raise
    except Exception as e:
        logger.error(f"Error listing recipes: {str(e)}")
        raise DatabaseException("Failed to retrieve recipes", details=[str(e)])


@router.get("/popular", response_model=RecipePage)
async def popular_recipes(
    days: int = Query(30, ge=1, le=365, description="Look-back window in days"),
    page: Optional[str] = Query(None, description="Page number (1-based)"),
    limit: Optional[str] = Query(None, description="Number of items per page (1-100)"),
    db: Database = Depends(get_db),
):
    """Recipes created within the last ``days`` days, newest first"""
    paging = page_request(page, limit)
    try:
        rows, total_count = await db.get_popular_recipes(days, paging.limit, paging.offset)
        return recipe_page(rows, total_count, paging, f"Recipes from the last {days} days retrieved successfully")
    except RecipeAPIException:
        raise
    except Exception as e:
        logger.error(f"Error getting popular recipes: {str(e)}")
        raise DatabaseException("Failed to retrieve popular recipes", details=[str(e)])


@router.get("/fodmap-safe", response_model=RecipePage)
async def fodmap_safe_recipes(
    max_level: SafeFodmapLevel = Query(SafeFodmapLevel.LOW, description="Highest FODMAP level allowed"),
    page: Optional[str] = Query(None, description="Page number (1-based)"),
    limit: Optional[str] = Query(None, description="Number of items per page (1-100)"),
    db: Database = Depends(get_db),
):
    """Recipes whose ingredients are all at or below ``max_level``"""
    paging = page_request(page, limit)
    try:
        rows, total_count = await db.get_fodmap_safe_recipes(max_level.value, paging.limit, paging.offset)
        return recipe_page(rows, total_count, paging, f"{max_level.value} FODMAP recipes retrieved successfully")
    except RecipeAPIException:
        raise
    except Exception as e:
        logger.error(f"Error getting FODMAP-safe recipes: {str(e)}")
        raise DatabaseException("Failed to retrieve FODMAP-safe recipes", details=[str(e)])


@router.post("/bulk", response_model=BulkCreateEnvelope, status_code=status.HTTP_201_CREATED)
async def bulk_create_recipes(
    bulk_data: BulkRecipeCreateRequest,
    db: Database = Depends(get_db),
) -> JSONResponse:
    """Create up to 20 recipes; failures are reported per item with 207"""
    try:
        logger.info(f"Bulk create started: {len(bulk_data.recipes)} recipes")
        result = await db.bulk_create_recipes([recipe.model_dump() for recipe in bulk_data.recipes])
        summary = result["summary"]
        return bulk_response(
            result,
            f"{summary['successful']} recipes created successfully",
            f"Bulk creation completed with {summary['failed']} errors",
            status.HTTP_201_CREATED,
        )
    except RecipeAPIException:
        raise
    except Exception as e:
        logger.error(f"Error in bulk recipe creation: {str(e)}")
        raise DatabaseException("Failed to create recipes", details=[str(e)])


@router.delete("/bulk", response_model=BulkDeleteEnvelope)
async def bulk_delete_recipes(
    bulk_data: BulkRecipeDeleteRequest,
    db: Database = Depends(get_db),
) -> JSONResponse:
    """Delete up to 20 recipes; unknown ids are reported per item with 207"""
    try:
        logger.info(f"Bulk delete started: {len(bulk_data.ids)} ids")
        result = await db.bulk_delete_recipes(bulk_data.ids)
        summary = result["summary"]
        return bulk_response(
            result,
            f"{summary['successful']} recipes deleted successfully",
            f"Bulk deletion completed with {summary['failed']} errors",
            status.HTTP_200_OK,
        )
    except RecipeAPIException:
        raise
    except Exception as e:
        logger.error(f"Error in bulk recipe deletion: {str(e)}")
        raise DatabaseException("Failed to delete recipes", details=[str(e)])


@router.get("/{recipe_id}", response_model=RecipeEnvelope)
async def get_recipe(recipe_id: int, db: Database = Depends(get_db)):
    """Get a recipe with its ingredients and tags"""
    try:
        recipe = await db.get_recipe(recipe_id)
        if recipe is None:
            raise NotFoundException(f"Recipe with ID {recipe_id} not found", code="RECIPE_NOT_FOUND")
        return success_response(RecipeResponse(**recipe), "Recipe retrieved successfully")
    except RecipeAPIException:
        raise
    except Exception as e:
        logger.error(f"Error getting recipe {recipe_id}: {str(e)}")
        raise DatabaseException("Failed to retrieve recipe", details=[str(e)])


@router.get("/{recipe_id}/ingredients", response_model=RecipeIngredientsEnvelope)
async def get_recipe_ingredients(recipe_id: int, db: Database = Depends(get_db)):
    """Get only the ingredients of a recipe"""
    try:
        result = await db.get_recipe_ingredients(recipe_id)
        return success_response(result, "Recipe ingredients retrieved successfully")
    except RecipeAPIException:
        raise
    except Exception as e:
        logger.error(f"Error getting ingredients of recipe {recipe_id}: {str(e)}")
        raise DatabaseException("Failed to retrieve recipe ingredients", details=[str(e)])


@router.put("/{recipe_id}/ingredients", response_model=RecipeIngredientsEnvelope)
async def replace_recipe_ingredients(
    recipe_id: int,
    replacement: RecipeIngredientsReplace,
    db: Database = Depends(get_db),
):
    """Replace the full ingredient set of a recipe"""
    try:
        result = await db.replace_recipe_ingredients(
            recipe_id,
            [ingredient.model_dump() for ingredient in replacement.ingredients],
            replacement.updated_by,
        )
        return success_response(result, "Recipe ingredients updated successfully")
    except RecipeAPIException:
        raise
    except Exception as e:
        logger.error(f"Error replacing ingredients of recipe {recipe_id}: {str(e)}")
        raise DatabaseException("Failed to update recipe ingredients", details=[str(e)])


@router.post("", response_model=RecipeEnvelope, status_code=status.HTTP_201_CREATED)
async def create_recipe(recipe_data: RecipeCreate, db: Database = Depends(get_db)):
    """Create a recipe together with its ingredients and tags"""
    try:
        logger.info(f"Creating recipe: {recipe_data.title}")
        recipe = await db.create_recipe(recipe_data.model_dump())
        return success_response(RecipeResponse(**recipe), "Recipe created successfully")
    except RecipeAPIException:
        raise
    except Exception as e:
        logger.error(f"Error creating recipe: {str(e)}")
        raise DatabaseException("Failed to create recipe", details=[str(e)])


@router.put("/{recipe_id}", response_model=RecipeEnvelope)
async def update_recipe(recipe_id: int, recipe_data: RecipeUpdate, db: Database = Depends(get_db)):
    """Update a recipe; omitted fields and association sets are left as they are"""
    try:
        logger.info(f"Updating recipe {recipe_id}")
        recipe = await db.update_recipe(recipe_id, recipe_data.model_dump(exclude_unset=True))
        if recipe is None:
            raise NotFoundException(f"Recipe with ID {recipe_id} not found", code="RECIPE_NOT_FOUND")
        return success_response(RecipeResponse(**recipe), "Recipe updated successfully")
    except RecipeAPIException:
        raise
    except Exception as e:
        logger.error(f"Error updating recipe {recipe_id}: {str(e)}")
        raise DatabaseException("Failed to update recipe", details=[str(e)])


@router.delete("/{recipe_id}", response_model=RecipeReferenceEnvelope)
async def delete_recipe(recipe_id: int, db: Database = Depends(get_db)):
    """Delete a recipe and its ingredient and tag associations"""
    try:
        logger.info(f"Deleting recipe {recipe_id}")
        deleted = await db.delete_recipe(recipe_id)
        return success_response(deleted, "Recipe deleted successfully")
    except RecipeAPIException:
        raise
    except Exception as e:
        logger.error(f"Error deleting recipe {recipe_id}: {str(e)}")
        raise DatabaseException("Failed to delete recipe", details=[str(e)])
