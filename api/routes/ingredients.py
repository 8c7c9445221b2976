"""Ingredients endpoints for the recipe API"""

import logging
from typing import Optional
from fastapi import APIRouter, Depends, Query, status

from core.config import settings
from core.exceptions import DatabaseException, NotFoundException, RecipeAPIException, ValidationException
from db.db_core import Database
from dependencies.database import get_db
from models.requests import FodmapLevel, IngredientCreate, IngredientUpdate
from models.responses import IngredientEnvelope, IngredientPage, IngredientResponse
from utils.pagination import build_pagination_metadata, resolve_pagination
from utils.responses import paginated_response, success_response

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/ingredients", tags=["ingredients"])


@router.get("", response_model=IngredientPage)
async def list_ingredients(
    page: Optional[str] = Query(None, description="Page number (1-based)"),
    limit: Optional[str] = Query(None, description="Number of items per page (1-100)"),
    fodmap_level: Optional[FodmapLevel] = Query(None, description="Only this FODMAP level"),
    db: Database = Depends(get_db),
):
    """List ingredients, optionally filtered by FODMAP level"""
    paging = resolve_pagination(
        page, limit, settings.pagination_default_limit, settings.pagination_max_limit
    )
    try:
        rows, total_count = await db.get_ingredients(
            paging.limit, paging.offset, fodmap_level.value if fodmap_level else None
        )
        return paginated_response(
            [IngredientResponse(**row) for row in rows],
            build_pagination_metadata(paging.page, paging.limit, total_count),
            "Ingredients retrieved successfully",
        )
    except RecipeAPIException:
        raise
    except Exception as e:
        logger.error(f"Error getting ingredients: {str(e)}")
        raise DatabaseException("Failed to retrieve ingredients", details=[str(e)])


@router.get("/search", response_model=IngredientPage)
async def search_ingredients(
    q: str = Query(..., min_length=1, max_length=255, description="Text contained in the name"),
    page: Optional[str] = Query(None, description="Page number (1-based)"),
    limit: Optional[str] = Query(None, description="Number of items per page (1-100)"),
    db: Database = Depends(get_db),
):
    """Search ingredients by name (case-insensitive, wildcards match literally)"""
    paging = resolve_pagination(
        page, limit, settings.pagination_default_limit, settings.pagination_max_limit
    )
    term = q.strip()
    if not term:
        raise ValidationException("Search query is required", details=["q: must not be blank"])
    try:
        logger.info(f"Searching ingredients: {term}")
        rows, total_count = await db.search_ingredients(term, paging.limit, paging.offset)
        return paginated_response(
            [IngredientResponse(**row) for row in rows],
            build_pagination_metadata(paging.page, paging.limit, total_count),
            f"Found {total_count} ingredients",
        )
    except RecipeAPIException:
        raise
    except Exception as e:
        logger.error(f"Error searching ingredients: {str(e)}")
        raise DatabaseException("Failed to search ingredients", details=[str(e)])


@router.get("/{ingredient_id}", response_model=IngredientEnvelope)
async def get_ingredient(ingredient_id: int, db: Database = Depends(get_db)):
    """Get a single ingredient"""
    try:
        ingredient = await db.get_ingredient(ingredient_id)
        if ingredient is None:
            raise NotFoundException(
                f"Ingredient with ID {ingredient_id} not found", code="INGREDIENT_NOT_FOUND"
            )
        return success_response(IngredientResponse(**ingredient), "Ingredient retrieved successfully")
    except RecipeAPIException:
        raise
    except Exception as e:
        logger.error(f"Error getting ingredient {ingredient_id}: {str(e)}")
        raise DatabaseException("Failed to retrieve ingredient", details=[str(e)])


@router.post("", response_model=IngredientEnvelope, status_code=status.HTTP_201_CREATED)
async def create_ingredient(ingredient_data: IngredientCreate, db: Database = Depends(get_db)):
    """Create a new ingredient"""
    try:
        logger.info(f"Creating ingredient: {ingredient_data.name}")
        ingredient = await db.create_ingredient(ingredient_data.model_dump())
        return success_response(IngredientResponse(**ingredient), "Ingredient created successfully")
    except RecipeAPIException:
        raise
    except Exception as e:
        logger.error(f"Error creating ingredient: {str(e)}")
        raise DatabaseException("Failed to create ingredient", details=[str(e)])


@router.put("/{ingredient_id}", response_model=IngredientEnvelope)
async def update_ingredient(
    ingredient_id: int, ingredient_data: IngredientUpdate, db: Database = Depends(get_db)
):
    """Update the fields present in the request"""
    try:
        ingredient = await db.update_ingredient(ingredient_id, ingredient_data.model_dump(exclude_unset=True))
        return success_response(IngredientResponse(**ingredient), "Ingredient updated successfully")
    except RecipeAPIException:
        raise
    except Exception as e:
        logger.error(f"Error updating ingredient {ingredient_id}: {str(e)}")
        raise DatabaseException("Failed to update ingredient", details=[str(e)])


@router.delete("/{ingredient_id}", response_model=IngredientEnvelope)
async def delete_ingredient(ingredient_id: int, db: Database = Depends(get_db)):
    """Delete an ingredient that no recipe uses"""
    try:
        logger.info(f"Deleting ingredient {ingredient_id}")
        ingredient = await db.delete_ingredient(ingredient_id)
        return success_response(IngredientResponse(**ingredient), "Ingredient deleted successfully")
    except RecipeAPIException:
        raise
    except Exception as e:
        logger.error(f"Error deleting ingredient {ingredient_id}: {str(e)}")
        raise DatabaseException("Failed to delete ingredient", details=[str(e)])
