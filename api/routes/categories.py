"""Category endpoints for the recipe API"""

import logging
from fastapi import APIRouter, Depends, status

from core.exceptions import DatabaseException, RecipeAPIException
from db.db_core import Database
from dependencies.database import get_db
from models.requests import CategoryCreate
from models.responses import CategoryEnvelope, CategoryListEnvelope, CategoryResponse
from utils.responses import success_response

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/categories", tags=["categories"])


@router.get("", response_model=CategoryListEnvelope)
async def list_categories(db: Database = Depends(get_db)):
    """Get all categories"""
    try:
        categories = await db.get_categories()
        return success_response(
            [CategoryResponse(**category) for category in categories], "Categories retrieved successfully"
        )
    except RecipeAPIException:
        raise
    except Exception as e:
        logger.error(f"Error getting categories: {str(e)}")
        raise DatabaseException("Failed to retrieve categories", details=[str(e)])


@router.post("", response_model=CategoryEnvelope, status_code=status.HTTP_201_CREATED)
async def create_category(category_data: CategoryCreate, db: Database = Depends(get_db)):
    """Create a new category"""
    try:
        logger.info(f"Creating category: {category_data.name}")
        category = await db.create_category(category_data.name)
        return success_response(CategoryResponse(**category), "Category created successfully")
    except RecipeAPIException:
        raise
    except Exception as e:
        logger.error(f"Error creating category: {str(e)}")
        raise DatabaseException("Failed to create category", details=[str(e)])


@router.put("/{category_id}", response_model=CategoryEnvelope)
async def update_category(category_id: int, category_data: CategoryCreate, db: Database = Depends(get_db)):
    """Rename a category"""
    try:
        category = await db.update_category(category_id, category_data.name)
        return success_response(CategoryResponse(**category), "Category updated successfully")
    except RecipeAPIException:
        raise
    except Exception as e:
        logger.error(f"Error updating category {category_id}: {str(e)}")
        raise DatabaseException("Failed to update category", details=[str(e)])


@router.delete("/{category_id}", response_model=CategoryEnvelope)
async def delete_category(category_id: int, db: Database = Depends(get_db)):
    """Delete a category that no recipe uses"""
    try:
        logger.info(f"Deleting category {category_id}")
        category = await db.delete_category(category_id)
        return success_response(CategoryResponse(**category), "Category deleted successfully")
    except RecipeAPIException:
        raise
    except Exception as e:
        logger.error(f"Error deleting category {category_id}: {str(e)}")
        raise DatabaseException("Failed to delete category", details=[str(e)])
