"""Tags endpoints for the recipe API"""

import logging
from fastapi import APIRouter, Depends, status

from core.exceptions import DatabaseException, RecipeAPIException
from db.db_core import Database
from dependencies.database import get_db
from models.requests import TagCreate
from models.responses import TagEnvelope, TagListEnvelope, TagResponse
from utils.responses import success_response

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/tags", tags=["tags"])


@router.get("", response_model=TagListEnvelope)
async def list_tags(db: Database = Depends(get_db)):
    """Get all tags, ordered by name"""
    try:
        tags = await db.get_tags()
        return success_response([TagResponse(**tag) for tag in tags], "Tags retrieved successfully")
    except RecipeAPIException:
        raise
    except Exception as e:
        logger.error(f"Error getting tags: {str(e)}")
        raise DatabaseException("Failed to retrieve tags", details=[str(e)])


@router.post("", response_model=TagEnvelope, status_code=status.HTTP_201_CREATED)
async def create_tag(tag_data: TagCreate, db: Database = Depends(get_db)):
    """Create a new tag"""
    try:
        logger.info(f"Creating tag: {tag_data.name}")
        tag = await db.create_tag(tag_data.name)
        return success_response(TagResponse(**tag), "Tag created successfully")
    except RecipeAPIException:
        raise
    except Exception as e:
        logger.error(f"Error creating tag: {str(e)}")
        raise DatabaseException("Failed to create tag", details=[str(e)])


@router.put("/{tag_id}", response_model=TagEnvelope)
async def update_tag(tag_id: int, tag_data: TagCreate, db: Database = Depends(get_db)):
    """Rename a tag"""
    try:
        tag = await db.update_tag(tag_id, tag_data.name)
        return success_response(TagResponse(**tag), "Tag updated successfully")
    except RecipeAPIException:
        raise
    except Exception as e:
        logger.error(f"Error updating tag {tag_id}: {str(e)}")
        raise DatabaseException("Failed to update tag", details=[str(e)])


@router.delete("/{tag_id}", response_model=TagEnvelope)
async def delete_tag(tag_id: int, db: Database = Depends(get_db)):
    """Delete a tag that no recipe uses"""
    try:
        logger.info(f"Deleting tag {tag_id}")
        tag = await db.delete_tag(tag_id)
        return success_response(TagResponse(**tag), "Tag deleted successfully")
    except RecipeAPIException:
        raise
    except Exception as e:
        logger.error(f"Error deleting tag {tag_id}: {str(e)}")
        raise DatabaseException("Failed to delete tag", details=[str(e)])
