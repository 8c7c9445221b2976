from enum import Enum
from typing import List, Optional
from urllib.parse import urlparse

from pydantic import BaseModel, Field, PositiveInt, field_validator

# Largest value of a PostgreSQL INTEGER column
MAX_INT = 2147483647
BULK_MAX_ITEMS = 20


class FodmapLevel(str, Enum):
    LOW = "LOW"
    MODERATE = "MODERATE"
    HIGH = "HIGH"


class SafeFodmapLevel(str, Enum):
    """Levels accepted by the FODMAP-safe recipe listing"""

    LOW = "LOW"
    MODERATE = "MODERATE"


class CategoryCreate(BaseModel):
    """Request model for creating or renaming a category"""

    name: str = Field(..., description="Category name", min_length=1, max_length=100)

    class Config:
        str_strip_whitespace = True


class IngredientCreate(BaseModel):
    """Request model for creating an ingredient"""

    name: str = Field(..., description="Ingredient name", min_length=1, max_length=255)
    quantity_unit: Optional[str] = Field(None, description="Unit, e.g. g, ml, piece", max_length=50)
    fodmap_level: Optional[FodmapLevel] = Field(None, description="FODMAP level")

    class Config:
        str_strip_whitespace = True
        use_enum_values = True


class IngredientUpdate(BaseModel):
    """Request model for updating an ingredient"""

    name: Optional[str] = Field(None, description="Ingredient name", min_length=1, max_length=255)
    quantity_unit: Optional[str] = Field(None, description="Unit, e.g. g, ml, piece", max_length=50)
    fodmap_level: Optional[FodmapLevel] = Field(None, description="FODMAP level")

    class Config:
        str_strip_whitespace = True
        use_enum_values = True

    @field_validator("name")
    @classmethod
    def name_not_null(cls, value):
        if value is None:
            raise ValueError("name cannot be null")
        return value


class TagCreate(BaseModel):
    """Request model for creating or renaming a tag"""

    name: str = Field(..., description="Tag name", min_length=1, max_length=255)

    class Config:
        str_strip_whitespace = True


class RecipeIngredient(BaseModel):
    """One ingredient line of a recipe request"""

    ingredient_id: int = Field(..., description="Ingredient ID", gt=0, le=MAX_INT)
    quantity: float = Field(..., description="Quantity, in the ingredient's unit", gt=0)


def _check_image_url(value: Optional[str]) -> Optional[str]:
    if value is None:
        return value
    parsed = urlparse(value)
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise ValueError("image_url must be a valid http(s) URL")
    return value


class RecipeCreate(BaseModel):
    """Request model for creating a recipe"""

    title: str = Field(..., description="Recipe title", min_length=1, max_length=255)
    description: Optional[str] = Field(None, description="Recipe description", max_length=2000)
    preparation_time: Optional[int] = Field(None, description="Preparation time in minutes", gt=0, le=MAX_INT)
    serving_size: Optional[int] = Field(None, description="Number of servings", gt=0, le=MAX_INT)
    image_url: Optional[str] = Field(None, description="Image URL", max_length=2048)
    category_id: int = Field(..., description="Category ID", gt=0, le=MAX_INT)
    ingredients: List[RecipeIngredient] = Field(default=[], description="Recipe ingredients")
    tags: List[PositiveInt] = Field(default=[], description="Tag IDs")
    created_by: Optional[str] = Field(None, description="Author attribution", max_length=255)

    class Config:
        str_strip_whitespace = True

    @field_validator("image_url")
    @classmethod
    def validate_image_url(cls, value):
        return _check_image_url(value)


class RecipeUpdate(BaseModel):
    """Request model for updating a recipe

    Only fields present in the request are changed. Supplying ``ingredients``
    or ``tags`` (even as an empty list) replaces that association set.
    """

    title: Optional[str] = Field(None, description="Recipe title", min_length=1, max_length=255)
    description: Optional[str] = Field(None, description="Recipe description", max_length=2000)
    preparation_time: Optional[int] = Field(None, description="Preparation time in minutes", gt=0, le=MAX_INT)
    serving_size: Optional[int] = Field(None, description="Number of servings", gt=0, le=MAX_INT)
    image_url: Optional[str] = Field(None, description="Image URL", max_length=2048)
    category_id: Optional[int] = Field(None, description="Category ID", gt=0, le=MAX_INT)
    ingredients: Optional[List[RecipeIngredient]] = Field(None, description="Replacement ingredient set")
    tags: Optional[List[PositiveInt]] = Field(None, description="Replacement tag set")
    updated_by: Optional[str] = Field(None, description="Editor attribution", max_length=255)

    class Config:
        str_strip_whitespace = True

    @field_validator("title", "category_id")
    @classmethod
    def required_columns_not_null(cls, value, info):
        if value is None:
            raise ValueError(f"{info.field_name} cannot be null")
        return value

    @field_validator("image_url")
    @classmethod
    def validate_image_url(cls, value):
        return _check_image_url(value)


class RecipeIngredientsReplace(BaseModel):
    """Request model for replacing a recipe's ingredient set"""

    ingredients: List[RecipeIngredient] = Field(..., description="The complete new ingredient set")
    updated_by: Optional[str] = Field(None, description="Editor attribution", max_length=255)


class BulkRecipeCreateRequest(BaseModel):
    """Request model for bulk recipe creation"""

    recipes: List[RecipeCreate] = Field(
        ..., description="Recipes to create", min_length=1, max_length=BULK_MAX_ITEMS
    )


class BulkRecipeDeleteRequest(BaseModel):
    """Request model for bulk recipe deletion"""

    ids: List[PositiveInt] = Field(
        ..., description="Recipe IDs to delete", min_length=1, max_length=BULK_MAX_ITEMS
    )
