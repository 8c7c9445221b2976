from datetime import datetime
from typing import Any, List, Optional

from pydantic import BaseModel, Field


class MessageResponse(BaseModel):
    """Response model for simple messages"""

    message: str = Field(..., description="Response message")


class ErrorResponse(BaseModel):
    """Failure envelope"""

    error: bool = Field(default=True, description="Always true for failures")
    message: str = Field(..., description="Error message")
    details: List[str] = Field(default_factory=list, description="Field-level or contextual details")
    code: str = Field(..., description="Stable error code for client-side branching")


class PaginationMetadata(BaseModel):
    """Response model for pagination metadata"""

    page: int = Field(..., description="Current page number (1-based)", ge=1)
    limit: int = Field(..., description="Number of items per page", ge=1)
    total_count: int = Field(..., alias="totalCount", description="Total number of items", ge=0)
    total_pages: int = Field(..., alias="totalPages", description="Total number of pages", ge=0)
    has_next: bool = Field(..., alias="hasNext", description="Whether there is a next page")
    has_prev: bool = Field(..., alias="hasPrev", description="Whether there is a previous page")

    class Config:
        from_attributes = True
        populate_by_name = True


class SuccessResponse(BaseModel):
    """Success envelope"""

    error: bool = Field(default=False, description="Always false for successes")
    message: str = Field(default="Success", description="Human readable outcome")
    data: Any = Field(None, description="Payload")


class PaginatedResponse(SuccessResponse):
    """Success envelope for one page of a list"""

    data: List[Any] = Field(default_factory=list, description="Items on this page")
    pagination: PaginationMetadata = Field(..., description="Pagination metadata")


class CategoryResponse(BaseModel):
    """Response model for category data"""

    id: int = Field(..., description="Category ID")
    name: str = Field(..., description="Category name")
    created_at: Optional[datetime] = Field(None, description="Creation timestamp")

    class Config:
        from_attributes = True


class IngredientResponse(BaseModel):
    """Response model for ingredient data"""

    id: int = Field(..., description="Ingredient ID")
    name: str = Field(..., description="Ingredient name")
    quantity_unit: Optional[str] = Field(None, description="Unit the quantity is expressed in")
    fodmap_level: Optional[str] = Field(None, description="FODMAP level: LOW, MODERATE or HIGH")
    created_at: Optional[datetime] = Field(None, description="Creation timestamp")

    class Config:
        from_attributes = True


class TagResponse(BaseModel):
    """Response model for tag data"""

    id: int = Field(..., description="Tag ID")
    name: str = Field(..., description="Tag name")
    created_at: Optional[datetime] = Field(None, description="Creation timestamp")

    class Config:
        from_attributes = True


class RecipeIngredientResponse(BaseModel):
    """An ingredient as used by one recipe"""

    id: int = Field(..., description="Ingredient ID")
    name: str = Field(..., description="Ingredient name")
    quantity_unit: Optional[str] = Field(None, description="Unit the quantity is expressed in")
    fodmap_level: Optional[str] = Field(None, description="FODMAP level")
    quantity: float = Field(..., description="Quantity used in the recipe")

    class Config:
        from_attributes = True


class RecipeSummaryResponse(BaseModel):
    """Recipe row as returned by list endpoints"""

    id: int = Field(..., description="Recipe ID")
    title: str = Field(..., description="Recipe title")
    description: Optional[str] = Field(None, description="Recipe description")
    preparation_time: Optional[int] = Field(None, description="Preparation time in minutes")
    serving_size: Optional[int] = Field(None, description="Number of servings")
    image_url: Optional[str] = Field(None, description="Image URL")
    category_id: int = Field(..., description="Category ID")
    category_name: Optional[str] = Field(None, description="Category name")
    created_by: Optional[str] = Field(None, description="Who created the recipe")
    updated_by: Optional[str] = Field(None, description="Who last updated the recipe")
    created_at: Optional[datetime] = Field(None, description="Creation timestamp")
    updated_at: Optional[datetime] = Field(None, description="Last update timestamp")
    ingredient_count: int = Field(default=0, description="Number of ingredients")
    tag_count: int = Field(default=0, description="Number of tags")

    class Config:
        from_attributes = True


class RecipeResponse(BaseModel):
    """Full recipe with its ingredients and tags"""

    id: int = Field(..., description="Recipe ID")
    title: str = Field(..., description="Recipe title")
    description: Optional[str] = Field(None, description="Recipe description")
    preparation_time: Optional[int] = Field(None, description="Preparation time in minutes")
    serving_size: Optional[int] = Field(None, description="Number of servings")
    image_url: Optional[str] = Field(None, description="Image URL")
    category_id: int = Field(..., description="Category ID")
    category_name: Optional[str] = Field(None, description="Category name")
    created_by: Optional[str] = Field(None, description="Who created the recipe")
    updated_by: Optional[str] = Field(None, description="Who last updated the recipe")
    created_at: Optional[datetime] = Field(None, description="Creation timestamp")
    updated_at: Optional[datetime] = Field(None, description="Last update timestamp")
    ingredients: List[RecipeIngredientResponse] = Field(default_factory=list, description="Recipe ingredients")
    tags: List[TagResponse] = Field(default_factory=list, description="Recipe tags")

    class Config:
        from_attributes = True


class RecipeReference(BaseModel):
    """Minimal recipe identity, used for deletions and sub-resources"""

    id: int = Field(..., description="Recipe ID")
    title: str = Field(..., description="Recipe title")


class RecipeIngredientsResponse(BaseModel):
    recipe: RecipeReference
    ingredients: List[RecipeIngredientResponse] = Field(default_factory=list)


class BulkSummary(BaseModel):
    total_submitted: int = Field(..., description="Items in the request")
    successful: int = Field(..., description="Items that succeeded")
    failed: int = Field(..., description="Items that failed")


class BulkCreateError(BaseModel):
    index: int = Field(..., description="Position of the item in the request")
    title: Optional[str] = Field(None, description="Title of the failed item")
    error: str = Field(..., description="Why the item failed")
    code: Optional[str] = Field(None, description="Error code")
    details: List[str] = Field(default_factory=list)


class BulkCreatedRecipe(BaseModel):
    index: int
    id: int
    title: str


class BulkCreateResult(BaseModel):
    created_recipes: List[BulkCreatedRecipe]
    errors: List[BulkCreateError]
    summary: BulkSummary


class BulkDeleteError(BaseModel):
    id: int
    error: str


class BulkDeleteResult(BaseModel):
    deleted_recipes: List[RecipeReference]
    errors: List[BulkDeleteError]
    summary: BulkSummary


class CategoryEnvelope(SuccessResponse):
    data: CategoryResponse


class CategoryListEnvelope(SuccessResponse):
    data: List[CategoryResponse]


class IngredientEnvelope(SuccessResponse):
    data: IngredientResponse


class IngredientPage(PaginatedResponse):
    data: List[IngredientResponse]


class TagEnvelope(SuccessResponse):
    data: TagResponse


class TagListEnvelope(SuccessResponse):
    data: List[TagResponse]


class RecipeEnvelope(SuccessResponse):
    data: RecipeResponse


class RecipePage(PaginatedResponse):
    data: List[RecipeSummaryResponse]


class RecipeIngredientsEnvelope(SuccessResponse):
    data: RecipeIngredientsResponse


class RecipeReferenceEnvelope(SuccessResponse):
    data: RecipeReference


class BulkCreateEnvelope(SuccessResponse):
    data: BulkCreateResult


class BulkDeleteEnvelope(SuccessResponse):
    data: BulkDeleteResult
