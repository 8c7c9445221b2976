from typing import List

# Shared SQL fragments for recipe list queries
RECIPE_LIST_FIELDS = """
    r.id, r.title, r.description, r.preparation_time, r.serving_size,
    r.image_url, r.category_id, c.name AS category_name,
    r.created_by, r.updated_by, r.created_at, r.updated_at,
    COUNT(DISTINCT ri.ingredient_id) AS ingredient_count,
    COUNT(DISTINCT rt.tag_id) AS tag_count
"""

RECIPE_LIST_JOINS = """
    FROM recipes r
    LEFT JOIN categories c ON r.category_id = c.id
    LEFT JOIN recipe_ingredients ri ON r.id = ri.recipe_id
    LEFT JOIN recipe_tags rt ON r.id = rt.recipe_id
"""

RECIPE_LIST_GROUP_BY = "GROUP BY r.id, c.name"

# Filter subqueries, written with local $1..$k placeholders (renumbered by
# the query builder). They correlate on the outer alias ``r``.
RECIPE_TEXT_SEARCH_SUBQUERY = """
    SELECT 1 WHERE r.title ILIKE $1 OR r.description ILIKE $2
"""

RECIPE_TAG_SUBQUERY = """
    SELECT 1 FROM recipe_tags rtf
    JOIN tags tf ON rtf.tag_id = tf.id
    WHERE rtf.recipe_id = r.id AND tf.name ILIKE $1
"""


def recipe_fodmap_excluded_subquery(level_placeholders: str) -> str:
    """Recipes containing any ingredient at one of the given FODMAP levels."""
    return f"""
        SELECT 1 FROM recipe_ingredients rif
        JOIN ingredients inf ON rif.ingredient_id = inf.id
        WHERE rif.recipe_id = r.id AND inf.fodmap_level IN ({level_placeholders})
    """


def recipe_count_sql(where_clause: str) -> str:
    return f"""
        SELECT COUNT(*) AS total_count
        FROM recipes r
        {where_clause}
    """


def recipe_list_sql(where_clause: str, order_by: str, pagination_clause: str) -> str:
    return f"""
        SELECT {RECIPE_LIST_FIELDS}
        {RECIPE_LIST_JOINS}
        {where_clause}
        {RECIPE_LIST_GROUP_BY}
        {order_by}
        {pagination_clause}
    """


# Single-statement recipe detail: scalar fields, category name and both
# association sets aggregated as JSON.
GET_RECIPE_BY_ID_SQL = """
    WITH recipe_data AS (
        SELECT r.*, c.name AS category_name
        FROM recipes r
        LEFT JOIN categories c ON r.category_id = c.id
        WHERE r.id = $1
    ),
    recipe_ingredients_data AS (
        SELECT ri.recipe_id,
            json_agg(
                json_build_object(
                    'id', i.id, 'name', i.name, 'quantity_unit', i.quantity_unit,
                    'fodmap_level', i.fodmap_level, 'quantity', ri.quantity
                ) ORDER BY i.name
            ) AS ingredients
        FROM recipe_ingredients ri
        JOIN ingredients i ON ri.ingredient_id = i.id
        WHERE ri.recipe_id = $1
        GROUP BY ri.recipe_id
    ),
    recipe_tags_data AS (
        SELECT rt.recipe_id,
            json_agg(json_build_object('id', t.id, 'name', t.name) ORDER BY t.name) AS tags
        FROM recipe_tags rt
        JOIN tags t ON rt.tag_id = t.id
        WHERE rt.recipe_id = $1
        GROUP BY rt.recipe_id
    )
    SELECT rd.*,
        COALESCE(rid.ingredients, '[]'::json) AS ingredients,
        COALESCE(rtd.tags, '[]'::json) AS tags
    FROM recipe_data rd
    LEFT JOIN recipe_ingredients_data rid ON rd.id = rid.recipe_id
    LEFT JOIN recipe_tags_data rtd ON rd.id = rtd.recipe_id
"""

GET_RECIPE_INGREDIENTS_SQL = """
    SELECT i.id, i.name, i.quantity_unit, i.fodmap_level, ri.quantity
    FROM recipe_ingredients ri
    JOIN ingredients i ON ri.ingredient_id = i.id
    WHERE ri.recipe_id = $1
    ORDER BY i.name
"""

RECIPE_EXISTS_SQL = "SELECT id, title FROM recipes WHERE id = $1"
RECIPE_LOCK_SQL = "SELECT id, title FROM recipes WHERE id = $1 FOR UPDATE"

INSERT_RECIPE_SQL = """
    INSERT INTO recipes (
        title, description, preparation_time, category_id, serving_size,
        image_url, created_by, updated_by
    )
    VALUES ($1, $2, $3, $4, $5, $6, $7, $8)
    RETURNING *
"""

DELETE_RECIPE_INGREDIENTS_SQL = "DELETE FROM recipe_ingredients WHERE recipe_id = $1"
DELETE_RECIPE_TAGS_SQL = "DELETE FROM recipe_tags WHERE recipe_id = $1"
DELETE_RECIPE_SQL = "DELETE FROM recipes WHERE id = $1 RETURNING id, title"

# Columns a recipe update may touch, in statement order
RECIPE_UPDATABLE_COLUMNS: List[str] = [
    "title",
    "description",
    "preparation_time",
    "category_id",
    "serving_size",
    "image_url",
]

# Reference data
LIST_CATEGORIES_SQL = "SELECT id, name, created_at FROM categories ORDER BY id"
LIST_TAGS_SQL = "SELECT id, name, created_at FROM tags ORDER BY name"

INGREDIENT_FIELDS = "id, name, quantity_unit, fodmap_level, created_at"

# Health checks
BASE_TABLES: List[str] = ["categories", "ingredients", "tags", "recipes"]

SCHEMA_TABLES_SQL = """
    SELECT table_name
    FROM information_schema.tables
    WHERE table_schema = 'public' AND table_name = ANY($1::text[])
"""

TABLE_COUNTS_SQL = """
    SELECT
        (SELECT COUNT(*) FROM categories) AS categories,
        (SELECT COUNT(*) FROM ingredients) AS ingredients,
        (SELECT COUNT(*) FROM tags) AS tags,
        (SELECT COUNT(*) FROM recipes) AS recipes
"""
