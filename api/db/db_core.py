import json
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, NamedTuple, Optional, Sequence, Tuple

from core.exceptions import (
    ConflictException,
    NotFoundException,
    RecipeAPIException,
    ValidationException,
)
from .executor import PooledExecutor
from .query_builder import (
    Exact,
    Exists,
    In,
    Like,
    Range,
    build_batch_insert,
    build_in_clause,
    build_order_by,
    build_pagination_clause,
    build_set_clause,
    build_where_clause,
    like_pattern,
    require_field,
)
from .sql_queries import (
    BASE_TABLES,
    DELETE_RECIPE_INGREDIENTS_SQL,
    DELETE_RECIPE_SQL,
    DELETE_RECIPE_TAGS_SQL,
    GET_RECIPE_BY_ID_SQL,
    GET_RECIPE_INGREDIENTS_SQL,
    INGREDIENT_FIELDS,
    INSERT_RECIPE_SQL,
    LIST_CATEGORIES_SQL,
    LIST_TAGS_SQL,
    RECIPE_EXISTS_SQL,
    RECIPE_LOCK_SQL,
    RECIPE_TAG_SUBQUERY,
    RECIPE_TEXT_SEARCH_SUBQUERY,
    RECIPE_UPDATABLE_COLUMNS,
    SCHEMA_TABLES_SQL,
    TABLE_COUNTS_SQL,
    recipe_count_sql,
    recipe_fodmap_excluded_subquery,
    recipe_list_sql,
)
from .transaction import TransactionCoordinator, TransactionHandle

logger = logging.getLogger(__name__)

# Ordered from most to least tolerable
FODMAP_LEVELS = ("LOW", "MODERATE", "HIGH")

DEFAULT_ATTRIBUTION = "system"


@dataclass(frozen=True)
class ReferenceTable:
    """Shared reference data (categories, ingredients, tags) that recipes point at."""

    table: str
    label: str
    code: str
    fields: str
    usage_sql: str


CATEGORIES = ReferenceTable(
    table="categories",
    label="category",
    code="CATEGORY",
    fields="id, name, created_at",
    usage_sql="SELECT COUNT(*) AS usage_count FROM recipes WHERE category_id = $1",
)
INGREDIENTS = ReferenceTable(
    table="ingredients",
    label="ingredient",
    code="INGREDIENT",
    fields=INGREDIENT_FIELDS,
    usage_sql="SELECT COUNT(DISTINCT recipe_id) AS usage_count FROM recipe_ingredients WHERE ingredient_id = $1",
)
TAGS = ReferenceTable(
    table="tags",
    label="tag",
    code="TAG",
    fields="id, name, created_at",
    usage_sql="SELECT COUNT(DISTINCT recipe_id) AS usage_count FROM recipe_tags WHERE tag_id = $1",
)


class BulkOutcome(NamedTuple):
    ok: bool
    value: Dict[str, Any]


def _decode_json_list(value: Any) -> List[Any]:
    # Connections opened outside PooledExecutor.open() have no json codec.
    if value is None:
        return []
    if isinstance(value, str):
        return json.loads(value)
    return list(value)


def _bulk_error(exc: RecipeAPIException) -> Dict[str, Any]:
    error = {"error": exc.message, "code": exc.code}
    if exc.status_code < 500:
        error["details"] = exc.details
    return error


class Database:
    """Recipe catalog operations on top of a PooledExecutor.

    Reads go straight through the executor. Every mutation runs in its own
    TransactionCoordinator scope and sends all statements through the
    transaction handle.
    """

    def __init__(self, executor: PooledExecutor):
        self.executor = executor

    def transaction(self) -> TransactionCoordinator:
        """A fresh coordinator per scope; coordinators are not shared between requests."""
        return TransactionCoordinator(self.executor)

    # ------------------------------------------------------------------
    # Recipe reads
    # ------------------------------------------------------------------

    def _recipe_conditions(self, filters: Dict[str, Any]) -> List[Any]:
        prep_min = filters.get("prep_time_min")
        prep_max = filters.get("prep_time_max")
        created_after = filters.get("created_after")

        conditions: List[Any] = [
            Exact("r.category_id", filters.get("category_id")),
            In("r.category_id", filters.get("category_ids") or None),
            Range("r.preparation_time", prep_min, prep_max)
            if prep_min is not None or prep_max is not None
            else None,
            Range("r.created_at", min=created_after) if created_after is not None else None,
        ]

        search = (filters.get("search") or "").strip()
        if search:
            pattern = like_pattern(search)
            conditions.append(Exists(RECIPE_TEXT_SEARCH_SUBQUERY, [pattern, pattern]))

        tag = (filters.get("tag") or "").strip()
        if tag:
            conditions.append(Exists(RECIPE_TAG_SUBQUERY, [like_pattern(tag)]))

        max_level = filters.get("fodmap_max_level")
        if max_level:
            max_level = str(max_level).upper()
            if max_level not in FODMAP_LEVELS:
                raise ValidationException(
                    "Invalid FODMAP level",
                    details=[f"fodmap_max_level must be one of {', '.join(FODMAP_LEVELS)}"],
                )
            excluded = list(FODMAP_LEVELS[FODMAP_LEVELS.index(max_level) + 1:])
            if excluded:
                placeholders, params, _ = build_in_clause(excluded)
                conditions.append(
                    Exists(recipe_fodmap_excluded_subquery(placeholders), params, negate=True)
                )

        return conditions

    async def get_recipes(
        self, filters: Optional[Dict[str, Any]], limit: int, offset: int
    ) -> Tuple[List[Dict[str, Any]], int]:
        """One page of recipe summaries plus the total count for ``filters``."""
        where = build_where_clause(self._recipe_conditions(filters or {}))

        count_result = await self.executor.query(recipe_count_sql(where.clause), where.params)
        total_count = count_result.scalar("total_count", 0)

        order_by = build_order_by([("r.created_at", "DESC"), ("r.id", "DESC")])
        pagination_clause, pagination_params, _ = build_pagination_clause(
            limit, offset, where.next_index
        )
        result = await self.executor.query(
            recipe_list_sql(where.clause, order_by, pagination_clause),
            where.params + pagination_params,
        )
        return result.rows, total_count

    async def get_popular_recipes(
        self, days: int, limit: int, offset: int
    ) -> Tuple[List[Dict[str, Any]], int]:
        """Recipes created within the last ``days`` days."""
        cutoff = datetime.now(timezone.utc) - timedelta(days=days)
        return await self.get_recipes({"created_after": cutoff}, limit, offset)

    async def get_fodmap_safe_recipes(
        self, max_level: str, limit: int, offset: int
    ) -> Tuple[List[Dict[str, Any]], int]:
        """Recipes with no ingredient above ``max_level``."""
        return await self.get_recipes({"fodmap_max_level": max_level}, limit, offset)

    async def get_recipe(self, recipe_id: int) -> Optional[Dict[str, Any]]:
        row = (await self.executor.query(GET_RECIPE_BY_ID_SQL, (recipe_id,))).first()
        if row is None:
            return None
        recipe = dict(row)
        recipe["ingredients"] = _decode_json_list(recipe.get("ingredients"))
        recipe["tags"] = _decode_json_list(recipe.get("tags"))
        return recipe

    async def get_recipe_ingredients(self, recipe_id: int) -> Dict[str, Any]:
        recipe = (await self.executor.query(RECIPE_EXISTS_SQL, (recipe_id,))).first()
        if recipe is None:
            raise NotFoundException(f"Recipe with ID {recipe_id} not found", code="RECIPE_NOT_FOUND")
        result = await self.executor.query(GET_RECIPE_INGREDIENTS_SQL, (recipe_id,))
        return {"recipe": {"id": recipe["id"], "title": recipe["title"]}, "ingredients": result.rows}

    # ------------------------------------------------------------------
    # Recipe writes
    # ------------------------------------------------------------------

    async def _ensure_category_exists(self, tx: TransactionHandle, category_id: int) -> None:
        result = await tx.query("SELECT id FROM categories WHERE id = $1", (category_id,))
        if not result.rows:
            raise NotFoundException(
                "Category not found",
                details=[f"category_id {category_id} does not exist"],
                code="CATEGORY_NOT_FOUND",
            )

    async def _missing_ids(self, tx: TransactionHandle, table: str, ids: Sequence[int]) -> List[int]:
        """Ids from ``ids`` with no row in ``table``, found with one query."""
        wanted = set(ids)
        where = build_where_clause([In("id", sorted(wanted))])
        result = await tx.query(f"SELECT id FROM {require_field(table)} {where.clause}", where.params)
        found = {row["id"] for row in result.rows}
        if len(found) == len(wanted):
            return []
        return sorted(wanted - found)

    async def _validate_associations(
        self,
        tx: TransactionHandle,
        ingredients: Optional[List[Dict[str, Any]]],
        tag_ids: Optional[List[int]],
    ) -> None:
        if ingredients:
            ingredient_ids = [item["ingredient_id"] for item in ingredients]
            duplicates = sorted({i for i in ingredient_ids if ingredient_ids.count(i) > 1})
            if duplicates:
                raise ValidationException(
                    "Duplicate ingredients in recipe",
                    details=[f"ingredient_id {i} is listed more than once" for i in duplicates],
                    code="DUPLICATE_INGREDIENT",
                )
            invalid = [item["ingredient_id"] for item in ingredients if not item.get("quantity") or item["quantity"] <= 0]
            if invalid:
                raise ValidationException(
                    "Ingredient quantity must be greater than 0",
                    details=[f"ingredient_id {i} has an invalid quantity" for i in invalid],
                )
            missing = await self._missing_ids(tx, "ingredients", ingredient_ids)
            if missing:
                raise NotFoundException(
                    "One or more ingredients do not exist",
                    details=[f"Invalid ingredient IDs: {', '.join(str(i) for i in missing)}"],
                    code="INGREDIENT_NOT_FOUND",
                )

        if tag_ids:
            duplicates = sorted({i for i in tag_ids if tag_ids.count(i) > 1})
            if duplicates:
                raise ValidationException(
                    "Duplicate tags in recipe",
                    details=[f"tag_id {i} is listed more than once" for i in duplicates],
                    code="DUPLICATE_TAG",
                )
            missing = await self._missing_ids(tx, "tags", tag_ids)
            if missing:
                raise NotFoundException(
                    "One or more tags do not exist",
                    details=[f"Invalid tag IDs: {', '.join(str(i) for i in missing)}"],
                    code="TAG_NOT_FOUND",
                )

    async def _insert_recipe_ingredients(
        self, tx: TransactionHandle, recipe_id: int, ingredients: List[Dict[str, Any]]
    ) -> None:
        if not ingredients:
            return
        sql, params = build_batch_insert(
            "recipe_ingredients",
            ["recipe_id", "ingredient_id", "quantity"],
            [(recipe_id, item["ingredient_id"], item["quantity"]) for item in ingredients],
        )
        await tx.query(sql, params)

    async def _insert_recipe_tags(self, tx: TransactionHandle, recipe_id: int, tag_ids: List[int]) -> None:
        if not tag_ids:
            return
        sql, params = build_batch_insert(
            "recipe_tags", ["recipe_id", "tag_id"], [(recipe_id, tag_id) for tag_id in tag_ids]
        )
        await tx.query(sql, params)

    async def _insert_recipe(self, tx: TransactionHandle, data: Dict[str, Any]) -> Dict[str, Any]:
        if data.get("category_id") is None:
            raise ValidationException("category_id is required", details=["category_id: field required"])
        ingredients = data.get("ingredients") or []
        tag_ids = data.get("tags") or []

        await self._ensure_category_exists(tx, data["category_id"])
        await self._validate_associations(tx, ingredients, tag_ids)

        author = data.get("created_by") or DEFAULT_ATTRIBUTION
        result = await tx.query(
            INSERT_RECIPE_SQL,
            (
                data["title"],
                data.get("description"),
                data.get("preparation_time"),
                data["category_id"],
                data.get("serving_size"),
                data.get("image_url"),
                author,
                author,
            ),
        )
        row = result.first()
        if row is None:
            raise RecipeAPIException(f"Failed to get recipe ID after inserting '{data['title']}'")

        await self._insert_recipe_ingredients(tx, row["id"], ingredients)
        await self._insert_recipe_tags(tx, row["id"], tag_ids)
        return row

    async def create_recipe(self, data: Dict[str, Any]) -> Dict[str, Any]:
        """Insert a recipe with its ingredients and tags, all or nothing."""

        async def unit_of_work(tx: TransactionHandle) -> Dict[str, Any]:
            return await self._insert_recipe(tx, data)

        row = await self.transaction().with_transaction(unit_of_work)
        logger.info(f"Created recipe {row['id']} ({row['title']})")
        return await self.get_recipe(row["id"])

    async def _apply_recipe_update(
        self, tx: TransactionHandle, recipe_id: int, data: Dict[str, Any]
    ) -> Dict[str, Any]:
        existing = (await tx.query(RECIPE_LOCK_SQL, (recipe_id,))).first()
        if existing is None:
            raise NotFoundException(f"Recipe with ID {recipe_id} not found", code="RECIPE_NOT_FOUND")

        for column in ("title", "category_id"):
            if column in data and data[column] is None:
                raise ValidationException(f"{column} cannot be null", details=[f"{column}: may not be null"])

        # None means "leave associations alone"; an empty list clears them.
        ingredients = data.get("ingredients")
        tag_ids = data.get("tags")

        if data.get("category_id") is not None:
            await self._ensure_category_exists(tx, data["category_id"])
        await self._validate_associations(tx, ingredients, tag_ids)

        values = {column: data[column] for column in RECIPE_UPDATABLE_COLUMNS if column in data}
        values["updated_by"] = data.get("updated_by") or DEFAULT_ATTRIBUTION
        set_clause, params, next_index = build_set_clause(values)
        await tx.query(
            f"UPDATE recipes SET {set_clause}, updated_at = CURRENT_TIMESTAMP WHERE id = ${next_index}",
            params + [recipe_id],
        )

        if ingredients is not None:
            await tx.query(DELETE_RECIPE_INGREDIENTS_SQL, (recipe_id,))
            await self._insert_recipe_ingredients(tx, recipe_id, ingredients)
        if tag_ids is not None:
            await tx.query(DELETE_RECIPE_TAGS_SQL, (recipe_id,))
            await self._insert_recipe_tags(tx, recipe_id, tag_ids)
        return existing

    async def update_recipe(self, recipe_id: int, data: Dict[str, Any]) -> Dict[str, Any]:
        """Update the scalar fields present in ``data``.

        ``ingredients`` / ``tags``, when present, replace the existing sets
        entirely; when absent the associations are left untouched.
        """

        async def unit_of_work(tx: TransactionHandle) -> Dict[str, Any]:
            return await self._apply_recipe_update(tx, recipe_id, data)

        await self.transaction().with_transaction(unit_of_work)
        logger.info(f"Updated recipe {recipe_id}")
        return await self.get_recipe(recipe_id)

    async def replace_recipe_ingredients(
        self, recipe_id: int, ingredients: List[Dict[str, Any]], updated_by: Optional[str] = None
    ) -> Dict[str, Any]:
        data = {"ingredients": list(ingredients), "updated_by": updated_by}

        async def unit_of_work(tx: TransactionHandle) -> Dict[str, Any]:
            return await self._apply_recipe_update(tx, recipe_id, data)

        await self.transaction().with_transaction(unit_of_work)
        logger.info(f"Replaced ingredients of recipe {recipe_id} ({len(ingredients)} items)")
        return await self.get_recipe_ingredients(recipe_id)

    async def delete_recipe(self, recipe_id: int) -> Dict[str, Any]:
        """Delete a recipe and its associations; returns ``{id, title}``."""

        async def unit_of_work(tx: TransactionHandle) -> Dict[str, Any]:
            existing = (await tx.query(RECIPE_LOCK_SQL, (recipe_id,))).first()
            if existing is None:
                raise NotFoundException(f"Recipe with ID {recipe_id} not found", code="RECIPE_NOT_FOUND")
            await tx.query(DELETE_RECIPE_INGREDIENTS_SQL, (recipe_id,))
            await tx.query(DELETE_RECIPE_TAGS_SQL, (recipe_id,))
            await tx.query(DELETE_RECIPE_SQL, (recipe_id,))
            return {"id": existing["id"], "title": existing["title"]}

        deleted = await self.transaction().with_transaction(unit_of_work)
        logger.info(f"Deleted recipe {recipe_id}")
        return deleted

    async def _attempt_bulk_create(
        self, tx: TransactionHandle, index: int, item: Dict[str, Any]
    ) -> BulkOutcome:
        try:
            async with tx.savepoint(f"bulk_item_{index}"):
                row = await self._insert_recipe(tx, item)
        except RecipeAPIException as e:
            logger.warning(f"Bulk create item {index} ({item.get('title')!r}) failed: {e.message}")
            return BulkOutcome(False, {"index": index, "title": item.get("title"), **_bulk_error(e)})
        return BulkOutcome(True, {"index": index, "id": row["id"], "title": row["title"]})

    async def bulk_create_recipes(self, items: List[Dict[str, Any]]) -> Dict[str, Any]:
        """Create many recipes in one transaction, isolating each item.

        Each item runs under its own savepoint, so a failing item is rolled
        back alone and the transaction still commits the others.
        """

        async def unit_of_work(tx: TransactionHandle) -> List[BulkOutcome]:
            return [await self._attempt_bulk_create(tx, index, item) for index, item in enumerate(items)]

        outcomes = await self.transaction().with_transaction(unit_of_work)
        created = [outcome.value for outcome in outcomes if outcome.ok]
        errors = [outcome.value for outcome in outcomes if not outcome.ok]
        logger.info(f"Bulk create: {len(created)} created, {len(errors)} failed")
        return {
            "created_recipes": created,
            "errors": errors,
            "summary": {
                "total_submitted": len(items),
                "successful": len(created),
                "failed": len(errors),
            },
        }

    async def bulk_delete_recipes(self, recipe_ids: List[int]) -> Dict[str, Any]:
        """Delete every existing id in a fixed number of statements.

        Ids with no recipe are reported as errors, so repeating a call reports
        everything as not found.
        """
        unique_ids = list(dict.fromkeys(recipe_ids))

        async def unit_of_work(tx: TransactionHandle) -> Tuple[List[Dict[str, Any]], List[Dict[str, Any]]]:
            where = build_where_clause([In("id", unique_ids)])
            found = await tx.query(f"SELECT id, title FROM recipes {where.clause} FOR UPDATE", where.params)
            existing = {row["id"]: row for row in found.rows}

            deleted = [{"id": i, "title": existing[i]["title"]} for i in unique_ids if i in existing]
            errors = [{"id": i, "error": "Recipe not found"} for i in unique_ids if i not in existing]
            if deleted:
                placeholders, params, _ = build_in_clause([entry["id"] for entry in deleted])
                await tx.query(f"DELETE FROM recipe_ingredients WHERE recipe_id IN ({placeholders})", params)
                await tx.query(f"DELETE FROM recipe_tags WHERE recipe_id IN ({placeholders})", params)
                await tx.query(f"DELETE FROM recipes WHERE id IN ({placeholders})", params)
            return deleted, errors

        deleted, errors = await self.transaction().with_transaction(unit_of_work)
        logger.info(f"Bulk delete: {len(deleted)} deleted, {len(errors)} not found")
        return {
            "deleted_recipes": deleted,
            "errors": errors,
            "summary": {
                "total_submitted": len(unique_ids),
                "successful": len(deleted),
                "failed": len(errors),
            },
        }

    # ------------------------------------------------------------------
    # Reference data (categories, ingredients, tags)
    # ------------------------------------------------------------------

    async def _paginate(
        self, ref: ReferenceTable, conditions: List[Any], order_by: str, limit: int, offset: int
    ) -> Tuple[List[Dict[str, Any]], int]:
        where = build_where_clause(conditions)
        count = await self.executor.query(
            f"SELECT COUNT(*) AS total_count FROM {ref.table} {where.clause}", where.params
        )
        pagination_clause, pagination_params, _ = build_pagination_clause(limit, offset, where.next_index)
        result = await self.executor.query(
            f"SELECT {ref.fields} FROM {ref.table} {where.clause} {order_by} {pagination_clause}",
            where.params + pagination_params,
        )
        return result.rows, count.scalar("total_count", 0)

    async def _get_reference(self, ref: ReferenceTable, entity_id: int) -> Optional[Dict[str, Any]]:
        result = await self.executor.query(f"SELECT {ref.fields} FROM {ref.table} WHERE id = $1", (entity_id,))
        return result.first()

    def _not_found(self, ref: ReferenceTable, entity_id: int) -> NotFoundException:
        return NotFoundException(
            f"{ref.label.capitalize()} with ID {entity_id} not found", code=f"{ref.code}_NOT_FOUND"
        )

    async def _create_reference(self, ref: ReferenceTable, values: Dict[str, Any]) -> Dict[str, Any]:
        async def unit_of_work(tx: TransactionHandle) -> Dict[str, Any]:
            existing = await tx.query(f"SELECT id FROM {ref.table} WHERE name = $1", (values["name"],))
            if existing.rows:
                raise ConflictException(
                    f"{ref.label.capitalize()} already exists",
                    details=[f"name '{values['name']}' is already taken"],
                    code=f"{ref.code}_EXISTS",
                )
            sql, params = build_batch_insert(
                ref.table, list(values.keys()), [list(values.values())], returning=ref.fields
            )
            return (await tx.query(sql, params)).first()

        created = await self.transaction().with_transaction(unit_of_work)
        logger.info(f"Created {ref.label} {created['id']} ({created['name']})")
        return created

    async def _update_reference(
        self, ref: ReferenceTable, entity_id: int, values: Dict[str, Any]
    ) -> Dict[str, Any]:
        async def unit_of_work(tx: TransactionHandle) -> Dict[str, Any]:
            existing = (
                await tx.query(f"SELECT {ref.fields} FROM {ref.table} WHERE id = $1 FOR UPDATE", (entity_id,))
            ).first()
            if existing is None:
                raise self._not_found(ref, entity_id)
            if not values:
                return existing
            if "name" in values:
                conflict = await tx.query(
                    f"SELECT id FROM {ref.table} WHERE name = $1 AND id != $2", (values["name"], entity_id)
                )
                if conflict.rows:
                    raise ConflictException(
                        f"{ref.label.capitalize()} name already exists",
                        details=[f"name '{values['name']}' is already taken"],
                        code=f"{ref.code}_NAME_EXISTS",
                    )
            set_clause, params, next_index = build_set_clause(values)
            result = await tx.query(
                f"UPDATE {ref.table} SET {set_clause} WHERE id = ${next_index} RETURNING {ref.fields}",
                params + [entity_id],
            )
            return result.first()

        return await self.transaction().with_transaction(unit_of_work)

    async def _delete_reference(self, ref: ReferenceTable, entity_id: int) -> Dict[str, Any]:
        """Delete unless some recipe still references the row.

        The usage check is best effort; the RESTRICT foreign keys reject a
        reference added concurrently between the check and the delete.
        """

        async def unit_of_work(tx: TransactionHandle) -> Dict[str, Any]:
            existing = (await tx.query(f"SELECT {ref.fields} FROM {ref.table} WHERE id = $1", (entity_id,))).first()
            if existing is None:
                raise self._not_found(ref, entity_id)
            usage = (await tx.query(ref.usage_sql, (entity_id,))).scalar("usage_count", 0)
            if usage > 0:
                raise ConflictException(
                    f"Cannot delete {ref.label}. {usage} recipe(s) are using this {ref.label}.",
                    details=[f"{ref.label} {entity_id} is referenced by {usage} recipe(s)"],
                    code=f"{ref.code}_IN_USE",
                )
            await tx.query(f"DELETE FROM {ref.table} WHERE id = $1", (entity_id,))
            return existing

        deleted = await self.transaction().with_transaction(unit_of_work)
        logger.info(f"Deleted {ref.label} {entity_id}")
        return deleted

    # Categories

    async def get_categories(self) -> List[Dict[str, Any]]:
        return (await self.executor.query(LIST_CATEGORIES_SQL)).rows

    async def create_category(self, name: str) -> Dict[str, Any]:
        return await self._create_reference(CATEGORIES, {"name": name})

    async def update_category(self, category_id: int, name: str) -> Dict[str, Any]:
        return await self._update_reference(CATEGORIES, category_id, {"name": name})

    async def delete_category(self, category_id: int) -> Dict[str, Any]:
        return await self._delete_reference(CATEGORIES, category_id)

    # Ingredients

    async def get_ingredients(
        self, limit: int, offset: int, fodmap_level: Optional[str] = None
    ) -> Tuple[List[Dict[str, Any]], int]:
        return await self._paginate(
            INGREDIENTS,
            [Exact("fodmap_level", fodmap_level)],
            build_order_by([("name", "ASC")]),
            limit,
            offset,
        )

    async def search_ingredients(
        self, search_term: str, limit: int, offset: int
    ) -> Tuple[List[Dict[str, Any]], int]:
        return await self._paginate(
            INGREDIENTS,
            [Like("name", search_term)],
            build_order_by([("name", "ASC")]),
            limit,
            offset,
        )

    async def get_ingredient(self, ingredient_id: int) -> Optional[Dict[str, Any]]:
        return await self._get_reference(INGREDIENTS, ingredient_id)

    async def create_ingredient(self, data: Dict[str, Any]) -> Dict[str, Any]:
        values = {
            "name": data["name"],
            "quantity_unit": data.get("quantity_unit"),
            "fodmap_level": data.get("fodmap_level"),
        }
        return await self._create_reference(INGREDIENTS, values)

    async def update_ingredient(self, ingredient_id: int, data: Dict[str, Any]) -> Dict[str, Any]:
        values = {key: data[key] for key in ("name", "quantity_unit", "fodmap_level") if key in data}
        return await self._update_reference(INGREDIENTS, ingredient_id, values)

    async def delete_ingredient(self, ingredient_id: int) -> Dict[str, Any]:
        return await self._delete_reference(INGREDIENTS, ingredient_id)

    # Tags

    async def get_tags(self) -> List[Dict[str, Any]]:
        return (await self.executor.query(LIST_TAGS_SQL)).rows

    async def create_tag(self, name: str) -> Dict[str, Any]:
        return await self._create_reference(TAGS, {"name": name})

    async def update_tag(self, tag_id: int, name: str) -> Dict[str, Any]:
        return await self._update_reference(TAGS, tag_id, {"name": name})

    async def delete_tag(self, tag_id: int) -> Dict[str, Any]:
        return await self._delete_reference(TAGS, tag_id)

    # ------------------------------------------------------------------
    # Health
    # ------------------------------------------------------------------

    async def get_missing_tables(self) -> List[str]:
        result = await self.executor.query(SCHEMA_TABLES_SQL, (BASE_TABLES,))
        present = {row["table_name"] for row in result.rows}
        return [table for table in BASE_TABLES if table not in present]

    async def get_table_counts(self) -> Dict[str, int]:
        row = (await self.executor.query(TABLE_COUNTS_SQL)).first() or {}
        return {table: row.get(table, 0) for table in BASE_TABLES}
