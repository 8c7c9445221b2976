"""Health endpoints for the recipe API"""

import logging
import time
from datetime import datetime, timezone
from fastapi import APIRouter, Depends

from core.config import settings
from core.exceptions import RecipeAPIException
from db.db_core import Database
from db.executor import PooledExecutor
from db.sql_queries import BASE_TABLES
from dependencies.database import get_db, get_executor
from utils.responses import error_response, success_response

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/health", tags=["health"])

_STARTED_AT = time.monotonic()


@router.get("")
async def health_check(executor: PooledExecutor = Depends(get_executor)):
    """Application and database health for container orchestration"""
    database = await executor.health_check()
    if not database["healthy"]:
        logger.error(f"Health check failed: {database['error']}")
        return error_response(500, "Health check failed", [database["error"] or "unhealthy"], "HEALTH_CHECK_FAILED")

    return success_response(
        {
            "status": "healthy",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "uptime_seconds": round(time.monotonic() - _STARTED_AT, 1),
            "environment": settings.environment,
            "version": settings.api_version,
            "services": {"database": database},
        },
        "Application is healthy",
    )


@router.get("/db")
async def database_health_check(
    executor: PooledExecutor = Depends(get_executor), db: Database = Depends(get_db)
):
    """Connectivity, schema and table-count checks"""
    checks = []
    try:
        connect_start = time.perf_counter()
        await executor.query("SELECT 1", max_retries=1)
        checks.append(
            {
                "name": "connectivity",
                "status": "pass",
                "response_time_ms": round((time.perf_counter() - connect_start) * 1000, 2),
            }
        )

        missing = await db.get_missing_tables()
        found = len(BASE_TABLES) - len(missing)
        checks.append(
            {
                "name": "schema",
                "status": "fail" if missing else "pass",
                "details": f"Found {found}/{len(BASE_TABLES)} required tables",
            }
        )

        checks.append({"name": "data_integrity", "status": "pass", "details": await db.get_table_counts()})
    except RecipeAPIException as e:
        logger.error(f"Database health check failed: {e.message}")
        details = [] if settings.is_production else [e.message, *e.details]
        return error_response(500, "Database health check failed", details, "DB_HEALTH_CHECK_FAILED")

    healthy = all(check["status"] == "pass" for check in checks)
    return success_response(
        {
            "status": "healthy" if healthy else "degraded",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "checks": checks,
            "pool": executor.pool_stats(),
        },
        "Database health check completed",
    )
