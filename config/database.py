"""
Supabase client management.

One cached client per process; services call get_supabase_client() in
their constructors and tests patch it per module.
"""

from supabase import create_client, Client
from functools import lru_cache
from typing import Optional
import structlog

from config.settings import settings

logger = structlog.get_logger(__name__)

# Tables whose row counts the health check reports
HEALTH_TABLES = ("products", "stock_rules", "auto_pick_drafts")


class DatabaseConnectionError(Exception):
    """Failed to connect to Supabase."""
    pass


@lru_cache()
def get_supabase_client() -> Client:
    """
    Get the cached Supabase client.

    Call get_supabase_client.cache_clear() (or reset_connection()) to
    reconnect.

    Raises:
        DatabaseConnectionError: If the client cannot reach the products table
    """
    try:
        logger.info(
            "connecting_to_supabase",
            url=settings.supabase_url[:30] + "..."  # Partial URL only
        )

        client = create_client(settings.supabase_url, settings.supabase_key)
        client.table("products").select("id").limit(1).execute()

        logger.info("supabase_connected")
        return client

    except Exception as e:
        logger.error(
            "supabase_connection_failed",
            error=str(e),
            error_type=type(e).__name__
        )
        raise DatabaseConnectionError(f"Failed to connect to Supabase: {e}") from e


class DatabaseSession:
    """
    Context manager that logs start, failure and completion of a write.

    Usage:
        with DatabaseSession("create_auto_pick_draft") as db:
            db.table("auto_pick_drafts").insert(row).execute()
    """

    def __init__(self, operation_name: str):
        self.operation_name = operation_name
        self.client: Optional[Client] = None

    def __enter__(self) -> Client:
        logger.debug("db_operation_start", operation=self.operation_name)
        self.client = get_supabase_client()
        return self.client

    def __exit__(self, exc_type, exc_val, exc_tb):
        if exc_type:
            logger.error(
                "db_operation_failed",
                operation=self.operation_name,
                error=str(exc_val),
                error_type=exc_type.__name__
            )
        else:
            logger.debug("db_operation_complete", operation=self.operation_name)
        return False


def check_connection() -> dict:
    """
    Health check: row counts of the tables auto-pick cannot work without.

    Returns:
        {"status": "healthy", "<table>_count": n, ...} or
        {"status": "unhealthy", "error": "..."}
    """
    try:
        client = get_supabase_client()
        status = {"status": "healthy"}
        for table in HEALTH_TABLES:
            result = client.table(table).select("id", count="exact").execute()
            status[f"{table}_count"] = result.count
        return status

    except Exception as e:
        return {"status": "unhealthy", "error": str(e)}


def reset_connection() -> None:
    """Drop the cached client; the next call reconnects."""
    get_supabase_client.cache_clear()
    logger.info("database_connection_reset")
