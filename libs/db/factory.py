from typing import Optional

from libs.common.config import Settings, get_settings
from libs.common.logging import get_logger
from libs.db.store import DataStore

logger = get_logger(__name__)


def register_models() -> None:
    """Import every service's models so Base.metadata sees each table."""
    from services.catalog_service import models as _catalog_models  # noqa: F401
    from services.members_service import models as _member_models  # noqa: F401


async def build_data_store(settings: Optional[Settings] = None) -> DataStore:
    """Return the store selected by DATA_STORE_BACKEND."""
    settings = settings or get_settings()

    if settings.DATA_STORE_BACKEND == "database":
        from libs.db.sql_store import SqlAlchemyStore

        register_models()
        logger.info("Using direct database store")
        return SqlAlchemyStore()

    from libs.common.supabase_client import get_supabase_client
    from libs.db.supabase_store import SupabaseStore

    logger.info("Using Supabase PostgREST store")
    return SupabaseStore(await get_supabase_client(settings))
