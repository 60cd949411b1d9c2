from sqlalchemy.ext.asyncio import async_sessionmaker, AsyncSession, create_async_engine

from libs.common.config import get_settings

settings = get_settings()


def _engine_options() -> dict:
    # SQLite (tests, local experiments) has no connection pool to tune
    if settings.is_sqlite:
        return {}
    return {
        "pool_pre_ping": True,  # Test connections before using
        "pool_size": settings.DB_POOL_SIZE,
        "max_overflow": settings.DB_MAX_OVERFLOW,
        "pool_timeout": settings.DB_POOL_TIMEOUT,
        "pool_recycle": settings.DB_POOL_RECYCLE,
    }


# echo=True for local dev to see SQL queries
engine = create_async_engine(
    settings.DATABASE_URL,
    echo=(settings.ENVIRONMENT == "local"),
    future=True,
    **_engine_options(),
)

AsyncSessionLocal = async_sessionmaker(
    bind=engine, class_=AsyncSession, expire_on_commit=False, autoflush=False
)
