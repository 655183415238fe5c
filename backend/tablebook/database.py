from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from .config import get_settings

settings = get_settings()

# Requests waiting on a pooled connection give up after pool_timeout and get a 503.
engine = create_async_engine(
    settings.database_url,
    echo=settings.echo_sql,
    pool_pre_ping=True,
    pool_recycle=3600,
    pool_timeout=settings.db_pool_timeout,
)

async_session = async_sessionmaker(engine, expire_on_commit=False, class_=AsyncSession)
