# storefront/db.py
from urllib.parse import urlparse, parse_qs, urlencode, urlunparse, ParseResult
from collections.abc import AsyncGenerator

from redis.asyncio import Redis
from sqlalchemy.ext.asyncio import (
    create_async_engine,
    AsyncSession,
    async_sessionmaker,
)
from sqlalchemy.orm import DeclarativeBase

from . import config

DATABASE_URL = config.DATABASE_URL
if not DATABASE_URL:
    raise RuntimeError("DATABASE_URL not set in environment")

# asyncpg is the only postgres driver we ship
if DATABASE_URL.startswith("postgresql://"):
    DATABASE_URL = DATABASE_URL.replace("postgresql://", "postgresql+asyncpg://", 1)
elif DATABASE_URL.startswith("postgres://"):
    DATABASE_URL = DATABASE_URL.replace("postgres://", "postgresql+asyncpg://", 1)


def strip_query_params(url: str, drop_keys=("sslmode", "channel_binding")) -> str:
    """Remove libpq-only options that asyncpg.connect() rejects."""
    p = urlparse(url)
    qs = parse_qs(p.query, keep_blank_values=True)
    kept = {k: v[0] for k, v in qs.items() if k not in drop_keys}
    if len(kept) == len(qs):
        return url
    return urlunparse(ParseResult(
        scheme=p.scheme, netloc=p.netloc, path=p.path,
        params=p.params, query=urlencode(kept), fragment=p.fragment,
    ))


def engine_options(url: str) -> dict:
    if url.startswith("sqlite"):
        return {}
    return {
        "pool_pre_ping": True,
        "pool_recycle": 1800,
        "pool_size": 5,
        "max_overflow": 10,
    }


CLEAN_DATABASE_URL = strip_query_params(DATABASE_URL)

engine = create_async_engine(
    CLEAN_DATABASE_URL,
    echo=False,
    **engine_options(CLEAN_DATABASE_URL),
)

AsyncSessionLocal = async_sessionmaker(
    bind=engine,
    autoflush=False,
    expire_on_commit=False,
    class_=AsyncSession,
)

# Password-reset tokens and other short-lived keys
redis = Redis.from_url(config.REDIS_URL, decode_responses=True)


class Base(DeclarativeBase):
    pass


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    async with AsyncSessionLocal() as session:
        try:
            yield session
        finally:
            await session.close()
