# database.py
import os
import logging

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, declarative_base
from sqlalchemy.pool import StaticPool

from config.settings import DATABASE_URL

logger = logging.getLogger(__name__)

Base = declarative_base()

if not DATABASE_URL:
    raise RuntimeError("DATABASE_URL is not set in the environment")


def _build_engine(url: str):
    if url.startswith("sqlite"):
        # Tests and local runs. An in-memory database only exists on one
        # connection, so every session has to share it.
        in_memory = url in ("sqlite://", "sqlite:///:memory:") or "mode=memory" in url
        kwargs = {"connect_args": {"check_same_thread": False}}
        if in_memory:
            kwargs["poolclass"] = StaticPool
        logger.info("DB engine configured: sqlite (in_memory=%s)", in_memory)
        return create_engine(url, **kwargs)

    # ─── Connection-pool tuning ────────────────────────────────────
    # Defaults suit a small single-instance deployment.
    pool_size = int(os.getenv("DB_POOL_SIZE", "5"))           # steady-state connections
    max_overflow = int(os.getenv("DB_MAX_OVERFLOW", "10"))     # burst above pool_size
    pool_timeout = int(os.getenv("DB_POOL_TIMEOUT", "30"))     # seconds to wait for a conn
    pool_recycle = int(os.getenv("DB_POOL_RECYCLE", "1800"))   # recycle every 30 min

    logger.info(
        "DB pool configured: size=%d, max_overflow=%d, recycle=%ds, pre_ping=True",
        pool_size, max_overflow, pool_recycle,
    )
    return create_engine(
        url,
        pool_size=pool_size,
        max_overflow=max_overflow,
        pool_timeout=pool_timeout,
        pool_recycle=pool_recycle,
        pool_pre_ping=True,  # test connection liveness before checkout
    )


engine = _build_engine(DATABASE_URL)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
