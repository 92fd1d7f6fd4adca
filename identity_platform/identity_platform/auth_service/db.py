import logging

from sqlalchemy import create_engine, inspect, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import declarative_base, sessionmaker

from .config import Settings

logger = logging.getLogger(__name__)

Base = declarative_base()

# Indexes outside the ORM models, applied by init_db after the tables exist
SUPPLEMENTARY_INDEXES = (
    (
        "ix_sessions_user_id_expires_at",
        "CREATE INDEX ix_sessions_user_id_expires_at ON sessions (user_id, expires_at)",
    ),
)


def create_db_engine(settings: Settings) -> Engine:
    if settings.is_sqlite:
        return create_engine(
            settings.DATABASE_URL,
            connect_args={"check_same_thread": False},
        )
    return create_engine(
        settings.DATABASE_URL,
        pool_size=settings.DB_POOL_SIZE,
        max_overflow=settings.DB_MAX_OVERFLOW,
        pool_pre_ping=True,
    )


def create_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(bind=engine, autocommit=False, autoflush=False)


def init_db(engine: Engine) -> None:
    """
    Apply the users/sessions schema. Safe to run on every startup.

    Tables are created with checkfirst semantics; supplementary indexes are
    created afterwards and an "already exists" failure on them is skipped.
    """
    from . import models  # noqa: F401  registers the tables on Base.metadata

    Base.metadata.create_all(bind=engine)

    inspector = inspect(engine)
    existing_indexes = {
        idx["name"] for table in ("users", "sessions") for idx in inspector.get_indexes(table)
    }
    for name, statement in SUPPLEMENTARY_INDEXES:
        if name in existing_indexes:
            continue
        try:
            with engine.begin() as conn:
                conn.execute(text(statement))
        except SQLAlchemyError as e:
            # Another worker may have created it between inspect and create
            if "already exists" not in str(e):
                logger.error(f"Migration error: {e}")
                raise
            logger.debug(f"Schema object already exists, skipping: {e}")

    logger.info("Database migrations completed")


def check_db_connection(engine: Engine) -> bool:
    """
    Check if database connection is working.

    Returns:
        bool: True if connection is successful, False otherwise
    """
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        return True
    except SQLAlchemyError as e:
        logger.error(f"Database connection check failed: {e}")
        return False
