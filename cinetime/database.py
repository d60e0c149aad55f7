from sqlalchemy import create_engine, pool, event, text
from sqlalchemy.orm import declarative_base
from sqlalchemy.orm import sessionmaker
import os
from dotenv import load_dotenv
import logging

load_dotenv()
logger = logging.getLogger(__name__)

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./cinetime.db")


def _engine_options(url: str) -> dict:
    """Pool settings for server databases, thread-sharing for SQLite"""
    if url.startswith("sqlite"):
        return {
            "connect_args": {"check_same_thread": False},
            "echo": os.getenv("DB_ECHO", "false").lower() == "true",
        }
    # QueuePool keeps a pool of reusable connections
    return {
        "poolclass": pool.QueuePool,
        "pool_size": int(os.getenv("DB_POOL_SIZE", 5)),
        "max_overflow": int(os.getenv("DB_MAX_OVERFLOW", 10)),
        "pool_timeout": int(os.getenv("DB_POOL_TIMEOUT", 30)),
        "pool_recycle": int(os.getenv("DB_POOL_RECYCLE", 3600)),
        "pool_pre_ping": True,
        "echo": os.getenv("DB_ECHO", "false").lower() == "true",
    }


engine = create_engine(DATABASE_URL, **_engine_options(DATABASE_URL))


@event.listens_for(engine, "connect")
def receive_connect(dbapi_conn, connection_record):
    """Log when a new connection is created"""
    logger.debug("Database connection established")


SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
Base = declarative_base()


def init_db() -> None:
    """
    Verify the store is reachable and create missing tables.

    Called once from the application lifespan. A failure here is fatal:
    the exception is logged and re-raised so the server refuses to start.
    """
    # Register models on Base.metadata
    import cinetime.models  # noqa: F401

    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        Base.metadata.create_all(bind=engine)
    except Exception as e:
        logger.critical(f"Database connection failed: {str(e)}")
        raise
    logger.info("Database ready")


# Dependency for FastAPI routes
def get_db():
    """
    Database session dependency for FastAPI.
    Automatically handles session creation and cleanup.

    Usage:
        @router.get("/endpoint")
        def endpoint(db: Session = Depends(get_db)):
            # Use db here
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
