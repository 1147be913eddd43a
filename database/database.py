import logging

from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

from config import DATABASE_URL

logger = logging.getLogger(__name__)


def make_engine(database_url: str):
    """Create an engine with per-backend connection options"""
    connect_args = {}
    engine_kwargs = {}

    if database_url.startswith("sqlite"):
        connect_args = {"check_same_thread": False}
        if database_url in ("sqlite://", "sqlite:///:memory:"):
            # In-memory databases live in one connection
            engine_kwargs = {"poolclass": StaticPool}
    elif "postgresql" in database_url:
        # PostgreSQL specific optimizations
        engine_kwargs = {
            "pool_size": 10,  # Number of connections to maintain
            "max_overflow": 20,  # Additional connections if pool is full
            "pool_pre_ping": True,  # Test connections before using
            "pool_recycle": 3600,  # Recycle connections after 1 hour
        }

    return create_engine(database_url, connect_args=connect_args, **engine_kwargs)


# Create engine
engine = make_engine(DATABASE_URL)

# Create SessionLocal class
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

# Create Base class
Base = declarative_base()


def init_db(bind=None):
    """Initialize database and create all tables"""
    from database import models  # noqa: F401  registers the tables on Base
    Base.metadata.create_all(bind=bind or engine)
    logger.info(f"Database initialized: {bind.url if bind is not None else DATABASE_URL}")


def get_db():
    """Dependency for FastAPI to get database session"""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
