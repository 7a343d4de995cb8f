import logging
from typing import Optional

from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

logger = logging.getLogger(__name__)

engine = None
SessionLocal = None
Base = declarative_base()

def init_engine(database_url: Optional[str] = None):
    """Initialize database engine"""
    global engine, SessionLocal
    from .config import settings

    url = database_url or settings.DATABASE_URL
    connect_args = {}
    if url.startswith("sqlite"):
        connect_args["check_same_thread"] = False
        if url.startswith("sqlite:///") and url != "sqlite:///:memory:":
            settings.DATA_DIR.mkdir(parents=True, exist_ok=True)

    if url == "sqlite:///:memory:":
        # one shared connection, otherwise every session sees an empty database
        engine = create_engine(url, connect_args=connect_args, poolclass=StaticPool)
    else:
        engine = create_engine(url, pool_pre_ping=True, connect_args=connect_args)
    SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    return engine

def get_db():
    """Get database session"""
    global SessionLocal

    if SessionLocal is None:
        init_engine()

    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()

def init_db():
    """Initialize database schema and seed the default sources"""
    global engine

    if engine is None:
        init_engine()

    from . import models
    from .store import seed_default_sources

    Base.metadata.create_all(bind=engine)

    db = SessionLocal()
    try:
        seeded = seed_default_sources(db)
        if seeded:
            logger.info(f"Seeded {seeded} default sources")
    finally:
        db.close()
