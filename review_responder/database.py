"""Database engine, session factory and declarative base"""
from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker
from review_responder.config import settings

engine = create_engine(settings.DATABASE_URL, pool_pre_ping=True)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()


def get_db():
    """FastAPI dependency that yields a database session"""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def init_db():
    """Create all tables that don't exist yet"""
    # Import models so they register with Base.metadata
    from review_responder import models  # noqa: F401

    Base.metadata.create_all(bind=engine)
