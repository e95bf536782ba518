from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, declarative_base

from atelier.config import settings

connect_args = {"check_same_thread": False} if settings.database_url.startswith("sqlite") else {}

engine = create_engine(settings.database_url, pool_pre_ping=True, connect_args=connect_args)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
Base = declarative_base()


def get_db():
    """
    Dependency that provides a database session to API routes.
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
