from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import DeclarativeBase, sessionmaker

from schema_gateway.config import settings


class Base(DeclarativeBase):
    pass


def create_store_engine(url: str) -> Engine:
    return create_engine(url, pool_pre_ping=True)


def create_session_factory(bind: Engine) -> sessionmaker:
    return sessionmaker(bind=bind, autocommit=False, autoflush=False, expire_on_commit=False)


engine = create_store_engine(settings.DATABASE_URL) if settings.DATABASE_URL else None
SessionLocal = create_session_factory(engine) if engine is not None else None
