from sqlalchemy import create_engine
from sqlalchemy.orm import DeclarativeBase, sessionmaker

from devjobs.config import DATABASE_URL

connect_args = {"check_same_thread": False} if DATABASE_URL.startswith("sqlite") else {}

engine = create_engine(DATABASE_URL, pool_pre_ping=True, connect_args=connect_args)

SessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False)


class Base(DeclarativeBase):
    pass


def enum_values(enum_cls) -> list[str]:
    """Persist enum values ("published") rather than member names ("PUBLISHED")"""
    return [member.value for member in enum_cls]


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
