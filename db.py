# db.py
from sqlalchemy import JSON, create_engine
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import sessionmaker, declarative_base

from settings import settings

DATABASE_URL = settings.DATABASE_URL

engine = create_engine(DATABASE_URL, future=True, pool_pre_ping=True)
SessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False, expire_on_commit=False, future=True)
Base = declarative_base()

# JSONB on PostgreSQL, plain JSON on other backends (sqlite in tests)
JsonDocument = JSON().with_variant(JSONB(), "postgresql")

def init_db(bind=None):
    from models_legacy import LegacyBrdRecord, SiteRecord  # ensure models are imported
    Base.metadata.create_all(bind=bind or engine)
