from sqlalchemy import create_engine, event
from sqlalchemy.ext.declarative import declarative_base
from sqlalchemy.orm import sessionmaker
from .config import settings

is_sqlite = settings.database_url.startswith("sqlite")

# Database engine
engine = create_engine(
    settings.database_url,
    connect_args={"check_same_thread": False} if is_sqlite else {}
)

if is_sqlite:
    @event.listens_for(engine, "connect")
    def _set_sqlite_pragma(dbapi_connection, connection_record):
        # ON DELETE CASCADE only fires with foreign keys enabled
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.execute("PRAGMA journal_mode=WAL")
        cursor.close()

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

# Declarative base for all models
Base = declarative_base()

def init_db():
    # Import models so they register on Base.metadata
    from digital_humans.models import user, digital_human, chat  # noqa: F401
    Base.metadata.create_all(bind=engine)

# FastAPI dependency yielding a request-scoped session
def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
