from collections.abc import Generator

from fastapi import Depends
from sqlalchemy import create_engine, event
from sqlalchemy.orm import Session, sessionmaker

from xo_finance.core.auth import CurrentUser, get_current_user
from xo_finance.core.config import get_settings
from xo_finance.services.users import ensure_active, ensure_profile
from xo_finance.storage.document_store import DocumentStore, SqlDocumentStore

settings = get_settings()

engine = None
if settings.database_url:
    connect_args: dict[str, object] = {}

    if settings.database_url.startswith("sqlite"):
        # FastAPI runs sync handlers in a threadpool, so the connection must be usable across threads.
        connect_args = {"check_same_thread": False, "timeout": 30}

    engine = create_engine(settings.database_url, pool_pre_ping=True, connect_args=connect_args)

    if settings.database_url.startswith("sqlite"):
        @event.listens_for(engine, "connect")
        def _set_sqlite_pragmas(dbapi_connection, _connection_record) -> None:  # type: ignore[no-untyped-def]
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA busy_timeout=30000")
            cursor.close()

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine) if engine else None


def get_db() -> Generator[Session, None, None]:
    if SessionLocal is None:
        raise RuntimeError("DATABASE_URL is not configured")
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_store(db: Session = Depends(get_db)) -> DocumentStore:
    return SqlDocumentStore(db)


def get_active_user(
    user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
    store: DocumentStore = Depends(get_store),
) -> CurrentUser:
    """Signed-in user whose profile exists and is not blocked."""
    profile = ensure_profile(store, user)
    db.commit()
    ensure_active(profile)
    return user
