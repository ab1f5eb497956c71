from fastapi.requests import HTTPConnection
from sqlalchemy.orm import declarative_base, sessionmaker
from sqlalchemy import create_engine
from sqlalchemy.pool import StaticPool


Base = declarative_base()


def create_db_engine(database_url: str):
    if database_url.startswith("sqlite"):
        # In-memory databases must share a single connection across threads
        if database_url in {"sqlite://", "sqlite:///:memory:"}:
            return create_engine(
                database_url,
                future=True,
                connect_args={"check_same_thread": False},
                poolclass=StaticPool,
            )
        return create_engine(database_url, future=True, connect_args={"check_same_thread": False})
    # Configure connection pool for better performance
    return create_engine(
        database_url,
        future=True,
        pool_pre_ping=True,
        pool_size=5,
        max_overflow=10,
        pool_recycle=3600,  # Recycle connections after 1 hour
    )


def create_session_factory(engine):
    # IMPORTANT: do not use scoped_session with async frameworks; create a fresh Session per request
    return sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)


def get_db(conn: HTTPConnection):
    db = conn.app.state.session_factory()
    try:
        yield db
    finally:
        db.close()
