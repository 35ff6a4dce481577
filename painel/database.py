# painel/database.py

from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker

from painel.core.config import settings
from painel.core.errors import InfrastructureError


Base = declarative_base()

engine = (
    create_engine(settings.DATABASE_URL, echo=settings.DEBUG, pool_pre_ping=True)
    if settings.DATABASE_URL
    else None
)

SessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False)


def get_db():
    # One session per request, closed when the response is sent
    if engine is None:
        raise InfrastructureError("DATABASE_URL is not configured")

    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_engine():
    return engine


def upsert(db, model, values: dict, conflict_columns: list[str], update_columns: list[str]):
    """INSERT ... ON CONFLICT DO UPDATE, returning the stored row."""
    dialect = db.get_bind().dialect.name

    if dialect == "postgresql":
        from sqlalchemy.dialects.postgresql import insert
    elif dialect == "sqlite":
        from sqlalchemy.dialects.sqlite import insert
    else:
        raise InfrastructureError(f"Upsert is not supported on {dialect}")

    stmt = insert(model).values(**values)
    stmt = stmt.on_conflict_do_update(
        index_elements=conflict_columns,
        set_={column: stmt.excluded[column] for column in update_columns},
    )

    return db.scalars(
        stmt.returning(model),
        execution_options={"populate_existing": True},
    ).one()
