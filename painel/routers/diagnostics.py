# =========================================================
# DATABASE DIAGNOSTICS (ADMIN)
#
# A fixed sequence of checks. Each step yields one record;
# the first failure stops the sequence. The response is
# assembled once, from the collected records.
# =========================================================

import logging
from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from typing import Any, Callable

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse
from fastapi.encoders import jsonable_encoder
from sqlalchemy import func, inspect, select, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from painel.database import Base, get_engine
from painel.core.auth import get_admin_user
from painel.core.config import settings
from painel.core.errors import AppError, InfrastructureError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/diagnostics", tags=["Diagnostics"])


@dataclass
class StepResult:
    step: str
    status: str
    detail: Any = None


def run_steps(steps: list[tuple[str, Callable[[], Any]]]) -> list[StepResult]:
    results = []

    for name, check in steps:
        try:
            results.append(StepResult(name, "success", check()))
        except (AppError, SQLAlchemyError) as exc:
            logger.warning(f"Diagnostic step '{name}' failed: {exc}")
            results.append(StepResult(name, "failed", str(exc)))
            break

    return results


def _configuration(engine: Engine | None):
    if engine is None:
        raise InfrastructureError("DATABASE_URL is not configured")
    return {"dialect": engine.dialect.name, "env": settings.ENV}


def _connection(engine: Engine):
    with engine.connect() as conn:
        conn.execute(text("SELECT 1"))
    return "ok"


def _tables(engine: Engine):
    existing = set(inspect(engine).get_table_names())
    missing = sorted(set(Base.metadata.tables) - existing)

    if missing:
        raise InfrastructureError(f"Missing tables: {', '.join(missing)}")

    return sorted(Base.metadata.tables)


def _counts(engine: Engine):
    with engine.connect() as conn:
        return {
            name: conn.execute(select(func.count()).select_from(table)).scalar()
            for name, table in sorted(Base.metadata.tables.items())
        }


@router.get("/database")
def database_diagnostics(
    admin=Depends(get_admin_user),
    engine: Engine | None = Depends(get_engine),
):
    steps = run_steps([
        ("configuration", lambda: _configuration(engine)),
        ("connection", lambda: _connection(engine)),
        ("tables", lambda: _tables(engine)),
        ("counts", lambda: _counts(engine)),
    ])

    success = len(steps) == 4 and all(s.status == "success" for s in steps)

    body = {
        "timestamp": datetime.now(timezone.utc),
        "success": success,
        "steps": [asdict(s) for s in steps],
    }

    if not success:
        body["error"] = steps[-1].detail

    return JSONResponse(
        status_code=status.HTTP_200_OK if success else status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=jsonable_encoder(body),
    )
