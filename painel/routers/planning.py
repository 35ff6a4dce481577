# painel/routers/planning.py

import logging
from datetime import date, datetime, timezone

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session

from painel.database import get_db, upsert
from painel.core.auth import get_current_user
from painel.core.config import settings
from painel.core.errors import NotFoundError, ValidationError
from painel.core.rate_limiter import limiter
from painel.models.planning import Planning
from painel.models.products import Product
from painel.services.suggestion import production_suggestions
from painel.schemas.planning import (
    PlanningListResponse,
    PlanningResponse,
    PlanningRow,
    PlanningSave,
    PlanningSaveResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/planning", tags=["Planning"])


# =========================================================
# SAVE (upsert on produto_id + data, last write wins)
# =========================================================
@router.post("", response_model=PlanningSaveResponse)
@limiter.limit(settings.WRITE_RATE_LIMIT)
def save_planning(
    request: Request,
    planning_data: PlanningSave,
    current_user=Depends(get_current_user),
    db: Session = Depends(get_db),
):
    product = (
        db.query(Product)
        .filter(Product.id == planning_data.produto_id)
        .first()
    )

    if product is None:
        raise NotFoundError("Product not found")

    logger.info(
        f"Saving planning: produto_id={planning_data.produto_id}, "
        f"data={planning_data.data}, qtd={planning_data.quantidade_planejada}"
    )

    row = upsert(
        db,
        Planning,
        values={
            "produto_id": planning_data.produto_id,
            "data": planning_data.data,
            "quantidade_planejada": planning_data.quantidade_planejada,
            "updated_at": datetime.now(timezone.utc),
        },
        conflict_columns=["produto_id", "data"],
        update_columns=["quantidade_planejada", "updated_at"],
    )
    db.commit()

    return PlanningSaveResponse(data=PlanningResponse.model_validate(row))


# =========================================================
# READ
# =========================================================
@router.get("", response_model=PlanningListResponse)
def get_planning(
    start_date: date = Query(...),
    end_date: date = Query(...),
    current_user=Depends(get_current_user),
    db: Session = Depends(get_db),
):
    if start_date > end_date:
        raise ValidationError("start_date must not be after end_date")

    rows = (
        db.query(Planning, Product.nome)
        .join(Product, Planning.produto_id == Product.id)
        .filter(
            Planning.data >= start_date,
            Planning.data <= end_date,
        )
        .order_by(Planning.data, Product.nome)
        .all()
    )

    return PlanningListResponse(
        planejamentos=[
            PlanningRow(
                id=planning.id,
                produto_id=planning.produto_id,
                produto_nome=produto_nome,
                data=planning.data,
                quantidade_planejada=float(planning.quantidade_planejada),
                updated_at=planning.updated_at,
            )
            for planning, produto_nome in rows
        ]
    )


# =========================================================
# PRODUCTION SUGGESTIONS
# =========================================================
@router.get("/suggestions")
def get_production_suggestions(
    start_date: date = Query(...),
    end_date: date = Query(...),
    current_user=Depends(get_current_user),
    db: Session = Depends(get_db),
):
    if start_date > end_date:
        raise ValidationError("start_date must not be after end_date")

    return production_suggestions(db, start_date, end_date)
