# =========================================================
# REPORTS ROUTER
#
# - Sales / losses report (sector totals, top-N products,
#   sector x product drill-down, daily totals, optional
#   comparison period)
# - Multi-period comparison
# - Product evolution (single) and comparison (batch)
# - Weekly sales x losses, dashboard, product week movement
# =========================================================

import logging
from datetime import date

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from painel.database import get_db
from painel.core.auth import get_current_user
from painel.core.errors import ValidationError, required
from painel.models.movements import TIPO_PERDA, TIPO_VENDA
from painel.schemas.report import MultiPeriodRequest, ReportType
from painel.services.comparator import compare_periods
from painel.services.evolution import evolution_batch, product_evolution
from painel.services.movements import (
    MovementAggregator,
    grand_total,
    weekly_product_totals,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/reports", tags=["Reports"])

MOVEMENT_TYPES = {
    "sales": TIPO_VENDA,
    "losses": TIPO_PERDA,
}


# =========================================================
# HELPERS
# =========================================================
def _check_range(start_date: date, end_date: date):
    if start_date > end_date:
        raise ValidationError("start_date must not be after end_date")


def _compare_range(compare_start_date: date | None, compare_end_date: date | None):
    if compare_start_date is None and compare_end_date is None:
        return None

    if compare_start_date is None or compare_end_date is None:
        raise required("compare_start_date", "compare_end_date")

    _check_range(compare_start_date, compare_end_date)
    return {"start": compare_start_date, "end": compare_end_date}


def _report_bundle(
    db: Session,
    tipo: str,
    start_date: date,
    end_date: date,
    top_n: int,
    sector: str | None,
):
    aggregator = MovementAggregator(db, start_date, end_date, tipo=tipo, sector=sector)

    by_sector = aggregator.by_sector()

    return {
        "by_sector": by_sector,
        "by_product": aggregator.by_product(limit=top_n),
        "by_sector_product": aggregator.by_sector_product(),
        "daily": aggregator.by_date(),
        "total_geral": grand_total(by_sector),
        "quantidade_total": grand_total(by_sector, "total_quantidade"),
    }


def _movement_report(
    db: Session,
    report_type: str,
    start_date: date,
    end_date: date,
    compare_start_date: date | None,
    compare_end_date: date | None,
    top_n: int,
    sector: str | None,
):
    _check_range(start_date, end_date)
    compare_period = _compare_range(compare_start_date, compare_end_date)
    tipo = MOVEMENT_TYPES[report_type]

    data = _report_bundle(db, tipo, start_date, end_date, top_n, sector)

    logger.info(
        f"{report_type} report {start_date} to {end_date}: "
        f"{len(data['by_sector'])} sectors, total {data['total_geral']:.2f}"
    )

    compare_data = None
    if compare_period:
        compare_data = _report_bundle(
            db, tipo, compare_start_date, compare_end_date, top_n, sector
        )

    return {
        "type": report_type,
        "period": {"start": start_date, "end": end_date},
        "compare_period": compare_period,
        "filters": {"sector": sector, "top_n": top_n},
        "data": data,
        "compare_data": compare_data,
    }


# =========================================================
# SALES / LOSSES REPORTS
# =========================================================
@router.get("/sales")
def sales_report(
    start_date: date = Query(...),
    end_date: date = Query(...),
    compare_start_date: date | None = Query(None),
    compare_end_date: date | None = Query(None),
    top_n: int = Query(10, ge=1, le=500),
    sector: str | None = Query(None),
    current_user=Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return _movement_report(
        db, "sales", start_date, end_date,
        compare_start_date, compare_end_date, top_n, sector,
    )


@router.get("/losses")
def losses_report(
    start_date: date = Query(...),
    end_date: date = Query(...),
    compare_start_date: date | None = Query(None),
    compare_end_date: date | None = Query(None),
    top_n: int = Query(10, ge=1, le=500),
    sector: str | None = Query(None),
    current_user=Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return _movement_report(
        db, "losses", start_date, end_date,
        compare_start_date, compare_end_date, top_n, sector,
    )


# =========================================================
# MULTI-PERIOD COMPARISON
# =========================================================
@router.post("/multi-period")
def multi_period_report(
    payload: MultiPeriodRequest,
    current_user=Depends(get_current_user),
    db: Session = Depends(get_db),
):
    if not payload.periods:
        raise required("periods")

    for period in payload.periods:
        _check_range(period.start_date, period.end_date)

    logger.info(
        f"Multi-period {payload.report_type}: {len(payload.periods)} period(s), "
        f"sector={payload.sector or 'all'}"
    )

    periods = compare_periods(
        db,
        [period.model_dump() for period in payload.periods],
        tipo=MOVEMENT_TYPES[payload.report_type],
        sector=payload.sector,
        product_ids=payload.product_ids,
    )

    return {
        "report_type": payload.report_type,
        "filters": {"sector": payload.sector, "product_ids": payload.product_ids},
        "periods": periods,
    }


# =========================================================
# PRODUCT EVOLUTION / COMPARISON
# =========================================================
@router.get("/products/comparison")
def product_comparison(
    product_ids: list[int] = Query(...),
    start_date: date = Query(...),
    end_date: date = Query(...),
    type: ReportType = Query("sales"),
    current_user=Depends(get_current_user),
    db: Session = Depends(get_db),
):
    _check_range(start_date, end_date)

    batch = evolution_batch(
        db, product_ids, start_date, end_date, MOVEMENT_TYPES[type]
    )

    return {
        "period": {"start": start_date, "end": end_date},
        "type": type,
        **batch,
    }


@router.get("/products/{product_id}/evolution")
def product_evolution_report(
    product_id: int,
    start_date: date = Query(...),
    end_date: date = Query(...),
    type: ReportType = Query("sales"),
    compare_start_date: date | None = Query(None),
    compare_end_date: date | None = Query(None),
    current_user=Depends(get_current_user),
    db: Session = Depends(get_db),
):
    _check_range(start_date, end_date)
    compare_period = _compare_range(compare_start_date, compare_end_date)

    result = product_evolution(
        db,
        product_id,
        start_date,
        end_date,
        MOVEMENT_TYPES[type],
        compare_start_date,
        compare_end_date,
    )

    logger.info(
        f"Evolution of product {product_id} ({type}): "
        f"{len(result['series'])} data points"
    )

    return {
        "type": type,
        "period": {"start": start_date, "end": end_date},
        "compare_period": compare_period,
        **result,
    }


# =========================================================
# WEEKLY SALES x LOSSES
# =========================================================
@router.get("/weekly")
def weekly_report(
    start_date: date = Query(...),
    end_date: date = Query(...),
    sector: str | None = Query(None),
    product_id: int | None = Query(None),
    current_user=Depends(get_current_user),
    db: Session = Depends(get_db),
):
    _check_range(start_date, end_date)

    weeks = MovementAggregator(
        db,
        start_date,
        end_date,
        sector=sector,
        product_ids=[product_id] if product_id else None,
    ).by_week()

    return {
        "period": {"start": start_date, "end": end_date},
        "filters": {"sector": sector, "product_id": product_id},
        "weeks": weeks,
    }


# =========================================================
# DASHBOARD
# =========================================================
@router.get("/dashboard")
def dashboard(
    start_date: date = Query(...),
    end_date: date = Query(...),
    sector: str | None = Query(None),
    current_user=Depends(get_current_user),
    db: Session = Depends(get_db),
):
    _check_range(start_date, end_date)

    sales = MovementAggregator(db, start_date, end_date, tipo=TIPO_VENDA, sector=sector)
    losses = MovementAggregator(db, start_date, end_date, tipo=TIPO_PERDA, sector=sector)

    top_sales = sales.by_product(limit=5, order_by="quantidade")
    sold = {row["produto_id"]: row["total_quantidade"] for row in sales.by_product()}

    loss_analysis = []

    for row in losses.by_product(order_by="quantidade"):
        if row["total_quantidade"] <= 0:
            continue

        sold_qty = sold.get(row["produto_id"], 0.0)

        loss_analysis.append({
            "produto_id": row["produto_id"],
            "produto": row["produto_nome"],
            "setor": row["setor"],
            "perda": row["total_quantidade"],
            "venda": sold_qty,
            "taxa_perda": (row["total_quantidade"] / sold_qty * 100) if sold_qty > 0 else None,
        })

    return {
        "top_sales": [
            {
                "produto_id": row["produto_id"],
                "produto": row["produto_nome"],
                "setor": row["setor"],
                "total_vendas": row["total_quantidade"],
            }
            for row in top_sales
        ],
        "loss_analysis": loss_analysis,
    }


# =========================================================
# PRODUCT MOVEMENT IN A BUSINESS WEEK
# =========================================================
@router.get("/product-movement")
def product_movement(
    product_id: int = Query(...),
    week_number: int = Query(..., ge=0, le=53),
    year: int | None = Query(None),
    current_user=Depends(get_current_user),
    db: Session = Depends(get_db),
):
    year = year or date.today().year

    weeks = weekly_product_totals(db, product_id, year)

    current = next(
        (w for w in weeks if w["numero_semana"] == week_number),
        {"vendas": 0.0, "perdas": 0.0},
    )

    # Latest four weeks with data, up to and including the requested one
    recent = [w for w in weeks if w["numero_semana"] <= week_number][:4]

    def _average(field):
        return sum(w[field] for w in recent) / len(recent) if recent else 0.0

    return {
        "product_id": product_id,
        "week": {"numero_semana": week_number, "ano": year},
        "current_week": {
            "sales": current["vendas"],
            "losses": current["perdas"],
        },
        "average_4_weeks": {
            "sales": _average("vendas"),
            "losses": _average("perdas"),
        },
    }
