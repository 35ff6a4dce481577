# =========================================================
# PRODUCT EVOLUTION / RANKING
#
# Daily series for one product and movement type, plus
# summary statistics. Batch mode skips products that fail
# or do not exist and reports the mismatch to the caller.
# =========================================================

import logging
from datetime import date

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from painel.core.errors import NotFoundError
from painel.models.products import Product
from painel.services.movements import FALLBACK_SECTOR, FALLBACK_UNIT, MovementAggregator

logger = logging.getLogger(__name__)


def series_stats(series: list[dict]) -> dict:
    """Totals, mean, peak and trough of a date-ordered series.

    Ties on peak/trough go to the earliest date: the scan only
    replaces the current extreme on a strictly better value.
    """
    total_valor = 0.0
    total_quantidade = 0.0
    peak = None
    trough = None

    for point in series:
        valor = point["valor"]
        total_valor += valor
        total_quantidade += point["quantidade"]

        if peak is None or valor > peak["valor"]:
            peak = {"valor": valor, "data": point["data"]}

        if trough is None or valor < trough["valor"]:
            trough = {"valor": valor, "data": point["data"]}

    return {
        "total_valor": total_valor,
        "total_quantidade": total_quantidade,
        "media_valor": total_valor / len(series) if series else 0.0,
        "dias_com_dados": len(series),
        "pico": peak or {"valor": 0.0, "data": None},
        "vale": trough or {"valor": 0.0, "data": None},
    }


def variation(total: float, compare_total: float) -> float | None:
    """Percent change against the comparison total; None when undefined."""
    if compare_total > 0:
        return (total - compare_total) / compare_total * 100
    return None


def product_series(
    db: Session,
    produto_id: int,
    start_date: date,
    end_date: date,
    tipo: str,
) -> list[dict]:
    rows = MovementAggregator(
        db,
        start_date,
        end_date,
        tipo=tipo,
        product_ids=[produto_id],
    ).by_date()

    return [
        {
            "data": row["data"],
            "quantidade": row["total_quantidade"],
            "valor": row["total_valor"],
        }
        for row in rows
    ]


def _product_info(db: Session, produto_id: int) -> dict:
    product = db.query(Product).filter(Product.id == produto_id).first()

    if product is None:
        raise NotFoundError(f"Product {produto_id} not found")

    return {
        "id": product.id,
        "nome": product.nome,
        "setor": product.setor or FALLBACK_SECTOR,
        "unidade": product.unidade or FALLBACK_UNIT,
    }


def product_evolution(
    db: Session,
    produto_id: int,
    start_date: date,
    end_date: date,
    tipo: str,
    compare_start_date: date | None = None,
    compare_end_date: date | None = None,
) -> dict:
    produto = _product_info(db, produto_id)

    series = product_series(db, produto_id, start_date, end_date, tipo)
    stats = series_stats(series)

    result = {
        "produto": produto,
        "series": series,
        "stats": stats,
        "compare_series": None,
        "compare_stats": None,
        "variacao": None,
    }

    if compare_start_date and compare_end_date:
        compare_series = product_series(
            db, produto_id, compare_start_date, compare_end_date, tipo
        )
        compare_stats = series_stats(compare_series)

        result["compare_series"] = compare_series
        result["compare_stats"] = compare_stats
        result["variacao"] = variation(
            stats["total_valor"], compare_stats["total_valor"]
        )

    return result


def evolution_batch(
    db: Session,
    product_ids: list[int],
    start_date: date,
    end_date: date,
    tipo: str,
) -> dict:
    products = []
    missing_ids = []

    for produto_id in product_ids:
        try:
            products.append(
                product_evolution(db, produto_id, start_date, end_date, tipo)
            )
        except NotFoundError:
            logger.warning(f"Product {produto_id} not found, skipping")
            missing_ids.append(produto_id)
        except SQLAlchemyError as exc:
            logger.warning(f"Product {produto_id} failed, skipping: {exc}")
            db.rollback()
            missing_ids.append(produto_id)

    if len(products) != len(product_ids):
        logger.warning(
            f"Requested {len(product_ids)} products but returned {len(products)}"
        )

    return {
        "requested": len(product_ids),
        "returned": len(products),
        "missing_ids": missing_ids,
        "products": products,
    }
