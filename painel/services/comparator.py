# =========================================================
# MULTI-PERIOD COMPARATOR
#
# Each caller-labelled period is run through the aggregator
# at its finest grain (day x product) with one query. The
# per-day, per-sector and per-product totals are folded here
# from those raw rows.
#
# All-or-nothing: a failing period fails the whole request.
# =========================================================

import logging
from datetime import date

from sqlalchemy.orm import Session

from painel.services.movements import MovementAggregator

logger = logging.getLogger(__name__)


def fold_period(rows: list[dict]) -> dict:
    by_date: dict[date, dict] = {}
    by_sector: dict[str, dict] = {}
    by_product: dict[int, dict] = {}

    for row in rows:
        quantidade = row["total_quantidade"]
        valor = row["total_valor"]

        day = by_date.setdefault(row["data"], {"quantidade": 0.0, "valor_reais": 0.0})
        day["quantidade"] += quantidade
        day["valor_reais"] += valor

        sector = by_sector.setdefault(row["setor"], {"quantidade": 0.0, "valor_reais": 0.0})
        sector["quantidade"] += quantidade
        sector["valor_reais"] += valor

        product = by_product.setdefault(
            row["produto_id"],
            {
                "nome": row["produto_nome"],
                "setor": row["setor"],
                "unidade": row["unidade"],
                "quantidade": 0.0,
                "valor_reais": 0.0,
            },
        )
        product["quantidade"] += quantidade
        product["valor_reais"] += valor

    total_geral = {
        "quantidade": sum(s["quantidade"] for s in by_sector.values()),
        "valor_reais": sum(s["valor_reais"] for s in by_sector.values()),
    }

    return {
        "daily": [
            {"data": day, **totals}
            for day, totals in sorted(by_date.items())
        ],
        "total_by_sector": by_sector,
        "total_by_product": by_product,
        "total_geral": total_geral,
    }


def compare_periods(
    db: Session,
    periods: list[dict],
    tipo: str,
    sector: str | None = None,
    product_ids: list[int] | None = None,
) -> list[dict]:
    """Run every period independently, keeping the input order."""
    results = []

    for index, period in enumerate(periods, start=1):
        start_date = period["start_date"]
        end_date = period["end_date"]
        label = period.get("label") or f"Período {index}"

        logger.info(f"Period '{label}': {start_date} to {end_date} ({tipo})")

        rows = MovementAggregator(
            db,
            start_date,
            end_date,
            tipo=tipo,
            sector=sector,
            product_ids=product_ids,
        ).by_date_product()

        results.append({
            "label": label,
            "period": {"start": start_date, "end": end_date},
            "data": {"raw": rows, **fold_period(rows)},
        })

    return results
