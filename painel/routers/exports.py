from datetime import date
from io import BytesIO

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import StreamingResponse
from openpyxl import Workbook
from sqlalchemy.orm import Session

from painel.database import get_db
from painel.core.auth import get_current_user
from painel.core.errors import ValidationError
from painel.core.rate_limiter import limiter
from painel.models.movements import TIPO_PERDA, TIPO_VENDA
from painel.schemas.report import ReportType
from painel.services.movements import MovementAggregator, grand_total

router = APIRouter(prefix="/exports", tags=["Exports"])

SHEET_LABELS = {
    "sales": "Vendas",
    "losses": "Perdas",
}


# =========================================================
# EXPORT ROUTE
# =========================================================
@router.get("/report")
@limiter.limit("10/minute")
def export_report(
    request: Request,
    start_date: date = Query(...),
    end_date: date = Query(...),
    type: ReportType = Query("sales"),
    sector: str | None = Query(None),
    current_user=Depends(get_current_user),
    db: Session = Depends(get_db),
):
    if start_date > end_date:
        raise ValidationError("start_date must not be after end_date")

    tipo = TIPO_VENDA if type == "sales" else TIPO_PERDA
    aggregator = MovementAggregator(db, start_date, end_date, tipo=tipo, sector=sector)

    return _build_excel(
        by_sector=aggregator.by_sector(),
        by_sector_product=aggregator.by_sector_product(),
        label=SHEET_LABELS[type],
        start_date=start_date,
        end_date=end_date,
        filename=f"{type}_{start_date}_to_{end_date}.xlsx",
    )


# =========================================================
# EXCEL BUILDER
# =========================================================
def _build_excel(
    by_sector: list[dict],
    by_sector_product: list[dict],
    label: str,
    start_date: date,
    end_date: date,
    filename: str,
):

    workbook = Workbook()

    # =======================
    # SHEET 1 - SECTOR SUMMARY
    # =======================
    summary = workbook.active
    summary.title = f"{label} por Setor"

    summary.append(["Período", f"{start_date} a {end_date}"])
    summary.append([])
    summary.append(["Setor", "Quantidade", "Valor (R$)", "Produtos"])

    for row in by_sector:
        summary.append([
            row["setor"],
            row["total_quantidade"],
            row["total_valor"],
            row["total_produtos"],
        ])

    summary.append([])
    summary.append(["Total", grand_total(by_sector, "total_quantidade"), grand_total(by_sector)])

    # =======================
    # SHEET 2 - SECTOR x PRODUCT
    # =======================
    detail = workbook.create_sheet(title=f"{label} por Produto")

    detail.append(["Setor", "Produto ID", "Produto", "Unidade", "Quantidade", "Valor (R$)"])

    for row in by_sector_product:
        detail.append([
            row["setor"],
            row["produto_id"],
            row["produto_nome"],
            row["unidade"],
            row["total_quantidade"],
            row["total_valor"],
        ])

    # =======================
    # RETURN FILE
    # =======================
    output = BytesIO()
    workbook.save(output)
    output.seek(0)

    return StreamingResponse(
        output,
        media_type="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )
