# =========================================================
# MOVEMENT AGGREGATOR
#
# Grouped SUM() rollups over the unified movement view
# (vendas + perdas). Every grouping shares the same filters:
#
# - inclusive date range
# - optional movement type (venda / perda)
# - optional exact-match sector
# - optional product-id list
#
# Rows whose product no longer exists are kept (LEFT JOIN)
# and labelled "Produto #<id>" / "Sem Setor".
#
# Store values are normalized to float right after each
# query; groups with no rows are simply absent.
# =========================================================

import logging
from datetime import date
from decimal import Decimal, InvalidOperation

from sqlalchemy import String, case, func, literal_column, select, union_all
from sqlalchemy.orm import Session

from painel.models.movements import MOVEMENT_MODELS, TIPO_PERDA, TIPO_VENDA
from painel.models.products import Product
from painel.services.weeks import business_week, week_number

logger = logging.getLogger(__name__)

FALLBACK_SECTOR = "Sem Setor"
FALLBACK_UNIT = "un"


# =========================================================
# NORMALIZATION
# =========================================================
def to_number(value) -> float:
    """Store sums arrive as Decimal, str or None; business logic sees float."""
    if value is None:
        return 0.0

    if isinstance(value, (int, float)):
        return float(value)

    try:
        return float(Decimal(str(value).strip() or 0))
    except (InvalidOperation, ValueError):
        return 0.0


def fallback_product_name(produto_id) -> str:
    return f"Produto #{produto_id}"


def _product_fields(row) -> dict:
    return {
        "produto_id": row.produto_id,
        "produto_nome": row.produto_nome or fallback_product_name(row.produto_id),
        "setor": row.setor or FALLBACK_SECTOR,
        "unidade": row.unidade or FALLBACK_UNIT,
    }


def _totals(row) -> dict:
    return {
        "total_valor": to_number(row.total_valor),
        "total_quantidade": to_number(row.total_quantidade),
    }


# =========================================================
# UNIFIED VIEW (vw_movimentacoes)
# =========================================================
def movement_view(tipo: str | None = None):
    selects = []

    for kind, model in MOVEMENT_MODELS.items():
        if tipo and kind != tipo:
            continue

        selects.append(
            select(
                literal_column(f"'{kind}'", String).label("tipo"),
                model.produto_id,
                model.data,
                model.quantidade,
                model.valor_reais,
                model.numero_semana,
                model.ano,
                model.data_inicio,
                model.data_fim,
            )
        )

    if not selects:
        raise ValueError(f"Unknown movement type: {tipo}")

    if len(selects) == 1:
        return selects[0].subquery("vw_movimentacoes")

    return union_all(*selects).subquery("vw_movimentacoes")


# =========================================================
# AGGREGATOR
# =========================================================
class MovementAggregator:
    def __init__(
        self,
        db: Session,
        start_date: date,
        end_date: date,
        tipo: str | None = None,
        sector: str | None = None,
        product_ids: list[int] | None = None,
    ):
        self.db = db
        self.start_date = start_date
        self.end_date = end_date
        self.tipo = tipo
        self.sector = sector
        self.product_ids = product_ids

        self.view = movement_view(tipo)
        self.sector_col = func.coalesce(Product.setor, FALLBACK_SECTOR)

    # -----------------------------------------------------
    # Shared FROM / WHERE
    # -----------------------------------------------------
    def _query(self, *columns):
        v = self.view

        query = (
            select(*columns)
            .select_from(v)
            .outerjoin(Product, Product.id == v.c.produto_id)
            .where(
                v.c.data >= self.start_date,
                v.c.data <= self.end_date,
            )
        )

        if self.sector:
            query = query.where(self.sector_col == self.sector)

        if self.product_ids:
            query = query.where(v.c.produto_id.in_(self.product_ids))

        return query

    def _sums(self):
        v = self.view
        return (
            func.sum(v.c.valor_reais).label("total_valor"),
            func.sum(v.c.quantidade).label("total_quantidade"),
        )

    def _product_columns(self):
        return (
            self.view.c.produto_id.label("produto_id"),
            Product.nome.label("produto_nome"),
            Product.setor.label("setor"),
            Product.unidade.label("unidade"),
        )

    # -----------------------------------------------------
    # Groupings
    # -----------------------------------------------------
    def by_date(self) -> list[dict]:
        v = self.view
        query = (
            self._query(v.c.data.label("data"), *self._sums())
            .group_by(v.c.data)
            .order_by(v.c.data)
        )

        return [
            {"data": row.data, **_totals(row)}
            for row in self.db.execute(query)
        ]

    def by_sector(self) -> list[dict]:
        v = self.view
        total_valor, total_quantidade = self._sums()

        query = (
            self._query(
                self.sector_col.label("setor"),
                total_valor,
                total_quantidade,
                func.count(func.distinct(v.c.produto_id)).label("total_produtos"),
            )
            .group_by(self.sector_col)
            .order_by(func.sum(v.c.valor_reais).desc())
        )

        return [
            {
                "setor": row.setor,
                **_totals(row),
                "total_produtos": int(row.total_produtos or 0),
            }
            for row in self.db.execute(query)
        ]

    def by_product(self, limit: int | None = None, order_by: str = "valor") -> list[dict]:
        v = self.view
        sort_col = v.c.quantidade if order_by == "quantidade" else v.c.valor_reais

        query = (
            self._query(*self._product_columns(), *self._sums())
            .group_by(v.c.produto_id, Product.nome, Product.setor, Product.unidade)
            .order_by(func.sum(sort_col).desc(), v.c.produto_id)
        )

        if limit:
            query = query.limit(limit)

        return [
            {**_product_fields(row), **_totals(row)}
            for row in self.db.execute(query)
        ]

    def by_sector_product(self) -> list[dict]:
        v = self.view

        query = (
            self._query(*self._product_columns(), *self._sums())
            .group_by(v.c.produto_id, Product.nome, Product.setor, Product.unidade)
            .order_by(self.sector_col, func.sum(v.c.valor_reais).desc())
        )

        return [
            {**_product_fields(row), **_totals(row)}
            for row in self.db.execute(query)
        ]

    def by_date_product(self) -> list[dict]:
        """Raw per-day, per-product rows; the finest grain the reports use."""
        v = self.view

        query = (
            self._query(v.c.data.label("data"), *self._product_columns(), *self._sums())
            .group_by(v.c.data, v.c.produto_id, Product.nome, Product.setor, Product.unidade)
            .order_by(v.c.data, Product.nome)
        )

        return [
            {"data": row.data, **_product_fields(row), **_totals(row)}
            for row in self.db.execute(query)
        ]
    def by_date_split(self) -> list[dict]:
        """Per-day sales and losses in separate columns."""
        v = self.view

        def _sum_for(tipo, column):
            return func.sum(case((v.c.tipo == tipo, column), else_=0))

        query = (
            self._query(
                v.c.data.label("data"),
                _sum_for(TIPO_VENDA, v.c.valor_reais).label("vendas_valor"),
                _sum_for(TIPO_PERDA, v.c.valor_reais).label("perdas_valor"),
                _sum_for(TIPO_VENDA, v.c.quantidade).label("vendas_quantidade"),
                _sum_for(TIPO_PERDA, v.c.quantidade).label("perdas_quantidade"),
            )
            .group_by(v.c.data)
            .order_by(v.c.data)
        )

        return [
            {
                "data": row.data,
                "vendas_valor": to_number(row.vendas_valor),
                "perdas_valor": to_number(row.perdas_valor),
                "vendas_quantidade": to_number(row.vendas_quantidade),
                "perdas_quantidade": to_number(row.perdas_quantidade),
            }
            for row in self.db.execute(query)
        ]

    def by_week(self) -> list[dict]:
        """Sales and losses side by side per business week.

        The week is derived from `data` at read time, so rows written
        without the stored week fields (bulk imports) still land in it.
        """
        weeks: dict[tuple[int, int], dict] = {}

        for day in self.by_date_split():
            week = business_week(day["data"])
            bucket = weeks.setdefault(
                (week.ano, week.numero_semana),
                {
                    **week.as_dict(),
                    "vendas_valor": 0.0,
                    "perdas_valor": 0.0,
                    "vendas_quantidade": 0.0,
                    "perdas_quantidade": 0.0,
                },
            )
            for field in SPLIT_FIELDS:
                bucket[field] += day[field]

        results = []

        for key in sorted(weeks):
            bucket = weeks[key]
            sales_qty = bucket["vendas_quantidade"]
            loss_qty = bucket["perdas_quantidade"]
            bucket["taxa_perda"] = (loss_qty / sales_qty * 100) if sales_qty > 0 else None
            results.append(bucket)

        return results


SPLIT_FIELDS = ("vendas_valor", "perdas_valor", "vendas_quantidade", "perdas_quantidade")


# =========================================================
# CLIENT-SIDE TOTALS
# =========================================================
def grand_total(groups: list[dict], field: str = "total_valor") -> float:
    # Summed from the grouped rows, never from a separate ungrouped query
    return sum(group[field] for group in groups)


# =========================================================
# PER-WEEK PRODUCT TOTALS
# =========================================================
def weekly_product_totals(db: Session, produto_id: int, ano: int) -> list[dict]:
    """Sales/loss quantities per business week of `ano`, newest first."""
    days = MovementAggregator(
        db,
        date(ano, 1, 1),
        date(ano, 12, 31),
        product_ids=[produto_id],
    ).by_date_split()

    weeks: dict[int, dict] = {}

    for day in days:
        numero = week_number(day["data"])
        bucket = weeks.setdefault(numero, {"numero_semana": numero, "vendas": 0.0, "perdas": 0.0})
        bucket["vendas"] += day["vendas_quantidade"]
        bucket["perdas"] += day["perdas_quantidade"]

    return [weeks[numero] for numero in sorted(weeks, reverse=True)]
