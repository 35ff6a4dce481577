# =========================================================
# PRODUCTION SUGGESTION
#
# Suggested production per active product for a planning
# window, from three views of past sales:
#
# - recency: weekly totals over the last N weeks
# - last year: a 3-week window around the same date a year ago
# - 12-month base: a year of sales spread over 52 weeks
#
# The blend weights depend on which views have data and on the
# configured posture. The forecast is then adjusted for the
# recent trend (capped per posture), grossed up by the expected
# loss rate and padded by a safety buffer:
#
#   ceil(forecast / (1 - loss_rate) * (1 + buffer))
#
# Tunables live in the config store (planejamento_* keys).
# =========================================================

import logging
import math
from dataclasses import dataclass
from datetime import date, timedelta
from statistics import median

from sqlalchemy.orm import Session

from painel.models.config import ConfigEntry
from painel.models.movements import TIPO_PERDA, TIPO_VENDA
from painel.models.products import STATUS_ACTIVE, Product
from painel.schemas.product import production_days_list
from painel.services.movements import MovementAggregator

logger = logging.getLogger(__name__)

CONFIG_WEEKS = "planejamento_semanas_historico"
CONFIG_POSTURE = "planejamento_postura"
CONFIG_BUFFER = "planejamento_buffer_pct"
CONFIG_NO_DATA = "planejamento_sugestao_sem_dados"

LAST_YEAR_WINDOW_WEEKS = 3
TREND_THRESHOLD = 0.08
MAX_LOSS_RATE = 0.90
MAX_BUFFER = 0.30


@dataclass(frozen=True)
class Posture:
    label: str
    growth_cap: float
    # (recency, last year) weights; the 12-month base takes the rest
    full_blend: tuple[float, float]
    recency_vs_base: float
    recency_vs_last_year: float


POSTURES = {
    "conservador": Posture("Conservador", 0.05, (0.45, 0.40), 0.65, 0.50),
    "equilibrado": Posture("Equilibrado", 0.12, (0.60, 0.30), 0.75, 0.65),
    "agressivo": Posture("Agressivo", 0.22, (0.70, 0.20), 0.85, 0.75),
}
DEFAULT_POSTURE = "equilibrado"


@dataclass(frozen=True)
class SuggestionSettings:
    weeks: int = 8
    posture: str = DEFAULT_POSTURE
    buffer: float = 0.05
    no_data_default: float = 10.0

    @property
    def profile(self) -> Posture:
        return POSTURES.get(self.posture, POSTURES[DEFAULT_POSTURE])

    def as_dict(self) -> dict:
        return {
            "semanas_historico": self.weeks,
            "postura": self.profile.label,
            "buffer_pct": self.buffer * 100,
            "sugestao_sem_dados": self.no_data_default,
        }


@dataclass
class ProductHistory:
    """Past movements of one product, oldest week first."""

    weekly_sales: list[float]
    weekly_losses: list[float]
    last_year_sales: float = 0.0
    last_year_losses: float = 0.0
    base_12m_sales: float = 0.0

    @property
    def active_weeks(self) -> list[tuple[float, float]]:
        return [
            (sales, losses)
            for sales, losses in zip(self.weekly_sales, self.weekly_losses)
            if sales + losses > 0
        ]

    @property
    def weeks_with_data(self) -> int:
        return len(self.active_weeks)

    @property
    def last_year_weekly_sales(self) -> float:
        return self.last_year_sales / LAST_YEAR_WINDOW_WEEKS

    @property
    def last_year_weekly_losses(self) -> float:
        return self.last_year_losses / LAST_YEAR_WINDOW_WEEKS

    @property
    def base_weekly_sales(self) -> float:
        return self.base_12m_sales / 52

    @property
    def has_last_year(self) -> bool:
        return self.last_year_sales > 0

    @property
    def has_base(self) -> bool:
        return self.base_12m_sales > 0


# =========================================================
# SETTINGS
# =========================================================
def _parse(value, cast, default):
    if value is None:
        return default
    try:
        return cast(str(value).strip())
    except ValueError:
        logger.warning(f"Ignoring malformed planning setting {value!r}")
        return default


def settings_from_config(values: dict) -> SuggestionSettings:
    """Build settings from raw config values, clamped to safe ranges."""
    posture = (values.get(CONFIG_POSTURE) or DEFAULT_POSTURE).strip().lower()

    return SuggestionSettings(
        weeks=max(2, _parse(values.get(CONFIG_WEEKS), int, 8)),
        posture=posture if posture in POSTURES else DEFAULT_POSTURE,
        buffer=max(0.0, min(MAX_BUFFER, _parse(values.get(CONFIG_BUFFER), float, 5.0) / 100)),
        no_data_default=max(0.0, _parse(values.get(CONFIG_NO_DATA), float, 10.0)),
    )


def load_settings(db: Session) -> SuggestionSettings:
    entries = (
        db.query(ConfigEntry)
        .filter(ConfigEntry.chave.in_([CONFIG_WEEKS, CONFIG_POSTURE, CONFIG_BUFFER, CONFIG_NO_DATA]))
        .all()
    )
    return settings_from_config({entry.chave: entry.valor for entry in entries})


# =========================================================
# FORECAST
# =========================================================
def _mean(values) -> float:
    values = list(values)
    return sum(values) / len(values) if values else 0.0


def growth_rate(weekly: list[float]) -> float:
    """Relative change of the newer half of the weeks over the older half."""
    half = max(1, len(weekly) // 2)
    older = _mean(weekly[:half])
    newer = _mean(weekly[-half:])
    return (newer - older) / older if older > 0 else 0.0


def trend_label(rate: float) -> str:
    if rate > TREND_THRESHOLD:
        return "growing"
    if rate < -TREND_THRESHOLD:
        return "decreasing"
    return "stable"


def confidence(weeks_with_data: int, has_last_year: bool) -> dict:
    if weeks_with_data == 0:
        return {"nivel": "sem_dados", "label": "Sem histórico", "cor": "gray"}
    if weeks_with_data >= 6 and has_last_year:
        return {"nivel": "alta", "label": "Alta", "cor": "green"}
    if weeks_with_data >= 4:
        return {"nivel": "media", "label": "Média", "cor": "yellow"}
    return {"nivel": "baixa", "label": "Baixa", "cor": "orange"}


def forecast_sales(history: ProductHistory, settings: SuggestionSettings, unit: str = "") -> tuple[float, str, dict]:
    """Expected sales for the next week, the strategy text and the blend weights."""
    weeks_with_data = history.weeks_with_data
    weights = {"rec": 0.0, "ano": 0.0, "base": 0.0}

    if weeks_with_data == 0:
        strategy = f"Sem histórico. Usando sugestão padrão de {settings.no_data_default:g} {unit}".rstrip() + "."
        return settings.no_data_default, strategy, weights

    recency = _mean(sales for sales, _ in history.active_weeks)

    if weeks_with_data <= 3:
        weights["rec"] = 1.0
        strategy = f"Histórico inicial ({weeks_with_data} sem.). Usando média simples sem tendência."
        return recency, strategy, weights

    profile = settings.profile
    last_year = history.last_year_weekly_sales
    base = history.base_weekly_sales

    if history.has_last_year and history.has_base:
        w_rec, w_ano = profile.full_blend
        weights = {"rec": w_rec, "ano": w_ano, "base": 1 - w_rec - w_ano}
        strategy = (
            f"Blend completo: {round(w_rec * 100)}% recência + {round(w_ano * 100)}% mesmo período ano ant. "
            f"+ {round(weights['base'] * 100)}% base 12m."
        )
    elif history.has_base:
        w_rec = profile.recency_vs_base
        weights = {"rec": w_rec, "ano": 0.0, "base": 1 - w_rec}
        strategy = f"Sem histórico anual. Blend: {round(w_rec * 100)}% recência + {round(weights['base'] * 100)}% base 12m."
    elif history.has_last_year:
        w_rec = profile.recency_vs_last_year
        weights = {"rec": w_rec, "ano": 1 - w_rec, "base": 0.0}
        strategy = f"Blend: {round(w_rec * 100)}% recência + {round(weights['ano'] * 100)}% mesmo período ano ant."
    else:
        weights["rec"] = 1.0
        strategy = f"Apenas recência ({weeks_with_data} semanas)."

    forecast = weights["rec"] * recency + weights["ano"] * last_year + weights["base"] * base

    adjustment = max(-profile.growth_cap, min(profile.growth_cap, growth_rate(history.weekly_sales)))

    return forecast * (1 + adjustment), strategy, weights


def loss_rate(history: ProductHistory) -> float:
    """Median weekly loss share, blended 70/30 with last year's when available."""
    recent_rates = [losses / (sales + losses) for sales, losses in history.active_weeks]

    last_year_total = history.last_year_weekly_sales + history.last_year_weekly_losses
    last_year_rate = (
        history.last_year_weekly_losses / last_year_total
        if history.has_last_year and last_year_total > 0
        else None
    )

    if last_year_rate is None:
        return median(recent_rates) if recent_rates else 0.0

    if not recent_rates:
        return last_year_rate

    return 0.70 * median(recent_rates) + 0.30 * last_year_rate


def production_amount(forecast: float, rate: float, buffer: float) -> tuple[float, int]:
    """Base production (before buffer) and the rounded-up suggestion."""
    safe_rate = min(rate, MAX_LOSS_RATE)
    base = forecast / (1 - safe_rate) if forecast > 0 else forecast
    return base, max(0, math.ceil(base * (1 + buffer)))


def suggest(history: ProductHistory, settings: SuggestionSettings, unit: str = "") -> dict:
    """Full suggestion record for one product history."""
    weeks_with_data = history.weeks_with_data

    forecast, strategy, weights = forecast_sales(history, settings, unit)
    rate = loss_rate(history)
    prod_base, suggested = production_amount(forecast, rate, settings.buffer)

    sales_growth = 0.0
    sales_trend = losses_trend = "stable"

    if weeks_with_data >= 4:
        sales_growth = growth_rate(history.weekly_sales)
        sales_trend = trend_label(sales_growth)
        losses_trend = trend_label(growth_rate(history.weekly_losses))

    if weeks_with_data > 0:
        strategy = f"{strategy} Taxa de perda: {rate * 100:.1f}%. Buffer: +{settings.buffer * 100:.0f}%."

    avg_sales = _mean(sales for sales, _ in history.active_weeks)
    avg_losses = _mean(losses for _, losses in history.active_weeks)
    level = confidence(weeks_with_data, history.has_last_year)

    return {
        "avg_sales": round(avg_sales, 2),
        "avg_losses": round(avg_losses, 2),
        "avg_loss_rate": round(rate * 100, 1),
        "sales_trend": sales_trend,
        "losses_trend": losses_trend,
        "sales_growth_rate": round(sales_growth * 100, 1),
        "confianca": level["nivel"],
        "confianca_label": level["label"],
        "confianca_cor": level["cor"],
        "semanas_com_dados": weeks_with_data,
        "tem_ano_anterior": history.has_last_year,
        "calc_details": {
            "venda_prevista": round(forecast, 2),
            "taxa_perda_pct": round(rate * 100, 1),
            "prod_base": round(prod_base, 2),
            "buffer_pct": settings.buffer * 100,
            "media_recencia": round(avg_sales, 2),
            "media_ano_anterior": round(history.last_year_weekly_sales, 2),
            "media_base12m": round(history.base_weekly_sales, 2),
            "pesos": {name: round(weight * 100) for name, weight in weights.items()},
            "semanas_com_dados": weeks_with_data,
        },
        "suggested_production": suggested,
        "suggestion": strategy,
    }


# =========================================================
# STORE ACCESS
# =========================================================
def _one_year_back(day: date) -> date:
    try:
        return day.replace(year=day.year - 1)
    except ValueError:
        # 29 February
        return day.replace(year=day.year - 1, day=28)


def _quantities_by_product(db, start, end, tipo, product_ids) -> dict[int, float]:
    rows = MovementAggregator(db, start, end, tipo=tipo, product_ids=product_ids).by_product()
    return {row["produto_id"]: row["total_quantidade"] for row in rows}


def _weekly_buckets(db, start, weeks, tipo, product_ids) -> dict[int, list[float]]:
    end = start + timedelta(days=weeks * 7 - 1)
    buckets = {pid: [0.0] * weeks for pid in product_ids}

    rows = MovementAggregator(db, start, end, tipo=tipo, product_ids=product_ids).by_date_product()

    for row in rows:
        buckets[row["produto_id"]][(row["data"] - start).days // 7] += row["total_quantidade"]

    return buckets


def production_suggestions(db: Session, start_date: date, end_date: date) -> dict:
    settings = load_settings(db)

    products = (
        db.query(Product)
        .filter(Product.status == STATUS_ACTIVE)
        .order_by(Product.setor, Product.nome)
        .all()
    )
    product_ids = [p.id for p in products]

    logger.info(
        f"Production suggestions from {start_date}: {len(products)} products, "
        f"{settings.weeks} weeks, posture {settings.posture}"
    )

    if not product_ids:
        return {
            "products": [],
            "period": {"start": start_date, "end": end_date},
            "config_used": settings.as_dict(),
        }

    before_start = start_date - timedelta(days=1)
    recency_start = start_date - timedelta(days=settings.weeks * 7)

    year_ago = _one_year_back(start_date)
    last_year_start = year_ago - timedelta(days=7)
    last_year_end = year_ago + timedelta(days=13)

    weekly_sales = _weekly_buckets(db, recency_start, settings.weeks, TIPO_VENDA, product_ids)
    weekly_losses = _weekly_buckets(db, recency_start, settings.weeks, TIPO_PERDA, product_ids)
    last_year_sales = _quantities_by_product(db, last_year_start, last_year_end, TIPO_VENDA, product_ids)
    last_year_losses = _quantities_by_product(db, last_year_start, last_year_end, TIPO_PERDA, product_ids)
    base_sales = _quantities_by_product(db, year_ago, before_start, TIPO_VENDA, product_ids)
    current_sales = _quantities_by_product(db, start_date, end_date, TIPO_VENDA, product_ids)
    current_losses = _quantities_by_product(db, start_date, end_date, TIPO_PERDA, product_ids)

    results = []

    for product in products:
        pid = product.id
        history = ProductHistory(
            weekly_sales=weekly_sales[pid],
            weekly_losses=weekly_losses[pid],
            last_year_sales=last_year_sales.get(pid, 0.0),
            last_year_losses=last_year_losses.get(pid, 0.0),
            base_12m_sales=base_sales.get(pid, 0.0),
        )

        sold = current_sales.get(pid, 0.0)
        lost = current_losses.get(pid, 0.0)

        results.append({
            "produto_id": pid,
            "produto_nome": product.nome,
            "setor": product.setor,
            "unidade": product.unidade,
            "production_days": production_days_list(product.dias_producao),
            "current_sales": sold,
            "current_losses": lost,
            "current_loss_rate": round(lost / (sold + lost) * 100, 1) if sold + lost > 0 else 0.0,
            **suggest(history, settings, product.unidade),
        })

    return {
        "products": results,
        "period": {"start": start_date, "end": end_date},
        "config_used": settings.as_dict(),
    }
