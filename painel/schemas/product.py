import json
from datetime import datetime
from pydantic import BaseModel, Field

from painel.models.products import Product


TIME_OF_DAY = r"^([01]\d|2[0-3]):[0-5]\d$"


class ProductCreate(BaseModel):
    name: str
    code: str | None = None
    sector: str
    unit: str | None = None
    recipe_yield: float | None = Field(None, gt=0)
    production_days: list[str] | None = None
    active: bool | None = None
    manufacturing_time: str | None = Field(None, pattern=TIME_OF_DAY)
    sale_time: str | None = Field(None, pattern=TIME_OF_DAY)
    production_time: int | None = Field(None, ge=0, description="Minutes")


class ProductUpdate(BaseModel):
    name: str | None = None
    code: str | None = None
    sector: str | None = None
    unit: str | None = None
    recipe_yield: float | None = Field(None, gt=0)
    production_days: list[str] | None = None
    active: bool | None = None
    manufacturing_time: str | None = Field(None, pattern=TIME_OF_DAY)
    sale_time: str | None = Field(None, pattern=TIME_OF_DAY)
    production_time: int | None = Field(None, ge=0)


def production_days_list(raw) -> list[str]:
    # Older rows may hold the list serialized as text
    if not raw:
        return []
    if isinstance(raw, str):
        try:
            raw = json.loads(raw)
        except ValueError:
            return []
    return list(raw) if isinstance(raw, (list, tuple)) else []


class ProductResponse(BaseModel):
    id: int
    name: str
    code: str | None
    sector: str
    unit: str
    recipe_yield: float
    production_days: list[str]
    active: bool
    manufacturing_time: str | None
    sale_time: str | None
    production_time: int | None
    created_at: datetime | None
    updated_at: datetime | None

    @classmethod
    def from_model(cls, product: Product) -> "ProductResponse":
        return cls(
            id=product.id,
            name=product.nome,
            code=product.codigo,
            sector=product.setor,
            unit=product.unidade,
            recipe_yield=float(product.rendimento or 1),
            production_days=production_days_list(product.dias_producao),
            active=product.is_active,
            manufacturing_time=product.horario_fabricacao or None,
            sale_time=product.horario_venda or None,
            production_time=product.tempo_producao,
            created_at=product.created_at,
            updated_at=product.updated_at,
        )


class ProductMutationResponse(BaseModel):
    success: bool = True
    message: str | None = None
    product: ProductResponse | None = None


class ProductListResponse(BaseModel):
    success: bool = True
    products: list[ProductResponse]
