# painel/routers/products.py

import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from painel.database import get_db
from painel.core.auth import get_current_user
from painel.core.config import settings
from painel.core.errors import ConflictError, NotFoundError, ValidationError, required
from painel.core.rate_limiter import limiter
from painel.models.movements import Loss, Sale
from painel.models.planning import Planning
from painel.models.products import (
    CODE_INDEX,
    NAME_INDEX,
    STATUS_ACTIVE,
    STATUS_INACTIVE,
    Product,
)
from painel.schemas.product import (
    ProductCreate,
    ProductListResponse,
    ProductMutationResponse,
    ProductResponse,
    ProductUpdate,
)

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/products",
    tags=["Products"],
)

# Public field -> column
FIELD_COLUMNS = {
    "name": "nome",
    "code": "codigo",
    "sector": "setor",
    "unit": "unidade",
    "recipe_yield": "rendimento",
    "production_days": "dias_producao",
    "manufacturing_time": "horario_fabricacao",
    "sale_time": "horario_venda",
    "production_time": "tempo_producao",
}


def _clean_code(code: str | None) -> str | None:
    return code.strip() if code and code.strip() else None


def _commit_unique(db: Session, name: str | None, code: str | None):
    # Name/code uniqueness is enforced by unique indexes; translate the violation
    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        message = str(exc.orig)

        if CODE_INDEX in message:
            raise ConflictError(f'Code "{code}" is already in use')

        if NAME_INDEX in message:
            raise ConflictError(f'Product "{name}" already exists')

        raise


def _get_product(db: Session, product_id: int) -> Product:
    product = (
        db.query(Product)
        .filter(Product.id == product_id)
        .first()
    )

    if not product:
        raise NotFoundError("Product not found")

    return product


# =========================================================
# CREATE
# =========================================================
@router.post(
    "",
    response_model=ProductMutationResponse,
    status_code=status.HTTP_201_CREATED,
)
@limiter.limit(settings.WRITE_RATE_LIMIT)
def create_product(
    request: Request,
    product_data: ProductCreate,
    current_user=Depends(get_current_user),
    db: Session = Depends(get_db),
):
    name = product_data.name.strip()
    sector = product_data.sector.strip()

    if not name or not sector:
        raise required("name", "sector")

    code = _clean_code(product_data.code)

    logger.info(f"Creating product {name} ({sector})")

    product = Product(
        nome=name,
        codigo=code,
        setor=sector,
        unidade=product_data.unit or "UN",
        rendimento=product_data.recipe_yield or 1,
        dias_producao=product_data.production_days or [],
        status=STATUS_INACTIVE if product_data.active is False else STATUS_ACTIVE,
        horario_fabricacao=product_data.manufacturing_time,
        horario_venda=product_data.sale_time,
        tempo_producao=product_data.production_time,
    )

    db.add(product)
    _commit_unique(db, name, code)
    db.refresh(product)

    return ProductMutationResponse(product=ProductResponse.from_model(product))


# =========================================================
# READ
# =========================================================
@router.get("", response_model=ProductListResponse)
def list_products(
    active_only: bool = Query(False),
    current_user=Depends(get_current_user),
    db: Session = Depends(get_db),
):
    query = db.query(Product)

    if active_only:
        query = query.filter(Product.status == STATUS_ACTIVE)

    products = query.order_by(Product.setor, Product.nome).all()

    return ProductListResponse(
        products=[ProductResponse.from_model(p) for p in products]
    )


@router.get("/{product_id}", response_model=ProductResponse)
def get_product(
    product_id: int,
    current_user=Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return ProductResponse.from_model(_get_product(db, product_id))


# =========================================================
# UPDATE (only supplied fields are patched)
# =========================================================
@router.put("/{product_id}", response_model=ProductMutationResponse)
@limiter.limit(settings.WRITE_RATE_LIMIT)
def update_product(
    request: Request,
    product_id: int,
    product_data: ProductUpdate,
    current_user=Depends(get_current_user),
    db: Session = Depends(get_db),
):
    product = _get_product(db, product_id)
    changes = product_data.model_dump(exclude_unset=True)

    for field in ("name", "sector"):
        if field in changes and not (changes[field] or "").strip():
            raise ValidationError(f"invalid {field}")

    if "active" in changes and changes["active"] is None:
        raise ValidationError("invalid active")

    if "name" in changes:
        changes["name"] = changes["name"].strip()
    if "sector" in changes:
        changes["sector"] = changes["sector"].strip()
    if "code" in changes:
        changes["code"] = _clean_code(changes["code"])
    if "production_days" in changes:
        changes["production_days"] = changes["production_days"] or []
    if "recipe_yield" in changes and changes["recipe_yield"] is None:
        changes["recipe_yield"] = 1
    if "unit" in changes and not changes["unit"]:
        changes["unit"] = "UN"

    for field, column in FIELD_COLUMNS.items():
        if field in changes:
            setattr(product, column, changes[field])

    if "active" in changes:
        product.status = STATUS_ACTIVE if changes["active"] else STATUS_INACTIVE

    product.updated_at = datetime.now(timezone.utc)

    logger.info(f"Updating product {product_id}: {sorted(changes)}")

    _commit_unique(db, changes.get("name"), changes.get("code"))
    db.refresh(product)

    return ProductMutationResponse(product=ProductResponse.from_model(product))


# =========================================================
# DELETE (soft by default)
# =========================================================
def _count_dependents(db: Session, product_id: int) -> int:
    total = 0

    for model in (Sale, Loss, Planning):
        total += (
            db.query(func.count(model.id))
            .filter(model.produto_id == product_id)
            .scalar()
        ) or 0

    return total


@router.delete("/{product_id}", response_model=ProductMutationResponse)
@limiter.limit(settings.WRITE_RATE_LIMIT)
def delete_product(
    request: Request,
    product_id: int,
    soft: bool = Query(True),
    current_user=Depends(get_current_user),
    db: Session = Depends(get_db),
):
    product = _get_product(db, product_id)

    if soft:
        product.status = STATUS_INACTIVE
        product.updated_at = datetime.now(timezone.utc)
        db.commit()
        db.refresh(product)

        logger.info(f"Product deactivated: {product.nome}")

        return ProductMutationResponse(
            message="Product deactivated",
            product=ProductResponse.from_model(product),
        )

    dependents = _count_dependents(db, product_id)

    if dependents > 0:
        raise ConflictError(
            f"Cannot delete this product: {dependents} linked records "
            "(sales, losses or planning). Deactivate it instead.",
            dependents=dependents,
        )

    name = product.nome

    db.delete(product)
    db.commit()

    logger.info(f"Product deleted permanently: {name}")

    return ProductMutationResponse(message="Product deleted permanently")
