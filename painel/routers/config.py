# painel/routers/config.py

import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session

from painel.database import get_db, upsert
from painel.core.auth import get_admin_user, get_current_user
from painel.core.config import settings
from painel.core.errors import NotFoundError, required
from painel.core.rate_limiter import limiter
from painel.models.config import ConfigEntry
from painel.schemas.config import (
    ConfigListResponse,
    ConfigResponse,
    ConfigSave,
    ConfigSaveResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/config", tags=["Config"])


@router.post("", response_model=ConfigSaveResponse)
@limiter.limit(settings.WRITE_RATE_LIMIT)
def save_config(
    request: Request,
    config_data: ConfigSave,
    admin=Depends(get_admin_user),
    db: Session = Depends(get_db),
):
    chave = config_data.chave.strip()

    if not chave:
        raise required("chave", "valor")

    logger.info(f"Saving config: {chave} = {config_data.valor}")

    values = {
        "chave": chave,
        "valor": config_data.valor,
        "updated_at": datetime.now(timezone.utc),
    }
    update_columns = ["valor", "updated_at"]

    if config_data.descricao is not None:
        values["descricao"] = config_data.descricao
        update_columns.append("descricao")

    entry = upsert(
        db,
        ConfigEntry,
        values=values,
        conflict_columns=["chave"],
        update_columns=update_columns,
    )
    db.commit()

    return ConfigSaveResponse(data=ConfigResponse.model_validate(entry))


@router.get("", response_model=ConfigResponse | ConfigListResponse)
def get_config(
    chave: str | None = Query(None),
    current_user=Depends(get_current_user),
    db: Session = Depends(get_db),
):
    if chave:
        entry = (
            db.query(ConfigEntry)
            .filter(ConfigEntry.chave == chave)
            .first()
        )

        if entry is None:
            raise NotFoundError(f"Config '{chave}' not found")

        return ConfigResponse.model_validate(entry)

    entries = db.query(ConfigEntry).order_by(ConfigEntry.chave).all()

    return ConfigListResponse(
        configuracoes=[ConfigResponse.model_validate(e) for e in entries]
    )
