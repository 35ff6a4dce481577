from datetime import datetime
from pydantic import BaseModel


class ConfigSave(BaseModel):
    chave: str
    valor: str
    descricao: str | None = None


class ConfigResponse(BaseModel):
    chave: str
    valor: str
    descricao: str | None
    updated_at: datetime | None

    class Config:
        from_attributes = True


class ConfigSaveResponse(BaseModel):
    success: bool = True
    data: ConfigResponse


class ConfigListResponse(BaseModel):
    configuracoes: list[ConfigResponse]
