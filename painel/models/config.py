# painel/models/config.py

from sqlalchemy import Column, DateTime, Integer, String, Text
from sqlalchemy.sql import func

from painel.database import Base


class ConfigEntry(Base):
    __tablename__ = "configuracoes"

    id = Column(Integer, primary_key=True, index=True)
    chave = Column(String(100), unique=True, index=True, nullable=False)
    valor = Column(Text, nullable=False)
    descricao = Column(Text, nullable=True)

    updated_at = Column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )
