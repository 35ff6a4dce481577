# painel/models/planning.py

from sqlalchemy import (
    CheckConstraint,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Integer,
    Numeric,
    UniqueConstraint,
)
from sqlalchemy.sql import func

from painel.database import Base


class Planning(Base):
    __tablename__ = "planejamento"

    id = Column(Integer, primary_key=True, index=True)

    produto_id = Column(
        Integer,
        ForeignKey("produtos.id"),
        nullable=False,
        index=True,
    )

    data = Column(Date, nullable=False, index=True)

    quantidade_planejada = Column(Numeric(12, 3), nullable=False)

    updated_at = Column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )

    __table_args__ = (
        UniqueConstraint("produto_id", "data", name="uq_planejamento_produto_data"),
        CheckConstraint(
            "quantidade_planejada >= 0",
            name="ck_planejamento_quantidade_non_negative",
        ),
    )
