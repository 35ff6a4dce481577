# painel/models/movements.py
#
# Sales (vendas) and losses (perdas) share one shape. Rows are
# loaded by import jobs; produto_id carries no foreign key so a
# row survives the deletion of its product.

from sqlalchemy import CheckConstraint, Column, Date, Index, Integer, Numeric, event
from sqlalchemy.orm import declared_attr

from painel.database import Base
from painel.services.weeks import business_week

TIPO_VENDA = "venda"
TIPO_PERDA = "perda"


class MovementMixin:
    id = Column(Integer, primary_key=True, index=True)

    produto_id = Column(Integer, nullable=True, index=True)

    data = Column(Date, nullable=False, index=True)

    quantidade = Column(Numeric(12, 3), nullable=False, default=0)
    valor_reais = Column(Numeric(12, 2), nullable=False, default=0)

    # Business week of `data`; reads derive it again from `data`
    numero_semana = Column(Integer, nullable=True)
    ano = Column(Integer, nullable=True)
    data_inicio = Column(Date, nullable=True)
    data_fim = Column(Date, nullable=True)

    @declared_attr
    def __table_args__(cls):
        table = cls.__tablename__
        return (
            Index(f"ix_{table}_produto_data", "produto_id", "data"),
            Index(f"ix_{table}_ano_semana", "ano", "numero_semana"),
            CheckConstraint("quantidade >= 0", name=f"ck_{table}_quantidade_non_negative"),
            CheckConstraint("valor_reais >= 0", name=f"ck_{table}_valor_non_negative"),
        )


class Sale(MovementMixin, Base):
    __tablename__ = "vendas"


class Loss(MovementMixin, Base):
    __tablename__ = "perdas"


MOVEMENT_MODELS = {
    TIPO_VENDA: Sale,
    TIPO_PERDA: Loss,
}


def _fill_week_fields(mapper, connection, target):
    week = business_week(target.data)
    target.numero_semana = week.numero_semana
    target.ano = week.ano
    target.data_inicio = week.data_inicio
    target.data_fim = week.data_fim


for _model in MOVEMENT_MODELS.values():
    event.listen(_model, "before_insert", _fill_week_fields)
    event.listen(_model, "before_update", _fill_week_fields)
