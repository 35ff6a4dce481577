# painel/models/products.py

from sqlalchemy import (
    JSON,
    CheckConstraint,
    Column,
    DateTime,
    Index,
    Integer,
    Numeric,
    String,
    func,
)

from painel.database import Base

STATUS_ACTIVE = "ativo"
STATUS_INACTIVE = "inativo"

NAME_INDEX = "uq_produtos_nome_lower"
CODE_INDEX = "uq_produtos_codigo_lower"


class Product(Base):
    __tablename__ = "produtos"

    id = Column(Integer, primary_key=True, index=True)
    nome = Column(String(200), nullable=False)
    codigo = Column(String(50), nullable=True)
    setor = Column(String(100), nullable=False, index=True)
    unidade = Column(String(10), nullable=False, default="UN")
    rendimento = Column(Numeric(10, 3), nullable=False, default=1)

    # Weekday labels, e.g. ["seg", "qua", "sex"]
    dias_producao = Column(JSON, nullable=False, default=list)

    status = Column(String(10), nullable=False, default=STATUS_ACTIVE)

    horario_fabricacao = Column(String(5), nullable=True)
    horario_venda = Column(String(5), nullable=True)
    tempo_producao = Column(Integer, nullable=True)

    created_at = Column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )
    updated_at = Column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )

    __table_args__ = (
        CheckConstraint("rendimento > 0", name="ck_produtos_rendimento_positive"),
        CheckConstraint(
            "status IN ('ativo', 'inativo')",
            name="ck_produtos_status_valid",
        ),
        CheckConstraint(
            "tempo_producao IS NULL OR tempo_producao >= 0",
            name="ck_produtos_tempo_producao_non_negative",
        ),
    )

    @property
    def is_active(self) -> bool:
        return self.status == STATUS_ACTIVE


# Case-insensitive uniqueness lives in the store; NULL codes never collide
Index(NAME_INDEX, func.lower(Product.nome), unique=True)
Index(CODE_INDEX, func.lower(Product.codigo), unique=True)
