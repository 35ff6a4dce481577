"""initial_schema

Revision ID: 3f1a9c2d7b10
Revises:
Create Date: 2026-03-02 09:12:41.518204
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '3f1a9c2d7b10'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _movement_table(name: str) -> None:
    op.create_table(
        name,
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("produto_id", sa.Integer(), nullable=True),
        sa.Column("data", sa.Date(), nullable=False),
        sa.Column("quantidade", sa.Numeric(12, 3), nullable=False),
        sa.Column("valor_reais", sa.Numeric(12, 2), nullable=False),
        sa.Column("numero_semana", sa.Integer(), nullable=True),
        sa.Column("ano", sa.Integer(), nullable=True),
        sa.Column("data_inicio", sa.Date(), nullable=True),
        sa.Column("data_fim", sa.Date(), nullable=True),
        sa.CheckConstraint("quantidade >= 0", name=f"ck_{name}_quantidade_non_negative"),
        sa.CheckConstraint("valor_reais >= 0", name=f"ck_{name}_valor_non_negative"),
    )
    op.create_index(f"ix_{name}_id", name, ["id"])
    op.create_index(f"ix_{name}_produto_id", name, ["produto_id"])
    op.create_index(f"ix_{name}_data", name, ["data"])
    op.create_index(f"ix_{name}_produto_data", name, ["produto_id", "data"])
    op.create_index(f"ix_{name}_ano_semana", name, ["ano", "numero_semana"])


def upgrade() -> None:
    """Upgrade schema."""

    # PRODUCTS
    op.create_table(
        "produtos",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("nome", sa.String(200), nullable=False),
        sa.Column("codigo", sa.String(50), nullable=True),
        sa.Column("setor", sa.String(100), nullable=False),
        sa.Column("unidade", sa.String(10), nullable=False),
        sa.Column("rendimento", sa.Numeric(10, 3), nullable=False),
        sa.Column("dias_producao", sa.JSON(), nullable=False),
        sa.Column("status", sa.String(10), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.CheckConstraint("rendimento > 0", name="ck_produtos_rendimento_positive"),
        sa.CheckConstraint("status IN ('ativo', 'inativo')", name="ck_produtos_status_valid"),
    )
    op.create_index("ix_produtos_id", "produtos", ["id"])
    op.create_index("ix_produtos_setor", "produtos", ["setor"])
    op.create_index("uq_produtos_nome_lower", "produtos", [sa.text("lower(nome)")], unique=True)
    op.create_index("uq_produtos_codigo_lower", "produtos", [sa.text("lower(codigo)")], unique=True)

    # SALES / LOSSES
    _movement_table("vendas")
    _movement_table("perdas")

    # PLANNING
    op.create_table(
        "planejamento",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("produto_id", sa.Integer(), sa.ForeignKey("produtos.id"), nullable=False),
        sa.Column("data", sa.Date(), nullable=False),
        sa.Column("quantidade_planejada", sa.Numeric(12, 3), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.UniqueConstraint("produto_id", "data", name="uq_planejamento_produto_data"),
        sa.CheckConstraint(
            "quantidade_planejada >= 0",
            name="ck_planejamento_quantidade_non_negative",
        ),
    )
    op.create_index("ix_planejamento_id", "planejamento", ["id"])
    op.create_index("ix_planejamento_produto_id", "planejamento", ["produto_id"])
    op.create_index("ix_planejamento_data", "planejamento", ["data"])

    # CONFIGURATION
    op.create_table(
        "configuracoes",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("chave", sa.String(100), nullable=False),
        sa.Column("valor", sa.Text(), nullable=False),
        sa.Column("descricao", sa.Text(), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index("ix_configuracoes_id", "configuracoes", ["id"])
    op.create_index("ix_configuracoes_chave", "configuracoes", ["chave"], unique=True)


def downgrade() -> None:
    """Downgrade schema."""

    op.drop_table("configuracoes")
    op.drop_table("planejamento")
    op.drop_table("perdas")
    op.drop_table("vendas")
    op.drop_index("uq_produtos_codigo_lower", table_name="produtos")
    op.drop_index("uq_produtos_nome_lower", table_name="produtos")
    op.drop_table("produtos")
