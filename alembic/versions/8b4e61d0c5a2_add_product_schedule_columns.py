"""add_product_schedule_columns

Revision ID: 8b4e61d0c5a2
Revises: 3f1a9c2d7b10
Create Date: 2026-04-14 16:40:03.902771
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '8b4e61d0c5a2'
down_revision: Union[str, Sequence[str], None] = '3f1a9c2d7b10'
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Upgrade schema."""

    # "HH:MM" manufacture / sale times and production minutes
    op.add_column("produtos", sa.Column("horario_fabricacao", sa.String(5), nullable=True))
    op.add_column("produtos", sa.Column("horario_venda", sa.String(5), nullable=True))
    op.add_column("produtos", sa.Column("tempo_producao", sa.Integer(), nullable=True))

    op.create_check_constraint(
        "ck_produtos_tempo_producao_non_negative",
        "produtos",
        "tempo_producao IS NULL OR tempo_producao >= 0",
    )


def downgrade() -> None:
    """Downgrade schema."""

    op.drop_constraint("ck_produtos_tempo_producao_non_negative", "produtos", type_="check")
    op.drop_column("produtos", "tempo_producao")
    op.drop_column("produtos", "horario_venda")
    op.drop_column("produtos", "horario_fabricacao")
