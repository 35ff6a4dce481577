"""backfill_movement_week_fields

Revision ID: c27d5e9a1f43
Revises: 8b4e61d0c5a2
Create Date: 2026-10-19 10:05:12.417390
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

from painel.services.weeks import business_week


# revision identifiers, used by Alembic.
revision: str = 'c27d5e9a1f43'
down_revision: Union[str, Sequence[str], None] = '8b4e61d0c5a2'
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _backfill(table_name: str) -> None:
    conn = op.get_bind()
    table = sa.table(
        table_name,
        sa.column("data", sa.Date()),
        sa.column("numero_semana", sa.Integer()),
        sa.column("ano", sa.Integer()),
        sa.column("data_inicio", sa.Date()),
        sa.column("data_fim", sa.Date()),
    )

    # One UPDATE per distinct day of the rows imported without week fields
    days = conn.execute(
        sa.select(table.c.data).where(table.c.numero_semana.is_(None)).distinct()
    ).scalars().all()

    for day in days:
        week = business_week(day)
        conn.execute(
            table.update()
            .where(table.c.data == day, table.c.numero_semana.is_(None))
            .values(**week.as_dict())
        )


def upgrade() -> None:
    """Upgrade schema."""

    # SALES / LOSSES
    _backfill("vendas")
    _backfill("perdas")


def downgrade() -> None:
    """Downgrade schema."""

    # Data-only revision
    pass
