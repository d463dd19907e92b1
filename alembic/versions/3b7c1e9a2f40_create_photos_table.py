"""create_photos_table

Revision ID: 3b7c1e9a2f40
Revises:
Create Date: 2026-10-19 10:12:41.204518

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '3b7c1e9a2f40'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        'photos',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('src', sa.Text(), nullable=False),
        sa.Column('alt', sa.String(), nullable=True),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('display_order', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )

    # Create index on display_order for efficient ordering
    op.create_index(op.f('ix_photos_display_order'), 'photos', ['display_order'], unique=False)
    # Gallery order: display_order ascending, newest first within a tie
    op.create_index('ix_photos_order_created', 'photos', ['display_order', 'created_at'], unique=False)


def downgrade() -> None:
    op.drop_index('ix_photos_order_created', table_name='photos')
    op.drop_index(op.f('ix_photos_display_order'), table_name='photos')
    op.drop_table('photos')
