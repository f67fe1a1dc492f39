"""create_cities_and_locations

Revision ID: b7d1e2f3a4c5
Revises:
Create Date: 2026-10-19 10:12:44.508112

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = 'b7d1e2f3a4c5'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Upgrade schema."""
    op.create_table(
        "cities",
        sa.Column("id", sa.String(length=255), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("image_url", sa.String(length=2048), nullable=False),
        sa.Column("latitude", sa.Float(), nullable=False),
        sa.Column("longitude", sa.Float(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_table(
        "locations",
        sa.Column("id", sa.String(length=255), nullable=False),
        sa.Column("city_id", sa.String(length=255), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("categories", sa.Text(), nullable=False),
        sa.Column("image_url", sa.String(length=2048), nullable=False),
        sa.Column("address", sa.String(length=512), nullable=True),
        sa.Column("latitude", sa.Float(), nullable=False),
        sa.Column("longitude", sa.Float(), nullable=False),
        sa.Column("initial_review", sa.Text(), nullable=True),
        sa.Column("initial_rating", sa.Integer(), nullable=True),
        sa.Column("initial_username", sa.String(length=255), nullable=True),
        sa.Column("initial_user_id", sa.String(length=255), nullable=True),
        sa.PrimaryKeyConstraint("id", "city_id"),
    )
    op.create_index("ix_locations_city_id", "locations", ["city_id"])


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_index("ix_locations_city_id", table_name="locations")
    op.drop_table("locations", if_exists=True)
    op.drop_table("cities", if_exists=True)
