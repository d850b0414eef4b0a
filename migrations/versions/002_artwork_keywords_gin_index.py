"""artwork_keywords_gin_index

GIN index on artwork.keywords so the registry's jsonb_exists_any keyword lookup avoids a scan.
Revision ID: 002
Revises: 001
Create Date: 2026-09-21

"""
from typing import Sequence, Union

from alembic import op


revision: str = "002"
down_revision: Union[str, None] = "001"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("CREATE INDEX IF NOT EXISTS ix_artwork_keywords_gin ON artwork USING GIN (keywords)")


def downgrade() -> None:
    op.execute("DROP INDEX IF EXISTS ix_artwork_keywords_gin")
