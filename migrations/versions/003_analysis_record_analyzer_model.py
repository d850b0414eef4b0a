"""analysis_record_analyzer_model

Record which analyzer (model card "name/version") produced each audited analysis.
Revision ID: 003
Revises: 002
Create Date: 2026-10-19

"""
from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op


revision: str = "003"
down_revision: Union[str, None] = "002"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.add_column("analysis_record", sa.Column("analyzer_model", sa.String(), nullable=True))


def downgrade() -> None:
    op.drop_column("analysis_record", "analyzer_model")
