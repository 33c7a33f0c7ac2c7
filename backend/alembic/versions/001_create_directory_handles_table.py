"""Create directory_handles table

Revision ID: 001
Revises: None
Create Date: 2026-10-19 00:00:00.000000+00:00

What:  Key-value table holding persisted directory references.
How:   Portable column types only (String/Text/DateTime), so the same
       migration runs on SQLite and PostgreSQL.

Rollback: downgrade() drops the table; the user must select the root folder again.
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "directory_handles",
        sa.Column(
            "key",
            sa.String(128),
            nullable=False,
            comment="Versioned record key, e.g. photofiler.root_folder_v1",
        ),
        sa.Column(
            "value",
            sa.Text(),
            nullable=False,
            comment='JSON-encoded DirectoryReference: {"uri": ..., "name": ...}',
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("CURRENT_TIMESTAMP"),
            comment="When this record was last written (UTC)",
        ),
        sa.PrimaryKeyConstraint("key", name="pk_directory_handles"),
    )


def downgrade() -> None:
    op.drop_table("directory_handles")
