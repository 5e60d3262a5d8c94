"""Initial schema - notes with embedded blob record

Revision ID: 001_initial
Revises: 
Create Date: 2026-10-18

"""
from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa

revision: str = '001_initial'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table('notes',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('user_id', sa.String(255), nullable=False),
        sa.Column('title', sa.String(200), nullable=False),
        sa.Column('content', sa.Text(), nullable=False),
        sa.Column('is_pinned', sa.Boolean(), nullable=False, server_default=sa.false()),
        # Blob Record (all null when no attachment)
        sa.Column('file_name', sa.String(255), nullable=True),
        sa.Column('file_original_name', sa.String(255), nullable=True),
        sa.Column('file_mime_type', sa.String(255), nullable=True),
        sa.Column('file_size', sa.Integer(), nullable=True),
        sa.Column('file_encrypted_path', sa.String(1024), nullable=True),
        sa.Column('file_iv', sa.String(32), nullable=True),
        sa.Column('file_tag', sa.String(32), nullable=True),
        sa.Column('file_alg', sa.String(20), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
    )
    op.create_index('idx_notes_user_created', 'notes', ['user_id', sa.text('created_at DESC')])
    op.create_index(
        'idx_notes_user_pinned_created', 'notes',
        ['user_id', sa.text('is_pinned DESC'), sa.text('created_at DESC')],
    )


def downgrade() -> None:
    op.drop_index('idx_notes_user_pinned_created', table_name='notes')
    op.drop_index('idx_notes_user_created', table_name='notes')
    op.drop_table('notes')
