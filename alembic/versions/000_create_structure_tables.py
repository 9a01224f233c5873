"""Create structure document and location sequence tables

Revision ID: 000_create_structure_tables
Revises:
Create Date: 2026-10-18

Note: structures keep the floor/flat/component tree in a JSON document;
location_sequences holds one atomic counter per 10-character location prefix.
"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = '000_create_structure_tables'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    """Create structure tables."""
    op.create_table(
        'structures',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('owner_id', sa.String(64), nullable=False),
        sa.Column('structural_identity_number', sa.String(17), nullable=True),
        sa.Column('status', sa.String(30), nullable=False, server_default='draft'),
        sa.Column('document', sa.JSON(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(timezone=True)),
    )
    op.create_index('ix_structures_id', 'structures', ['id'])
    op.create_index('ix_structures_owner_id', 'structures', ['owner_id'])
    op.create_index('ix_structures_status', 'structures', ['status'])
    # Unique index backs the duplicate identity check
    op.create_index(
        'ix_structures_structural_identity_number',
        'structures',
        ['structural_identity_number'],
        unique=True,
    )

    op.create_table(
        'location_sequences',
        sa.Column('location_prefix', sa.String(10), primary_key=True),
        sa.Column('last_sequence', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
    )


def downgrade():
    """Drop structure tables."""
    op.drop_table('location_sequences')
    op.drop_index('ix_structures_structural_identity_number', table_name='structures')
    op.drop_index('ix_structures_status', table_name='structures')
    op.drop_index('ix_structures_owner_id', table_name='structures')
    op.drop_index('ix_structures_id', table_name='structures')
    op.drop_table('structures')
