"""Create users, parts and document assets

Revision ID: 3f1a9c2d7b64
Revises:
Create Date: 2026-10-17 10:12:40.118204

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '3f1a9c2d7b64'
down_revision = None
branch_labels = None
depends_on = None

user_role = sa.Enum('ADMIN', 'INSTRUCTOR', 'STUDENT', name='userrole')
asset_type = sa.Enum('DOCUMENT', 'VIDEO', 'LINK', name='assettype')
render_status = sa.Enum('PROCESSING', 'COMPLETED', 'FAILED', name='renderstatus')


def upgrade():
    op.create_table(
        'users',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('username', sa.String(length=80), nullable=True),
        sa.Column('email', sa.String(length=120), nullable=False),
        sa.Column('role', user_role, nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('email'),
        sa.UniqueConstraint('username'),
    )
    op.create_table(
        'parts',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('title', sa.String(length=200), nullable=False),
        sa.Column('owner_id', sa.Integer(), nullable=False),
        sa.Column('is_free', sa.Boolean(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(['owner_id'], ['users.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_parts_owner_id', 'parts', ['owner_id'])
    op.create_table(
        'document_assets',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('part_id', sa.String(length=36), nullable=False),
        sa.Column('title', sa.String(length=255), nullable=False),
        sa.Column('display_name', sa.String(length=255), nullable=True),
        sa.Column('type', asset_type, nullable=False),
        sa.Column('storage_key', sa.String(length=500), nullable=False, server_default=''),
        sa.Column('source_key', sa.String(length=500), nullable=True),
        sa.Column('source_mime', sa.String(length=255), nullable=True),
        sa.Column('render_status', render_status, nullable=False),
        sa.Column('is_secure', sa.Boolean(), nullable=False),
        sa.Column('page_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('order_index', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(['part_id'], ['parts.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_document_assets_part_id', 'document_assets', ['part_id'])
    op.create_index('ix_document_assets_render_status', 'document_assets', ['render_status'])
    op.create_index('ix_document_assets_created_at', 'document_assets', ['created_at'])


def downgrade():
    op.drop_index('ix_document_assets_created_at', table_name='document_assets')
    op.drop_index('ix_document_assets_render_status', table_name='document_assets')
    op.drop_index('ix_document_assets_part_id', table_name='document_assets')
    op.drop_table('document_assets')
    op.drop_index('ix_parts_owner_id', table_name='parts')
    op.drop_table('parts')
    op.drop_table('users')
    render_status.drop(op.get_bind(), checkfirst=True)
    asset_type.drop(op.get_bind(), checkfirst=True)
    user_role.drop(op.get_bind(), checkfirst=True)
