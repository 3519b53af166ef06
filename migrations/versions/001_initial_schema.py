"""Initial fabric catalog schema

Revision ID: 001_initial_schema
Revises:
Create Date: 2026-10-17 12:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = '001_initial_schema'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps() -> list:
    return [
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
    ]


def upgrade() -> None:
    # Create suppliers table
    op.create_table(
        'suppliers',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True, server_default=sa.text('gen_random_uuid()')),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('parsing_method', sa.String(length=20), nullable=False),
        sa.Column('parsing_url', sa.Text(), nullable=True),
        sa.Column('email_config', postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column('status', sa.String(length=20), nullable=False, server_default='active'),
        sa.Column('error_message', sa.Text(), nullable=True),
        sa.Column('fabrics_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('last_updated_at', sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.CheckConstraint("parsing_method IN ('html', 'excel', 'email')", name='check_parsing_method'),
        sa.CheckConstraint("status IN ('active', 'error')", name='check_supplier_status'),
    )
    op.create_index('ix_suppliers_name', 'suppliers', ['name'], unique=True)
    op.create_index('ix_suppliers_status', 'suppliers', ['status'])

    # Create fabrics table
    op.create_table(
        'fabrics',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True, server_default=sa.text('gen_random_uuid()')),
        sa.Column('supplier_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('collection', sa.String(length=255), nullable=False),
        sa.Column('color_number', sa.String(length=255), nullable=False, server_default=''),
        sa.Column('collection_key', sa.String(length=255), nullable=False),
        sa.Column('color_key', sa.String(length=255), nullable=False),
        sa.Column('in_stock', sa.Boolean(), nullable=True),
        sa.Column('meterage', sa.Float(), nullable=True),
        sa.Column('price', sa.Float(), nullable=True),
        sa.Column('price_per_meter', sa.Float(), nullable=True),
        sa.Column('category', sa.Integer(), nullable=True),
        sa.Column('next_arrival_date', sa.Date(), nullable=True),
        sa.Column('comment', sa.Text(), nullable=True),
        sa.Column('excluded_from_parsing', sa.Boolean(), nullable=False, server_default='false'),
        sa.Column('last_updated_at', sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(['supplier_id'], ['suppliers.id'], ondelete='CASCADE'),
    )
    op.create_index('ix_fabrics_supplier_id', 'fabrics', ['supplier_id'])
    op.create_index('idx_fabrics_supplier_collection', 'fabrics', ['supplier_id', 'collection_key'])
    # Normalized identity is unique among rows reconciliation may touch
    op.create_index(
        'uq_fabrics_supplier_key_active',
        'fabrics',
        ['supplier_id', 'collection_key', 'color_key'],
        unique=True,
        postgresql_where=sa.text('NOT excluded_from_parsing'),
    )

    # Create parsing_rules table
    op.create_table(
        'parsing_rules',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True, server_default=sa.text('gen_random_uuid()')),
        sa.Column('supplier_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('rules', postgresql.JSONB(astext_type=sa.Text()), nullable=False, server_default='{}'),
        *_timestamps(),
        sa.ForeignKeyConstraint(['supplier_id'], ['suppliers.id'], ondelete='CASCADE'),
        sa.UniqueConstraint('supplier_id', name='uq_parsing_rules_supplier'),
    )

    # Create data_structures table
    op.create_table(
        'data_structures',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True, server_default=sa.text('gen_random_uuid()')),
        sa.Column('supplier_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('structure', postgresql.JSONB(astext_type=sa.Text()), nullable=False, server_default='{}'),
        *_timestamps(),
        sa.ForeignKeyConstraint(['supplier_id'], ['suppliers.id'], ondelete='CASCADE'),
        sa.UniqueConstraint('supplier_id', name='uq_data_structures_supplier'),
    )

    # Create manual_uploads table
    op.create_table(
        'manual_uploads',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True, server_default=sa.text('gen_random_uuid()')),
        sa.Column('supplier_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('type', sa.String(length=20), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default='true'),
        sa.Column('filename', sa.String(length=500), nullable=True),
        sa.Column('last_parser_update', sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(['supplier_id'], ['suppliers.id'], ondelete='CASCADE'),
        sa.CheckConstraint("type IN ('stock', 'price')", name='check_manual_upload_type'),
    )
    op.create_index('idx_manual_uploads_supplier_active', 'manual_uploads', ['supplier_id', 'type', 'is_active'])

    # Create email_attachments table
    op.create_table(
        'email_attachments',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True, server_default=sa.text('gen_random_uuid()')),
        sa.Column('supplier_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('message_id', sa.String(length=500), nullable=False),
        sa.Column('filename', sa.String(length=500), nullable=False),
        sa.Column('file_path', sa.Text(), nullable=False),
        sa.Column('received_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('processed', sa.Boolean(), nullable=False, server_default='false'),
        sa.Column('processed_at', sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(['supplier_id'], ['suppliers.id'], ondelete='CASCADE'),
    )
    op.create_index('ix_email_attachments_supplier_id', 'email_attachments', ['supplier_id'])
    op.create_index('ix_email_attachments_processed', 'email_attachments', ['processed'])

    # Create fabric_categories table
    op.create_table(
        'fabric_categories',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True, server_default=sa.text('gen_random_uuid()')),
        sa.Column('category', sa.Integer(), nullable=False),
        sa.Column('price_threshold', sa.Float(), nullable=False),
        *_timestamps(),
        sa.UniqueConstraint('category', name='uq_fabric_categories_category'),
    )


def downgrade() -> None:
    op.drop_table('fabric_categories')
    op.drop_index('ix_email_attachments_processed', table_name='email_attachments')
    op.drop_index('ix_email_attachments_supplier_id', table_name='email_attachments')
    op.drop_table('email_attachments')
    op.drop_index('idx_manual_uploads_supplier_active', table_name='manual_uploads')
    op.drop_table('manual_uploads')
    op.drop_table('data_structures')
    op.drop_table('parsing_rules')
    op.drop_index('uq_fabrics_supplier_key_active', table_name='fabrics')
    op.drop_index('idx_fabrics_supplier_collection', table_name='fabrics')
    op.drop_index('ix_fabrics_supplier_id', table_name='fabrics')
    op.drop_table('fabrics')
    op.drop_index('ix_suppliers_status', table_name='suppliers')
    op.drop_index('ix_suppliers_name', table_name='suppliers')
    op.drop_table('suppliers')
