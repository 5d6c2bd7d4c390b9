"""Initial campaign structure, snapshot, import and report tables

Revision ID: a1c4e7b20f31
Revises:
Create Date: 2026-10-18
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy import inspect


revision: str = 'a1c4e7b20f31'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _has_table(table_name):
    bind = op.get_bind()
    insp = inspect(bind)
    return table_name in insp.get_table_names()


def upgrade() -> None:
    if not _has_table('campaigns'):
        op.create_table(
            'campaigns',
            sa.Column('id', sa.String(32), primary_key=True),
            sa.Column('name', sa.String(), nullable=False, index=True),
            sa.Column('status', sa.String(20), nullable=False, server_default='draft', index=True),
            sa.Column('budget', sa.Numeric(12, 2), nullable=False, server_default='0'),
            sa.Column('final_url', sa.Text(), nullable=False, server_default=''),
            sa.Column('path1', sa.String(15), nullable=False, server_default=''),
            sa.Column('path2', sa.String(15), nullable=False, server_default=''),
            sa.Column('created_at', sa.DateTime(), nullable=False),
            sa.Column('updated_at', sa.DateTime(), nullable=False),
        )

    if not _has_table('ad_groups'):
        op.create_table(
            'ad_groups',
            sa.Column('id', sa.String(32), primary_key=True),
            sa.Column('campaign_id', sa.String(32), sa.ForeignKey('campaigns.id', ondelete='CASCADE'),
                      nullable=False, index=True),
            sa.Column('name', sa.String(), nullable=False),
            sa.Column('status', sa.String(20), nullable=False, server_default='draft', index=True),
            sa.Column('max_cpc', sa.Numeric(10, 2), nullable=True),
            sa.Column('created_at', sa.DateTime(), nullable=False),
            sa.Column('updated_at', sa.DateTime(), nullable=False),
        )

    if not _has_table('keywords'):
        op.create_table(
            'keywords',
            sa.Column('id', sa.String(32), primary_key=True),
            sa.Column('ad_group_id', sa.String(32), sa.ForeignKey('ad_groups.id', ondelete='CASCADE'),
                      nullable=False, index=True),
            sa.Column('text', sa.String(), nullable=False),
            sa.Column('match_type', sa.String(10), nullable=False, server_default='broad'),
            sa.Column('max_cpc', sa.Numeric(10, 2), nullable=True),
            sa.Column('created_at', sa.DateTime(), nullable=False),
        )

    if not _has_table('ads'):
        op.create_table(
            'ads',
            sa.Column('id', sa.String(32), primary_key=True),
            sa.Column('ad_group_id', sa.String(32), sa.ForeignKey('ad_groups.id', ondelete='CASCADE'),
                      nullable=False, index=True),
            sa.Column('headlines', sa.JSON(), nullable=False),
            sa.Column('descriptions', sa.JSON(), nullable=False),
            sa.Column('final_url', sa.Text(), nullable=False, server_default=''),
            sa.Column('path1', sa.String(15), nullable=False, server_default=''),
            sa.Column('path2', sa.String(15), nullable=False, server_default=''),
            sa.Column('status', sa.String(20), nullable=False, server_default='draft', index=True),
            sa.Column('created_at', sa.DateTime(), nullable=False),
            sa.Column('updated_at', sa.DateTime(), nullable=False),
        )

    if not _has_table('snapshots'):
        op.create_table(
            'snapshots',
            sa.Column('id', sa.String(32), primary_key=True),
            sa.Column('campaign_id', sa.String(32), nullable=False, index=True),
            sa.Column('snapshot_type', sa.String(20), nullable=False),
            sa.Column('snapshot_data', sa.JSON(), nullable=False),
            sa.Column('description', sa.Text(), nullable=False, server_default=''),
            sa.Column('created_by', sa.String(50), nullable=False, server_default='system'),
            sa.Column('created_at', sa.DateTime(), nullable=False, index=True),
        )

    if not _has_table('imports'):
        op.create_table(
            'imports',
            sa.Column('id', sa.String(32), primary_key=True),
            sa.Column('filename', sa.String(), nullable=False, index=True),
            sa.Column('file_type', sa.String(10), nullable=False),
            sa.Column('file_size', sa.Integer(), nullable=False, server_default='0'),
            sa.Column('import_type', sa.String(30), nullable=False),
            sa.Column('status', sa.String(20), nullable=False, server_default='processing', index=True),
            sa.Column('entities_imported', sa.Integer(), nullable=True, server_default='0'),
            sa.Column('errors', sa.JSON(), nullable=False),
            sa.Column('created_at', sa.DateTime(), nullable=False, index=True),
            sa.Column('completed_at', sa.DateTime(), nullable=True),
        )

    if not _has_table('performance_data'):
        op.create_table(
            'performance_data',
            sa.Column('id', sa.String(32), primary_key=True),
            sa.Column('entity_type', sa.String(20), nullable=False),
            sa.Column('entity_id', sa.String(32), nullable=False),
            sa.Column('date_range_start', sa.Date(), nullable=False, index=True),
            sa.Column('date_range_end', sa.Date(), nullable=False),
            sa.Column('impressions', sa.Integer(), server_default='0'),
            sa.Column('clicks', sa.Integer(), server_default='0'),
            sa.Column('cost', sa.Float(), server_default='0'),
            sa.Column('conversions', sa.Float(), server_default='0'),
            sa.Column('ctr', sa.Float(), server_default='0'),
            sa.Column('cpc', sa.Float(), server_default='0'),
            sa.Column('created_at', sa.DateTime(), nullable=False),
        )
        op.create_index('ix_performance_data_entity', 'performance_data', ['entity_type', 'entity_id'])

    if not _has_table('search_terms'):
        op.create_table(
            'search_terms',
            sa.Column('id', sa.String(32), primary_key=True),
            sa.Column('campaign_id', sa.String(32), sa.ForeignKey('campaigns.id', ondelete='CASCADE'),
                      nullable=False, index=True),
            sa.Column('ad_group_id', sa.String(32), sa.ForeignKey('ad_groups.id', ondelete='CASCADE'),
                      nullable=False, index=True),
            sa.Column('search_term', sa.String(), nullable=False),
            sa.Column('match_type', sa.String(10), nullable=False, server_default='broad'),
            sa.Column('impressions', sa.Integer(), server_default='0'),
            sa.Column('clicks', sa.Integer(), server_default='0'),
            sa.Column('cost', sa.Float(), server_default='0'),
            sa.Column('conversions', sa.Float(), server_default='0'),
            sa.Column('date_range_start', sa.Date(), nullable=False),
            sa.Column('date_range_end', sa.Date(), nullable=False),
            sa.Column('created_at', sa.DateTime(), nullable=False),
        )


def downgrade() -> None:
    for table_name in ('search_terms', 'performance_data', 'imports', 'snapshots', 'ads', 'keywords',
                       'ad_groups', 'campaigns'):
        if _has_table(table_name):
            op.drop_table(table_name)
