"""
Initial migration - Create all tables

Revision ID: 001_initial
Revises: 
Create Date: 2026-02-10
"""
from alembic import op
import sqlalchemy as sa

revision = '001_initial'
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    # Catalog
    op.create_table(
        'charts_catalog',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('platform', sa.String(length=50), nullable=False),
        sa.Column('chart_family', sa.String(length=50), nullable=False),
        sa.Column('genre_slug', sa.String(length=255), nullable=True),
        sa.Column('genre_name', sa.String(length=255), nullable=True),
        sa.Column('url', sa.String(length=2000), nullable=False),
        sa.Column('title', sa.Text(), nullable=True),
        sa.Column('is_active', sa.Boolean(), server_default=sa.true(), nullable=False),
        sa.Column('discovered_at', sa.DateTime(), nullable=True),
        sa.Column('last_seen_at', sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('url'),
    )
    op.create_index('ix_charts_catalog_platform', 'charts_catalog', ['platform'])
    op.create_index('ix_charts_catalog_platform_active', 'charts_catalog', ['platform', 'is_active'])

    # Entities
    op.create_table(
        'artists',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('name', sa.String(length=500), nullable=False),
        sa.Column('normalized_name', sa.String(length=500), nullable=False),
        sa.Column('external_id', sa.String(length=255), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('external_id'),
    )
    op.create_index('ix_artists_normalized_name', 'artists', ['normalized_name'], unique=True)

    op.create_table(
        'artist_aliases',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('artist_id', sa.Integer(), nullable=False),
        sa.Column('source', sa.String(length=50), nullable=False),
        sa.Column('raw_name', sa.String(length=500), nullable=False),
        sa.ForeignKeyConstraint(['artist_id'], ['artists.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('source', 'raw_name', name='uq_artist_aliases_source_raw'),
    )
    op.create_index('ix_artist_aliases_artist_id', 'artist_aliases', ['artist_id'])

    op.create_table(
        'labels',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('name', sa.String(length=500), nullable=False),
        sa.Column('normalized_name', sa.String(length=500), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_labels_normalized_name', 'labels', ['normalized_name'], unique=True)

    op.create_table(
        'label_aliases',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('label_id', sa.Integer(), nullable=False),
        sa.Column('source', sa.String(length=50), nullable=False),
        sa.Column('raw_name', sa.String(length=500), nullable=False),
        sa.ForeignKeyConstraint(['label_id'], ['labels.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('source', 'raw_name', name='uq_label_aliases_source_raw'),
    )
    op.create_index('ix_label_aliases_label_id', 'label_aliases', ['label_id'])

    op.create_table(
        'tracks',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('title', sa.Text(), nullable=False),
        sa.Column('artist_id', sa.Integer(), nullable=False),
        sa.Column('label_id', sa.Integer(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(['artist_id'], ['artists.id']),
        sa.ForeignKeyConstraint(['label_id'], ['labels.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_tracks_artist_id', 'tracks', ['artist_id'])

    op.create_table(
        'manual_artist_links',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('raw_name', sa.String(length=500), nullable=False),
        sa.Column('artist_id', sa.Integer(), nullable=False),
        sa.Column('note', sa.Text(), nullable=True),
        sa.Column('linked_at', sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(['artist_id'], ['artists.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('raw_name'),
    )

    # Chart entries (append-only)
    op.create_table(
        'chart_entries',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('chart_id', sa.Integer(), nullable=False),
        sa.Column('snapshot_date', sa.Date(), nullable=False),
        sa.Column('position', sa.Integer(), nullable=False),
        sa.Column('source', sa.String(length=50), nullable=False),
        sa.Column('chart_family', sa.String(length=50), nullable=False),
        sa.Column('genre_slug', sa.String(length=255), nullable=True),
        sa.Column('track_title', sa.Text(), nullable=True),
        sa.Column('artist_name_raw', sa.String(length=500), nullable=True),
        sa.Column('artists_full', sa.Text(), nullable=True),
        sa.Column('artist_external_id', sa.String(length=255), nullable=True),
        sa.Column('label_name', sa.String(length=500), nullable=True),
        sa.Column('released', sa.Text(), nullable=True),
        sa.Column('movement', sa.Text(), nullable=True),
        sa.Column('artist_id', sa.Integer(), nullable=True),
        sa.Column('label_id', sa.Integer(), nullable=True),
        sa.Column('track_id', sa.Integer(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(['chart_id'], ['charts_catalog.id']),
        sa.ForeignKeyConstraint(['artist_id'], ['artists.id']),
        sa.ForeignKeyConstraint(['label_id'], ['labels.id']),
        sa.ForeignKeyConstraint(['track_id'], ['tracks.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('chart_id', 'snapshot_date', 'position', name='uq_chart_entries_natural_key'),
    )
    op.create_index('ix_chart_entries_chart_id', 'chart_entries', ['chart_id'])
    op.create_index('ix_chart_entries_snapshot_date', 'chart_entries', ['snapshot_date'])
    op.create_index('ix_chart_entries_artist_id', 'chart_entries', ['artist_id'])
    op.create_index('ix_chart_entries_artist_date', 'chart_entries', ['artist_id', 'snapshot_date'])

    # Derived tables
    op.create_table(
        'artist_metrics',
        sa.Column('artist_id', sa.Integer(), nullable=False),
        sa.Column('artist_name', sa.String(length=500), nullable=False),
        sa.Column('external_id', sa.String(length=255), nullable=True),
        sa.Column('first_seen', sa.Date(), nullable=False),
        sa.Column('last_seen', sa.Date(), nullable=False),
        sa.Column('total_entries', sa.Integer(), nullable=False),
        sa.Column('days_in_charts', sa.Integer(), nullable=False),
        sa.Column('best_position', sa.Integer(), nullable=False),
        sa.Column('avg_position', sa.Float(), nullable=False),
        sa.Column('recent_avg_position', sa.Float(), nullable=True),
        sa.Column('previous_avg_position', sa.Float(), nullable=True),
        sa.Column('genres', sa.JSON(), nullable=False),
        sa.Column('as_of', sa.Date(), nullable=False),
        sa.ForeignKeyConstraint(['artist_id'], ['artists.id']),
        sa.PrimaryKeyConstraint('artist_id'),
    )

    op.create_table(
        'lead_scores',
        sa.Column('artist_id', sa.Integer(), nullable=False),
        sa.Column('segment', sa.String(length=50), nullable=False),
        sa.Column('score', sa.Float(), nullable=False),
        sa.Column('signals', sa.JSON(), nullable=False),
        sa.Column('scoring_version', sa.String(length=20), nullable=False),
        sa.Column('as_of', sa.Date(), nullable=False),
        sa.ForeignKeyConstraint(['artist_id'], ['artists.id']),
        sa.PrimaryKeyConstraint('artist_id'),
    )
    op.create_index('ix_lead_scores_segment', 'lead_scores', ['segment'])

    # Run diagnostics
    op.create_table(
        'pipeline_runs',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('kind', sa.String(length=30), nullable=False),
        sa.Column('status', sa.String(length=20), nullable=False),
        sa.Column('stage', sa.String(length=50), nullable=True),
        sa.Column('progress', sa.Text(), nullable=True),
        sa.Column('counters', sa.JSON(), nullable=True),
        sa.Column('error_message', sa.Text(), nullable=True),
        sa.Column('started_at', sa.DateTime(), nullable=True),
        sa.Column('finished_at', sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )

    # Optional enrichment
    op.create_table(
        'artist_enrichment',
        sa.Column('artist_id', sa.Integer(), nullable=False),
        sa.Column('bio_summary', sa.Text(), nullable=True),
        sa.Column('role', sa.String(length=100), nullable=True),
        sa.Column('insight', sa.Text(), nullable=True),
        sa.Column('enriched_at', sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(['artist_id'], ['artists.id']),
        sa.PrimaryKeyConstraint('artist_id'),
    )


def downgrade() -> None:
    op.drop_table('artist_enrichment')
    op.drop_table('pipeline_runs')
    op.drop_index('ix_lead_scores_segment', table_name='lead_scores')
    op.drop_table('lead_scores')
    op.drop_table('artist_metrics')
    op.drop_table('chart_entries')
    op.drop_table('manual_artist_links')
    op.drop_table('tracks')
    op.drop_table('label_aliases')
    op.drop_table('labels')
    op.drop_table('artist_aliases')
    op.drop_table('artists')
    op.drop_table('charts_catalog')
