"""Create the engagement analytics tables

Revision ID: initial_schema
Revises:
Create Date: 2024-06-01
"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql
import sys
from pathlib import Path

# Add alembic directory to path to import migration_helpers
alembic_dir = Path(__file__).resolve().parent.parent
if str(alembic_dir) not in sys.path:
    sys.path.insert(0, str(alembic_dir))

from migration_helpers import create_index_if_not_exists, create_table_if_not_exists, drop_table_if_exists


# revision identifiers, used by Alembic.
revision = 'initial_schema'
down_revision = None
branch_labels = None
depends_on = None

# JSONB on PostgreSQL, plain JSON elsewhere
JSONType = sa.JSON().with_variant(postgresql.JSONB(astext_type=sa.Text()), "postgresql")


def _timestamps():
    return [
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    ]


def upgrade():
    """Create every table, skipping any that already exist."""
    create_table_if_not_exists(
        'posts',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('user_id', sa.String(length=255), nullable=False),
        sa.Column('post_url', sa.Text(), nullable=False),
        sa.Column('post_id', sa.String(length=64), nullable=False),
        sa.Column('post_urn', sa.String(length=255), nullable=True),
        sa.Column('author_name', sa.String(length=255), nullable=True),
        sa.Column('author_headline', sa.Text(), nullable=True),
        sa.Column('author_profile_url', sa.Text(), nullable=True),
        sa.Column('author_profile_id', sa.String(length=255), nullable=True),
        sa.Column('post_text', sa.Text(), nullable=True),
        sa.Column('post_type', sa.String(length=50), nullable=True),
        sa.Column('num_likes', sa.Integer(), nullable=False),
        sa.Column('num_comments', sa.Integer(), nullable=False),
        sa.Column('num_shares', sa.Integer(), nullable=False),
        sa.Column('posted_at_timestamp', sa.BigInteger(), nullable=True),
        sa.Column('posted_at_iso', sa.DateTime(timezone=True), nullable=True),
        sa.Column('scraped_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('last_reactions_scrape', sa.DateTime(timezone=True), nullable=True),
        sa.Column('last_comments_scrape', sa.DateTime(timezone=True), nullable=True),
        sa.Column('metadata_last_updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('engagement_needs_scraping', sa.Boolean(), nullable=False),
        sa.Column('engagement_last_updated_at', sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id', name=op.f('pk_posts')),
        sa.UniqueConstraint('user_id', 'post_id', name='uq_posts_user_id_post_id'),
    )
    create_index_if_not_exists(op.f('ix_posts_user_id'), 'posts', ['user_id'])
    create_index_if_not_exists(op.f('ix_posts_post_id'), 'posts', ['post_id'])

    create_table_if_not_exists(
        'profiles',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('urn', sa.String(length=255), nullable=False),
        sa.Column('primary_identifier', sa.String(length=255), nullable=True),
        sa.Column('secondary_identifier', sa.String(length=255), nullable=True),
        sa.Column('public_identifier', sa.String(length=255), nullable=True),
        sa.Column('alternative_urns', JSONType, nullable=False),
        sa.Column('name', sa.String(length=255), nullable=True),
        sa.Column('headline', sa.Text(), nullable=True),
        sa.Column('profile_url', sa.Text(), nullable=True),
        sa.Column('profile_picture_url', sa.Text(), nullable=True),
        sa.Column('profile_pictures', JSONType, nullable=True),
        sa.Column('first_name', sa.String(length=255), nullable=True),
        sa.Column('last_name', sa.String(length=255), nullable=True),
        sa.Column('country', sa.String(length=255), nullable=True),
        sa.Column('city', sa.String(length=255), nullable=True),
        sa.Column('current_title', sa.Text(), nullable=True),
        sa.Column('current_company', sa.Text(), nullable=True),
        sa.Column('is_current_position', sa.Boolean(), nullable=True),
        sa.Column('company_linkedin_url', sa.Text(), nullable=True),
        sa.Column('enriched_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('last_enriched_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('first_seen', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('last_updated', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id', name=op.f('pk_profiles')),
    )
    create_index_if_not_exists(op.f('ix_profiles_urn'), 'profiles', ['urn'], unique=True)
    create_index_if_not_exists(op.f('ix_profiles_primary_identifier'), 'profiles', ['primary_identifier'])
    create_index_if_not_exists(op.f('ix_profiles_secondary_identifier'), 'profiles', ['secondary_identifier'])
    create_index_if_not_exists(op.f('ix_profiles_public_identifier'), 'profiles', ['public_identifier'])

    create_table_if_not_exists(
        'reactions',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('user_id', sa.String(length=255), nullable=False),
        sa.Column('post_id', sa.Uuid(), nullable=False),
        sa.Column('reactor_profile_id', sa.Uuid(), nullable=False),
        sa.Column('reaction_type', sa.String(length=50), nullable=False),
        sa.Column('page_number', sa.Integer(), nullable=True),
        sa.Column('scraped_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(['post_id'], ['posts.id'], name=op.f('fk_reactions_post_id_posts'), ondelete='CASCADE'),
        sa.ForeignKeyConstraint(
            ['reactor_profile_id'], ['profiles.id'],
            name=op.f('fk_reactions_reactor_profile_id_profiles'), ondelete='CASCADE',
        ),
        sa.PrimaryKeyConstraint('id', name=op.f('pk_reactions')),
        sa.UniqueConstraint('post_id', 'reactor_profile_id', 'reaction_type', name='uq_reactions_post_reactor_type'),
    )
    create_index_if_not_exists(op.f('ix_reactions_user_id'), 'reactions', ['user_id'])
    create_index_if_not_exists(op.f('ix_reactions_post_id'), 'reactions', ['post_id'])
    create_index_if_not_exists(op.f('ix_reactions_reactor_profile_id'), 'reactions', ['reactor_profile_id'])

    create_table_if_not_exists(
        'comments',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('user_id', sa.String(length=255), nullable=False),
        sa.Column('post_id', sa.Uuid(), nullable=False),
        sa.Column('commenter_profile_id', sa.Uuid(), nullable=False),
        sa.Column('comment_id', sa.String(length=255), nullable=False),
        sa.Column('comment_text', sa.Text(), nullable=True),
        sa.Column('comment_url', sa.Text(), nullable=True),
        sa.Column('posted_at_timestamp', sa.BigInteger(), nullable=True),
        sa.Column('posted_at_date', sa.DateTime(timezone=True), nullable=True),
        sa.Column('is_edited', sa.Boolean(), nullable=True),
        sa.Column('is_pinned', sa.Boolean(), nullable=True),
        sa.Column('total_reactions', sa.Integer(), nullable=True),
        sa.Column('reactions_breakdown', JSONType, nullable=True),
        sa.Column('replies_count', sa.Integer(), nullable=True),
        sa.Column('page_number', sa.Integer(), nullable=True),
        sa.Column('scraped_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(['post_id'], ['posts.id'], name=op.f('fk_comments_post_id_posts'), ondelete='CASCADE'),
        sa.ForeignKeyConstraint(
            ['commenter_profile_id'], ['profiles.id'],
            name=op.f('fk_comments_commenter_profile_id_profiles'), ondelete='CASCADE',
        ),
        sa.PrimaryKeyConstraint('id', name=op.f('pk_comments')),
        sa.UniqueConstraint('post_id', 'comment_id', name='uq_comments_post_comment'),
    )
    create_index_if_not_exists(op.f('ix_comments_user_id'), 'comments', ['user_id'])
    create_index_if_not_exists(op.f('ix_comments_post_id'), 'comments', ['post_id'])
    create_index_if_not_exists(op.f('ix_comments_commenter_profile_id'), 'comments', ['commenter_profile_id'])

    create_table_if_not_exists(
        'user_settings',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('user_id', sa.String(length=255), nullable=False),
        sa.Column('apify_api_key', sa.Text(), nullable=True),
        sa.Column('last_sync_time', sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id', name=op.f('pk_user_settings')),
    )
    create_index_if_not_exists(op.f('ix_user_settings_user_id'), 'user_settings', ['user_id'], unique=True)

    create_table_if_not_exists(
        'webhooks',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('user_id', sa.String(length=255), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('url', sa.Text(), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id', name=op.f('pk_webhooks')),
        sa.UniqueConstraint('user_id', 'name', name='uq_webhooks_user_id_name'),
    )
    create_index_if_not_exists(op.f('ix_webhooks_user_id'), 'webhooks', ['user_id'])

    create_table_if_not_exists(
        'scrape_jobs',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('user_id', sa.String(length=255), nullable=False),
        sa.Column('job_type', sa.String(length=50), nullable=False),
        sa.Column('status', sa.String(length=50), nullable=False),
        sa.Column('post_ids', JSONType, nullable=True),
        sa.Column('total_items_scraped', sa.Integer(), nullable=True),
        sa.Column('error_message', sa.Text(), nullable=True),
        sa.Column('started_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('completed_at', sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id', name=op.f('pk_scrape_jobs')),
    )
    create_index_if_not_exists(op.f('ix_scrape_jobs_user_id'), 'scrape_jobs', ['user_id'])

    create_table_if_not_exists(
        'api_progress',
        sa.Column('id', sa.String(length=64), nullable=False),
        sa.Column('user_id', sa.String(length=255), nullable=False),
        sa.Column('status', sa.String(length=50), nullable=False),
        sa.Column('progress', sa.Integer(), nullable=False),
        sa.Column('current_step', sa.Text(), nullable=True),
        sa.Column('total_posts', sa.Integer(), nullable=True),
        sa.Column('processed_posts', sa.Integer(), nullable=True),
        sa.Column('error_message', sa.Text(), nullable=True),
        sa.Column('result', JSONType, nullable=True),
        sa.Column('expires_at', sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id', name=op.f('pk_api_progress')),
    )
    create_index_if_not_exists(op.f('ix_api_progress_user_id'), 'api_progress', ['user_id'])


def downgrade():
    """Drop every table; engagement tables go first for their foreign keys."""
    for table_name in ('comments', 'reactions', 'api_progress', 'scrape_jobs', 'webhooks',
                       'user_settings', 'profiles', 'posts'):
        drop_table_if_exists(table_name)
