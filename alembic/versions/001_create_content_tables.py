"""Create content tables

Revision ID: 001
Revises:
Create Date: 2026-10-16 09:00:00.000000

Posts with their versions, category/tag links and view events, plus the
singleton blog settings row.
"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '001'
down_revision = None
branch_labels = None
depends_on = None

SETTINGS_ID = '00000000-0000-0000-0000-000000000001'


def upgrade():
    """Create posts, post_versions, post_categories, post_tags, post_views and blog_settings."""

    # Create posts table
    op.create_table(
        'posts',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('title', sa.String(length=500), nullable=False),
        sa.Column('slug', sa.String(length=500), nullable=False),
        sa.Column('content', sa.Text(), nullable=False),
        sa.Column('excerpt', sa.Text(), nullable=True),
        sa.Column('author_id', sa.Uuid(), nullable=False),
        sa.Column('status', sa.String(length=20), nullable=False, server_default='draft'),
        sa.Column('featured_image_url', sa.String(length=500), nullable=True),
        sa.Column('meta_title', sa.String(length=200), nullable=True),
        sa.Column('meta_description', sa.Text(), nullable=True),
        sa.Column('published_at', sa.DateTime(), nullable=True),
        sa.Column('scheduled_at', sa.DateTime(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.CheckConstraint(
            "status IN ('draft', 'published', 'scheduled', 'archived')",
            name='ck_posts_status',
        ),
    )
    op.create_index('ix_posts_slug', 'posts', ['slug'], unique=True)
    op.create_index('ix_posts_author_id', 'posts', ['author_id'])
    op.create_index('ix_posts_status', 'posts', ['status'])
    op.create_index('ix_posts_published_at', 'posts', ['published_at'])
    op.create_index('ix_posts_scheduled_at', 'posts', ['scheduled_at'])

    # Create post_versions table
    op.create_table(
        'post_versions',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('post_id', sa.Uuid(), nullable=False),
        sa.Column('title', sa.String(length=500), nullable=False),
        sa.Column('content', sa.Text(), nullable=False),
        sa.Column('excerpt', sa.Text(), nullable=True),
        sa.Column('version_number', sa.Integer(), nullable=False),
        sa.Column('created_by', sa.Uuid(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['post_id'], ['posts.id'], ondelete='CASCADE'),
        sa.UniqueConstraint('post_id', 'version_number', name='uq_post_versions_post_version'),
        sa.CheckConstraint('version_number >= 1', name='ck_post_versions_version_number'),
    )
    op.create_index('ix_post_versions_post_id', 'post_versions', ['post_id'])
    op.create_index('ix_post_versions_version_number', 'post_versions', ['version_number'])

    # Create post_categories junction table
    op.create_table(
        'post_categories',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('post_id', sa.Uuid(), nullable=False),
        sa.Column('category_id', sa.Uuid(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['post_id'], ['posts.id'], ondelete='CASCADE'),
        sa.UniqueConstraint('post_id', 'category_id', name='uq_post_categories_post_category'),
    )
    op.create_index('ix_post_categories_post_id', 'post_categories', ['post_id'])
    op.create_index('ix_post_categories_category_id', 'post_categories', ['category_id'])

    # Create post_tags junction table
    op.create_table(
        'post_tags',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('post_id', sa.Uuid(), nullable=False),
        sa.Column('tag_id', sa.Uuid(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['post_id'], ['posts.id'], ondelete='CASCADE'),
        sa.UniqueConstraint('post_id', 'tag_id', name='uq_post_tags_post_tag'),
    )
    op.create_index('ix_post_tags_post_id', 'post_tags', ['post_id'])
    op.create_index('ix_post_tags_tag_id', 'post_tags', ['tag_id'])

    # Create post_views table
    op.create_table(
        'post_views',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('post_id', sa.Uuid(), nullable=False),
        sa.Column('ip_address', sa.String(length=45), nullable=True),
        sa.Column('user_agent', sa.Text(), nullable=True),
        sa.Column('viewed_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['post_id'], ['posts.id'], ondelete='CASCADE'),
    )
    op.create_index('ix_post_views_post_id', 'post_views', ['post_id'])
    op.create_index('ix_post_views_viewed_at', 'post_views', ['viewed_at'])

    # Create blog_settings table (single row, fixed id)
    op.create_table(
        'blog_settings',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('blog_title', sa.String(length=200), nullable=False, server_default='My Blog'),
        sa.Column('blog_description', sa.Text(), nullable=True, server_default='Welcome to my blog'),
        sa.Column('blog_logo_url', sa.String(length=500), nullable=True),
        sa.Column('blog_favicon_url', sa.String(length=500), nullable=True),
        sa.Column('contact_email', sa.String(length=255), nullable=True),
        sa.Column('social_facebook', sa.String(length=500), nullable=True),
        sa.Column('social_twitter', sa.String(length=500), nullable=True),
        sa.Column('social_linkedin', sa.String(length=500), nullable=True),
        sa.Column('social_github', sa.String(length=500), nullable=True),
        sa.Column('seo_meta_title', sa.String(length=200), nullable=True),
        sa.Column('seo_meta_description', sa.Text(), nullable=True),
        sa.Column('seo_keywords', sa.Text(), nullable=True),
        sa.Column('google_analytics_id', sa.String(length=100), nullable=True),
        sa.Column('updated_at', sa.DateTime(), nullable=False, server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('updated_by', sa.Uuid(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.CheckConstraint(f"id = '{SETTINGS_ID}'", name='ck_blog_settings_singleton'),
    )

    # Seed the default settings row
    op.execute(f"INSERT INTO blog_settings (id) VALUES ('{SETTINGS_ID}')")


def downgrade():
    """Drop content tables."""
    op.drop_table('blog_settings')

    op.drop_index('ix_post_views_viewed_at', table_name='post_views')
    op.drop_index('ix_post_views_post_id', table_name='post_views')
    op.drop_table('post_views')

    op.drop_index('ix_post_tags_tag_id', table_name='post_tags')
    op.drop_index('ix_post_tags_post_id', table_name='post_tags')
    op.drop_table('post_tags')

    op.drop_index('ix_post_categories_category_id', table_name='post_categories')
    op.drop_index('ix_post_categories_post_id', table_name='post_categories')
    op.drop_table('post_categories')

    op.drop_index('ix_post_versions_version_number', table_name='post_versions')
    op.drop_index('ix_post_versions_post_id', table_name='post_versions')
    op.drop_table('post_versions')

    op.drop_index('ix_posts_scheduled_at', table_name='posts')
    op.drop_index('ix_posts_status', table_name='posts')
    op.drop_index('ix_posts_published_at', table_name='posts')
    op.drop_index('ix_posts_author_id', table_name='posts')
    op.drop_index('ix_posts_slug', table_name='posts')
    op.drop_table('posts')
