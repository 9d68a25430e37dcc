"""create_review_responder_tables

Revision ID: 3b8d1f0c2a47
Revises:
Create Date: 2026-10-19 09:12:44.201733

"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = '3b8d1f0c2a47'
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    # Create users table
    op.create_table(
        'users',
        sa.Column('id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('email', sa.String(255), nullable=False),
        sa.Column('password_hash', sa.String(255), nullable=True),
        sa.Column('display_name', sa.String(255), nullable=True),
        sa.Column('photo_url', sa.Text(), nullable=True),
        sa.Column('stripe_customer_id', sa.String(255), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('last_login', sa.DateTime(), nullable=True),
        sa.Column('is_active', sa.Boolean(), server_default='true', nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('stripe_customer_id')
    )
    op.create_index('ix_users_email', 'users', ['email'], unique=True)

    # Create google_accounts table
    op.create_table(
        'google_accounts',
        sa.Column('id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('user_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('google_user_id', sa.String(255), nullable=True),
        sa.Column('access_token', sa.Text(), nullable=True),
        sa.Column('refresh_token', sa.Text(), nullable=True),
        sa.Column('expires_at', sa.DateTime(), nullable=True),
        sa.Column('token_type', sa.String(50), nullable=True),
        sa.Column('scope', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_google_accounts_user_id', 'google_accounts', ['user_id'], unique=True)

    # Create locations table
    op.create_table(
        'locations',
        sa.Column('id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('user_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('google_account_id', sa.String(100), nullable=False),
        sa.Column('google_account_name', sa.String(255), nullable=True),
        sa.Column('google_location_id', sa.String(100), nullable=False),
        sa.Column('title', sa.String(255), nullable=False),
        sa.Column('address', sa.Text(), nullable=True),
        sa.Column('phone', sa.String(50), nullable=True),
        sa.Column('website', sa.String(500), nullable=True),
        sa.Column('maps_uri', sa.String(500), nullable=True),
        sa.Column('average_rating', sa.Float(), nullable=True),
        sa.Column('total_reviews', sa.Integer(), server_default='0', nullable=False),
        sa.Column('last_synced_at', sa.DateTime(), nullable=True),
        sa.Column('is_active', sa.Boolean(), server_default='false', nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('user_id', 'google_account_id', 'google_location_id', name='uq_location_user_account_location')
    )
    op.create_index('ix_locations_user_id', 'locations', ['user_id'], unique=False)

    # Create widget_settings table
    op.create_table(
        'widget_settings',
        sa.Column('id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('location_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('layout', sa.String(20), server_default='list', nullable=False),
        sa.Column('theme', sa.String(20), server_default='light', nullable=False),
        sa.Column('accent_color', sa.String(7), server_default='#3B82F6', nullable=False),
        sa.Column('max_reviews', sa.Integer(), server_default='10', nullable=False),
        sa.Column('min_stars', sa.Integer(), server_default='1', nullable=False),
        sa.Column('auto_publish', sa.Boolean(), server_default='false', nullable=False),
        sa.Column('auto_publish_stars', sa.Integer(), server_default='4', nullable=False),
        sa.Column('show_date', sa.Boolean(), server_default='true', nullable=False),
        sa.Column('show_reviewer_name', sa.Boolean(), server_default='true', nullable=False),
        sa.Column('show_reviewer_photo', sa.Boolean(), server_default='true', nullable=False),
        sa.Column('show_rating', sa.Boolean(), server_default='true', nullable=False),
        sa.Column('show_reply', sa.Boolean(), server_default='false', nullable=False),
        sa.Column('show_summary', sa.Boolean(), server_default='true', nullable=False),
        sa.Column('show_badge', sa.Boolean(), server_default='true', nullable=False),
        sa.Column('show_review_link', sa.Boolean(), server_default='false', nullable=False),
        sa.Column('google_review_url', sa.String(500), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['location_id'], ['locations.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_widget_settings_location_id', 'widget_settings', ['location_id'], unique=True)

    # Create reviews table
    op.create_table(
        'reviews',
        sa.Column('id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('location_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('google_review_id', sa.String(255), nullable=False),
        sa.Column('reviewer_name', sa.String(255), server_default='Anonymous', nullable=False),
        sa.Column('reviewer_photo', sa.Text(), nullable=True),
        sa.Column('star_rating', sa.Integer(), nullable=False),
        sa.Column('comment', sa.Text(), nullable=True),
        sa.Column('review_reply', sa.Text(), nullable=True),
        sa.Column('reply_time', sa.DateTime(), nullable=True),
        sa.Column('google_created_at', sa.DateTime(), nullable=True),
        sa.Column('google_updated_at', sa.DateTime(), nullable=True),
        sa.Column('is_published', sa.Boolean(), server_default='false', nullable=False),
        sa.Column('published_at', sa.DateTime(), nullable=True),
        sa.Column('is_featured', sa.Boolean(), server_default='false', nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['location_id'], ['locations.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('location_id', 'google_review_id', name='uq_review_location_google_review')
    )
    op.create_index('ix_reviews_location_id', 'reviews', ['location_id'], unique=False)
    op.create_index('ix_reviews_is_published', 'reviews', ['is_published'], unique=False)

    # Create subscriptions table
    op.create_table(
        'subscriptions',
        sa.Column('id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('user_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('location_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('stripe_subscription_id', sa.String(255), nullable=False),
        sa.Column('stripe_price_id', sa.String(255), nullable=True),
        sa.Column('status', sa.String(50), nullable=False),
        sa.Column('current_period_start', sa.DateTime(), nullable=True),
        sa.Column('current_period_end', sa.DateTime(), nullable=True),
        sa.Column('trial_end', sa.DateTime(), nullable=True),
        sa.Column('cancel_at_period_end', sa.Boolean(), server_default='false', nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['location_id'], ['locations.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_subscriptions_user_id', 'subscriptions', ['user_id'], unique=False)
    op.create_index('ix_subscriptions_location_id', 'subscriptions', ['location_id'], unique=True)
    op.create_index('ix_subscriptions_stripe_subscription_id', 'subscriptions', ['stripe_subscription_id'], unique=True)


def downgrade() -> None:
    op.drop_table('subscriptions')
    op.drop_table('reviews')
    op.drop_table('widget_settings')
    op.drop_table('locations')
    op.drop_table('google_accounts')
    op.drop_table('users')
