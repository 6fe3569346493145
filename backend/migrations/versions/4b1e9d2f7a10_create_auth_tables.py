"""create users, oauth identities and single-use tokens

Revision ID: 4b1e9d2f7a10
Revises:
Create Date: 2026-10-19 00:00:00.000000
"""
import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision = '4b1e9d2f7a10'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        'users',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('email', sa.String(length=254), nullable=False),
        sa.Column('password_hash', sa.String(length=255), nullable=False),
        sa.Column('email_verified', sa.Boolean(), server_default=sa.false(), nullable=False),
        sa.Column('version', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint('id', name='pk_users'),
        sa.UniqueConstraint('email', name='uq_users_email'),
    )
    op.create_index('ix_users_email', 'users', ['email'])

    op.create_table(
        'oauth_identities',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('provider', sa.String(length=20), nullable=False),
        sa.Column('profile_id', sa.String(length=100), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.ForeignKeyConstraint(
            ['user_id'], ['users.id'],
            name='fk_oauth_identities_user_id_users', ondelete='CASCADE',
        ),
        sa.PrimaryKeyConstraint('id', name='pk_oauth_identities'),
        sa.UniqueConstraint('user_id', 'provider', name='uq_oauth_identities_user_provider'),
        sa.UniqueConstraint('provider', 'profile_id', name='uq_oauth_identities_provider_profile'),
    )
    op.create_index('ix_oauth_identities_user_id', 'oauth_identities', ['user_id'])

    op.create_table(
        'single_use_tokens',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('code', sa.String(length=64), nullable=False),
        sa.Column('token_type', sa.String(length=32), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('expires_at', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(
            ['user_id'], ['users.id'],
            name='fk_single_use_tokens_user_id_users', ondelete='CASCADE',
        ),
        sa.PrimaryKeyConstraint('id', name='pk_single_use_tokens'),
        sa.UniqueConstraint('code', name='uq_single_use_tokens_code'),
    )
    op.create_index('ix_single_use_tokens_user_id', 'single_use_tokens', ['user_id'])
    op.create_index('ix_single_use_tokens_expires_at', 'single_use_tokens', ['expires_at'])


def downgrade():
    op.drop_index('ix_single_use_tokens_expires_at', table_name='single_use_tokens')
    op.drop_index('ix_single_use_tokens_user_id', table_name='single_use_tokens')
    op.drop_table('single_use_tokens')
    op.drop_index('ix_oauth_identities_user_id', table_name='oauth_identities')
    op.drop_table('oauth_identities')
    op.drop_index('ix_users_email', table_name='users')
    op.drop_table('users')
