"""initial schema

Revision ID: 0a7c3e91d2f4
Revises:
Create Date: 2026-10-19 09:12:41.305118

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '0a7c3e91d2f4'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
    ]


def _work_table(name: str) -> None:
    op.create_table(name,
    sa.Column('id', sa.Uuid(), nullable=False),
    sa.Column('firm_id', sa.Uuid(), nullable=False),
    sa.Column('campaign_id', sa.Uuid(), nullable=False),
    sa.Column('premise_id', sa.Uuid(), nullable=True),
    sa.Column('work_type', sa.String(length=100), nullable=False),
    sa.Column('work_date', sa.Date(), nullable=False),
    sa.Column('status', sa.Enum('DRAFT', 'PENDING_APPROVAL', 'IN_PROGRESS', 'APPROVED', 'REJECTED', 'CLOSED', 'CANCELLED', name='workstatus'), nullable=False),
    sa.Column('description', sa.Text(), nullable=True),
    sa.Column('created_by', sa.Uuid(), nullable=True),
    *_timestamps(),
    sa.ForeignKeyConstraint(['firm_id'], ['firms.id'], ondelete='CASCADE'),
    sa.ForeignKeyConstraint(['campaign_id'], ['campaigns.id'], ondelete='CASCADE'),
    sa.ForeignKeyConstraint(['premise_id'], ['premises.id'], ondelete='SET NULL'),
    sa.ForeignKeyConstraint(['created_by'], ['users.id'], ondelete='SET NULL'),
    sa.PrimaryKeyConstraint('id')
    )
    with op.batch_alter_table(name, schema=None) as batch_op:
        batch_op.create_index(batch_op.f(f'ix_{name}_firm_id'), ['firm_id'], unique=False)
        batch_op.create_index(batch_op.f(f'ix_{name}_campaign_id'), ['campaign_id'], unique=False)
        batch_op.create_index(batch_op.f(f'ix_{name}_status'), ['status'], unique=False)


def upgrade() -> None:
    op.create_table('users',
    sa.Column('id', sa.Uuid(), nullable=False),
    sa.Column('email', sa.String(length=255), nullable=False),
    sa.Column('hashed_password', sa.String(length=255), nullable=False),
    sa.Column('full_name', sa.String(length=255), nullable=False),
    sa.Column('role', sa.Enum('ADMIN', 'MANAGER', 'OPERATOR', 'VIEWER', name='role'), nullable=False),
    sa.Column('is_active', sa.Boolean(), nullable=True),
    *_timestamps(),
    sa.PrimaryKeyConstraint('id')
    )
    with op.batch_alter_table('users', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_users_email'), ['email'], unique=True)

    op.create_table('firms',
    sa.Column('id', sa.Uuid(), nullable=False),
    sa.Column('name', sa.String(length=255), nullable=False),
    sa.Column('tax_id', sa.String(length=50), nullable=True),
    *_timestamps(),
    sa.PrimaryKeyConstraint('id')
    )

    op.create_table('premises',
    sa.Column('id', sa.Uuid(), nullable=False),
    sa.Column('firm_id', sa.Uuid(), nullable=False),
    sa.Column('name', sa.String(length=255), nullable=False),
    *_timestamps(),
    sa.ForeignKeyConstraint(['firm_id'], ['firms.id'], ondelete='CASCADE'),
    sa.PrimaryKeyConstraint('id')
    )
    with op.batch_alter_table('premises', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_premises_firm_id'), ['firm_id'], unique=False)

    op.create_table('user_firm_access',
    sa.Column('id', sa.Uuid(), nullable=False),
    sa.Column('user_id', sa.Uuid(), nullable=False),
    sa.Column('firm_id', sa.Uuid(), nullable=False),
    sa.Column('revoked_at', sa.DateTime(timezone=True), nullable=True),
    *_timestamps(),
    sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
    sa.ForeignKeyConstraint(['firm_id'], ['firms.id'], ondelete='CASCADE'),
    sa.PrimaryKeyConstraint('id'),
    sa.UniqueConstraint('user_id', 'firm_id', name='uq_user_firm_access')
    )
    with op.batch_alter_table('user_firm_access', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_user_firm_access_user_id'), ['user_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_user_firm_access_firm_id'), ['firm_id'], unique=False)

    # Periods (gestiones); at most one ACTIVE per firm
    op.create_table('campaigns',
    sa.Column('id', sa.Uuid(), nullable=False),
    sa.Column('firm_id', sa.Uuid(), nullable=False),
    sa.Column('name', sa.String(length=255), nullable=False),
    sa.Column('start_date', sa.Date(), nullable=False),
    sa.Column('end_date', sa.Date(), nullable=False),
    sa.Column('status', sa.Enum('ACTIVE', 'CLOSED', name='periodstatus'), nullable=False),
    sa.Column('is_locked', sa.Boolean(), nullable=False),
    sa.Column('notes', sa.Text(), nullable=True),
    sa.Column('closed_by', sa.Uuid(), nullable=True),
    sa.Column('closed_at', sa.DateTime(timezone=True), nullable=True),
    sa.Column('closed_notes', sa.Text(), nullable=True),
    sa.Column('reopened_by', sa.Uuid(), nullable=True),
    sa.Column('reopened_at', sa.DateTime(timezone=True), nullable=True),
    sa.Column('reopen_reason', sa.Text(), nullable=True),
    *_timestamps(),
    sa.ForeignKeyConstraint(['firm_id'], ['firms.id'], ondelete='CASCADE'),
    sa.ForeignKeyConstraint(['closed_by'], ['users.id'], ondelete='SET NULL'),
    sa.ForeignKeyConstraint(['reopened_by'], ['users.id'], ondelete='SET NULL'),
    sa.PrimaryKeyConstraint('id')
    )
    with op.batch_alter_table('campaigns', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_campaigns_firm_id'), ['firm_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_campaigns_status'), ['status'], unique=False)
        batch_op.create_index(
            'uq_campaigns_one_active_per_firm',
            ['firm_id'],
            unique=True,
            sqlite_where=sa.text("status = 'ACTIVE'"),
            postgresql_where=sa.text("status = 'ACTIVE'"),
        )

    op.create_table('campaign_adjustments',
    sa.Column('id', sa.Uuid(), nullable=False),
    sa.Column('campaign_id', sa.Uuid(), nullable=False),
    sa.Column('adjustment_type', sa.String(length=50), nullable=False),
    sa.Column('description', sa.Text(), nullable=False),
    sa.Column('adjustment_date', sa.Date(), nullable=False),
    sa.Column('old_value', sa.JSON(), nullable=True),
    sa.Column('new_value', sa.JSON(), nullable=True),
    sa.Column('reference_table', sa.String(length=100), nullable=True),
    sa.Column('reference_id', sa.String(length=64), nullable=True),
    sa.Column('created_by', sa.Uuid(), nullable=True),
    sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
    sa.ForeignKeyConstraint(['campaign_id'], ['campaigns.id'], ondelete='CASCADE'),
    sa.ForeignKeyConstraint(['created_by'], ['users.id'], ondelete='SET NULL'),
    sa.PrimaryKeyConstraint('id')
    )
    with op.batch_alter_table('campaign_adjustments', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_campaign_adjustments_campaign_id'), ['campaign_id'], unique=False)

    # Audit log (Spanish column names are shared with the reporting views)
    op.create_table('audit',
    sa.Column('id', sa.Uuid(), nullable=False),
    sa.Column('firm_id', sa.Uuid(), nullable=False),
    sa.Column('tipo', sa.String(length=50), nullable=False),
    sa.Column('descripcion', sa.Text(), nullable=False),
    sa.Column('modulo_origen', sa.String(length=50), nullable=False),
    sa.Column('usuario', sa.String(length=255), nullable=False),
    sa.Column('referencia', sa.String(length=64), nullable=True),
    sa.Column('metadata', sa.JSON(), nullable=False),
    sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
    sa.ForeignKeyConstraint(['firm_id'], ['firms.id'], ondelete='CASCADE'),
    sa.PrimaryKeyConstraint('id')
    )
    with op.batch_alter_table('audit', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_audit_firm_id'), ['firm_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_audit_tipo'), ['tipo'], unique=False)
        batch_op.create_index(batch_op.f('ix_audit_created_at'), ['created_at'], unique=False)

    _work_table('agricultural_works')
    _work_table('livestock_works')

    op.create_table('livestock_categories',
    sa.Column('id', sa.Uuid(), nullable=False),
    sa.Column('firm_id', sa.Uuid(), nullable=True),
    sa.Column('name', sa.String(length=100), nullable=False),
    sa.Column('code', sa.String(length=20), nullable=True),
    *_timestamps(),
    sa.ForeignKeyConstraint(['firm_id'], ['firms.id'], ondelete='CASCADE'),
    sa.PrimaryKeyConstraint('id')
    )
    with op.batch_alter_table('livestock_categories', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_livestock_categories_firm_id'), ['firm_id'], unique=False)

    op.create_table('animals',
    sa.Column('id', sa.Uuid(), nullable=False),
    sa.Column('premise_id', sa.Uuid(), nullable=False),
    sa.Column('current_category_id', sa.Uuid(), nullable=True),
    sa.Column('tag', sa.String(length=50), nullable=True),
    sa.Column('status', sa.Enum('ACTIVE', 'SOLD', 'DEAD', 'TRANSFERRED', name='animalstatus'), nullable=False),
    sa.Column('initial_weight', sa.Float(), nullable=True),
    *_timestamps(),
    sa.ForeignKeyConstraint(['premise_id'], ['premises.id'], ondelete='CASCADE'),
    sa.ForeignKeyConstraint(['current_category_id'], ['livestock_categories.id'], ondelete='SET NULL'),
    sa.PrimaryKeyConstraint('id')
    )
    with op.batch_alter_table('animals', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_animals_premise_id'), ['premise_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_animals_current_category_id'), ['current_category_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_animals_status'), ['status'], unique=False)

    op.create_table('herd_events',
    sa.Column('id', sa.Uuid(), nullable=False),
    sa.Column('animal_id', sa.Uuid(), nullable=False),
    sa.Column('event_type', sa.Enum('WEIGHING', 'BIRTH', 'TREATMENT', 'CATEGORY_CHANGE', name='herdeventtype'), nullable=False),
    sa.Column('event_date', sa.Date(), nullable=False),
    sa.Column('qty_kg', sa.Float(), nullable=True),
    *_timestamps(),
    sa.ForeignKeyConstraint(['animal_id'], ['animals.id'], ondelete='CASCADE'),
    sa.PrimaryKeyConstraint('id')
    )
    with op.batch_alter_table('herd_events', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_herd_events_animal_id'), ['animal_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_herd_events_event_date'), ['event_date'], unique=False)

    op.create_table('inputs',
    sa.Column('id', sa.Uuid(), nullable=False),
    sa.Column('premise_id', sa.Uuid(), nullable=False),
    sa.Column('name', sa.String(length=255), nullable=False),
    sa.Column('category', sa.String(length=100), nullable=True),
    sa.Column('unit', sa.String(length=20), nullable=True),
    sa.Column('current_stock', sa.Float(), nullable=False),
    sa.Column('unit_price', sa.Float(), nullable=True),
    *_timestamps(),
    sa.ForeignKeyConstraint(['premise_id'], ['premises.id'], ondelete='CASCADE'),
    sa.PrimaryKeyConstraint('id')
    )
    with op.batch_alter_table('inputs', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_inputs_premise_id'), ['premise_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_inputs_category'), ['category'], unique=False)

    op.create_table('input_movements',
    sa.Column('id', sa.Uuid(), nullable=False),
    sa.Column('input_id', sa.Uuid(), nullable=False),
    sa.Column('movement_type', sa.Enum('entry', 'purchase', 'exit', 'adjustment', name='movementtype'), nullable=False),
    sa.Column('quantity', sa.Float(), nullable=True),
    sa.Column('unit_cost', sa.Float(), nullable=True),
    sa.Column('movement_date', sa.Date(), nullable=False),
    *_timestamps(),
    sa.ForeignKeyConstraint(['input_id'], ['inputs.id'], ondelete='CASCADE'),
    sa.PrimaryKeyConstraint('id')
    )
    with op.batch_alter_table('input_movements', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_input_movements_input_id'), ['input_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_input_movements_movement_date'), ['movement_date'], unique=False)

    op.create_table('inventory_valuations',
    sa.Column('id', sa.Uuid(), nullable=False),
    sa.Column('firm_id', sa.Uuid(), nullable=False),
    sa.Column('premise_id', sa.Uuid(), nullable=False),
    sa.Column('campaign_id', sa.Uuid(), nullable=True),
    sa.Column('valuation_date', sa.Date(), nullable=False),
    sa.Column('valuation_type', sa.Enum('INITIAL', 'FINAL', name='valuationtype'), nullable=False),
    sa.Column('scope', sa.Enum('livestock', 'inputs', name='inventoryscope'), nullable=False),
    sa.Column('valuation_method', sa.Enum('weighted_avg', 'historical', 'market', 'mixed', name='valuationmethod'), nullable=False),
    sa.Column('pricing_source', sa.String(length=100), nullable=True),
    sa.Column('livestock_total_heads', sa.Integer(), nullable=False),
    sa.Column('livestock_total_kg', sa.Float(), nullable=False),
    sa.Column('livestock_total_value', sa.Float(), nullable=False),
    sa.Column('livestock_by_category', sa.JSON(), nullable=False),
    sa.Column('inputs_total_items', sa.Integer(), nullable=False),
    sa.Column('inputs_total_value', sa.Float(), nullable=False),
    sa.Column('inputs_by_category', sa.JSON(), nullable=False),
    sa.Column('uses_placeholder_prices', sa.Boolean(), nullable=False),
    sa.Column('created_by', sa.Uuid(), nullable=True),
    sa.Column('notes', sa.Text(), nullable=True),
    *_timestamps(),
    sa.ForeignKeyConstraint(['firm_id'], ['firms.id'], ondelete='CASCADE'),
    sa.ForeignKeyConstraint(['premise_id'], ['premises.id'], ondelete='CASCADE'),
    sa.ForeignKeyConstraint(['campaign_id'], ['campaigns.id'], ondelete='SET NULL'),
    sa.ForeignKeyConstraint(['created_by'], ['users.id'], ondelete='SET NULL'),
    sa.PrimaryKeyConstraint('id')
    )
    with op.batch_alter_table('inventory_valuations', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_inventory_valuations_firm_id'), ['firm_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_inventory_valuations_premise_id'), ['premise_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_inventory_valuations_campaign_id'), ['campaign_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_inventory_valuations_valuation_date'), ['valuation_date'], unique=False)


def downgrade() -> None:
    op.drop_table('inventory_valuations')
    op.drop_table('input_movements')
    op.drop_table('inputs')
    op.drop_table('herd_events')
    op.drop_table('animals')
    op.drop_table('livestock_categories')
    op.drop_table('livestock_works')
    op.drop_table('agricultural_works')
    op.drop_table('audit')
    op.drop_table('campaign_adjustments')
    op.drop_table('campaigns')
    op.drop_table('user_firm_access')
    op.drop_table('premises')
    op.drop_table('firms')
    op.drop_table('users')
