"""create shipping rules and ranges

Revision ID: a1c3e5f70b21
Revises:
Create Date: 2025-11-20 10:00:00.000000

"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision = 'a1c3e5f70b21'
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        'shipping_rules',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('shop', sa.String(length=255), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('charge_by', sa.String(length=16), nullable=False),
        sa.Column('countries', postgresql.JSONB(astext_type=sa.Text()), nullable=False,
                  server_default=sa.text("'[]'::jsonb")),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.PrimaryKeyConstraint('id', name=op.f('pk_shipping_rules')),
        sa.UniqueConstraint('shop', 'name', name='uq_shipping_rules_shop_name'),
    )
    op.create_index(op.f('ix_shipping_rules_shop'), 'shipping_rules', ['shop'], unique=False)

    op.create_table(
        'shipping_ranges',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('rule_id', sa.String(length=36), nullable=False),
        sa.Column('from_val', sa.Numeric(14, 4), nullable=False),
        sa.Column('to_val', sa.Numeric(14, 4), nullable=False),
        sa.Column('unit', sa.String(length=16), nullable=False, server_default='KG'),
        sa.Column('price_per', sa.Numeric(14, 4), nullable=False, server_default=sa.text('0')),
        sa.Column('fee', sa.Numeric(14, 4), nullable=False, server_default=sa.text('0')),
        sa.Column('fee_unit', sa.String(length=8), nullable=False, server_default='CNY'),
        sa.ForeignKeyConstraint(
            ['rule_id'], ['shipping_rules.id'],
            name=op.f('fk_shipping_ranges_rule_id_shipping_rules'),
            ondelete='CASCADE',
        ),
        sa.PrimaryKeyConstraint('id', name=op.f('pk_shipping_ranges')),
    )
    op.create_index(op.f('ix_shipping_ranges_rule_id'), 'shipping_ranges', ['rule_id'], unique=False)


def downgrade() -> None:
    op.drop_index(op.f('ix_shipping_ranges_rule_id'), table_name='shipping_ranges')
    op.drop_table('shipping_ranges')
    op.drop_index(op.f('ix_shipping_rules_shop'), table_name='shipping_rules')
    op.drop_table('shipping_rules')
