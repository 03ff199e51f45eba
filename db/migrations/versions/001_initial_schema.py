"""Initial schema: accounts, contacts, opportunities, leads, cases.

Revision ID: 001
Revises:
Create Date: 2026-10-19

"""
from alembic import op
import sqlalchemy as sa

# revision identifiers
revision = "001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "accounts",
        sa.Column("id", sa.Uuid, primary_key=True),
        sa.Column("name", sa.Text, nullable=False),
        sa.Column("industry", sa.Text, nullable=True),
        sa.Column("type", sa.Text, nullable=True),
        sa.Column("description", sa.Text, nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_accounts_name", "accounts", ["name"])

    op.create_table(
        "contacts",
        sa.Column("id", sa.Uuid, primary_key=True),
        sa.Column("first_name", sa.Text, nullable=True),
        sa.Column("last_name", sa.Text, nullable=False),
        sa.Column("account_id", sa.Uuid, nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.ForeignKeyConstraint(["account_id"], ["accounts.id"], name="fk_contact_account", ondelete="SET NULL"),
    )

    op.create_table(
        "opportunities",
        sa.Column("id", sa.Uuid, primary_key=True),
        sa.Column("name", sa.Text, nullable=False),
        sa.Column("stage_name", sa.Text, nullable=False),
        sa.Column("close_date", sa.Date, nullable=False),
        sa.Column("amount", sa.Numeric(18, 2), nullable=True),
        sa.Column("account_id", sa.Uuid, nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.CheckConstraint(
            "stage_name IN ('Prospecting','Qualification','Needs Analysis',"
            "'Value Proposition','Proposal/Price Quote','Negotiation/Review',"
            "'Closed Won','Closed Lost')",
            name="ck_opportunity_stage_name",
        ),
        sa.ForeignKeyConstraint(["account_id"], ["accounts.id"], name="fk_opportunity_account", ondelete="SET NULL"),
    )
    op.create_index("ix_opportunities_name", "opportunities", ["name"])

    op.create_table(
        "leads",
        sa.Column("id", sa.Uuid, primary_key=True),
        sa.Column("last_name", sa.Text, nullable=False),
        sa.Column("company", sa.Text, nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )

    op.create_table(
        "cases",
        sa.Column("id", sa.Uuid, primary_key=True),
        sa.Column("account_id", sa.Uuid, nullable=True),
        sa.Column("subject", sa.Text, nullable=True),
        sa.Column("status", sa.Text, nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.CheckConstraint(
            "status IN ('New','Working','Escalated','Closed')",
            name="ck_case_status",
        ),
        sa.ForeignKeyConstraint(["account_id"], ["accounts.id"], name="fk_case_account", ondelete="SET NULL"),
    )


def downgrade() -> None:
    # Drop in reverse dependency order
    op.drop_table("cases")
    op.drop_table("leads")
    op.drop_index("ix_opportunities_name", table_name="opportunities")
    op.drop_table("opportunities")
    op.drop_table("contacts")
    op.drop_index("ix_accounts_name", table_name="accounts")
    op.drop_table("accounts")
