"""Initial migration: elections, candidates, and ballots tables.

Revision ID: 001
Revises: None
Create Date: 2026-10-18
"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects.postgresql import JSONB, UUID

_JSON_LIST = sa.JSON().with_variant(JSONB(), "postgresql")

revision: str = "001"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    op.create_table(
        "elections",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("title", sa.String(500), nullable=False),
        sa.Column("description", sa.Text, nullable=True),
        sa.Column("scheme", sa.String(20), nullable=False),
        sa.Column("max_rankings", sa.Integer, nullable=False, server_default="3"),
        sa.Column("credit_budget", sa.Integer, nullable=False, server_default="100"),
        sa.Column("estimated_eligible_voters", sa.Integer, nullable=False, server_default="1000"),
        sa.Column("eligible_departments", _JSON_LIST, nullable=False, server_default=sa.text("'[]'")),
        sa.Column("eligible_years", _JSON_LIST, nullable=False, server_default=sa.text("'[]'")),
        sa.Column("registration_start", sa.DateTime(timezone=True), nullable=False),
        sa.Column("registration_end", sa.DateTime(timezone=True), nullable=False),
        sa.Column("voting_start", sa.DateTime(timezone=True), nullable=False),
        sa.Column("voting_end", sa.DateTime(timezone=True), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.CheckConstraint(
            "scheme IN ('single_choice', 'ranked_choice', 'quadratic')",
            name="ck_elections_scheme",
        ),
        sa.CheckConstraint("max_rankings >= 1", name="ck_elections_max_rankings"),
        sa.CheckConstraint("credit_budget >= 1", name="ck_elections_credit_budget"),
        sa.CheckConstraint("estimated_eligible_voters >= 1", name="ck_elections_estimated_voters"),
    )
    op.create_index("idx_elections_voting_start", "elections", ["voting_start"])

    op.create_table(
        "candidates",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column(
            "election_id",
            UUID(as_uuid=True),
            sa.ForeignKey("elections.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("description", sa.Text, nullable=True),
        sa.Column("department", sa.String(100), nullable=True),
        sa.Column("position", sa.Integer, nullable=False),
        sa.UniqueConstraint("election_id", "position", name="uq_candidates_election_position"),
    )
    op.create_index("idx_candidates_election_id", "candidates", ["election_id"])

    op.create_table(
        "ballots",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column(
            "election_id",
            UUID(as_uuid=True),
            sa.ForeignKey("elections.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("scheme", sa.String(20), nullable=False),
        sa.Column("payload", sa.Text, nullable=False),
        sa.Column("nullifier", sa.String(64), nullable=False),
        sa.Column("vote_hash", sa.String(64), nullable=False),
        sa.Column("voter_department", sa.String(100), nullable=True),
        sa.Column("voter_cohort_year", sa.Integer, nullable=True),
        sa.Column("voting_method", sa.String(10), nullable=False, server_default="web"),
        sa.Column("accepted_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        # One ballot per voter per election; ON CONFLICT targets this constraint
        sa.UniqueConstraint("election_id", "nullifier", name="uq_ballots_election_nullifier"),
        sa.CheckConstraint("voting_method IN ('web', 'mobile')", name="ck_ballots_voting_method"),
    )
    op.create_index("idx_ballots_election_accepted_at", "ballots", ["election_id", "accepted_at"])


def downgrade() -> None:
    op.drop_index("idx_ballots_election_accepted_at", table_name="ballots")
    op.drop_table("ballots")
    op.drop_index("idx_candidates_election_id", table_name="candidates")
    op.drop_table("candidates")
    op.drop_index("idx_elections_voting_start", table_name="elections")
    op.drop_table("elections")
