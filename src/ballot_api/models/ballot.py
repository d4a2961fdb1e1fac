"""Accepted ballot ORM model.

One row per (election, nullifier); the unique constraint is what makes
double-vote prevention atomic under concurrent submissions.
"""

import uuid
from datetime import datetime

from sqlalchemy import CheckConstraint, DateTime, ForeignKey, Index, Integer, String, Text, UniqueConstraint, func
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from ballot_api.models.base import Base, UUIDMixin


class Ballot(Base, UUIDMixin):
    """An accepted, encoded ballot.  No voter identity is stored."""

    __tablename__ = "ballots"

    election_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("elections.id", ondelete="CASCADE"),
        nullable=False,
    )
    scheme: Mapped[str] = mapped_column(String(20), nullable=False)
    payload: Mapped[str] = mapped_column(Text, nullable=False)
    nullifier: Mapped[str] = mapped_column(String(64), nullable=False)
    vote_hash: Mapped[str] = mapped_column(String(64), nullable=False)
    voter_department: Mapped[str | None] = mapped_column(String(100), nullable=True)
    voter_cohort_year: Mapped[int | None] = mapped_column(Integer, nullable=True)
    voting_method: Mapped[str] = mapped_column(String(10), nullable=False, server_default="web")
    accepted_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )

    __table_args__ = (
        UniqueConstraint("election_id", "nullifier", name="uq_ballots_election_nullifier"),
        CheckConstraint("voting_method IN ('web', 'mobile')", name="ck_ballots_voting_method"),
        Index("idx_ballots_election_accepted_at", "election_id", "accepted_at"),
    )
