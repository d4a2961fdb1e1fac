"""Election and candidate ORM models.

An election carries its ballot scheme, scheme limits, eligibility lists,
and the registration and voting windows its phase is derived from.
"""

import uuid
from datetime import datetime

from sqlalchemy import (
    JSON,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ballot_api.models.base import Base, TimestampMixin, UUIDMixin

_JSON_LIST = JSON().with_variant(JSONB(), "postgresql")


class Election(Base, UUIDMixin, TimestampMixin):
    """A vote with a fixed candidate list and one ballot scheme."""

    __tablename__ = "elections"

    title: Mapped[str] = mapped_column(String(500), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    scheme: Mapped[str] = mapped_column(String(20), nullable=False)
    max_rankings: Mapped[int] = mapped_column(Integer, nullable=False, server_default="3")
    credit_budget: Mapped[int] = mapped_column(Integer, nullable=False, server_default="100")
    estimated_eligible_voters: Mapped[int] = mapped_column(Integer, nullable=False, server_default="1000")
    eligible_departments: Mapped[list[str]] = mapped_column(_JSON_LIST, nullable=False, default=list)
    eligible_years: Mapped[list[int]] = mapped_column(_JSON_LIST, nullable=False, default=list)
    registration_start: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    registration_end: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    voting_start: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    voting_end: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    # Relationships
    candidates: Mapped[list["Candidate"]] = relationship(
        back_populates="election",
        cascade="all, delete-orphan",
        order_by="Candidate.position",
        lazy="selectin",
    )

    __table_args__ = (
        CheckConstraint(
            "scheme IN ('single_choice', 'ranked_choice', 'quadratic')",
            name="ck_elections_scheme",
        ),
        CheckConstraint("max_rankings >= 1", name="ck_elections_max_rankings"),
        CheckConstraint("credit_budget >= 1", name="ck_elections_credit_budget"),
        CheckConstraint("estimated_eligible_voters >= 1", name="ck_elections_estimated_voters"),
        Index("idx_elections_voting_start", "voting_start"),
    )


class Candidate(Base, UUIDMixin):
    """A candidate on an election's ballot, in display order."""

    __tablename__ = "candidates"

    election_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("elections.id", ondelete="CASCADE"),
        nullable=False,
    )
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    department: Mapped[str | None] = mapped_column(String(100), nullable=True)
    position: Mapped[int] = mapped_column(Integer, nullable=False)

    # Relationships
    election: Mapped["Election"] = relationship(back_populates="candidates")

    __table_args__ = (
        UniqueConstraint("election_id", "position", name="uq_candidates_election_position"),
        Index("idx_candidates_election_id", "election_id"),
    )
