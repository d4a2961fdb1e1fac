"""ORM model registry — import all models so Alembic autogenerate discovers them."""

from ballot_api.models.ballot import Ballot
from ballot_api.models.base import Base
from ballot_api.models.election import Candidate, Election

__all__ = [
    "Ballot",
    "Base",
    "Candidate",
    "Election",
]
