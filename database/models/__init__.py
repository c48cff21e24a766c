"""
Database models.

Importing this package registers every table on Base.metadata.
"""

from database.models.users import User, UserRole
from database.models.events import Event, EventParticipant, EventAllowedParticipant
from database.models.pairs import Pair, PairStatus, SlotProposal, PairRejection
from database.models.feedback import Feedback, CRITERIA
from database.models.learning import (
    Difficulty,
    Semester,
    Subject,
    Chapter,
    Topic,
    TopicProgress,
)

__all__ = [
    "User",
    "UserRole",
    "Event",
    "EventParticipant",
    "EventAllowedParticipant",
    "Pair",
    "PairStatus",
    "SlotProposal",
    "PairRejection",
    "Feedback",
    "CRITERIA",
    "Difficulty",
    "Semester",
    "Subject",
    "Chapter",
    "Topic",
    "TopicProgress",
]
