"""
Enumerations shared by the storage layer and the API.
"""

from enum import StrEnum


class FriendStatus(StrEnum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    DECLINED = "declined"


class ActivityType(StrEnum):
    QUESTION_ANSWERED = "question_answered"
    QUESTION_ASKED = "question_asked"
    MESSAGE_SENT = "message_sent"
