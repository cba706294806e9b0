"""
Helpers for joining storage records to the related users and questions.

Results are plain dicts in the shape the API schemas expect. Entries whose
related record no longer exists are dropped rather than returned half-filled.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from kinship.db import DbClient, FriendConnectionRecord, UserRecord

MESSAGE_PREVIEW_LENGTH = 50


def public_user(user: UserRecord) -> Dict[str, Any]:
    data = user.as_dict()
    data.pop("password", None)
    return data


def other_party_id(connection: FriendConnectionRecord, user_id: int) -> int:
    if connection.user_id == user_id:
        return connection.friend_id
    return connection.user_id


def message_preview(content: str, limit: int = MESSAGE_PREVIEW_LENGTH) -> str:
    if len(content) > limit:
        return content[:limit] + "..."
    return content


class _UserLookup:
    """Memoizes public user dicts for the span of one enrichment call."""

    def __init__(self, db: DbClient):
        self.db = db
        self._cache: Dict[int, Optional[Dict[str, Any]]] = {}

    def get(self, user_id: int) -> Optional[Dict[str, Any]]:
        if user_id not in self._cache:
            user = self.db.get_user(user_id)
            self._cache[user_id] = public_user(user) if user else None
        return self._cache[user_id]


def enrich_connection(
    db: DbClient, connection: FriendConnectionRecord, user_id: int
) -> Optional[Dict[str, Any]]:
    friend = db.get_user(other_party_id(connection, user_id))
    if not friend:
        return None
    return {**connection.as_dict(), "friend": public_user(friend)}


def enrich_connections(db: DbClient, user_id: int) -> List[Dict[str, Any]]:
    users = _UserLookup(db)
    enriched: List[Dict[str, Any]] = []
    for connection in db.get_friend_connections(user_id):
        friend = users.get(other_party_id(connection, user_id))
        if friend is None:
            continue
        enriched.append({**connection.as_dict(), "friend": friend})
    return enriched


def enrich_shared_responses(db: DbClient, user_id: int) -> List[Dict[str, Any]]:
    users = _UserLookup(db)
    questions: Dict[int, Optional[Dict[str, Any]]] = {}
    enriched: List[Dict[str, Any]] = []
    for response in db.get_shared_responses(user_id):
        if response.question_id not in questions:
            question = db.get_question(response.question_id)
            questions[response.question_id] = question.as_dict() if question else None
        question_data = questions[response.question_id]
        author = users.get(response.user_id)
        if question_data is None or author is None:
            continue
        enriched.append(
            {**response.as_dict(), "question": question_data, "user": author}
        )
    return enriched


def enrich_activities(db: DbClient, user_id: int) -> List[Dict[str, Any]]:
    users = _UserLookup(db)
    enriched: List[Dict[str, Any]] = []
    for activity in db.get_user_activities(user_id):
        friend = users.get(activity.friend_id)
        if friend is None:
            continue
        enriched.append({**activity.as_dict(), "friend": friend})
    return enriched
