"""
Database abstraction for Postgres and an in-memory test implementation.

Both clients implement ``DbClient`` and must return the same results for the
same sequence of calls, so the API can run against either one.
"""

from __future__ import annotations

import itertools
import logging
import random
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from typing import Dict, Iterable, List, Optional, Protocol

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    and_,
    create_engine,
    event,
    func,
    or_,
    select,
)
from sqlalchemy.orm import Session, declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

from kinship.enums import ActivityType, FriendStatus

logger = logging.getLogger(__name__)

CONNECTION_UPDATABLE_FIELDS = frozenset({"status", "level", "progress"})


class RecordNotFound(LookupError):
    """Raised when an update targets a row that does not exist."""


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _as_utc(value: datetime) -> datetime:
    # SQLite drops tzinfo on the way back out.
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _enable_sqlite_foreign_keys(dbapi_connection, _connection_record) -> None:
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


class DbClient(Protocol):
    """Interface for database access."""

    def get_user(self, user_id: int) -> Optional["UserRecord"]:
        ...

    def get_user_by_username(self, username: str) -> Optional["UserRecord"]:
        ...

    def get_user_by_email(self, email: str) -> Optional["UserRecord"]:
        ...

    def create_user(
        self,
        *,
        username: str,
        password: str,
        email: str,
        full_name: str,
        avatar_color: str,
    ) -> "UserRecord":
        ...

    def count_users(self) -> int:
        ...

    def get_friend_connections(self, user_id: int) -> List["FriendConnectionRecord"]:
        ...

    def get_friend_connection(
        self, user_id: int, friend_id: int
    ) -> Optional["FriendConnectionRecord"]:
        ...

    def get_friend_connection_by_id(
        self, connection_id: int
    ) -> Optional["FriendConnectionRecord"]:
        ...

    def create_friend_connection(
        self,
        *,
        user_id: int,
        friend_id: int,
        status: FriendStatus = FriendStatus.PENDING,
        level: int = 1,
        progress: int = 0,
    ) -> "FriendConnectionRecord":
        ...

    def update_friend_connection(
        self, connection_id: int, **changes
    ) -> "FriendConnectionRecord":
        ...

    def get_question_categories(self) -> List["QuestionCategoryRecord"]:
        ...

    def get_question_category(
        self, category_id: int
    ) -> Optional["QuestionCategoryRecord"]:
        ...

    def create_question_category(
        self, *, name: str, description: str, icon_name: str, color_class: str
    ) -> "QuestionCategoryRecord":
        ...

    def get_questions(
        self, category_id: Optional[int] = None, level: Optional[int] = None
    ) -> List["QuestionRecord"]:
        ...

    def get_question(self, question_id: int) -> Optional["QuestionRecord"]:
        ...

    def get_random_question(
        self, level: Optional[int] = None, category_id: Optional[int] = None
    ) -> Optional["QuestionRecord"]:
        ...

    def create_question(
        self, *, text: str, category_id: int, level: int = 1
    ) -> "QuestionRecord":
        ...

    def get_question_responses(
        self, question_id: int, user_id: int
    ) -> List["QuestionResponseRecord"]:
        ...

    def get_shared_responses(self, user_id: int) -> List["QuestionResponseRecord"]:
        ...

    def create_question_response(
        self,
        *,
        question_id: int,
        user_id: int,
        response: str,
        shared_with: Iterable[int],
    ) -> "QuestionResponseRecord":
        ...

    def get_message(self, message_id: int) -> Optional["MessageRecord"]:
        ...

    def get_messages(self, user_id: int, friend_id: int) -> List["MessageRecord"]:
        ...

    def get_unread_message_count(self, user_id: int) -> int:
        ...

    def create_message(
        self, *, sender_id: int, receiver_id: int, content: str
    ) -> "MessageRecord":
        ...

    def mark_message_as_read(self, message_id: int) -> None:
        ...

    def get_user_activities(self, user_id: int) -> List["ActivityRecord"]:
        ...

    def create_activity(
        self,
        *,
        user_id: int,
        friend_id: int,
        type: ActivityType,
        content_id: Optional[int] = None,
        content: Optional[str] = None,
    ) -> "ActivityRecord":
        ...


@dataclass
class UserRecord:
    id: int
    username: str
    password: str
    email: str
    full_name: str
    avatar_color: str
    created_at: datetime = field(default_factory=_utcnow)

    def as_dict(self) -> dict:
        return asdict(self)


@dataclass
class FriendConnectionRecord:
    id: int
    user_id: int
    friend_id: int
    status: FriendStatus = FriendStatus.PENDING
    level: int = 1
    progress: int = 0
    created_at: datetime = field(default_factory=_utcnow)

    def involves(self, user_id: int) -> bool:
        return user_id in (self.user_id, self.friend_id)

    def as_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "friend_id": self.friend_id,
            "status": self.status.value,
            "level": self.level,
            "progress": self.progress,
            "created_at": self.created_at,
        }


@dataclass
class QuestionCategoryRecord:
    id: int
    name: str
    description: str
    icon_name: str
    color_class: str

    def as_dict(self) -> dict:
        return asdict(self)


@dataclass
class QuestionRecord:
    id: int
    text: str
    category_id: int
    level: int = 1

    def as_dict(self) -> dict:
        return asdict(self)


@dataclass
class QuestionResponseRecord:
    id: int
    question_id: int
    user_id: int
    response: str
    shared_with: List[int] = field(default_factory=list)
    created_at: datetime = field(default_factory=_utcnow)

    def is_visible_to(self, user_id: int) -> bool:
        return self.user_id == user_id or user_id in self.shared_with

    def as_dict(self) -> dict:
        return asdict(self)


@dataclass
class MessageRecord:
    id: int
    sender_id: int
    receiver_id: int
    content: str
    read: bool = False
    created_at: datetime = field(default_factory=_utcnow)

    def as_dict(self) -> dict:
        return asdict(self)


@dataclass
class ActivityRecord:
    id: int
    user_id: int
    friend_id: int
    type: ActivityType
    content_id: Optional[int] = None
    content: Optional[str] = None
    created_at: datetime = field(default_factory=_utcnow)

    def as_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "friend_id": self.friend_id,
            "type": self.type.value,
            "content_id": self.content_id,
            "content": self.content,
            "created_at": self.created_at,
        }


def _validate_connection_changes(changes: dict) -> dict:
    unknown = set(changes) - CONNECTION_UPDATABLE_FIELDS
    if unknown:
        raise ValueError(
            f"Cannot update friend connection fields: {', '.join(sorted(unknown))}"
        )
    if "status" in changes:
        changes = {**changes, "status": FriendStatus(changes["status"])}
    return changes


class InMemoryDbClient:
    """Simple in-memory database for development and tests."""

    def __init__(self, rng: Optional[random.Random] = None):
        self.rng = rng or random.Random()
        self.users: Dict[int, UserRecord] = {}
        self.friend_connections: Dict[int, FriendConnectionRecord] = {}
        self.question_categories: Dict[int, QuestionCategoryRecord] = {}
        self.questions: Dict[int, QuestionRecord] = {}
        self.question_responses: Dict[int, QuestionResponseRecord] = {}
        self.messages: Dict[int, MessageRecord] = {}
        self.activities: Dict[int, ActivityRecord] = {}
        self._reset_counters()

    def _reset_counters(self) -> None:
        self._ids = {
            name: itertools.count(1)
            for name in (
                "users",
                "friend_connections",
                "question_categories",
                "questions",
                "question_responses",
                "messages",
                "activities",
            )
        }

    def _next_id(self, table: str) -> int:
        return next(self._ids[table])

    def reset(self) -> None:
        """Clear all stored data (useful in tests)."""
        self.users.clear()
        self.friend_connections.clear()
        self.question_categories.clear()
        self.questions.clear()
        self.question_responses.clear()
        self.messages.clear()
        self.activities.clear()
        self._reset_counters()

    # Users

    def get_user(self, user_id: int) -> Optional[UserRecord]:
        return self.users.get(user_id)

    def get_user_by_username(self, username: str) -> Optional[UserRecord]:
        wanted = username.lower()
        for user in self.users.values():
            if user.username.lower() == wanted:
                return user
        return None

    def get_user_by_email(self, email: str) -> Optional[UserRecord]:
        wanted = email.lower()
        for user in self.users.values():
            if user.email.lower() == wanted:
                return user
        return None

    def create_user(
        self,
        *,
        username: str,
        password: str,
        email: str,
        full_name: str,
        avatar_color: str,
    ) -> UserRecord:
        user = UserRecord(
            id=self._next_id("users"),
            username=username,
            password=password,
            email=email,
            full_name=full_name,
            avatar_color=avatar_color,
        )
        self.users[user.id] = user
        return user

    def count_users(self) -> int:
        return len(self.users)

    # Friend connections

    def get_friend_connections(self, user_id: int) -> List[FriendConnectionRecord]:
        return [
            conn for conn in self.friend_connections.values() if conn.involves(user_id)
        ]

    def get_friend_connection(
        self, user_id: int, friend_id: int
    ) -> Optional[FriendConnectionRecord]:
        for conn in self.friend_connections.values():
            if (conn.user_id == user_id and conn.friend_id == friend_id) or (
                conn.user_id == friend_id and conn.friend_id == user_id
            ):
                return conn
        return None

    def get_friend_connection_by_id(
        self, connection_id: int
    ) -> Optional[FriendConnectionRecord]:
        return self.friend_connections.get(connection_id)

    def create_friend_connection(
        self,
        *,
        user_id: int,
        friend_id: int,
        status: FriendStatus = FriendStatus.PENDING,
        level: int = 1,
        progress: int = 0,
    ) -> FriendConnectionRecord:
        conn = FriendConnectionRecord(
            id=self._next_id("friend_connections"),
            user_id=user_id,
            friend_id=friend_id,
            status=FriendStatus(status),
            level=level,
            progress=progress,
        )
        self.friend_connections[conn.id] = conn
        return conn

    def update_friend_connection(
        self, connection_id: int, **changes
    ) -> FriendConnectionRecord:
        changes = _validate_connection_changes(changes)
        conn = self.friend_connections.get(connection_id)
        if not conn:
            raise RecordNotFound(f"Friend connection with id {connection_id} not found")
        for key, value in changes.items():
            setattr(conn, key, value)
        return conn

    # Question categories

    def get_question_categories(self) -> List[QuestionCategoryRecord]:
        return list(self.question_categories.values())

    def get_question_category(
        self, category_id: int
    ) -> Optional[QuestionCategoryRecord]:
        return self.question_categories.get(category_id)

    def create_question_category(
        self, *, name: str, description: str, icon_name: str, color_class: str
    ) -> QuestionCategoryRecord:
        category = QuestionCategoryRecord(
            id=self._next_id("question_categories"),
            name=name,
            description=description,
            icon_name=icon_name,
            color_class=color_class,
        )
        self.question_categories[category.id] = category
        return category

    # Questions

    def get_questions(
        self, category_id: Optional[int] = None, level: Optional[int] = None
    ) -> List[QuestionRecord]:
        questions = list(self.questions.values())
        if category_id is not None:
            questions = [q for q in questions if q.category_id == category_id]
        if level is not None:
            questions = [q for q in questions if q.level == level]
        return questions

    def get_question(self, question_id: int) -> Optional[QuestionRecord]:
        return self.questions.get(question_id)

    def get_random_question(
        self, level: Optional[int] = None, category_id: Optional[int] = None
    ) -> Optional[QuestionRecord]:
        questions = self.get_questions(category_id=category_id, level=level)
        if not questions:
            return None
        return self.rng.choice(questions)

    def create_question(
        self, *, text: str, category_id: int, level: int = 1
    ) -> QuestionRecord:
        question = QuestionRecord(
            id=self._next_id("questions"),
            text=text,
            category_id=category_id,
            level=level or 1,
        )
        self.questions[question.id] = question
        return question

    # Question responses

    def get_question_responses(
        self, question_id: int, user_id: int
    ) -> List[QuestionResponseRecord]:
        return [
            r
            for r in self.question_responses.values()
            if r.question_id == question_id and r.user_id == user_id
        ]

    def get_shared_responses(self, user_id: int) -> List[QuestionResponseRecord]:
        return [
            r for r in self.question_responses.values() if r.is_visible_to(user_id)
        ]

    def create_question_response(
        self,
        *,
        question_id: int,
        user_id: int,
        response: str,
        shared_with: Iterable[int],
    ) -> QuestionResponseRecord:
        record = QuestionResponseRecord(
            id=self._next_id("question_responses"),
            question_id=question_id,
            user_id=user_id,
            response=response,
            shared_with=list(shared_with),
        )
        self.question_responses[record.id] = record
        return record

    # Messages

    def get_message(self, message_id: int) -> Optional[MessageRecord]:
        return self.messages.get(message_id)

    def get_messages(self, user_id: int, friend_id: int) -> List[MessageRecord]:
        conversation = [
            m
            for m in self.messages.values()
            if (m.sender_id == user_id and m.receiver_id == friend_id)
            or (m.sender_id == friend_id and m.receiver_id == user_id)
        ]
        return sorted(conversation, key=lambda m: (m.created_at, m.id))

    def get_unread_message_count(self, user_id: int) -> int:
        return sum(
            1
            for m in self.messages.values()
            if m.receiver_id == user_id and not m.read
        )

    def create_message(
        self, *, sender_id: int, receiver_id: int, content: str
    ) -> MessageRecord:
        message = MessageRecord(
            id=self._next_id("messages"),
            sender_id=sender_id,
            receiver_id=receiver_id,
            content=content,
        )
        self.messages[message.id] = message
        return message

    def mark_message_as_read(self, message_id: int) -> None:
        message = self.messages.get(message_id)
        if message:
            message.read = True

    # Activities

    def get_user_activities(self, user_id: int) -> List[ActivityRecord]:
        feed = [a for a in self.activities.values() if a.user_id == user_id]
        return sorted(feed, key=lambda a: (a.created_at, a.id), reverse=True)

    def create_activity(
        self,
        *,
        user_id: int,
        friend_id: int,
        type: ActivityType,
        content_id: Optional[int] = None,
        content: Optional[str] = None,
    ) -> ActivityRecord:
        activity = ActivityRecord(
            id=self._next_id("activities"),
            user_id=user_id,
            friend_id=friend_id,
            type=ActivityType(type),
            content_id=content_id,
            content=content,
        )
        self.activities[activity.id] = activity
        return activity


class PostgresDbClient:
    """
    SQLAlchemy-backed implementation. Accepts any SQLAlchemy URL (e.g., Postgres or SQLite for tests).
    """

    def __init__(self, database_url: str, rng: Optional[random.Random] = None):
        if not database_url:
            raise ValueError("DATABASE_URL is required for PostgresDbClient")
        self.rng = rng or random.Random()
        engine_kwargs: dict = {"future": True, "pool_pre_ping": True}
        if database_url.startswith("sqlite") and ":memory:" in database_url:
            # One shared connection, or every thread sees an empty database.
            engine_kwargs["connect_args"] = {"check_same_thread": False}
            engine_kwargs["poolclass"] = StaticPool
        else:
            engine_kwargs["pool_recycle"] = 1800
        self.engine = create_engine(database_url, **engine_kwargs)
        if self.engine.dialect.name == "sqlite":
            # Off by default in SQLite; Postgres always enforces them.
            event.listen(self.engine, "connect", _enable_sqlite_foreign_keys)
        self.Session = sessionmaker(
            bind=self.engine, class_=Session, expire_on_commit=False, future=True
        )
        Base.metadata.create_all(self.engine)
        logger.info("Database schema ready on %s", self.engine.url.render_as_string())

    # Row conversion

    def _to_user_record(self, row: "UserRow") -> UserRecord:
        return UserRecord(
            id=row.id,
            username=row.username,
            password=row.password,
            email=row.email,
            full_name=row.full_name,
            avatar_color=row.avatar_color,
            created_at=_as_utc(row.created_at),
        )

    def _to_connection_record(self, row: "FriendConnectionRow") -> FriendConnectionRecord:
        return FriendConnectionRecord(
            id=row.id,
            user_id=row.user_id,
            friend_id=row.friend_id,
            status=FriendStatus(row.status),
            level=row.level,
            progress=row.progress,
            created_at=_as_utc(row.created_at),
        )

    def _to_category_record(self, row: "QuestionCategoryRow") -> QuestionCategoryRecord:
        return QuestionCategoryRecord(
            id=row.id,
            name=row.name,
            description=row.description,
            icon_name=row.icon_name,
            color_class=row.color_class,
        )

    def _to_question_record(self, row: "QuestionRow") -> QuestionRecord:
        return QuestionRecord(
            id=row.id, text=row.text, category_id=row.category_id, level=row.level
        )

    def _to_response_record(self, row: "QuestionResponseRow") -> QuestionResponseRecord:
        return QuestionResponseRecord(
            id=row.id,
            question_id=row.question_id,
            user_id=row.user_id,
            response=row.response,
            shared_with=[int(uid) for uid in (row.shared_with or [])],
            created_at=_as_utc(row.created_at),
        )

    def _to_message_record(self, row: "MessageRow") -> MessageRecord:
        return MessageRecord(
            id=row.id,
            sender_id=row.sender_id,
            receiver_id=row.receiver_id,
            content=row.content,
            read=row.read,
            created_at=_as_utc(row.created_at),
        )

    def _to_activity_record(self, row: "ActivityRow") -> ActivityRecord:
        return ActivityRecord(
            id=row.id,
            user_id=row.user_id,
            friend_id=row.friend_id,
            type=ActivityType(row.type),
            content_id=row.content_id,
            content=row.content,
            created_at=_as_utc(row.created_at),
        )

    # Users

    def get_user(self, user_id: int) -> Optional[UserRecord]:
        with self.Session() as session:
            row = session.get(UserRow, user_id)
            return self._to_user_record(row) if row else None

    def get_user_by_username(self, username: str) -> Optional[UserRecord]:
        with self.Session() as session:
            stmt = select(UserRow).where(
                func.lower(UserRow.username) == username.lower()
            )
            row = session.execute(stmt).scalars().first()
            return self._to_user_record(row) if row else None

    def get_user_by_email(self, email: str) -> Optional[UserRecord]:
        with self.Session() as session:
            stmt = select(UserRow).where(func.lower(UserRow.email) == email.lower())
            row = session.execute(stmt).scalars().first()
            return self._to_user_record(row) if row else None

    def create_user(
        self,
        *,
        username: str,
        password: str,
        email: str,
        full_name: str,
        avatar_color: str,
    ) -> UserRecord:
        with self.Session() as session:
            row = UserRow(
                username=username,
                password=password,
                email=email,
                full_name=full_name,
                avatar_color=avatar_color,
                created_at=_utcnow(),
            )
            session.add(row)
            session.commit()
            session.refresh(row)
            return self._to_user_record(row)

    def count_users(self) -> int:
        with self.Session() as session:
            return session.execute(select(func.count(UserRow.id))).scalar_one()

    # Friend connections

    def get_friend_connections(self, user_id: int) -> List[FriendConnectionRecord]:
        with self.Session() as session:
            stmt = (
                select(FriendConnectionRow)
                .where(
                    or_(
                        FriendConnectionRow.user_id == user_id,
                        FriendConnectionRow.friend_id == user_id,
                    )
                )
                .order_by(FriendConnectionRow.id.asc())
            )
            rows = session.execute(stmt).scalars().all()
            return [self._to_connection_record(row) for row in rows]

    def get_friend_connection(
        self, user_id: int, friend_id: int
    ) -> Optional[FriendConnectionRecord]:
        with self.Session() as session:
            stmt = (
                select(FriendConnectionRow)
                .where(
                    or_(
                        and_(
                            FriendConnectionRow.user_id == user_id,
                            FriendConnectionRow.friend_id == friend_id,
                        ),
                        and_(
                            FriendConnectionRow.user_id == friend_id,
                            FriendConnectionRow.friend_id == user_id,
                        ),
                    )
                )
                .order_by(FriendConnectionRow.id.asc())
            )
            row = session.execute(stmt).scalars().first()
            return self._to_connection_record(row) if row else None

    def get_friend_connection_by_id(
        self, connection_id: int
    ) -> Optional[FriendConnectionRecord]:
        with self.Session() as session:
            row = session.get(FriendConnectionRow, connection_id)
            return self._to_connection_record(row) if row else None

    def create_friend_connection(
        self,
        *,
        user_id: int,
        friend_id: int,
        status: FriendStatus = FriendStatus.PENDING,
        level: int = 1,
        progress: int = 0,
    ) -> FriendConnectionRecord:
        with self.Session() as session:
            row = FriendConnectionRow(
                user_id=user_id,
                friend_id=friend_id,
                status=FriendStatus(status).value,
                level=level,
                progress=progress,
                created_at=_utcnow(),
            )
            session.add(row)
            session.commit()
            session.refresh(row)
            return self._to_connection_record(row)

    def update_friend_connection(
        self, connection_id: int, **changes
    ) -> FriendConnectionRecord:
        changes = _validate_connection_changes(changes)
        with self.Session() as session:
            row = session.get(FriendConnectionRow, connection_id)
            if not row:
                raise RecordNotFound(
                    f"Friend connection with id {connection_id} not found"
                )
            for key, value in changes.items():
                if key == "status":
                    value = value.value
                setattr(row, key, value)
            session.commit()
            session.refresh(row)
            return self._to_connection_record(row)

    # Question categories

    def get_question_categories(self) -> List[QuestionCategoryRecord]:
        with self.Session() as session:
            stmt = select(QuestionCategoryRow).order_by(QuestionCategoryRow.id.asc())
            rows = session.execute(stmt).scalars().all()
            return [self._to_category_record(row) for row in rows]

    def get_question_category(
        self, category_id: int
    ) -> Optional[QuestionCategoryRecord]:
        with self.Session() as session:
            row = session.get(QuestionCategoryRow, category_id)
            return self._to_category_record(row) if row else None

    def create_question_category(
        self, *, name: str, description: str, icon_name: str, color_class: str
    ) -> QuestionCategoryRecord:
        with self.Session() as session:
            row = QuestionCategoryRow(
                name=name,
                description=description,
                icon_name=icon_name,
                color_class=color_class,
            )
            session.add(row)
            session.commit()
            session.refresh(row)
            return self._to_category_record(row)

    # Questions

    def get_questions(
        self, category_id: Optional[int] = None, level: Optional[int] = None
    ) -> List[QuestionRecord]:
        with self.Session() as session:
            stmt = select(QuestionRow)
            if category_id is not None:
                stmt = stmt.where(QuestionRow.category_id == category_id)
            if level is not None:
                stmt = stmt.where(QuestionRow.level == level)
            rows = session.execute(stmt.order_by(QuestionRow.id.asc())).scalars().all()
            return [self._to_question_record(row) for row in rows]

    def get_question(self, question_id: int) -> Optional[QuestionRecord]:
        with self.Session() as session:
            row = session.get(QuestionRow, question_id)
            return self._to_question_record(row) if row else None

    def get_random_question(
        self, level: Optional[int] = None, category_id: Optional[int] = None
    ) -> Optional[QuestionRecord]:
        questions = self.get_questions(category_id=category_id, level=level)
        if not questions:
            return None
        return self.rng.choice(questions)

    def create_question(
        self, *, text: str, category_id: int, level: int = 1
    ) -> QuestionRecord:
        with self.Session() as session:
            row = QuestionRow(text=text, category_id=category_id, level=level or 1)
            session.add(row)
            session.commit()
            session.refresh(row)
            return self._to_question_record(row)

    # Question responses

    def get_question_responses(
        self, question_id: int, user_id: int
    ) -> List[QuestionResponseRecord]:
        with self.Session() as session:
            stmt = (
                select(QuestionResponseRow)
                .where(
                    QuestionResponseRow.question_id == question_id,
                    QuestionResponseRow.user_id == user_id,
                )
                .order_by(QuestionResponseRow.id.asc())
            )
            rows = session.execute(stmt).scalars().all()
            return [self._to_response_record(row) for row in rows]

    def get_shared_responses(self, user_id: int) -> List[QuestionResponseRecord]:
        # JSON containment differs between Postgres and SQLite, so filter here.
        with self.Session() as session:
            stmt = select(QuestionResponseRow).order_by(QuestionResponseRow.id.asc())
            rows = session.execute(stmt).scalars().all()
            records = [self._to_response_record(row) for row in rows]
        return [r for r in records if r.is_visible_to(user_id)]

    def create_question_response(
        self,
        *,
        question_id: int,
        user_id: int,
        response: str,
        shared_with: Iterable[int],
    ) -> QuestionResponseRecord:
        with self.Session() as session:
            row = QuestionResponseRow(
                question_id=question_id,
                user_id=user_id,
                response=response,
                shared_with=list(shared_with),
                created_at=_utcnow(),
            )
            session.add(row)
            session.commit()
            session.refresh(row)
            return self._to_response_record(row)

    # Messages

    def get_message(self, message_id: int) -> Optional[MessageRecord]:
        with self.Session() as session:
            row = session.get(MessageRow, message_id)
            return self._to_message_record(row) if row else None

    def get_messages(self, user_id: int, friend_id: int) -> List[MessageRecord]:
        with self.Session() as session:
            stmt = (
                select(MessageRow)
                .where(
                    or_(
                        and_(
                            MessageRow.sender_id == user_id,
                            MessageRow.receiver_id == friend_id,
                        ),
                        and_(
                            MessageRow.sender_id == friend_id,
                            MessageRow.receiver_id == user_id,
                        ),
                    )
                )
                .order_by(MessageRow.created_at.asc(), MessageRow.id.asc())
            )
            rows = session.execute(stmt).scalars().all()
            return [self._to_message_record(row) for row in rows]

    def get_unread_message_count(self, user_id: int) -> int:
        with self.Session() as session:
            stmt = select(func.count(MessageRow.id)).where(
                MessageRow.receiver_id == user_id,
                MessageRow.read.is_(False),
            )
            return session.execute(stmt).scalar_one()

    def create_message(
        self, *, sender_id: int, receiver_id: int, content: str
    ) -> MessageRecord:
        with self.Session() as session:
            row = MessageRow(
                sender_id=sender_id,
                receiver_id=receiver_id,
                content=content,
                read=False,
                created_at=_utcnow(),
            )
            session.add(row)
            session.commit()
            session.refresh(row)
            return self._to_message_record(row)

    def mark_message_as_read(self, message_id: int) -> None:
        with self.Session() as session:
            row = session.get(MessageRow, message_id)
            if not row:
                return
            row.read = True
            session.commit()

    # Activities

    def get_user_activities(self, user_id: int) -> List[ActivityRecord]:
        with self.Session() as session:
            stmt = (
                select(ActivityRow)
                .where(ActivityRow.user_id == user_id)
                .order_by(ActivityRow.created_at.desc(), ActivityRow.id.desc())
            )
            rows = session.execute(stmt).scalars().all()
            return [self._to_activity_record(row) for row in rows]

    def create_activity(
        self,
        *,
        user_id: int,
        friend_id: int,
        type: ActivityType,
        content_id: Optional[int] = None,
        content: Optional[str] = None,
    ) -> ActivityRecord:
        with self.Session() as session:
            row = ActivityRow(
                user_id=user_id,
                friend_id=friend_id,
                type=ActivityType(type).value,
                content_id=content_id,
                content=content,
                created_at=_utcnow(),
            )
            session.add(row)
            session.commit()
            session.refresh(row)
            return self._to_activity_record(row)


Base = declarative_base()


class UserRow(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)
    username = Column(String, nullable=False, unique=True)
    password = Column(String, nullable=False)
    email = Column(String, nullable=False, unique=True)
    full_name = Column(String, nullable=False)
    avatar_color = Column(String, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False)


class FriendConnectionRow(Base):
    __tablename__ = "friend_connections"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    friend_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    status = Column(String, nullable=False, default=FriendStatus.PENDING.value)
    level = Column(Integer, nullable=False, default=1)
    progress = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), nullable=False)


class QuestionCategoryRow(Base):
    __tablename__ = "question_categories"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String, nullable=False)
    description = Column(Text, nullable=False)
    icon_name = Column(String, nullable=False)
    color_class = Column(String, nullable=False)


class QuestionRow(Base):
    __tablename__ = "questions"

    id = Column(Integer, primary_key=True, autoincrement=True)
    text = Column(Text, nullable=False)
    category_id = Column(
        Integer, ForeignKey("question_categories.id"), nullable=False, index=True
    )
    level = Column(Integer, nullable=False, default=1)


class QuestionResponseRow(Base):
    __tablename__ = "question_responses"

    id = Column(Integer, primary_key=True, autoincrement=True)
    question_id = Column(Integer, ForeignKey("questions.id"), nullable=False)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    response = Column(Text, nullable=False)
    # list of user ids
    shared_with = Column(JSON, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False)


class MessageRow(Base):
    __tablename__ = "messages"

    id = Column(Integer, primary_key=True, autoincrement=True)
    sender_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    receiver_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    content = Column(Text, nullable=False)
    read = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), nullable=False)


class ActivityRow(Base):
    __tablename__ = "activities"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    friend_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    type = Column(String, nullable=False)
    content_id = Column(Integer, nullable=True)
    content = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False)
