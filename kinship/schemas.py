"""
Pydantic schemas for the Kinship API.

Bodies travel as camelCase JSON; requests may also use snake_case names.
"""

from __future__ import annotations

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field
from pydantic.alias_generators import to_camel

from kinship.enums import ActivityType, FriendStatus


class ApiModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class RegisterRequest(ApiModel):
    username: str = Field(..., min_length=1, max_length=64)
    password: str = Field(..., min_length=1, max_length=256)
    email: EmailStr
    full_name: str = Field(..., min_length=1, max_length=128)
    avatar_color: str = Field(default="bg-primary-100", max_length=128)


class LoginRequest(ApiModel):
    username: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)


class MessageResponse(ApiModel):
    message: str


class UserItem(ApiModel):
    id: int
    username: str
    email: str
    full_name: str
    avatar_color: str
    created_at: datetime


class AddFriendRequest(ApiModel):
    friend_email: EmailStr


class FriendStatusUpdate(ApiModel):
    status: Literal["accepted", "declined"]


class FriendConnectionItem(ApiModel):
    id: int
    user_id: int
    friend_id: int
    status: FriendStatus
    level: int
    progress: int
    created_at: datetime
    friend: UserItem


class QuestionCategoryItem(ApiModel):
    id: int
    name: str
    description: str
    icon_name: str
    color_class: str


class QuestionCreate(ApiModel):
    text: str = Field(..., min_length=1, max_length=1024)
    category_id: int
    level: int = Field(default=1, ge=1)


class QuestionItem(ApiModel):
    id: int
    text: str
    category_id: int
    level: int


class RandomQuestionItem(QuestionItem):
    category: Optional[QuestionCategoryItem] = None


class QuestionResponseCreate(ApiModel):
    question_id: int
    response: str = Field(..., min_length=1, max_length=10000)
    shared_with: list[int] = Field(default_factory=list)


class QuestionResponseItem(ApiModel):
    id: int
    question_id: int
    user_id: int
    response: str
    shared_with: list[int]
    created_at: datetime


class SharedQuestionResponseItem(QuestionResponseItem):
    question: QuestionItem
    user: UserItem


class MessageCreate(ApiModel):
    receiver_id: int
    content: str = Field(..., min_length=1, max_length=5000)


class MessageItem(ApiModel):
    id: int
    sender_id: int
    receiver_id: int
    content: str
    read: bool
    created_at: datetime


class UnreadCountResponse(ApiModel):
    count: int


class ActivityItem(ApiModel):
    id: int
    user_id: int
    friend_id: int
    type: ActivityType
    content_id: Optional[int] = None
    content: Optional[str] = None
    created_at: datetime
    friend: UserItem
