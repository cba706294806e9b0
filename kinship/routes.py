"""
HTTP routes for the Kinship API.
"""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request

from kinship.db import DbClient, RecordNotFound
from kinship.dependencies import (
    SESSION_USER_KEY,
    get_current_user_id,
    get_db_client,
)
from kinship.enrichment import (
    enrich_activities,
    enrich_connection,
    enrich_connections,
    enrich_shared_responses,
    message_preview,
    public_user,
)
from kinship.enums import ActivityType, FriendStatus
from kinship.schemas import (
    ActivityItem,
    AddFriendRequest,
    FriendConnectionItem,
    FriendStatusUpdate,
    LoginRequest,
    MessageCreate,
    MessageItem,
    MessageResponse,
    QuestionCategoryItem,
    QuestionCreate,
    QuestionItem,
    QuestionResponseCreate,
    QuestionResponseItem,
    RandomQuestionItem,
    RegisterRequest,
    SharedQuestionResponseItem,
    UnreadCountResponse,
    UserItem,
)
from kinship.security import hash_password, verify_password

logger = logging.getLogger(__name__)

router = APIRouter()


# Auth


@router.post("/auth/register", response_model=UserItem, status_code=201)
def register(
    payload: RegisterRequest,
    request: Request,
    db: DbClient = Depends(get_db_client),
):
    if db.get_user_by_email(payload.email):
        raise HTTPException(
            status_code=400, detail="User with this email already exists"
        )
    if db.get_user_by_username(payload.username):
        raise HTTPException(status_code=400, detail="Username already taken")

    user = db.create_user(
        username=payload.username,
        password=hash_password(payload.password),
        email=payload.email,
        full_name=payload.full_name,
        avatar_color=payload.avatar_color,
    )
    request.session[SESSION_USER_KEY] = user.id
    logger.info("Registered user %s (%d)", user.username, user.id)
    return public_user(user)


@router.post("/auth/login", response_model=UserItem)
def login(
    payload: LoginRequest,
    request: Request,
    db: DbClient = Depends(get_db_client),
):
    user = db.get_user_by_username(payload.username)
    if not user or not verify_password(payload.password, user.password):
        logger.warning("Failed login for %s", payload.username)
        raise HTTPException(status_code=401, detail="Invalid credentials")
    request.session[SESSION_USER_KEY] = user.id
    return public_user(user)


@router.post("/auth/logout", response_model=MessageResponse)
def logout(request: Request):
    request.session.clear()
    return MessageResponse(message="Logged out successfully")


@router.get("/auth/me", response_model=UserItem)
def me(
    user_id: int = Depends(get_current_user_id),
    db: DbClient = Depends(get_db_client),
):
    user = db.get_user(user_id)
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    return public_user(user)


# Users


@router.get("/users/{user_id}", response_model=UserItem)
def get_user(
    user_id: int,
    _current_user_id: int = Depends(get_current_user_id),
    db: DbClient = Depends(get_db_client),
):
    user = db.get_user(user_id)
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    return public_user(user)


# Friends


@router.get("/friends", response_model=list[FriendConnectionItem])
def list_friends(
    user_id: int = Depends(get_current_user_id),
    db: DbClient = Depends(get_db_client),
):
    return enrich_connections(db, user_id)


@router.post("/friends", response_model=FriendConnectionItem, status_code=201)
def add_friend(
    payload: AddFriendRequest,
    user_id: int = Depends(get_current_user_id),
    db: DbClient = Depends(get_db_client),
):
    friend = db.get_user_by_email(payload.friend_email)
    if not friend:
        raise HTTPException(status_code=404, detail="User with this email not found")
    if friend.id == user_id:
        raise HTTPException(
            status_code=400, detail="You cannot add yourself as a friend"
        )
    if db.get_friend_connection(user_id, friend.id):
        raise HTTPException(status_code=400, detail="Friend connection already exists")

    connection = db.create_friend_connection(
        user_id=user_id,
        friend_id=friend.id,
        status=FriendStatus.PENDING,
        level=1,
        progress=0,
    )
    logger.info("User %d sent a friend request to %d", user_id, friend.id)
    return {**connection.as_dict(), "friend": public_user(friend)}


@router.put("/friends/{connection_id}/status", response_model=FriendConnectionItem)
def update_friend_status(
    connection_id: int,
    payload: FriendStatusUpdate,
    user_id: int = Depends(get_current_user_id),
    db: DbClient = Depends(get_db_client),
):
    connection = db.get_friend_connection_by_id(connection_id)
    if not connection:
        raise HTTPException(status_code=404, detail="Friend connection not found")
    if not connection.involves(user_id):
        raise HTTPException(
            status_code=403, detail="Not a party to this friend connection"
        )
    if payload.status == FriendStatus.ACCEPTED and connection.friend_id != user_id:
        raise HTTPException(
            status_code=403, detail="Only the recipient can accept a friend request"
        )

    try:
        updated = db.update_friend_connection(connection_id, status=payload.status)
    except RecordNotFound:
        raise HTTPException(status_code=404, detail="Friend connection not found")

    enriched = enrich_connection(db, updated, user_id)
    if enriched is None:
        raise HTTPException(status_code=404, detail="Friend not found")
    logger.info(
        "Friend connection %d set to %s by user %d",
        connection_id,
        payload.status,
        user_id,
    )
    return enriched


# Questions


@router.get("/question-categories", response_model=list[QuestionCategoryItem])
def list_question_categories(
    _user_id: int = Depends(get_current_user_id),
    db: DbClient = Depends(get_db_client),
):
    return [category.as_dict() for category in db.get_question_categories()]


@router.get("/questions", response_model=list[QuestionItem])
def list_questions(
    category_id: Optional[int] = Query(None, alias="categoryId"),
    level: Optional[int] = Query(None),
    _user_id: int = Depends(get_current_user_id),
    db: DbClient = Depends(get_db_client),
):
    return [
        question.as_dict()
        for question in db.get_questions(category_id=category_id, level=level)
    ]


@router.post("/questions", response_model=QuestionItem, status_code=201)
def create_question(
    payload: QuestionCreate,
    _user_id: int = Depends(get_current_user_id),
    db: DbClient = Depends(get_db_client),
):
    if not db.get_question_category(payload.category_id):
        raise HTTPException(status_code=400, detail="Unknown question category")
    question = db.create_question(
        text=payload.text, category_id=payload.category_id, level=payload.level
    )
    return question.as_dict()


@router.get("/questions/random", response_model=RandomQuestionItem)
def random_question(
    level: Optional[int] = Query(None),
    category_id: Optional[int] = Query(None, alias="categoryId"),
    _user_id: int = Depends(get_current_user_id),
    db: DbClient = Depends(get_db_client),
):
    question = db.get_random_question(level=level, category_id=category_id)
    if not question:
        raise HTTPException(status_code=404, detail="No questions found")
    category = db.get_question_category(question.category_id)
    return {
        **question.as_dict(),
        "category": category.as_dict() if category else None,
    }


# Question responses


@router.post(
    "/question-responses", response_model=QuestionResponseItem, status_code=201
)
def create_question_response(
    payload: QuestionResponseCreate,
    user_id: int = Depends(get_current_user_id),
    db: DbClient = Depends(get_db_client),
):
    question = db.get_question(payload.question_id)
    if not question:
        raise HTTPException(status_code=404, detail="Question not found")

    shared_with = list(dict.fromkeys(payload.shared_with))
    unknown = [friend_id for friend_id in shared_with if not db.get_user(friend_id)]
    if unknown:
        raise HTTPException(
            status_code=404,
            detail=f"Unknown users in sharedWith: {', '.join(map(str, unknown))}",
        )

    response = db.create_question_response(
        question_id=question.id,
        user_id=user_id,
        response=payload.response,
        shared_with=shared_with,
    )
    for friend_id in shared_with:
        db.create_activity(
            user_id=friend_id,
            friend_id=user_id,
            type=ActivityType.QUESTION_ANSWERED,
            content_id=question.id,
            content=question.text,
        )
    logger.info(
        "User %d answered question %d, shared with %d users",
        user_id,
        question.id,
        len(shared_with),
    )
    return response.as_dict()


@router.get(
    "/question-responses/shared", response_model=list[SharedQuestionResponseItem]
)
def list_shared_responses(
    user_id: int = Depends(get_current_user_id),
    db: DbClient = Depends(get_db_client),
):
    return enrich_shared_responses(db, user_id)


# Messages


@router.get("/messages/unread-count", response_model=UnreadCountResponse)
def unread_message_count(
    user_id: int = Depends(get_current_user_id),
    db: DbClient = Depends(get_db_client),
):
    return UnreadCountResponse(count=db.get_unread_message_count(user_id))


@router.get("/messages/{friend_id}", response_model=list[MessageItem])
def list_messages(
    friend_id: int,
    user_id: int = Depends(get_current_user_id),
    db: DbClient = Depends(get_db_client),
):
    return [message.as_dict() for message in db.get_messages(user_id, friend_id)]


@router.post("/messages", response_model=MessageItem, status_code=201)
def send_message(
    payload: MessageCreate,
    user_id: int = Depends(get_current_user_id),
    db: DbClient = Depends(get_db_client),
):
    if not db.get_user(payload.receiver_id):
        raise HTTPException(status_code=404, detail="Recipient not found")

    message = db.create_message(
        sender_id=user_id, receiver_id=payload.receiver_id, content=payload.content
    )
    db.create_activity(
        user_id=payload.receiver_id,
        friend_id=user_id,
        type=ActivityType.MESSAGE_SENT,
        content=message_preview(payload.content),
    )
    return message.as_dict()


@router.put("/messages/{message_id}/read", response_model=MessageResponse)
def mark_message_read(
    message_id: int,
    user_id: int = Depends(get_current_user_id),
    db: DbClient = Depends(get_db_client),
):
    message = db.get_message(message_id)
    if not message:
        raise HTTPException(status_code=404, detail="Message not found")
    if message.receiver_id != user_id:
        raise HTTPException(
            status_code=403, detail="Only the recipient can mark a message as read"
        )
    db.mark_message_as_read(message_id)
    return MessageResponse(message="Message marked as read")


# Activities


@router.get("/activities", response_model=list[ActivityItem])
def list_activities(
    user_id: int = Depends(get_current_user_id),
    db: DbClient = Depends(get_db_client),
):
    return enrich_activities(db, user_id)
