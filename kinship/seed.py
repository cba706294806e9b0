"""
Sample dataset for local development and demos.
"""

from __future__ import annotations

import logging

from kinship.db import DbClient
from kinship.enums import ActivityType, FriendStatus
from kinship.security import hash_password

logger = logging.getLogger(__name__)

SAMPLE_PASSWORD = "password123"

SAMPLE_USERS = (
    {
        "username": "alex",
        "email": "alex@example.com",
        "full_name": "Alex Johnson",
        "avatar_color": "bg-gradient-to-r from-primary-400 to-secondary-400",
    },
    {
        "username": "sarah",
        "email": "sarah@example.com",
        "full_name": "Sarah Thompson",
        "avatar_color": "bg-secondary-100",
    },
    {
        "username": "jamie",
        "email": "jamie@example.com",
        "full_name": "Jamie Cruz",
        "avatar_color": "bg-accent-100",
    },
    {
        "username": "mike",
        "email": "mike@example.com",
        "full_name": "Mike Rivera",
        "avatar_color": "bg-primary-100",
    },
)

# (friend username, progress) for alex's accepted connections
SAMPLE_CONNECTIONS = (("sarah", 70), ("jamie", 40), ("mike", 80))

# Each category carries its three level-1 prompts.
SAMPLE_CATEGORIES = (
    (
        "Personal History",
        "Childhood memories, family stories, and formative experiences",
        "book-open",
        "bg-secondary-100",
        (
            "What's a childhood memory that still makes you smile?",
            "What was your favorite toy or game growing up?",
            "Who was your childhood hero and why?",
        ),
    ),
    (
        "Values & Beliefs",
        "Core principles, worldviews, and philosophical perspectives",
        "map",
        "bg-primary-100",
        (
            "What's one principle you try to live by?",
            "What value do you wish more people embraced?",
            "What's something you've changed your mind about in the last few years?",
        ),
    ),
    (
        "Hypotheticals",
        "Thought experiments, creative scenarios, and what-ifs",
        "sparkles",
        "bg-accent-100",
        (
            "If you could live in any fictional world, which would you choose and why?",
            "If you had to teach a class on any subject, what would it be?",
            "If you could have dinner with anyone from history, who would it be?",
        ),
    ),
    (
        "Aspirations & Dreams",
        "Goals, ambitions, bucket list items, and future hopes",
        "target",
        "bg-secondary-100",
        (
            "If you could master any skill instantly, what would it be?",
            "What's something you want to accomplish in the next year?",
            "What's a place you've always wanted to visit?",
        ),
    ),
    (
        "Preferences & Favorites",
        "Tastes in entertainment, food, activities, etc.",
        "heart",
        "bg-accent-100",
        (
            "What's your favorite way to spend a rainy day?",
            "What book, movie, or show do you find yourself recommending most often?",
            "What's your comfort food and is there a story behind it?",
        ),
    ),
    (
        "Work & Purpose",
        "Career reflections, meaning, contribution",
        "briefcase",
        "bg-primary-100",
        (
            "What aspect of your job/studies brings you the most satisfaction?",
            "What's a work challenge you're proud of overcoming?",
            "What would your ideal workday look like?",
        ),
    ),
    (
        "Current Life",
        "Day-to-day experiences, recent insights, present circumstances",
        "calendar",
        "bg-secondary-100",
        (
            "What are three things you're grateful for today?",
            "What's something small that brought you joy recently?",
            "What hobby or activity have you been enjoying lately?",
        ),
    ),
)

# (author, question index, response, shared with)
SAMPLE_RESPONSES = (
    (
        "sarah",
        0,
        "Building blanket forts with my siblings during rainy days. We'd spend "
        "hours creating elaborate 'buildings' with secret rooms and passages.",
        ("alex", "jamie"),
    ),
    (
        "sarah",
        6,
        "I'd choose the world of Avatar: The Last Airbender. The idea of bending "
        "elements is fascinating, and the show has such rich cultures and "
        "philosophies.",
        ("alex",),
    ),
    (
        "jamie",
        3,
        "Leave things better than you found them - whether that's a physical "
        "space, a project, or a relationship.",
        ("alex", "sarah", "mike"),
    ),
    (
        "jamie",
        9,
        "Playing the piano. I've always loved piano music, and it seems like a "
        "skill that brings joy to both the player and listeners for a lifetime.",
        ("alex",),
    ),
    (
        "mike",
        18,
        "1. My morning coffee - it was perfect today. 2. A call with an old "
        "friend I hadn't spoken to in months. 3. The sunset I caught while "
        "walking home.",
        ("alex", "sarah"),
    ),
    (
        "mike",
        12,
        "Reading by the window with a cup of tea, listening to the rain. "
        "There's something incredibly peaceful about being cozy indoors while "
        "it's storming outside.",
        ("alex", "jamie"),
    ),
)

# (sender, receiver, content)
SAMPLE_MESSAGES = (
    ("alex", "sarah", "Hey Sarah! I saw your answer about blanket forts - that brought back memories!"),
    ("sarah", "alex", "Haha, glad to hear it! Did you build forts as a kid too?"),
    ("alex", "sarah", "Absolutely! With every blanket and pillow I could find. My parents weren't always thrilled though \U0001F604"),
    ("sarah", "alex", "Same here! We should plan an adult fort-building day sometime for nostalgia's sake."),
    ("alex", "jamie", "I really liked your principle about leaving things better than you found them. Do you have any examples of how you apply that day-to-day?"),
    ("jamie", "alex", "Thanks! It can be little things like tidying up a meeting room after using it, or bigger things like mentoring someone at work. It helps me stay mindful."),
    ("alex", "jamie", "That's a great perspective. I might adopt that principle too!"),
    ("alex", "mike", "Hey! Let's catch up this weekend. Are you free?"),
    ("mike", "alex", "I'm free on Saturday afternoon! Want to grab coffee?"),
    ("alex", "mike", "Perfect! How about that new place downtown, around 2pm?"),
    ("mike", "alex", "Sounds great! Looking forward to it."),
)

# (friend, type, question index or None, content) in alex's feed
SAMPLE_ACTIVITIES = (
    ("sarah", ActivityType.QUESTION_ANSWERED, 0, "Building blanket forts with my siblings during rainy days..."),
    ("jamie", ActivityType.QUESTION_ASKED, 9, "If you could master any skill instantly, what would it be?"),
    ("mike", ActivityType.MESSAGE_SENT, None, "Hey! Let's catch up this weekend. Are you free?"),
    ("jamie", ActivityType.QUESTION_ANSWERED, 3, "Leave things better than you found them..."),
    ("mike", ActivityType.QUESTION_ANSWERED, 18, "1. My morning coffee - it was perfect today..."),
)


def seed_sample_data(db: DbClient) -> bool:
    """
    Populate an empty store with the demo users, prompts and conversations.

    Returns False (and writes nothing) when any user already exists.
    """
    if db.count_users():
        logger.info("Skipping sample data: store already has users")
        return False

    password = hash_password(SAMPLE_PASSWORD)
    users = {
        profile["username"]: db.create_user(password=password, **profile)
        for profile in SAMPLE_USERS
    }
    owner = users["alex"]

    for friend_name, progress in SAMPLE_CONNECTIONS:
        db.create_friend_connection(
            user_id=owner.id,
            friend_id=users[friend_name].id,
            status=FriendStatus.ACCEPTED,
            level=1,
            progress=progress,
        )

    questions = []
    for name, description, icon_name, color_class, prompts in SAMPLE_CATEGORIES:
        category = db.create_question_category(
            name=name,
            description=description,
            icon_name=icon_name,
            color_class=color_class,
        )
        for text in prompts:
            questions.append(
                db.create_question(text=text, category_id=category.id, level=1)
            )

    for author, question_index, response, shared_with in SAMPLE_RESPONSES:
        db.create_question_response(
            question_id=questions[question_index].id,
            user_id=users[author].id,
            response=response,
            shared_with=[users[name].id for name in shared_with],
        )

    for sender, receiver, content in SAMPLE_MESSAGES:
        db.create_message(
            sender_id=users[sender].id,
            receiver_id=users[receiver].id,
            content=content,
        )

    for friend_name, activity_type, question_index, content in SAMPLE_ACTIVITIES:
        db.create_activity(
            user_id=owner.id,
            friend_id=users[friend_name].id,
            type=activity_type,
            content_id=(
                questions[question_index].id if question_index is not None else None
            ),
            content=content,
        )

    logger.info(
        "Seeded sample data: %d users, %d questions, %d messages",
        len(users),
        len(questions),
        len(SAMPLE_MESSAGES),
    )
    return True
