import unittest
from unittest.mock import patch

from fastapi.testclient import TestClient

from kinship.app import create_app
from kinship.config import DEFAULT_SESSION_SECRET, Settings
from kinship.db import InMemoryDbClient, PostgresDbClient
from kinship.dependencies import get_db_client
from kinship.seed import SAMPLE_PASSWORD, seed_sample_data

# Ids assigned by seed_sample_data on an empty in-memory store.
ALEX, SARAH, JAMIE, MIKE = 1, 2, 3, 4


class KinshipApiTestCase(unittest.TestCase):
    seed = True

    def make_db(self):
        return InMemoryDbClient()

    def setUp(self):
        self.db = self.make_db()
        if self.seed:
            seed_sample_data(self.db)
        app = create_app()
        app.dependency_overrides[get_db_client] = lambda: self.db
        self.client = TestClient(app)

    def login(self, username="alex", password=SAMPLE_PASSWORD):
        response = self.client.post(
            "/api/auth/login", json={"username": username, "password": password}
        )
        self.assertEqual(response.status_code, 200, response.text)
        return response.json()


class AuthApiTests(KinshipApiTestCase):
    def test_protected_routes_require_session(self):
        for path in ("/api/auth/me", "/api/friends", "/api/activities"):
            response = self.client.get(path)
            self.assertEqual(response.status_code, 401)
            self.assertEqual(response.json()["detail"], "Not authenticated")

    def test_register_logs_in_and_hides_password(self):
        response = self.client.post(
            "/api/auth/register",
            json={
                "username": "dana",
                "password": "s3cret",
                "email": "dana@example.com",
                "fullName": "Dana Lee",
                "avatarColor": "bg-accent-100",
            },
        )
        self.assertEqual(response.status_code, 201, response.text)
        payload = response.json()
        self.assertEqual(payload["fullName"], "Dana Lee")
        self.assertEqual(payload["avatarColor"], "bg-accent-100")
        self.assertNotIn("password", payload)

        me = self.client.get("/api/auth/me")
        self.assertEqual(me.status_code, 200)
        self.assertEqual(me.json()["id"], payload["id"])

        stored = self.db.get_user(payload["id"])
        self.assertNotEqual(stored.password, "s3cret")

    def test_register_rejects_duplicates(self):
        base = {"password": "pw", "fullName": "Someone"}
        taken_email = self.client.post(
            "/api/auth/register",
            json={**base, "username": "new", "email": "ALEX@example.com"},
        )
        self.assertEqual(taken_email.status_code, 400)
        self.assertEqual(
            taken_email.json()["detail"], "User with this email already exists"
        )

        taken_username = self.client.post(
            "/api/auth/register",
            json={**base, "username": "Sarah", "email": "new@example.com"},
        )
        self.assertEqual(taken_username.status_code, 400)
        self.assertEqual(taken_username.json()["detail"], "Username already taken")

    def test_login_and_logout(self):
        bad = self.client.post(
            "/api/auth/login", json={"username": "alex", "password": "nope"}
        )
        self.assertEqual(bad.status_code, 401)

        user = self.login()
        self.assertEqual(user["username"], "alex")
        self.assertNotIn("password", user)

        logout = self.client.post("/api/auth/logout")
        self.assertEqual(logout.json(), {"message": "Logged out successfully"})
        self.assertEqual(self.client.get("/api/auth/me").status_code, 401)

    def test_get_user(self):
        self.login()
        response = self.client.get(f"/api/users/{SARAH}")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["fullName"], "Sarah Thompson")
        self.assertEqual(self.client.get("/api/users/999").status_code, 404)
        self.assertEqual(self.client.get("/api/users/abc").status_code, 422)


class FriendsApiTests(KinshipApiTestCase):
    def test_list_friends_attaches_other_party(self):
        self.login()
        friends = self.client.get("/api/friends").json()
        self.assertEqual(
            [(f["friend"]["username"], f["progress"]) for f in friends],
            [("sarah", 70), ("jamie", 40), ("mike", 80)],
        )
        self.assertTrue(all(f["status"] == "accepted" for f in friends))
        self.assertNotIn("password", friends[0]["friend"])

        self.client.post("/api/auth/logout")
        self.login("sarah")
        friends = self.client.get("/api/friends").json()
        self.assertEqual(len(friends), 1)
        self.assertEqual(friends[0]["friend"]["username"], "alex")
        self.assertEqual(friends[0]["userId"], ALEX)

    def test_friend_request_lifecycle(self):
        self.client.post(
            "/api/auth/register",
            json={
                "username": "dana",
                "password": "pw",
                "email": "dana@example.com",
                "fullName": "Dana Lee",
            },
        )
        self.client.post("/api/auth/logout")
        self.login()

        created = self.client.post(
            "/api/friends", json={"friendEmail": "dana@example.com"}
        )
        self.assertEqual(created.status_code, 201, created.text)
        connection = created.json()
        self.assertEqual(connection["status"], "pending")
        self.assertEqual((connection["level"], connection["progress"]), (1, 0))
        self.assertEqual(connection["friend"]["username"], "dana")

        duplicate = self.client.post(
            "/api/friends", json={"friendEmail": "dana@example.com"}
        )
        self.assertEqual(duplicate.status_code, 400)
        self.assertEqual(duplicate.json()["detail"], "Friend connection already exists")

        self_accept = self.client.put(
            f"/api/friends/{connection['id']}/status", json={"status": "accepted"}
        )
        self.assertEqual(self_accept.status_code, 403)
        self.assertEqual(
            self.db.get_friend_connection_by_id(connection["id"]).status, "pending"
        )

        self.client.post("/api/auth/logout")
        self.login("dana", "pw")
        pending = self.client.get("/api/friends").json()
        self.assertEqual(pending[0]["friend"]["username"], "alex")

        accepted = self.client.put(
            f"/api/friends/{connection['id']}/status", json={"status": "accepted"}
        )
        self.assertEqual(accepted.status_code, 200, accepted.text)
        self.assertEqual(accepted.json()["status"], "accepted")
        self.assertEqual(accepted.json()["friend"]["username"], "alex")

    def test_add_friend_errors(self):
        self.login()
        self.assertEqual(
            self.client.post(
                "/api/friends", json={"friendEmail": "ghost@example.com"}
            ).status_code,
            404,
        )
        self_add = self.client.post(
            "/api/friends", json={"friendEmail": "alex@example.com"}
        )
        self.assertEqual(self_add.status_code, 400)
        self.assertEqual(
            self.client.post("/api/friends", json={}).status_code, 422
        )

    def test_status_update_checks(self):
        self.login("jamie")
        # connection 1 is alex <-> sarah
        forbidden = self.client.put(
            "/api/friends/1/status", json={"status": "declined"}
        )
        self.assertEqual(forbidden.status_code, 403)
        missing = self.client.put(
            "/api/friends/999/status", json={"status": "declined"}
        )
        self.assertEqual(missing.status_code, 404)
        invalid = self.client.put("/api/friends/2/status", json={"status": "pending"})
        self.assertEqual(invalid.status_code, 422)

    def test_requester_can_decline(self):
        self.login()
        # connection 1 was sent by alex
        declined = self.client.put("/api/friends/1/status", json={"status": "declined"})
        self.assertEqual(declined.status_code, 200, declined.text)
        self.assertEqual(declined.json()["status"], "declined")
        self.assertEqual(declined.json()["friend"]["username"], "sarah")


class QuestionsApiTests(KinshipApiTestCase):
    def setUp(self):
        super().setUp()
        self.login()

    def test_categories_and_filters(self):
        categories = self.client.get("/api/question-categories").json()
        self.assertEqual(len(categories), 7)
        self.assertEqual(categories[0]["iconName"], "book-open")

        questions = self.client.get("/api/questions", params={"categoryId": 2}).json()
        self.assertEqual(len(questions), 3)
        self.assertTrue(all(q["categoryId"] == 2 for q in questions))
        self.assertEqual(
            len(self.client.get("/api/questions", params={"level": 1}).json()), 21
        )
        self.assertEqual(
            self.client.get("/api/questions", params={"level": 3}).json(), []
        )

    def test_random_question_includes_category(self):
        response = self.client.get(
            "/api/questions/random", params={"level": 1, "categoryId": 3}
        )
        self.assertEqual(response.status_code, 200)
        payload = response.json()
        self.assertEqual(payload["categoryId"], 3)
        self.assertEqual(payload["category"]["name"], "Hypotheticals")

        empty = self.client.get("/api/questions/random", params={"level": 5})
        self.assertEqual(empty.status_code, 404)
        self.assertEqual(empty.json()["detail"], "No questions found")

    def test_create_question(self):
        created = self.client.post(
            "/api/questions",
            json={"text": "What song is stuck in your head?", "categoryId": 5},
        )
        self.assertEqual(created.status_code, 201)
        self.assertEqual(created.json()["level"], 1)
        self.assertEqual(created.json()["id"], 22)

        unknown = self.client.post(
            "/api/questions", json={"text": "Orphan?", "categoryId": 99}
        )
        self.assertEqual(unknown.status_code, 400)


class QuestionResponsesApiTests(KinshipApiTestCase):
    def test_answer_notifies_each_shared_friend_once(self):
        self.login()
        response = self.client.post(
            "/api/question-responses",
            json={
                "questionId": 2,
                "response": "A wooden yo-yo.",
                "sharedWith": [SARAH, JAMIE, SARAH],
            },
        )
        self.assertEqual(response.status_code, 201, response.text)
        payload = response.json()
        self.assertEqual(payload["userId"], ALEX)
        self.assertEqual(payload["sharedWith"], [SARAH, JAMIE])

        sarah_feed = self.db.get_user_activities(SARAH)
        self.assertEqual(len(sarah_feed), 1)
        self.assertEqual(sarah_feed[0].friend_id, ALEX)
        self.assertEqual(sarah_feed[0].content_id, 2)
        self.assertEqual(
            sarah_feed[0].content, "What was your favorite toy or game growing up?"
        )
        self.assertEqual(self.db.get_user_activities(MIKE), [])

    def test_answer_unknown_question(self):
        self.login()
        response = self.client.post(
            "/api/question-responses",
            json={"questionId": 404, "response": "?", "sharedWith": []},
        )
        self.assertEqual(response.status_code, 404)

    def test_answer_shared_with_unknown_user_writes_nothing(self):
        self.login()
        response = self.client.post(
            "/api/question-responses",
            json={"questionId": 2, "response": "x", "sharedWith": [SARAH, 999]},
        )
        self.assertEqual(response.status_code, 404)
        self.assertIn("999", response.json()["detail"])
        self.assertEqual(self.db.get_question_responses(2, ALEX), [])
        self.assertEqual(self.db.get_user_activities(SARAH), [])

    def test_shared_responses_are_enriched(self):
        self.login()
        shared = self.client.get("/api/question-responses/shared").json()
        self.assertEqual(len(shared), 6)
        first = shared[0]
        self.assertEqual(first["user"]["username"], "sarah")
        self.assertEqual(
            first["question"]["text"],
            "What's a childhood memory that still makes you smile?",
        )
        self.assertNotIn("password", first["user"])

        self.client.post("/api/auth/logout")
        self.login("mike")
        shared = self.client.get("/api/question-responses/shared").json()
        self.assertEqual(
            sorted(r["user"]["username"] for r in shared), ["jamie", "mike", "mike"]
        )


class MessagesApiTests(KinshipApiTestCase):
    def test_conversation_is_oldest_first(self):
        self.login()
        messages = self.client.get(f"/api/messages/{SARAH}").json()
        self.assertEqual(len(messages), 4)
        self.assertEqual(messages[0]["senderId"], ALEX)
        self.assertTrue(messages[-1]["content"].startswith("Same here!"))

    def test_send_message_creates_preview_activity(self):
        self.login()
        content = "x" * 80
        sent = self.client.post(
            "/api/messages", json={"receiverId": MIKE, "content": content}
        )
        self.assertEqual(sent.status_code, 201, sent.text)
        self.assertFalse(sent.json()["read"])
        self.assertEqual(sent.json()["senderId"], ALEX)

        activity = self.db.get_user_activities(MIKE)[0]
        self.assertEqual(activity.type, "message_sent")
        self.assertEqual(activity.friend_id, ALEX)
        self.assertEqual(activity.content, "x" * 50 + "...")

        missing = self.client.post(
            "/api/messages", json={"receiverId": 999, "content": "hello?"}
        )
        self.assertEqual(missing.status_code, 404)

    def test_unread_count_and_mark_read(self):
        self.login()
        self.assertEqual(self.client.get("/api/messages/unread-count").json(), {"count": 5})

        # message 2 is sarah -> alex, message 1 is alex -> sarah
        marked = self.client.put("/api/messages/2/read")
        self.assertEqual(marked.json(), {"message": "Message marked as read"})
        self.assertEqual(self.client.get("/api/messages/unread-count").json(), {"count": 4})

        self.assertEqual(self.client.put("/api/messages/1/read").status_code, 403)
        self.assertEqual(self.client.put("/api/messages/999/read").status_code, 404)


class ActivitiesApiTests(KinshipApiTestCase):
    def test_feed_is_newest_first_with_friend(self):
        self.login()
        feed = self.client.get("/api/activities").json()
        self.assertEqual(len(feed), 5)
        self.assertEqual(feed[0]["type"], "question_answered")
        self.assertEqual(feed[0]["friend"]["username"], "mike")
        self.assertTrue(feed[0]["content"].startswith("1. My morning coffee"))
        self.assertIsNone(feed[2]["contentId"])
        self.assertEqual(feed[2]["type"], "message_sent")


class SqlBackendMixin:
    """
    Runs the inherited API tests against the SQLAlchemy client on SQLite,
    which enforces foreign keys the way Postgres does.
    """

    def make_db(self):
        return PostgresDbClient("sqlite+pysqlite:///:memory:")


class SqlFriendsApiTests(SqlBackendMixin, FriendsApiTests):
    pass


class SqlQuestionResponsesApiTests(SqlBackendMixin, QuestionResponsesApiTests):
    pass


class SqlMessagesApiTests(SqlBackendMixin, MessagesApiTests):
    pass


class SqlActivitiesApiTests(SqlBackendMixin, ActivitiesApiTests):
    pass


class SessionSecretTests(unittest.TestCase):
    @patch("kinship.app.get_settings")
    def test_default_secret_logs_warning(self, mock_settings):
        mock_settings.return_value = Settings().model_copy(
            update={"session_secret": DEFAULT_SESSION_SECRET}
        )
        with self.assertLogs("kinship.app", level="WARNING") as logs:
            create_app()
        self.assertIn("KINSHIP_SESSION_SECRET", logs.output[0])

    @patch("kinship.app.get_settings")
    def test_configured_secret_is_quiet(self, mock_settings):
        mock_settings.return_value = Settings().model_copy(
            update={"session_secret": "a-real-secret"}
        )
        with self.assertNoLogs("kinship.app", level="WARNING"):
            create_app()


if __name__ == "__main__":
    unittest.main()
