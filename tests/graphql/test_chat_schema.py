"""
End-to-end tests for the chat schema over in-memory stores
"""

import pytest

from chatgraph.passwords import verify_password

ADD_USER = """
mutation AddUser($first: String!, $last: String!, $email: String!, $password: String!) {
  addUser(firstName: $first, lastName: $last, email: $email, password: $password) {
    userID
    email
    name
  }
}
"""

SEND_MESSAGE = """
mutation Send($sentBy: ID!, $text: String!) {
  sendMessage(sentBy: $sentBy, text: $text) {
    id
    text
    sentBy { userID name }
  }
}
"""

ADA = {"first": "Ada", "last": "Lovelace", "email": "ada@example.com", "password": "engine"}


class TestAddUser:
    """Tests for Mutation.addUser and User fields."""

    @pytest.mark.asyncio
    async def test_add_user_returns_full_name(self, engine, context):
        result = await engine.run(ADD_USER, context, ADA)

        assert result.errors == []
        user = result.data["addUser"]
        assert user["name"] == "Ada Lovelace"
        assert user["email"] == "ada@example.com"
        assert user["userID"]

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "first, last",
        [
            (" Ada ", "de  Lovelace"),
            ("Ada", ""),
            ("", "Lovelace"),
            ("Zoë", "Ørsted"),
            ("李", "小龙"),
            ("Mary Ann", "Evans-Cross"),
        ],
    )
    async def test_name_joins_parts_exactly(self, engine, context, first, last):
        result = await engine.run(ADD_USER, context, {**ADA, "first": first, "last": last})

        assert result.errors == []
        assert result.data["addUser"]["name"] == first + " " + last

    @pytest.mark.asyncio
    async def test_password_is_stored_hashed(self, engine, context, memory_sources):
        await engine.run(ADD_USER, context, ADA)

        record = await memory_sources.users.find_one("user", {"email": "ada@example.com"})
        assert record is not None
        assert "password" not in record
        assert record["passwordHash"] != "engine"
        assert verify_password("engine", record["passwordHash"])

    @pytest.mark.asyncio
    async def test_invalid_email_is_rejected(self, engine, context, memory_sources):
        result = await engine.run(ADD_USER, context, {**ADA, "email": "not-an-email"})

        assert result.data == {"addUser": None}
        assert result.errors[0].code == "BAD_USER_INPUT"
        assert result.errors[0].path == ["addUser"]
        assert await memory_sources.users.find_many("user") == []

    @pytest.mark.asyncio
    async def test_name_is_null_without_both_parts(self, engine, context, memory_sources):
        await memory_sources.users.create("user", {"firstName": "Ada", "email": "a@b.c"})

        result = await engine.run("{ users { email name } }", context)

        assert result.errors == []
        assert result.data == {"users": [{"email": "a@b.c", "name": None}]}


class TestSendMessage:
    """Tests for Mutation.sendMessage and Message.sentBy."""

    @pytest.mark.asyncio
    async def test_sent_message_is_listed_once(self, engine, context, memory_sources):
        added = await engine.run(ADD_USER, context, ADA)
        user_id = added.data["addUser"]["userID"]
        before = await engine.run("{ messages { id } }", context)

        sent = await engine.run(SEND_MESSAGE, context, {"sentBy": user_id, "text": "hello"})
        after = await engine.run("{ messages { id text sentBy { userID } } }", context)

        assert before.data == {"messages": []}
        message_id = sent.data["sendMessage"]["id"]
        assert after.data == {
            "messages": [{"id": message_id, "text": "hello", "sentBy": {"userID": user_id}}]
        }
        stored = await memory_sources.messages.find_many("message", {"sentBy": user_id})
        assert [(r["sentBy"], r["text"]) for r in stored] == [(user_id, "hello")]

    @pytest.mark.asyncio
    async def test_dangling_reference_is_stored_as_sent(self, engine, context, memory_sources):
        await engine.run(SEND_MESSAGE, context, {"sentBy": "abc", "text": "hello"})

        stored = await memory_sources.messages.find_many("message")

        assert [(r["sentBy"], r["text"]) for r in stored] == [("abc", "hello")]

    @pytest.mark.asyncio
    async def test_dangling_sender_resolves_to_null(self, engine, context):
        result = await engine.run(SEND_MESSAGE, context, {"sentBy": "nobody", "text": "hi"})

        assert result.errors == []
        assert result.data["sendMessage"]["sentBy"] is None
        assert result.data["sendMessage"]["text"] == "hi"

    @pytest.mark.asyncio
    async def test_sender_resolved_across_stores(self, engine, context):
        added = await engine.run(ADD_USER, context, ADA)
        user_id = added.data["addUser"]["userID"]

        result = await engine.run(SEND_MESSAGE, context, {"sentBy": user_id, "text": "hi"})

        assert result.errors == []
        assert result.data["sendMessage"]["sentBy"] == {"userID": user_id, "name": "Ada Lovelace"}

    @pytest.mark.asyncio
    async def test_mutations_in_one_document_see_earlier_writes(
        self, engine, context, memory_sources, monkeypatch
    ):
        monkeypatch.setattr("chatgraph.datasources.memory._opaque_id", lambda: "user-1")
        # Slow stores make any accidental concurrency visible
        memory_sources.users.latency = 0.02
        memory_sources.messages.latency = 0.02

        result = await engine.run(
            """
            mutation {
              addUser(firstName: "Ada", lastName: "Lovelace", email: "ada@example.com",
                      password: "engine") { userID }
              sendMessage(sentBy: "user-1", text: "first!") { text sentBy { name } }
            }
            """,
            context,
        )

        assert result.errors == []
        assert list(result.data) == ["addUser", "sendMessage"]
        assert result.data["addUser"] == {"userID": "user-1"}
        assert result.data["sendMessage"] == {"text": "first!", "sentBy": {"name": "Ada Lovelace"}}

    @pytest.mark.asyncio
    async def test_empty_sender_is_rejected(self, engine, context):
        result = await engine.run(SEND_MESSAGE, context, {"sentBy": "", "text": "hi"})

        assert result.data == {"sendMessage": None}
        assert result.errors[0].code == "BAD_USER_INPUT"


class TestRootQueries:
    """Tests for Query.users and Query.messages together."""

    @pytest.mark.asyncio
    async def test_sibling_queries_return_both_stores(self, engine, context, memory_sources):
        user = await memory_sources.users.create(
            "user", {"firstName": "Grace", "lastName": "Hopper", "email": "grace@example.com"}
        )
        await memory_sources.messages.create("message", {"sentBy": user["userID"], "text": "a"})
        await memory_sources.messages.create("message", {"sentBy": user["userID"], "text": "b"})

        result = await engine.run(
            "{ users { name } messages { text sentBy { email } } }", context
        )

        assert result.errors == []
        assert result.data == {
            "users": [{"name": "Grace Hopper"}],
            "messages": [
                {"text": "a", "sentBy": {"email": "grace@example.com"}},
                {"text": "b", "sentBy": {"email": "grace@example.com"}},
            ],
        }

    @pytest.mark.asyncio
    async def test_pool_timeout_fails_only_that_field(self, engine, context, memory_sources):
        await memory_sources.messages.create("message", {"sentBy": "x", "text": "still here"})

        # Hold the only users connection so the users field has to wait
        async with memory_sources.users.borrow():
            result = await engine.run("{ users { email } messages { text } }", context)

        assert result.data == {"users": None, "messages": [{"text": "still here"}]}
        assert len(result.errors) == 1
        assert result.errors[0].path == ["users"]
        assert result.errors[0].code == "CONNECTION_TIMEOUT"

    @pytest.mark.asyncio
    async def test_overlapping_fragments_keep_every_field(self, engine, context, memory_sources):
        user = await memory_sources.users.create(
            "user", {"firstName": "Grace", "lastName": "Hopper", "email": "g@example.com"}
        )
        await memory_sources.messages.create("message", {"sentBy": user["userID"], "text": "a"})

        result = await engine.run(
            """
            { ...A ...B }
            fragment A on Query { messages { sentBy { name } } }
            fragment B on Query { messages { sentBy { email } } }
            """,
            context,
        )

        assert result.errors == []
        assert result.data == {
            "messages": [{"sentBy": {"name": "Grace Hopper", "email": "g@example.com"}}]
        }

    @pytest.mark.asyncio
    async def test_store_failure_is_reported_without_details(
        self, engine, context, memory_sources, monkeypatch
    ):
        async def broken(entity, filter):
            raise RuntimeError("socket closed by peer 10.0.0.7")

        monkeypatch.setattr(memory_sources.users, "_find_many", broken)

        result = await engine.run("{ users { email } messages { text } }", context)

        assert result.data == {"users": None, "messages": []}
        assert result.errors[0].code == "STORE_OPERATION_FAILED"
        assert result.errors[0].message == "Store operation failed"

    @pytest.mark.asyncio
    async def test_password_hash_is_not_queryable(self, engine, context):
        await engine.run(ADD_USER, context, ADA)

        result = await engine.run("{ users { passwordHash } }", context)

        assert result.data == {"users": [{"passwordHash": None}]}
        assert result.errors[0].path == ["users", 0, "passwordHash"]
        assert result.errors[0].code == "GRAPHQL_VALIDATION_FAILED"
