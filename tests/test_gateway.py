"""
Tests for the gateway: Q&A with conversations, single-shot variants,
error mapping and tag parsing.
"""

from unittest.mock import AsyncMock, MagicMock

import pytest

from conftest import FakeProvider, make_entry
from heritage_ai.config import GatewaySettings
from heritage_ai.errors import (
    ContextTooLongError,
    ForbiddenError,
    InternalError,
    NotFoundError,
    RateLimitedError,
    ServiceUnavailableError,
    ValidationFailedError,
)
from heritage_ai.services.gateway import CurrentUser, Gateway, parse_tags
from heritage_ai.llm import (
    ProviderContextTooLong,
    ProviderError,
    ProviderQuotaExceeded,
    ProviderRateLimited,
    ProviderUnavailable,
)
from heritage_ai.store import HeritageStore


def ask(question: str = "What is batik?", **kwargs) -> dict:
    return {"question": question, **kwargs}


def tags_request(**overrides) -> dict:
    body = {
        "title": "Batik Weaving",
        "description": "Wax-resist dyeing technique.",
        "category": "Crafts",
    }
    body.update(overrides)
    return body


class TestParseTags:
    """Tests for the comma-separated tag parser."""

    def test_drops_empty_and_overlong_tokens(self):
        """Empty and 50+ character tokens are dropped; order and trimming kept."""
        text = f"Tag1, tag2,, {'x' * 50}, Tag3"
        assert parse_tags(text) == ["Tag1", "tag2", "Tag3"]

    def test_literal_example_keeps_48_character_token(self):
        """The 48-character example token fits the 49-character limit and is kept."""
        token = "averylongtagthatexceedsfortyninecharacters......"
        assert len(token) == 48

        result = parse_tags(f"Tag1, tag2,, {token}, Tag3")

        assert result == ["Tag1", "tag2", token, "Tag3"]

    def test_keeps_49_character_token(self):
        """A 49-character token is the longest one kept."""
        tag = "y" * 49
        assert parse_tags(f"short, {tag}") == ["short", tag]

    def test_caps_at_fifteen(self):
        """At most 15 tags are returned, the first 15 in order."""
        text = ", ".join(f"tag{i}" for i in range(20))
        result = parse_tags(text)
        assert len(result) == 15
        assert result[0] == "tag0"
        assert result[-1] == "tag14"

    def test_whitespace_only_tokens_dropped(self):
        assert parse_tags("  ,\n, music ,  ") == ["music"]

    def test_empty_and_none(self):
        assert parse_tags("") == []
        assert parse_tags(None) == []


class TestAskNewConversation:
    """Starting a conversation."""

    @pytest.mark.asyncio
    async def test_creates_one_conversation_with_two_messages(self, gateway, store, user_a):
        """A question without an id creates exactly one conversation of user then assistant."""
        result = await gateway.ask(user_a, **ask())

        conversations = await store.list_conversations("user-a")
        assert len(conversations) == 1
        conv = conversations[0]
        assert conv["id"] == result["conversationId"]
        assert [m["role"] for m in conv["messages"]] == ["user", "assistant"]
        assert conv["messages"][0]["content"] == "What is batik?"
        assert conv["messages"][1]["content"] == "A generated answer."

    @pytest.mark.asyncio
    async def test_response_shape(self, gateway, user_a):
        result = await gateway.ask(user_a, **ask())

        assert result["answer"] == "A generated answer."
        assert result["question"] == "What is batik?"
        assert result["provider"] == "fake"
        assert result["model"] == "fake-model"
        assert result["usage"]["total"] == 15

    @pytest.mark.asyncio
    async def test_title_truncated_to_100_chars(self, gateway, store, user_a):
        question = "q" * 150
        result = await gateway.ask(user_a, **ask(question))

        conv = await store.get_conversation(result["conversationId"])
        assert conv["title"] == "q" * 100

    @pytest.mark.asyncio
    async def test_passes_sampling_parameters(self, gateway, fake_provider, user_a):
        await gateway.ask(user_a, **ask(temperature=1.5, max_tokens=321))

        call = fake_provider.calls[0]
        assert call["temperature"] == 1.5
        assert call["max_tokens"] == 321

    @pytest.mark.asyncio
    async def test_omitted_sampling_uses_configured_defaults(self, store, user_a):
        """Without temperature or max_tokens the provider settings apply."""
        provider = FakeProvider(temperature=0.2, max_tokens=640)
        gateway = Gateway(provider, store)

        await gateway.ask(user_a, **ask())

        call = provider.calls[0]
        assert call["temperature"] == 0.2
        assert call["max_tokens"] == 640

    @pytest.mark.asyncio
    async def test_blank_question_rejected(self, gateway, fake_provider, user_a):
        with pytest.raises(ValidationFailedError):
            await gateway.ask(user_a, **ask("   "))
        assert fake_provider.calls == []

    @pytest.mark.asyncio
    async def test_extra_context_in_prompt(self, gateway, fake_provider, user_a):
        await gateway.ask(user_a, **ask(context="Focus on Java."))
        assert "Additional context: Focus on Java." in fake_provider.calls[0]["user_prompt"]


class TestAskContinuation:
    """Continuing a conversation."""

    @pytest.mark.asyncio
    async def test_appends_pair_to_existing(self, store, user_a):
        provider = FakeProvider(replies=["first", "second"])
        gateway = Gateway(provider, store)

        first = await gateway.ask(user_a, **ask("One?"))
        second = await gateway.ask(user_a, **ask("Two?", conversation_id=first["conversationId"]))

        assert second["conversationId"] == first["conversationId"]
        conv = await store.get_conversation(first["conversationId"])
        assert [m["content"] for m in conv["messages"]] == ["One?", "first", "Two?", "second"]
        assert len(await store.list_conversations("user-a")) == 1

    @pytest.mark.asyncio
    async def test_history_in_prompt(self, store, user_a):
        provider = FakeProvider(replies=["first answer", "second answer"])
        gateway = Gateway(provider, store)

        first = await gateway.ask(user_a, **ask("One?"))
        await gateway.ask(user_a, **ask("Two?", conversation_id=first["conversationId"]))

        prompt = provider.calls[1]["user_prompt"]
        assert "Previous conversation:" in prompt
        assert "user: One?" in prompt
        assert "assistant: first answer" in prompt

    @pytest.mark.asyncio
    async def test_history_limited_to_last_five(self, store, user_a):
        """Only the last five stored messages are replayed."""
        messages = [
            {"role": "user" if i % 2 == 0 else "assistant", "content": f"msg-{i}"}
            for i in range(12)
        ]
        conv = await store.create_conversation("user-a", "Long", messages)
        provider = FakeProvider()
        gateway = Gateway(provider, store)

        await gateway.ask(user_a, **ask("Next?", conversation_id=conv["id"]))

        prompt = provider.calls[0]["user_prompt"]
        for i in range(7):
            assert f"msg-{i}\n" not in prompt + "\n"
        for i in range(7, 12):
            assert f"msg-{i}" in prompt

    @pytest.mark.asyncio
    async def test_unknown_id_starts_new_conversation(self, gateway, store, user_a):
        result = await gateway.ask(user_a, **ask(conversation_id="does-not-exist"))

        assert result["conversationId"] != "does-not-exist"
        assert await store.get_conversation(result["conversationId"]) is not None


class TestOwnershipIsolation:
    """A conversation id owned by someone else behaves as absent."""

    @pytest.mark.asyncio
    async def test_other_users_conversation_not_appended(self, store, user_a, user_b):
        provider = FakeProvider(replies=["for a", "for b"])
        gateway = Gateway(provider, store)

        owned_by_a = await gateway.ask(user_a, **ask("Secret question"))
        result = await gateway.ask(
            user_b, **ask("Hijack?", conversation_id=owned_by_a["conversationId"])
        )

        assert result["conversationId"] != owned_by_a["conversationId"]
        conv_a = await store.get_conversation(owned_by_a["conversationId"])
        assert len(conv_a["messages"]) == 2

        conv_b = await store.get_conversation(result["conversationId"])
        assert conv_b["user_id"] == "user-b"
        assert len(conv_b["messages"]) == 2

    @pytest.mark.asyncio
    async def test_other_users_history_not_leaked(self, store, user_a, user_b):
        provider = FakeProvider(replies=["private answer", "b answer"])
        gateway = Gateway(provider, store)

        owned_by_a = await gateway.ask(user_a, **ask("Secret question"))
        await gateway.ask(user_b, **ask("Hi", conversation_id=owned_by_a["conversationId"]))

        prompt = provider.calls[1]["user_prompt"]
        assert "Secret question" not in prompt
        assert "private answer" not in prompt


class TestReferenceEntries:
    """includeEntries pulls the caller's published entries into the prompt."""

    @pytest.mark.asyncio
    async def test_includes_own_published_entries(self, gateway, fake_provider, temp_db, user_a):
        temp_db.upsert_entry(make_entry(title="Own Published"))
        temp_db.upsert_entry(make_entry(title="Own Draft", status="draft"))
        temp_db.upsert_entry(make_entry(title="Someone Else", author_id="user-b"))

        await gateway.ask(user_a, **ask(include_entries=True))

        prompt = fake_provider.calls[0]["user_prompt"]
        assert "Own Published" in prompt
        assert "Own Draft" not in prompt
        assert "Someone Else" not in prompt

    @pytest.mark.asyncio
    async def test_not_included_by_default(self, gateway, fake_provider, temp_db, user_a):
        temp_db.upsert_entry(make_entry(title="Own Published"))

        await gateway.ask(user_a, **ask())

        assert "Own Published" not in fake_provider.calls[0]["user_prompt"]

    @pytest.mark.asyncio
    async def test_lookup_failure_degrades(self, fake_provider, user_a):
        """A failing entry lookup still answers, without reference context."""
        store = MagicMock(spec=HeritageStore)
        store.get_published_entries = AsyncMock(side_effect=RuntimeError("db down"))
        store.get_conversation = AsyncMock(return_value=None)
        store.create_conversation = AsyncMock(return_value={"id": "c1"})
        gateway = Gateway(fake_provider, store)

        result = await gateway.ask(user_a, **ask(include_entries=True))

        assert result["conversationId"] == "c1"
        assert "Relevant cultural entries" not in fake_provider.calls[0]["user_prompt"]


class TestNoProvider:
    """Without a provider every generation path is unavailable."""

    @pytest.fixture
    def untouched_store(self):
        return MagicMock(spec=HeritageStore)

    @pytest.fixture
    def degraded(self, untouched_store):
        return Gateway(None, untouched_store)

    @pytest.mark.asyncio
    async def test_ask(self, degraded, untouched_store, user_a):
        with pytest.raises(ServiceUnavailableError):
            await degraded.ask(user_a, **ask(include_entries=True, conversation_id="c1"))
        assert untouched_store.mock_calls == []

    @pytest.mark.asyncio
    async def test_suggestions(self, degraded, untouched_store, user_a):
        with pytest.raises(ServiceUnavailableError):
            await degraded.suggest_for_entry("e1", user_a)
        assert untouched_store.mock_calls == []

    @pytest.mark.asyncio
    async def test_tags(self, degraded, untouched_store):
        with pytest.raises(ServiceUnavailableError):
            await degraded.generate_tags(**tags_request())
        assert untouched_store.mock_calls == []

    @pytest.mark.asyncio
    async def test_analysis(self, degraded, untouched_store, user_a):
        with pytest.raises(ServiceUnavailableError):
            await degraded.analyze_significance("e1", user_a)
        assert untouched_store.mock_calls == []

    def test_status(self, degraded):
        status = degraded.status()
        assert status["available"] is False
        assert status["provider"] == "none"
        assert not any(status["features"].values())


class TestProviderErrorMapping:
    """Adapter failures become client-facing errors."""

    @pytest.mark.parametrize("error, expected", [
        (ProviderQuotaExceeded("quota"), ServiceUnavailableError),
        (ProviderUnavailable("down"), ServiceUnavailableError),
        (ProviderRateLimited("slow down"), RateLimitedError),
        (ProviderContextTooLong("too long"), ContextTooLongError),
        (ProviderError("boom"), InternalError),
    ])
    @pytest.mark.asyncio
    async def test_mapping(self, store, user_a, error, expected):
        gateway = Gateway(FakeProvider(error=error), store)

        with pytest.raises(expected):
            await gateway.ask(user_a, **ask())

        assert await store.list_conversations("user-a") == []

    @pytest.mark.asyncio
    async def test_persistence_failure_is_internal(self, fake_provider, user_a):
        """Saving fails after generation: the request fails and the answer is lost."""
        store = MagicMock(spec=HeritageStore)
        store.get_conversation = AsyncMock(return_value=None)
        store.create_conversation = AsyncMock(side_effect=RuntimeError("disk full"))
        gateway = Gateway(fake_provider, store)

        with pytest.raises(InternalError) as exc_info:
            await gateway.ask(user_a, **ask())

        assert len(fake_provider.calls) == 1
        assert exc_info.value.detail == "disk full"


class TestEntryVariants:
    """Suggestions and significance analysis."""

    @pytest.mark.asyncio
    async def test_suggestions_for_own_entry(self, gateway, fake_provider, sample_entry, user_a):
        result = await gateway.suggest_for_entry(sample_entry, user_a)

        assert result["entryId"] == sample_entry
        assert result["entryTitle"] == "Batik Weaving"
        assert result["suggestions"] == "A generated answer."
        call = fake_provider.calls[0]
        assert call["temperature"] == 0.6
        assert call["max_tokens"] == 1200
        assert "Current Tags: textile, dyeing" in call["user_prompt"]

    @pytest.mark.asyncio
    async def test_analysis_for_public_entry(self, gateway, fake_provider, sample_entry, user_b):
        result = await gateway.analyze_significance(sample_entry, user_b)

        assert result["analysis"] == "A generated answer."
        call = fake_provider.calls[0]
        assert call["temperature"] == 0.7
        assert call["max_tokens"] == 1500
        assert "Region: Java" in call["user_prompt"]

    @pytest.mark.asyncio
    async def test_missing_entry(self, gateway, user_a):
        with pytest.raises(NotFoundError):
            await gateway.suggest_for_entry("missing", user_a)

    @pytest.mark.asyncio
    async def test_private_entry_forbidden_to_others(self, gateway, fake_provider, private_entry, user_b):
        with pytest.raises(ForbiddenError):
            await gateway.analyze_significance(private_entry, user_b)
        assert fake_provider.calls == []

    @pytest.mark.asyncio
    async def test_private_entry_visible_to_admin(self, gateway, private_entry, admin):
        result = await gateway.suggest_for_entry(private_entry, admin)
        assert result["entryTitle"] == "Family Recipe"

    @pytest.mark.asyncio
    async def test_entry_variants_do_not_write(self, fake_provider, sample_entry, temp_db, user_a):
        from heritage_ai.store import SQLiteStore

        store = SQLiteStore(temp_db)
        store.create_conversation = AsyncMock()
        store.append_messages = AsyncMock()
        gateway = Gateway(fake_provider, store)

        await gateway.suggest_for_entry(sample_entry, user_a)
        await gateway.analyze_significance(sample_entry, user_a)

        store.create_conversation.assert_not_called()
        store.append_messages.assert_not_called()


class TestGenerateTags:

    @pytest.mark.asyncio
    async def test_parses_reply(self, store):
        provider = FakeProvider(replies=["batik, Javanese textiles, , wax resist"])
        gateway = Gateway(provider, store)

        result = await gateway.generate_tags(**tags_request(country="Indonesia"))

        assert result["tags"] == ["batik", "Javanese textiles", "wax resist"]
        assert result["count"] == 3
        call = provider.calls[0]
        assert call["temperature"] == 0.5
        assert call["max_tokens"] == 200
        assert "Location: Indonesia" in call["user_prompt"]


class TestConversationManagement:

    @pytest.mark.asyncio
    async def test_list_with_pagination(self, gateway, store, user_a):
        for i in range(3):
            await store.create_conversation("user-a", f"Conv {i}", [
                {"role": "user", "content": f"question {i}"},
                {"role": "assistant", "content": "a" * 150},
            ])
        await store.create_conversation("user-b", "Other", [])

        result = await gateway.list_conversations(user_a, page=1, limit=2)

        assert len(result["conversations"]) == 2
        summary = result["conversations"][0]
        assert summary["messageCount"] == 2
        assert summary["lastMessage"] == "a" * 100
        assert result["pagination"] == {
            "currentPage": 1,
            "totalPages": 2,
            "total": 3,
            "hasNext": True,
            "hasPrev": False,
        }

    @pytest.mark.asyncio
    async def test_get_other_users_conversation_not_found(self, gateway, store, user_b):
        conv = await store.create_conversation("user-a", "Mine", [])
        with pytest.raises(NotFoundError):
            await gateway.get_conversation(conv["id"], user_b)

    @pytest.mark.asyncio
    async def test_owner_deletes(self, gateway, store, user_a):
        conv = await store.create_conversation("user-a", "Mine", [])
        await gateway.delete_conversation(conv["id"], user_a)
        assert await store.get_conversation(conv["id"]) is None

    @pytest.mark.asyncio
    async def test_other_user_cannot_delete(self, gateway, store, user_b):
        conv = await store.create_conversation("user-a", "Mine", [])
        with pytest.raises(NotFoundError):
            await gateway.delete_conversation(conv["id"], user_b)
        assert await store.get_conversation(conv["id"]) is not None

    @pytest.mark.asyncio
    async def test_admin_deletes_any(self, gateway, store, admin):
        conv = await store.create_conversation("user-a", "Mine", [])
        await gateway.delete_conversation(conv["id"], admin)
        assert await store.get_conversation(conv["id"]) is None

    def test_status_available(self, gateway):
        status = gateway.status()
        assert status["available"] is True
        assert status["model"] == "fake-model"
        assert all(status["features"].values())


class TestCurrentUser:

    def test_admin_role(self):
        assert CurrentUser("u", "admin").is_admin
        assert not CurrentUser("u", "moderator").is_admin

    def test_default_settings(self):
        settings = GatewaySettings()
        assert settings.history_limit == 5
        assert settings.reference_limit == 5
