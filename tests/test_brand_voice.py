"""Tests for brand voice storage and its effect on generation."""

from uuid import uuid4

import pytest

from reviewflow.errors import NotFoundError, TransientProviderError, ValidationError
from reviewflow.services.brand_voice import (
    get_or_create_brand_voice,
    load_brand_voice_config,
    preview_brand_voice,
    update_brand_voice,
)

from .conftest import connection_error


pytestmark = pytest.mark.integration


class TestBrandVoiceStore:
    """Tests for the brand voice helpers."""

    async def test_default_is_created_once(self, db, account):
        async with db.session() as session:
            first = await get_or_create_brand_voice(session, account.account_id)
        async with db.session() as session:
            second = await get_or_create_brand_voice(session, account.account_id)

        assert first.brand_voice_id == second.brand_voice_id
        assert second.tone == "professional"
        assert second.formality == 3

    async def test_unknown_account(self, db):
        async with db.session() as session:
            with pytest.raises(NotFoundError):
                await get_or_create_brand_voice(session, uuid4())

    async def test_update_and_load_config(self, db, account):
        async with db.session() as session:
            await update_brand_voice(
                session,
                account.account_id,
                tone="empathetic",
                formality=5,
                key_phrases=[" We care ", ""],
                style_notes="  ",
                sample_responses=["Thank you for sharing."],
            )

        async with db.session() as session:
            config = await load_brand_voice_config(session, account.account_id)

        assert config.tone == "empathetic"
        assert config.formality == 5
        assert config.key_phrases == ("We care",)
        assert config.style_notes is None
        assert config.sample_responses == ("Thank you for sharing.",)

    @pytest.mark.parametrize("kwargs", [{"tone": "default"}, {"formality": 0}])
    async def test_invalid_update(self, db, account, kwargs):
        async with db.session() as session:
            with pytest.raises(ValidationError):
                await update_brand_voice(session, account.account_id, **kwargs)


class TestBrandVoiceInGeneration:
    """The configured brand voice reaches the provider prompt."""

    async def test_prompt_uses_brand_voice(self, db, orchestrator, openai_client, account, review):
        async with db.session() as session:
            await update_brand_voice(
                session,
                account.account_id,
                tone="friendly",
                formality=1,
                key_phrases=["See you soon"],
            )

        await orchestrator.generate(account.account_id, review.review_id)

        messages = openai_client.chat.completions.create.call_args.kwargs["messages"]
        system_prompt = messages[0]["content"]
        assert "- Tone: friendly" in system_prompt
        assert "very casual and conversational" in system_prompt
        assert "See you soon" in system_prompt


class TestBrandVoicePreview:
    """Previews draft a sample reply without touching the ledger."""

    SAMPLE = "La comida estaba deliciosa y el servicio fue excelente, volveremos pronto."

    async def test_preview_leaves_ledger_untouched(
        self, db, quota_store, provider, openai_client, account
    ):
        async with db.session() as session:
            await update_brand_voice(
                session, account.account_id, tone="friendly", key_phrases=["Hasta pronto"]
            )

        preview = await preview_brand_voice(
            db, provider, account.account_id, self.SAMPLE, platform="TripAdvisor", rating=5
        )

        assert preview.response_text == "Thank you for your kind words! We hope to see you again."
        assert preview.model == "gpt-4o-mini"
        assert preview.detected_language == "Spanish"
        assert preview.brand_voice.tone == "friendly"

        messages = openai_client.chat.completions.create.call_args.kwargs["messages"]
        assert "- Tone: friendly" in messages[0]["content"]
        assert "Hasta pronto" in messages[0]["content"]
        assert "TripAdvisor review" in messages[1]["content"]
        assert "in Spanish" in messages[1]["content"]

        balance = await quota_store.get_balance(account.account_id)
        assert balance.credits_remaining == 15
        assert balance.sentiment_remaining == 35
        assert (await quota_store.list_usage(account.account_id)).total == 0

    async def test_blank_review_text(self, db, provider, openai_client, account):
        with pytest.raises(ValidationError):
            await preview_brand_voice(db, provider, account.account_id, "   ")

        openai_client.chat.completions.create.assert_not_called()

    async def test_unknown_account(self, db, provider):
        with pytest.raises(NotFoundError):
            await preview_brand_voice(db, provider, uuid4(), self.SAMPLE)

    async def test_provider_failure_is_not_charged(
        self, db, quota_store, provider, openai_client, account
    ):
        openai_client.chat.completions.create.side_effect = [connection_error() for _ in range(3)]

        with pytest.raises(TransientProviderError):
            await preview_brand_voice(db, provider, account.account_id, self.SAMPLE)

        balance = await quota_store.get_balance(account.account_id)
        assert balance.credits_remaining == 15
        assert (await quota_store.list_usage(account.account_id)).total == 0
