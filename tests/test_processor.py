"""Tests for cardnote.engine.processor module."""

from pathlib import Path
from unittest.mock import MagicMock, patch

import httpx
import pytest
from openai import APIStatusError

from conftest import CONTACT_REPLY, chat_response, image_bytes, image_size

from cardnote.config import Settings, VisionConfig
from cardnote.engine.processor import Processor
from cardnote.errors import JsonParseFailure, MissingCredential, ScoringRequestFailure


def snapshot(root: Path) -> set[Path]:
    return {p.relative_to(root) for p in root.rglob("*")}


class TestProcessNewImage:
    """End-to-end pipeline runs with a mocked OpenAI client."""

    @pytest.fixture
    def notices(self):
        return []

    @pytest.fixture
    def processor(self, settings, mock_openai, notices):
        with patch("cardnote.llm.openai.AsyncOpenAI", return_value=mock_openai):
            yield Processor(settings, notifier=notices.append)

    async def test_card_becomes_contact_note(self, processor, mock_openai, card_image, temp_vault):
        mock_openai.chat.completions.create.side_effect = [
            chat_response("9"),
            chat_response("2"),
            chat_response("1"),
            chat_response("3"),
            chat_response(CONTACT_REPLY),
        ]

        result = await processor.process_new_image(card_image)

        assert result.ok
        assert result.angle == 0
        assert result.note_path == Path("Cards/Jane Doe.md")
        assert result.image_path == Path("Cards/Jane Doe.jpg")

        note = (temp_vault / "Cards" / "Jane Doe.md").read_text(encoding="utf-8")
        assert "Company: Acme" in note
        assert "Phones:\n- 555-1234" in note
        assert "![[Jane Doe.jpg]]" in note

        assert (temp_vault / "Cards" / "Jane Doe.jpg").exists()
        assert not card_image.exists()
        assert (temp_vault / ".trash" / "card.jpg").exists()
        assert mock_openai.chat.completions.create.call_count == 5

    async def test_unrotated_winner_keeps_original_bytes(self, processor, mock_openai, card_image, temp_vault):
        original = card_image.read_bytes()
        mock_openai.chat.completions.create.side_effect = [chat_response("0")] * 4 + [
            chat_response(CONTACT_REPLY)
        ]

        await processor.process_new_image(card_image)

        assert (temp_vault / "Cards" / "Jane Doe.jpg").read_bytes() == original

    async def test_rotated_winner_is_stored(self, processor, mock_openai, card_image, temp_vault):
        mock_openai.chat.completions.create.side_effect = [
            chat_response("1"),
            chat_response("8"),
            chat_response("2"),
            chat_response("2"),
            chat_response(CONTACT_REPLY),
        ]

        result = await processor.process_new_image(card_image)

        assert result.angle == 90
        stored = (temp_vault / "Cards" / "Jane Doe.jpg").read_bytes()
        assert image_size(stored) == (50, 90)
        extract_call = mock_openai.chat.completions.create.call_args_list[-1]
        assert "max_tokens" not in extract_call.kwargs

    async def test_rotation_detection_disabled(self, temp_vault, mock_openai, card_image):
        settings = Settings(vault_root=temp_vault, openai_api_key="k", detect_rotation=False)
        mock_openai.chat.completions.create.return_value = chat_response(CONTACT_REPLY)

        with patch("cardnote.llm.openai.AsyncOpenAI", return_value=mock_openai):
            result = await Processor(settings).process_new_image(card_image)

        assert result.ok
        assert result.angle == 0
        assert mock_openai.chat.completions.create.call_count == 1

    async def test_missing_api_key_does_nothing(self, temp_vault, card_image, notices):
        settings = Settings(vault_root=temp_vault, openai_api_key="")
        factory = MagicMock()
        processor = Processor(settings, notifier=notices.append, client_factory=factory)
        before = snapshot(temp_vault)

        result = await processor.process_new_image(card_image)

        assert result.status == "skipped"
        assert isinstance(result.error, MissingCredential)
        factory.assert_not_called()
        assert snapshot(temp_vault) == before
        assert any("API key" in n for n in notices)

    async def test_explicit_config_overrides_settings(self, temp_vault, card_image):
        settings = Settings(vault_root=temp_vault, openai_api_key="", detect_rotation=False)
        seen = []

        class FakeClient:
            def __init__(self, config):
                seen.append(config)

            async def extract_contact(self, image_base64, mime_type):
                from cardnote.contact import parse_contact

                return parse_contact('{"name": "Injected"}')

        processor = Processor(settings, client_factory=FakeClient)
        result = await processor.process_new_image(
            card_image, VisionConfig(api_key="injected-key", model="gpt-4o")
        )

        assert result.ok
        assert seen[0].api_key == "injected-key"
        assert seen[0].model == "gpt-4o"
        assert (temp_vault / "Cards" / "Injected.md").exists()

    async def test_non_image_is_skipped(self, processor, mock_openai, temp_vault):
        path = temp_vault / "Cards" / "notes.md"
        path.write_text("hello")

        result = await processor.process_new_image(path)

        assert result.status == "skipped"
        mock_openai.chat.completions.create.assert_not_called()

    async def test_unparseable_reply_writes_debug_note(self, processor, mock_openai, card_image, temp_vault, settings):
        settings.detect_rotation = False
        mock_openai.chat.completions.create.return_value = chat_response("not json at all")

        result = await processor.process_new_image(card_image)

        assert result.status == "failed"
        assert isinstance(result.error, JsonParseFailure)
        assert card_image.exists()
        assert list((temp_vault / "Cards").glob("*.md")) == []
        debug = temp_vault / "Cards" / "__debug_card.jpg.txt"
        assert "not json at all" in debug.read_text(encoding="utf-8")
        assert "card.jpg" in settings.error_log_path.read_text()

    async def test_debug_notes_can_be_disabled(self, processor, mock_openai, card_image, temp_vault, settings):
        settings.detect_rotation = False
        settings.save_debug_notes = False
        mock_openai.chat.completions.create.return_value = chat_response("")

        result = await processor.process_new_image(card_image)

        assert result.status == "failed"
        assert not list((temp_vault / "Cards").glob("__debug_*"))

    async def test_scoring_failure_aborts(self, processor, mock_openai, card_image, temp_vault, settings, notices):
        request = httpx.Request("POST", "https://api.openai.com/v1/chat/completions")
        mock_openai.chat.completions.create.side_effect = APIStatusError(
            "Error code: 429",
            response=httpx.Response(429, request=request, text="slow down"),
            body=None,
        )

        result = await processor.process_new_image(card_image)

        assert result.status == "failed"
        assert isinstance(result.error, ScoringRequestFailure)
        assert mock_openai.chat.completions.create.call_count == 1
        assert card_image.exists()
        assert not list((temp_vault / "Cards").glob("*.md"))
        assert "ScoringRequestFailure" in settings.error_log_path.read_text()
        assert any(n.startswith("Error processing card.jpg") for n in notices)

    async def test_existing_note_is_not_overwritten(self, processor, mock_openai, card_image, temp_vault):
        existing = temp_vault / "Cards" / "Jane Doe.md"
        existing.write_text("keep me")
        mock_openai.chat.completions.create.side_effect = [chat_response("5")] * 4 + [
            chat_response(CONTACT_REPLY)
        ]

        result = await processor.process_new_image(card_image)

        assert result.note_path == Path("Cards/Jane Doe (1).md")
        assert existing.read_text() == "keep me"

    async def test_notices(self, processor, mock_openai, card_image, notices):
        mock_openai.chat.completions.create.side_effect = [chat_response("5")] * 4 + [
            chat_response(CONTACT_REPLY)
        ]

        await processor.process_new_image(card_image)

        assert notices[0] == "Processing card.jpg..."
        assert notices[-1] == "Contact saved: Jane Doe"

    async def test_remembers_own_output(self, processor, mock_openai, card_image, temp_vault):
        mock_openai.chat.completions.create.side_effect = [chat_response("5")] * 4 + [
            chat_response(CONTACT_REPLY)
        ]

        await processor.process_new_image(card_image)

        written = temp_vault / "Cards" / "Jane Doe.jpg"
        assert processor.consume_own_output(written) is True
        assert processor.consume_own_output(written) is False

    async def test_png_card(self, processor, mock_openai, temp_vault):
        path = temp_vault / "scan.png"
        path.write_bytes(image_bytes(size=(40, 30)))
        mock_openai.chat.completions.create.side_effect = [chat_response("5")] * 4 + [
            chat_response('{"company": "NoName Inc"}')
        ]

        result = await processor.process_new_image(path)

        assert result.note_path == Path("scan.md")
        assert result.image_path == Path("scan.png")
        assert path.exists()
        assert not (temp_vault / "scan (1).png").exists()
        assert not (temp_vault / ".trash").exists()
        url = mock_openai.chat.completions.create.call_args.kwargs["messages"][0]["content"][1]["image_url"]["url"]
        assert url.startswith("data:image/png;base64,")

    async def test_image_named_after_contact_keeps_its_name(self, processor, mock_openai, temp_vault):
        path = temp_vault / "Cards" / "Jane Doe.jpg"
        path.write_bytes(image_bytes(size=(90, 50), fmt="JPEG"))
        mock_openai.chat.completions.create.side_effect = [
            chat_response("1"),
            chat_response("8"),
            chat_response("2"),
            chat_response("2"),
            chat_response(CONTACT_REPLY),
        ]

        result = await processor.process_new_image(path)

        assert result.image_path == Path("Cards/Jane Doe.jpg")
        assert sorted(p.name for p in (temp_vault / "Cards").iterdir()) == ["Jane Doe.jpg", "Jane Doe.md"]
        assert image_size(path.read_bytes()) == (50, 90)
        assert "![[Jane Doe.jpg]]" in (temp_vault / "Cards" / "Jane Doe.md").read_text(encoding="utf-8")
        # Rewriting in place raises no created event, so nothing is remembered
        assert processor.consume_own_output(path) is False

    async def test_failed_write_cleans_up_new_image(self, processor, mock_openai, card_image, temp_vault, settings):
        settings.detect_rotation = False
        mock_openai.chat.completions.create.return_value = chat_response(CONTACT_REPLY)
        writer = processor.writer
        materialize = writer.materialize

        def taken_after_planning(record, asset):
            note = materialize(record, asset)
            (temp_vault / note.note_path).write_text("someone else's note")
            return note

        with patch.object(writer, "materialize", side_effect=taken_after_planning):
            result = await processor.process_new_image(card_image)

        assert result.status == "failed"
        assert isinstance(result.error, FileExistsError)
        assert sorted(p.name for p in (temp_vault / "Cards").iterdir()) == ["Jane Doe.md", "card.jpg"]
        assert processor.consume_own_output(temp_vault / "Cards" / "Jane Doe.jpg") is False

    async def test_unwritable_error_log_still_returns_result(self, processor, mock_openai, card_image, settings, notices):
        settings.detect_rotation = False
        mock_openai.chat.completions.create.return_value = chat_response("not json at all")
        # A file where the state folder should be makes the error log unwritable
        settings.state_path.write_text("not a folder")

        result = await processor.process_new_image(card_image)

        assert result.status == "failed"
        assert isinstance(result.error, JsonParseFailure)
        assert any(n.startswith("Error processing card.jpg") for n in notices)
