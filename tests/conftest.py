"""Shared pytest fixtures for cardnote tests."""

from io import BytesIO
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

import pytest
from PIL import Image

from cardnote.config import Settings

CONTACT_REPLY = '```json\n{"name":"Jane Doe","company":"Acme","phones":["555-1234"]}\n```'


def image_bytes(size=(60, 20), fmt="PNG", color="white", mode="RGB") -> bytes:
    """Encode a solid image of ``size`` in ``fmt``."""
    buffer = BytesIO()
    Image.new(mode, size, color).save(buffer, format=fmt)
    return buffer.getvalue()


def image_size(data: bytes) -> tuple[int, int]:
    with Image.open(BytesIO(data)) as img:
        return img.size


def chat_response(content: str | None):
    """Mock Chat Completions response with a single choice."""
    message = MagicMock()
    message.content = content
    choice = MagicMock()
    choice.message = message
    response = MagicMock()
    response.choices = [choice]
    return response


@pytest.fixture(autouse=True)
def isolated_env(tmp_path: Path, monkeypatch):
    """Keep real credentials and config files out of the tests."""
    for name in ("OPENAI_API_KEY", "CARDNOTE_OPENAI_API_KEY", "CARDNOTE_OPENAI_MODEL"):
        monkeypatch.delenv(name, raising=False)
    workdir = tmp_path / "cwd"
    workdir.mkdir()
    monkeypatch.chdir(workdir)
    return workdir


@pytest.fixture
def temp_vault(tmp_path: Path) -> Path:
    """Create a temporary vault directory structure."""
    vault = tmp_path / "vault"
    vault.mkdir()
    (vault / "Cards").mkdir()
    (vault / ".obsidian").mkdir()
    return vault


@pytest.fixture
def settings(temp_vault: Path) -> Settings:
    """Settings with a temporary vault and a test key."""
    return Settings(
        vault_root=temp_vault,
        openai_api_key="test-api-key",
    )


@pytest.fixture
def card_image(temp_vault: Path) -> Path:
    """A landscape JPEG business card at Cards/card.jpg."""
    path = temp_vault / "Cards" / "card.jpg"
    path.write_bytes(image_bytes(size=(90, 50), fmt="JPEG"))
    return path


@pytest.fixture
def mock_openai():
    """Mock AsyncOpenAI client exposing chat.completions.create."""
    mock = MagicMock()
    mock.chat.completions.create = AsyncMock()
    return mock
