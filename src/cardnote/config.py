"""Configuration management for cardnote."""

from pathlib import Path
from typing import Any, Literal, Optional

import yaml
from pydantic import AliasChoices, BaseModel, Field
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
    YamlConfigSettingsSource,
)

STATE_DIR = ".cardnote"
CONFIG_FILE = f"{STATE_DIR}/config.yaml"
DEFAULT_MODEL = "gpt-4o-mini"


class VisionConfig(BaseModel):
    """Credentials and model passed explicitly into every inference call."""

    api_key: str = ""
    model: str = DEFAULT_MODEL
    base_url: Optional[str] = None
    timeout: float = 60.0


class Settings(BaseSettings):
    """Application settings loaded from kwargs, environment, .env and config.yaml."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="CARDNOTE_",
        extra="ignore",
    )

    # OpenAI
    openai_api_key: str = Field(
        default="",
        validation_alias=AliasChoices(
            "openai_api_key", "CARDNOTE_OPENAI_API_KEY", "OPENAI_API_KEY"
        ),
    )
    openai_model: str = DEFAULT_MODEL
    openai_base_url: Optional[str] = None
    request_timeout: float = 60.0

    # Paths
    vault_root: Path = Field(default_factory=Path.cwd)

    # Processing
    detect_rotation: bool = True
    delete_mode: Literal["trash", "delete"] = "trash"
    save_debug_notes: bool = True
    watch_delay: float = 1.0

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        # config.yaml lives in the vault, which may not be the working directory
        vault_root = None
        for source in (init_settings, env_settings, dotenv_settings):
            vault_root = source().get("vault_root")
            if vault_root:
                break
        yaml_file = Path(vault_root or Path.cwd()) / CONFIG_FILE

        return (
            init_settings,
            env_settings,
            dotenv_settings,
            YamlConfigSettingsSource(settings_cls, yaml_file=yaml_file),
            file_secret_settings,
        )

    @property
    def state_path(self) -> Path:
        return self.vault_root / STATE_DIR

    @property
    def config_path(self) -> Path:
        return self.vault_root / CONFIG_FILE

    @property
    def error_log_path(self) -> Path:
        return self.state_path / "error.log"

    @property
    def pid_dir(self) -> Path:
        return self.state_path / "run"

    @property
    def log_dir(self) -> Path:
        return self.state_path / "logs"

    def vision_config(self) -> VisionConfig:
        """Snapshot of the inference settings for one pipeline run."""
        return VisionConfig(
            api_key=self.openai_api_key,
            model=self.openai_model or DEFAULT_MODEL,
            base_url=self.openai_base_url,
            timeout=self.request_timeout,
        )


def get_settings(**overrides: Any) -> Settings:
    """Get application settings."""
    return Settings(**overrides)


def load_saved_settings(path: Path) -> dict:
    """Read the persisted settings file, empty if it does not exist."""
    if not path.exists():
        return {}
    data = yaml.safe_load(path.read_text(encoding="utf-8"))
    return data if isinstance(data, dict) else {}


def save_settings(path: Path, **values: Any) -> dict:
    """Merge values into the persisted settings file and return the result.

    ``None`` values are skipped so callers can pass optional CLI options
    straight through.
    """
    data = load_saved_settings(path)
    data.update({key: value for key, value in values.items() if value is not None})

    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(
        yaml.safe_dump(data, default_flow_style=False, allow_unicode=True, sort_keys=False),
        encoding="utf-8",
    )
    return data
