"""Pydantic model for a recognized business-card contact."""

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

UNKNOWN_CONTACT = "Unknown Contact"


def _as_text(value: Any) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, str):
        return value
    if isinstance(value, (list, tuple)):
        return ", ".join(str(v) for v in value if v is not None)
    return str(value)


def _as_text_list(value: Any) -> list[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value] if value.strip() else []
    if isinstance(value, (list, tuple)):
        return [str(v).strip() for v in value if v is not None and str(v).strip()]
    return [str(value)]


class ContactRecord(BaseModel):
    """Contact fields as recognized by the model.

    Every field may be missing. Placeholders for missing values are applied
    when the note is rendered, not here.
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore", frozen=True)

    name: Optional[str] = None
    company: Optional[str] = None
    position: Optional[str] = None
    phones: list[str] = Field(default_factory=list)
    emails: list[str] = Field(default_factory=list)
    website: Optional[str] = None
    address: Optional[str] = None
    raw_text: Optional[str] = Field(default=None, alias="rawText")

    @field_validator("name", "company", "position", "website", "address", "raw_text", mode="before")
    @classmethod
    def _coerce_text(cls, value: Any) -> Optional[str]:
        return _as_text(value)

    @field_validator("phones", "emails", mode="before")
    @classmethod
    def _coerce_list(cls, value: Any) -> list[str]:
        return _as_text_list(value)

    def display_name(self, fallback: Optional[str] = None) -> str:
        """Contact name, else ``fallback`` (the image's base name), else a placeholder."""
        for candidate in (self.name, fallback):
            if candidate and candidate.strip():
                return candidate.strip()
        return UNKNOWN_CONTACT
