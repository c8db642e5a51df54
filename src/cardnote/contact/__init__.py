"""Contact schema, reply parsing, and note writing."""

from .parser import extract_json_candidate, parse_contact, parse_json_object
from .schema import ContactRecord
from .writer import ContactWriter, MaterializedNote, render_note

__all__ = [
    "ContactRecord",
    "ContactWriter",
    "MaterializedNote",
    "extract_json_candidate",
    "parse_contact",
    "parse_json_object",
    "render_note",
]
