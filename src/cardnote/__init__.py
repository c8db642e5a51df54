"""cardnote: turn business-card images in a note vault into contact notes."""

__version__ = "0.1.0"
