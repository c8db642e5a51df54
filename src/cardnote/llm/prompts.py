"""Prompts for business-card recognition."""

CONTACT_PROMPT = """Recognize the text on this business card and return strictly JSON in this format:

{
  "name": "",
  "company": "",
  "position": "",
  "phones": [],
  "emails": [],
  "website": "",
  "address": "",
  "rawText": ""
}

Fill in the fields as accurately as the card allows. "rawText" holds all text on the card, transcribed verbatim.
Respond with the JSON object only."""

READABILITY_PROMPT = """Rate how readable the text in this image is at its current orientation, from 0 (unreadable, e.g. upside down or sideways) to 10 (perfectly upright and legible).

Answer with exactly one integer between 0 and 10 and nothing else."""
