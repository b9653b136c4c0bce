"""Suggestion content: input summary, prompt text, result validation.

Pure functions, no I/O. The generation worker decides how a model is
called; this module only shapes what goes in and checks what comes out.
"""

import json
from typing import Any

from pydantic import BaseModel, ValidationError

from editorial_ai.core.exceptions import InvalidSuggestionResultError
from editorial_ai.domain.events import EditorialEvent

NOTES_SUMMARY_LIMIT = 240


class Strategie(BaseModel):
    objectif: str
    angle: str
    planning: list[str]
    cta: str
    kpis: list[str]


class EditorialSuggestion(BaseModel):
    """Expected shape of a generated suggestion (keys follow the French UI).

    Only the strategy block is checked field by field; reels, stories and
    themes just have to be lists.
    """

    strategie: Strategie
    reels: list[Any]
    stories: list[Any]
    themes: list[Any]
    checklist: list[str]


# Types-only example embedded in the prompt
SUGGESTION_SCHEMA_EXAMPLE = {
    "strategie": {
        "objectif": "string",
        "angle": "string",
        "planning": ["string"],
        "cta": "string",
        "kpis": ["string"],
    },
    "reels": [
        {
            "titre": "string",
            "hook": "string",
            "scenario": "string",
            "plans": ["string"],
            "texteOnScreen": "string",
            "caption": "string",
            "cta": "string",
            "hashtags": ["string"],
        }
    ],
    "stories": [{"titre": "string", "sequence": ["string"], "cta": "string"}],
    "themes": [{"theme": "string", "pourquoi": "string", "variantes": ["string"]}],
    "checklist": ["string"],
}

PROMPT_CONSTRAINTS = (
    "Tu es un expert social media FR pour un studio d'enregistrement.",
    "Tu dois renvoyer UNIQUEMENT du JSON valide (pas de Markdown, pas de texte).",
    "Le JSON doit respecter exactement la forme demandee (cles presentes, types corrects).",
    "Contenu actionnable, concret, et oriente prise de contact / reservation.",
    "Idees adaptees: booking, avant/apres, coulisses, artistes, equipements, preuves sociales, "
    "making-of, tips audio, erreurs a eviter.",
)


def build_input_summary(event: EditorialEvent) -> str:
    """One-line snapshot of the event recorded on the attempt."""
    end = f" -> {event.end_date}" if event.end_date else ""
    notes = f" Notes: {event.notes[:NOTES_SUMMARY_LIMIT]}" if event.notes else ""
    return (
        f"{event.title} ({event.category}) Prep {event.prep_start_date} | Post {event.start_date}{end}.{notes}"
    ).strip()


def build_prompt(event: EditorialEvent) -> str:
    """Full instruction text handed to the generation worker."""
    context_lines = [
        f"Evenement: {event.title}",
        f"Categorie: {event.category}",
        f"Date de preparation (deadline interne): {event.prep_start_date}",
        f"Date de post (publication): {event.start_date}",
    ]
    if event.end_date:
        context_lines.append(f"Fin (optionnel): {event.end_date}")
    if event.notes:
        context_lines.append(f"Notes: {event.notes}")

    return "\n".join(
        [
            "\n".join(PROMPT_CONSTRAINTS),
            "",
            "Format JSON attendu (exemple de types, pas un exemple de contenu):",
            json.dumps(SUGGESTION_SCHEMA_EXAMPLE, ensure_ascii=False),
            "",
            "Contexte:",
            "\n".join(context_lines),
            "",
            "Retourne le JSON complet maintenant.",
        ]
    )


def strip_json_fences(raw: str) -> str:
    """Remove a Markdown code fence (```json ... ```) around model output."""
    content = raw.strip()
    if content.startswith("```"):
        first_newline = content.find("\n")
        content = content[first_newline + 1 :] if first_newline != -1 else content[3:]
        if content.endswith("```"):
            content = content[:-3]
        content = content.strip()
    return content


def parse_suggestion_result(raw: str) -> str:
    """Validate generator output and return the cleaned JSON text to store.

    Raises:
        InvalidSuggestionResultError: empty output, unparseable JSON, or wrong shape
    """
    if not isinstance(raw, str) or not raw.strip():
        raise InvalidSuggestionResultError("Empty generation response")

    cleaned = strip_json_fences(raw)
    try:
        parsed = json.loads(cleaned)
    except json.JSONDecodeError as exc:
        raise InvalidSuggestionResultError("Invalid JSON in generation response") from exc

    try:
        EditorialSuggestion.model_validate(parsed)
    except ValidationError as exc:
        raise InvalidSuggestionResultError("Generation response does not match the expected format") from exc

    return cleaned
