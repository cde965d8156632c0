"""
Flashcard generation for a saved case.

  1. Calls the LLM via llm_service.chat_json() with the transcript, the AI
     SOAP draft and the clinician's own diagnosis and plan
  2. Parses {"cards": [{"question", "answer"}]} (a bare list is accepted too)
  3. Returns the well-formed cards; persistence is up to the caller

LLMUnavailableError and json.JSONDecodeError propagate to the caller.
"""
from __future__ import annotations

import logging
from typing import Any

from clinrecall.models.flashcard import FlashcardCreate
from clinrecall.services.llm_service import chat_json

logger = logging.getLogger(__name__)

MAX_CARDS = 6
MAX_FIELD_CHARS = 6000

SYSTEM_PROMPT = (
    "You are a medical education expert creating spaced repetition flashcards "
    "for clinical learning. "
    "Respond ONLY with valid JSON in exactly this structure:\n"
    '{"cards": [{"question": "string", "answer": "string"}]}\n'
    "Rules:\n"
    "- Generate 4-6 high-quality flashcards.\n"
    "- Test pattern recognition and differential diagnosis.\n"
    "- Cover essential workup and diagnostic reasoning.\n"
    "- Include treatment plans and medication details.\n"
    "- Emphasize safety (return precautions, red flags).\n"
    "- Use clinical case format questions when appropriate.\n"
    "- Answers should be detailed, with a short explanation."
)


def _user_prompt(transcript: str, ai_draft: str, diagnosis: str, plan: str) -> str:
    return (
        f"ENCOUNTER TRANSCRIPT:\n{transcript[:MAX_FIELD_CHARS]}\n\n"
        f"AI-GENERATED SOAP NOTE:\n{ai_draft[:MAX_FIELD_CHARS]}\n\n"
        f"CLINICIAN'S DIAGNOSIS:\n{diagnosis}\n\n"
        f"CLINICIAN'S TREATMENT PLAN:\n{plan}\n\n"
        "Generate the flashcards now."
    )


def parse_cards(result: Any) -> list[FlashcardCreate]:
    """Keep only items with non-empty string question and answer."""
    items = result.get("cards") if isinstance(result, dict) else result
    if not isinstance(items, list):
        logger.warning("Flashcard reply had no card list: %r", type(result).__name__)
        return []

    cards: list[FlashcardCreate] = []
    for item in items:
        if not isinstance(item, dict):
            continue
        question, answer = item.get("question"), item.get("answer")
        if not isinstance(question, str) or not isinstance(answer, str):
            continue
        question, answer = question.strip(), answer.strip()
        if not question or not answer:
            continue
        cards.append(FlashcardCreate(question=question, answer=answer))
    return cards[:MAX_CARDS]


async def generate_case_flashcards(
    transcript: str,
    ai_draft: str,
    clinician_diagnosis: str,
    clinician_plan: str,
) -> list[FlashcardCreate]:
    result = await chat_json(
        SYSTEM_PROMPT,
        _user_prompt(transcript, ai_draft, clinician_diagnosis, clinician_plan),
        max_tokens=1536,
    )
    cards = parse_cards(result)
    logger.info("Generated %d flashcards", len(cards))
    return cards
