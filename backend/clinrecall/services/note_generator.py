"""SOAP note drafting from an encounter transcript."""
from __future__ import annotations

import logging

from clinrecall.services.llm_service import chat_text

logger = logging.getLogger(__name__)

MAX_TRANSCRIPT_CHARS = 12000

SYSTEM_PROMPT = (
    "You are an expert medical documentation assistant. Given a patient "
    "encounter transcript, write a comprehensive SOAP note using exactly these "
    "headings, each on its own line:\n"
    "S (Subjective):\n"
    "  chief complaint, history of present illness, relevant past medical "
    "history, medications, allergies, social history as applicable\n"
    "O (Objective):\n"
    "  vital signs, physical examination findings, relevant labs or imaging\n"
    "A (Assessment):\n"
    "  primary diagnosis, differential diagnoses, severity assessment\n"
    "P (Plan):\n"
    "  diagnostic workup, treatment with dosing, follow-up, return precautions\n"
    "Include ICD-10 codes and CPT codes at the end if applicable."
)


class EmptyNoteError(Exception):
    """Raised when the model returns no text."""


async def generate_soap_note(transcript: str) -> str:
    prompt = f"ENCOUNTER TRANSCRIPT:\n{transcript[:MAX_TRANSCRIPT_CHARS]}\n\nGenerate the SOAP note now."
    note = await chat_text(SYSTEM_PROMPT, prompt)
    if not note:
        raise EmptyNoteError("LLM returned an empty SOAP note")
    logger.info("Generated SOAP note (%d chars)", len(note))
    return note
