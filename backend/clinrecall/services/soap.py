"""
SOAP note text utilities: section extraction, word-level diffs for the
compare view, and text shaping for speech synthesis.
"""
from __future__ import annotations

import difflib
import re

from clinrecall.models.case import CaseComparison, CaseNote, DiffOp, DiffToken, SoapNote

_SECTION_PATTERNS = {
    "subjective": re.compile(
        r"S\s*\(Subjective\):?\s*(.*?)(?=\n\s*O\s*\(Objective\)|\Z)", re.I | re.S
    ),
    "objective": re.compile(
        r"O\s*\(Objective\):?\s*(.*?)(?=\n\s*A\s*\(Assessment\)|\Z)", re.I | re.S
    ),
    "assessment": re.compile(
        r"A\s*\(Assessment\):?\s*(.*?)(?=\n\s*P\s*\(Plan\)|\Z)", re.I | re.S
    ),
    "plan": re.compile(r"P\s*\(Plan\):?\s*(.*?)(?=\Z|ICD-10|CPT)", re.I | re.S),
}

# Upper-case headings ("SUBJECTIVE:") used by some drafts
_HEADING_SPLIT = re.compile(r"(?:SUBJECTIVE:|OBJECTIVE:|ASSESSMENT:|PLAN:)", re.I)
_VITALS = re.compile(r"(?:vitals?|BP|HR|temp|temperature)[^.]*[.\n]", re.I)

SPEECH_MAX_CHARS = 800
SPEECH_CHUNK_CHARS = 150


def _clean(section: str) -> str:
    # Drop markdown emphasis left around headings by LLM output
    return section.strip().strip("*#").strip()


def extract_soap_sections(soap_text: str) -> SoapNote:
    """Split a SOAP draft into its four sections. Missing sections are ''."""
    found: dict[str, str] = {}
    for name, pattern in _SECTION_PATTERNS.items():
        match = pattern.search(soap_text)
        if match:
            found[name] = _clean(match.group(1))
    return SoapNote(**found)


def _tokens(text: str) -> list[str]:
    return [t for t in re.split(r"(\s+)", text) if t]


def diff_words(before: str, after: str) -> list[DiffToken]:
    """Word-level diff of `before` -> `after`, whitespace preserved."""
    a, b = _tokens(before), _tokens(after)
    matcher = difflib.SequenceMatcher(None, a, b, autojunk=False)
    tokens: list[DiffToken] = []
    for tag, i1, i2, j1, j2 in matcher.get_opcodes():
        if tag == "equal":
            tokens.append(DiffToken(op=DiffOp.EQUAL, text="".join(a[i1:i2])))
            continue
        if tag in ("replace", "delete"):
            tokens.append(DiffToken(op=DiffOp.REMOVED, text="".join(a[i1:i2])))
        if tag in ("replace", "insert"):
            tokens.append(DiffToken(op=DiffOp.ADDED, text="".join(b[j1:j2])))
    return tokens


def compare_case(case: CaseNote) -> CaseComparison:
    """Line the clinician's recall up against the AI draft."""
    soap = extract_soap_sections(case.ai_draft)
    return CaseComparison(
        case_id=case.id,
        soap=soap,
        clinician_diagnosis=case.clinician_diagnosis,
        clinician_plan=case.clinician_plan,
        diagnosis_diff=diff_words(soap.assessment, case.clinician_diagnosis),
        plan_diff=diff_words(soap.plan, case.clinician_plan),
    )


def _soap_parts(text: str) -> tuple[str, str, str] | None:
    soap = extract_soap_sections(text)
    if soap.subjective or soap.objective or soap.assessment:
        return soap.subjective, soap.objective, soap.assessment
    if _HEADING_SPLIT.search(text):
        sections = _HEADING_SPLIT.split(text)
        sections += [""] * (4 - len(sections))
        return sections[1], sections[2], sections[3]
    return None


def summarize_for_speech(text: str, limit: int = SPEECH_MAX_CHARS) -> str:
    """Shorten long text before synthesis.

    SOAP notes are reduced to chief complaint, vitals and assessment headline;
    other text to its first three sentences.
    """
    if len(text) <= limit:
        return text

    parts = _soap_parts(text)
    if parts is not None:
        subjective, objective, assessment = (p[:n].strip() for p, n in zip(parts, (200, 200, 300)))
        key_points = []
        if subjective:
            key_points.append(f"Patient: {subjective.split('.')[0]}.")
        vitals = _VITALS.search(objective)
        if vitals:
            key_points.append(f"Vitals: {vitals.group(0).strip()}")
        if assessment:
            key_points.append(f"Assessment: {assessment.split('.')[0]}.")
        spoken = " ".join(key_points) if key_points else text[:limit]
    else:
        sentences = [s.strip() for s in re.split(r"[.!?]+", text) if s.strip()]
        first = ". ".join(sentences[:3])
        spoken = f"{first}." if first else text[:limit]

    if len(spoken) > limit:
        spoken = spoken[:limit] + "..."
    return spoken


def chunk_sentences(text: str, max_chars: int = SPEECH_CHUNK_CHARS) -> list[str]:
    """Group sentences into chunks of at most max_chars (a single longer
    sentence becomes its own chunk)."""
    sentences = [s for s in re.split(r"(?<=[.!?])\s+", text) if s.strip()]
    chunks: list[str] = []
    buf = ""
    for sentence in sentences:
        if buf and len(buf) + len(sentence) > max_chars:
            chunks.append(buf.strip())
            buf = sentence
        else:
            buf = f"{buf} {sentence}" if buf else sentence
    if buf.strip():
        chunks.append(buf.strip())
    return chunks
