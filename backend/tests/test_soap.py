import pytest

from clinrecall.models.case import CaseNote, DiffOp
from clinrecall.services.soap import (
    chunk_sentences,
    compare_case,
    diff_words,
    extract_soap_sections,
    summarize_for_speech,
)

DRAFT = (
    "**S (Subjective):**\nChest pain for 3 days, pleuritic.\n"
    "O (Objective):\nBP 132/84, HR 88. Tender left chest wall.\n"
    "A (Assessment):\nCostochondritis, rule out pericarditis.\n"
    "P (Plan):\nNSAIDs, ECG, return if dyspnea.\n"
    "ICD-10: M94.0\nCPT: 99213"
)


def _rebuild(tokens, side):
    keep = {DiffOp.EQUAL, side}
    return "".join(t.text for t in tokens if t.op in keep)


class TestExtractSections:
    def test_all_sections(self):
        soap = extract_soap_sections(DRAFT)
        assert soap.subjective == "Chest pain for 3 days, pleuritic."
        assert soap.objective == "BP 132/84, HR 88. Tender left chest wall."
        assert soap.assessment == "Costochondritis, rule out pericarditis."
        assert soap.plan == "NSAIDs, ECG, return if dyspnea."

    def test_missing_sections_are_empty(self):
        soap = extract_soap_sections("A (Assessment): Viral URI")
        assert soap.assessment == "Viral URI"
        assert soap.subjective == ""
        assert soap.plan == ""

    def test_free_text(self):
        soap = extract_soap_sections("no headings here")
        assert soap.model_dump() == {
            "subjective": "",
            "objective": "",
            "assessment": "",
            "plan": "",
        }


class TestDiffWords:
    @pytest.mark.parametrize(
        "before,after",
        [
            ("Costochondritis, rule out pericarditis.", "Costochondritis"),
            ("NSAIDs, ECG, return if dyspnea.", "Ibuprofen 400mg, ECG, return precautions"),
            ("", "new text"),
            ("old text", ""),
            ("same  spacing\nkept", "same  spacing\nkept"),
        ],
    )
    def test_both_sides_reconstruct(self, before, after):
        tokens = diff_words(before, after)
        assert _rebuild(tokens, DiffOp.REMOVED) == before
        assert _rebuild(tokens, DiffOp.ADDED) == after

    def test_identical_text_is_all_equal(self):
        tokens = diff_words("rest ice elevation", "rest ice elevation")
        assert [t.op for t in tokens] == [DiffOp.EQUAL]

    def test_replaced_word(self):
        tokens = diff_words("order ECG today", "order CXR today")
        ops = [(t.op, t.text) for t in tokens]
        assert (DiffOp.REMOVED, "ECG") in ops
        assert (DiffOp.ADDED, "CXR") in ops


def test_compare_case():
    case = CaseNote(
        id="c1",
        transcript="t",
        ai_draft=DRAFT,
        clinician_diagnosis="Costochondritis",
        clinician_plan="NSAIDs, ECG",
        created_at="2024-01-01 00:00:00",
    )
    comparison = compare_case(case)

    assert comparison.case_id == "c1"
    assert comparison.soap.assessment == "Costochondritis, rule out pericarditis."
    assert _rebuild(comparison.diagnosis_diff, DiffOp.REMOVED) == comparison.soap.assessment
    assert _rebuild(comparison.diagnosis_diff, DiffOp.ADDED) == "Costochondritis"
    assert _rebuild(comparison.plan_diff, DiffOp.ADDED) == "NSAIDs, ECG"


class TestSpeechText:
    def test_short_text_unchanged(self):
        assert summarize_for_speech("Take two tablets.") == "Take two tablets."

    def test_long_soap_note_is_summarised(self):
        note = DRAFT + "\n" + ("Additional detail. " * 60)
        spoken = summarize_for_speech(note)
        assert spoken.startswith("Patient: Chest pain for 3 days, pleuritic.")
        assert "Vitals: BP 132/84, HR 88." in spoken
        assert "Assessment: Costochondritis, rule out pericarditis." in spoken
        assert len(spoken) <= 803

    def test_long_plain_text_keeps_three_sentences(self):
        text = "One. Two! Three? Four. " + "x" * 900
        assert summarize_for_speech(text) == "One. Two. Three."

    def test_chunks_respect_limit(self):
        sentence = "The patient reports intermittent chest pain."  # 44 chars
        chunks = chunk_sentences(" ".join([sentence] * 10))
        assert all(len(c) <= 150 for c in chunks)
        assert " ".join(chunks) == " ".join([sentence] * 10)

    def test_long_sentence_is_its_own_chunk(self):
        long_sentence = "word " * 50 + "end."
        chunks = chunk_sentences(f"Short. {long_sentence.strip()} Tail.")
        assert chunks[0] == "Short."
        assert chunks[1] == long_sentence.strip()
        assert chunks[-1] == "Tail."

    def test_empty_text(self):
        assert chunk_sentences("") == []
