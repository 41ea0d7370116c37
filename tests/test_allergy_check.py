"""Tests for drug-allergy conflict detection."""

from unittest.mock import AsyncMock, patch

from carevault.models.medication import ConflictResult, Medication
from carevault.services.allergy_check import check_conflict, check_medications, log_conflict
from carevault.services.knowledge_base import DrugKnowledgeBase
from carevault.services.medical_history import list_records


def _meds(*names):
    return [Medication(name=n) for n in names]


# --- check_conflict ---


class TestCheckConflict:
    def test_direct_match(self):
        assert check_conflict("Ibuprofen 400mg", "ibuprofen")

    def test_direct_match_is_bidirectional(self):
        assert check_conflict("Aspirin", "Aspirin allergy (severe)")

    def test_class_match_penicillin(self):
        assert check_conflict("Amoxicillin 500mg", "Penicillin")

    def test_class_match_sulfa(self):
        assert check_conflict("Bactrim DS", "Sulfa drugs")

    def test_class_match_nsaid(self):
        assert check_conflict("Naproxen 250mg", "NSAIDs")

    def test_no_match(self):
        assert not check_conflict("Metformin 500mg", "Penicillin")

    def test_case_and_punctuation_insensitive(self):
        assert check_conflict("CO-CODAMOL 30/500", "codeine")

    def test_custom_knowledge_base(self):
        kb = DrugKnowledgeBase.from_dict({"allergy_classes": {"tetracycline": ["doxycycline"]}})
        assert check_conflict("Doxycycline 100mg", "Tetracycline", kb)
        assert not check_conflict("Amoxicillin", "Penicillin", kb)


# --- check_medications ---


class TestCheckMedications:
    def test_empty_inputs(self):
        assert check_medications([], ["Penicillin"]) == []
        assert check_medications(_meds("Amoxicillin"), []) == []

    def test_direct_name_match(self):
        conflicts = check_medications(_meds("Amoxicillin 500mg"), ["amoxicillin"])
        assert len(conflicts) == 1
        assert conflicts[0].severity == "high"

    def test_brand_in_class(self):
        conflicts = check_medications(_meds("Augmentin"), ["penicillin"])
        assert [(c.medication, c.allergy) for c in conflicts] == [("Augmentin", "penicillin")]

    def test_no_false_positive(self):
        assert check_medications(_meds("Paracetamol"), ["penicillin"]) == []

    def test_single_conflict(self):
        conflicts = check_medications(_meds("Amoxicillin 500mg"), ["Penicillin"])
        assert conflicts == [
            ConflictResult(medication="Amoxicillin 500mg", allergy="Penicillin", severity="high"),
        ]

    def test_every_result_is_high(self):
        conflicts = check_medications(
            _meds("Amoxicillin", "Bactrim", "Ibuprofen"),
            ["Penicillin", "Sulfa", "NSAID"],
        )
        assert conflicts
        assert {c.severity for c in conflicts} == {"high"}

    def test_results_pair_inputs(self):
        meds = _meds("Amoxicillin", "Metformin", "Bactrim")
        allergies = ["Penicillin", "Sulfa"]
        for c in check_medications(meds, allergies):
            assert c.medication in {m.name for m in meds}
            assert c.allergy in allergies
            assert check_conflict(c.medication, c.allergy)

    def test_medication_major_order(self):
        conflicts = check_medications(
            _meds("Ibuprofen", "Amoxicillin"),
            ["Penicillin", "Ibuprofen", "NSAID"],
        )
        assert [(c.medication, c.allergy) for c in conflicts] == [
            ("Ibuprofen", "Ibuprofen"),
            ("Ibuprofen", "NSAID"),
            ("Amoxicillin", "Penicillin"),
        ]

    def test_duplicates_are_kept(self):
        conflicts = check_medications(_meds("Amoxicillin", "Amoxicillin"), ["Penicillin"])
        assert len(conflicts) == 2

    def test_blank_names_are_skipped(self):
        conflicts = check_medications(_meds("", "  ", "--"), ["Penicillin", ""])
        assert conflicts == []

    def test_blank_allergy_does_not_match_everything(self):
        assert check_medications(_meds("Metformin"), ["", " "]) == []


# --- log_conflict ---


class TestLogConflict:
    async def test_writes_audit_record(self, patient, doctor):
        conflicts = [ConflictResult(medication="Amoxicillin", allergy="Penicillin")]
        assert await log_conflict(patient.user_id, doctor.user_id, conflicts, True)

        records = await list_records(patient.user_id)
        assert len(records) == 1
        assert records[0].record_type == "drug_allergy_conflict"
        assert records[0].recorded_by == doctor.user_id
        assert '"acknowledged": true' in records[0].description

    async def test_failure_is_swallowed(self, patient, doctor):
        conflicts = [ConflictResult(medication="Amoxicillin", allergy="Penicillin")]
        failing = AsyncMock(side_effect=RuntimeError("db down"))
        with patch("carevault.services.audit.add_record", failing):
            assert await log_conflict(patient.user_id, doctor.user_id, conflicts, True) is False
        failing.assert_awaited_once()
