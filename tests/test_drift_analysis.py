"""Tests for prescription drift analysis."""

from datetime import UTC, datetime

from carevault.models.medication import Medication, MedicalRecordLike, WearableReading
from carevault.services.drift_analysis import _months_before, analyze_drift
from carevault.services.knowledge_base import DrugKnowledgeBase

NOW = datetime(2026, 3, 15, 12, 0, tzinfo=UTC)


def _meds(*names):
    return [Medication(name=n) for n in names]


def _record(record_type, title, date_recorded):
    return MedicalRecordLike(record_type=record_type, title=title, date_recorded=date_recorded)


def _reading(type_, label, value, unit, status):
    return WearableReading(
        type=type_, label=label, value=value, unit=unit,
        timestamp="2026-03-15T11:59:00+00:00", status=status,
    )


def _ids(advisories):
    return [a.id for a in advisories]


class TestEmptyInput:
    def test_no_medications_no_advisories(self):
        history = [_record("diagnosis", "Hypertension", "2026-03-10")]
        readings = [_reading("heart_rate", "Heart Rate", "120", "bpm", "elevated")]
        assert analyze_drift([], history, readings, [], ["Type 2 Diabetes"], now=NOW) == []

    def test_quiet_record(self):
        assert analyze_drift(_meds("Metformin"), [], [], [], [], now=NOW) == []


class TestRecentConditions:
    def test_recent_diagnosis_flags(self):
        history = [
            _record("diagnosis", "Hypertension", "2026-03-01"),
            _record("lab_test", "HbA1c", "2026-02-20"),
            _record("note", "Phone call", "2026-03-12"),
        ]
        advisories = analyze_drift(_meds("Lisinopril"), history, now=NOW)
        assert _ids(advisories) == ["recent_conditions"]
        advisory = advisories[0]
        assert advisory.type == "history_mismatch"
        assert advisory.severity == "caution"
        assert advisory.detail.startswith("2 new medical record(s)")
        assert "Hypertension" in advisory.detail and "HbA1c" in advisory.detail

    def test_old_diagnosis_ignored(self):
        history = [_record("diagnosis", "Asthma", "2025-12-01")]
        assert analyze_drift(_meds("Salbutamol"), history, now=NOW) == []

    def test_unparseable_date_ignored(self):
        history = [_record("condition", "Gout", "not a date")]
        assert analyze_drift(_meds("Allopurinol"), history, now=NOW) == []


class TestWearableContext:
    def test_abnormal_reading_flags(self):
        readings = [
            _reading("heart_rate", "Heart Rate", "112", "bpm", "elevated"),
            _reading("spo2", "SpO2", "97", "%", "normal"),
        ]
        advisories = analyze_drift(_meds("Metoprolol"), [], readings, now=NOW)
        assert _ids(advisories) == ["wearable_context"]
        assert "Heart Rate: 112 bpm (elevated)" in advisories[0].detail
        assert "SpO2" not in advisories[0].detail

    def test_normal_and_unavailable_readings_quiet(self):
        readings = [
            _reading("heart_rate", "Heart Rate", "72", "bpm", "normal"),
            _reading("steps", "Steps", "--", "", "unavailable"),
        ]
        assert analyze_drift(_meds("Metoprolol"), [], readings, now=NOW) == []


class TestTimingGap:
    def test_many_meds_with_old_prescription(self):
        history = [_record("prescription", "Initial regimen", "2025-06-01")]
        advisories = analyze_drift(_meds("A", "B", "C", "D"), history, now=NOW)
        assert _ids(advisories) == ["timing_gap"]
        assert advisories[0].severity == "info"
        assert "4 active medications" in advisories[0].detail

    def test_three_meds_is_not_enough(self):
        history = [_record("prescription", "Initial regimen", "2025-06-01")]
        assert analyze_drift(_meds("A", "B", "C"), history, now=NOW) == []

    def test_recent_prescription_only(self):
        history = [_record("prescription", "Refill", "2025-10-01")]
        assert analyze_drift(_meds("A", "B", "C", "D"), history, now=NOW) == []


class TestConditionGap:
    def test_diabetes_without_medication(self):
        advisories = analyze_drift(_meds("Lisinopril"), [], [], [], ["Type 2 Diabetes"], now=NOW)
        assert _ids(advisories) == ["condition_med_gap"]
        assert advisories[0].type == "history_mismatch"

    def test_diabetes_with_medication(self):
        meds = _meds("Lisinopril", "Metformin 500mg")
        assert analyze_drift(meds, [], [], [], ["Type 2 Diabetes"], now=NOW) == []

    def test_condition_match_is_normalized(self):
        advisories = analyze_drift(_meds("Lisinopril"), [], [], [], ["DIABETES-mellitus"], now=NOW)
        assert _ids(advisories) == ["condition_med_gap"]

    def test_custom_diabetes_drugs(self):
        kb = DrugKnowledgeBase.from_dict({"diabetes_drugs": ["tirzepatide"]})
        meds = _meds("Tirzepatide 5mg")
        assert analyze_drift(meds, [], [], [], ["Diabetes"], now=NOW, kb=kb) == []


class TestCombined:
    def test_each_check_contributes_at_most_once(self):
        history = [
            _record("diagnosis", "CKD stage 2", "2026-03-10"),
            _record("condition", "Hypertension", "2026-03-11"),
            _record("prescription", "Old regimen", "2024-01-01"),
            _record("prescription", "Older regimen", "2023-01-01"),
        ]
        readings = [
            _reading("heart_rate", "Heart Rate", "45", "bpm", "low"),
            _reading("temperature", "Body Temp", "38.2", "°C", "elevated"),
        ]
        advisories = analyze_drift(
            _meds("Lisinopril", "Amlodipine", "Atorvastatin", "Aspirin"),
            history, readings, ["Penicillin"], ["Type 2 Diabetes"], now=NOW,
        )
        assert _ids(advisories) == [
            "recent_conditions", "wearable_context", "timing_gap", "condition_med_gap",
        ]

    def test_advisories_carry_no_allergy_findings(self):
        advisories = analyze_drift(_meds("Amoxicillin"), [], [], ["Penicillin"], [], now=NOW)
        assert advisories == []


class TestMonthsBefore:
    def test_crosses_year(self):
        assert _months_before(datetime(2026, 3, 15, tzinfo=UTC), 6) == datetime(2025, 9, 15, tzinfo=UTC)

    def test_clamps_day(self):
        assert _months_before(datetime(2026, 8, 31, tzinfo=UTC), 6) == datetime(2026, 2, 28, tzinfo=UTC)
