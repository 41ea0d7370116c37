"""Prescription drift analysis.

Correlates the medications on a record with recent history, wearable
readings and chronic conditions. Advisories are informational only: they
never block a submission and are never persisted. Callers recompute them
whenever any input changes.
"""

import calendar
from datetime import datetime, timedelta
from typing import Iterable, Protocol

from carevault.config import (
    PRESCRIPTION_REVIEW_MONTHS,
    RECENT_HISTORY_DAYS,
    TIMING_GAP_MEDICATION_THRESHOLD,
)
from carevault.database import parse_timestamp, utcnow
from carevault.models.medication import DriftAdvisory, Medication, WearableReading
from carevault.services.knowledge_base import DrugKnowledgeBase, get_knowledge_base
from carevault.services.normalizer import normalize

RECENT_CONDITION_TYPES = {"diagnosis", "condition", "lab_test"}
ABNORMAL_STATUSES = {"elevated", "low"}


class HistoryEntry(Protocol):
    record_type: str
    title: str
    date_recorded: str


def _months_before(moment: datetime, months: int) -> datetime:
    year = moment.year
    month = moment.month - months
    while month < 1:
        month += 12
        year -= 1
    day = min(moment.day, calendar.monthrange(year, month)[1])
    return moment.replace(year=year, month=month, day=day)


def _recent_condition_check(history: list[HistoryEntry], now: datetime) -> DriftAdvisory | None:
    cutoff = now - timedelta(days=RECENT_HISTORY_DAYS)
    recent = []
    for record in history:
        recorded = parse_timestamp(record.date_recorded)
        if recorded is None or recorded < cutoff:
            continue
        if record.record_type in RECENT_CONDITION_TYPES:
            recent.append(record)
    if not recent:
        return None
    return DriftAdvisory(
        id="recent_conditions",
        type="history_mismatch",
        message="Prescription context may require clinician review based on recent patient information.",
        detail=(
            f"{len(recent)} new medical record(s) added in the last {RECENT_HISTORY_DAYS} days: "
            + ", ".join(r.title for r in recent)
        ),
        severity="caution",
    )


def _wearable_check(readings: list[WearableReading]) -> DriftAdvisory | None:
    abnormal = [r for r in readings if r.status in ABNORMAL_STATUSES]
    if not abnormal:
        return None
    return DriftAdvisory(
        id="wearable_context",
        type="wearable_context",
        message="Recent wearable-derived indicators may be relevant to prescription context.",
        detail="Abnormal readings detected: " + ", ".join(
            f"{r.label}: {r.value} {r.unit} ({r.status})" for r in abnormal
        ),
        severity="caution",
    )


def _timing_gap_check(
    medications: list[Medication],
    history: list[HistoryEntry],
    now: datetime,
) -> DriftAdvisory | None:
    if len(medications) <= TIMING_GAP_MEDICATION_THRESHOLD:
        return None
    cutoff = _months_before(now, PRESCRIPTION_REVIEW_MONTHS)
    has_old_prescription = False
    for record in history:
        recorded = parse_timestamp(record.date_recorded)
        if record.record_type == "prescription" and recorded is not None and recorded < cutoff:
            has_old_prescription = True
            break
    if not has_old_prescription:
        return None
    return DriftAdvisory(
        id="timing_gap",
        type="timing_gap",
        message="Extended medication history detected. Periodic clinician review may be beneficial.",
        detail=(
            f"Patient has {len(medications)} active medications with prescription records "
            f"older than {PRESCRIPTION_REVIEW_MONTHS} months."
        ),
        severity="info",
    )


def _condition_gap_check(
    medications: list[Medication],
    chronic_conditions: list[str],
    kb: DrugKnowledgeBase,
) -> DriftAdvisory | None:
    has_diabetes = any("diabetes" in normalize(c) for c in chronic_conditions)
    if not has_diabetes:
        return None
    diabetes_drugs = [normalize(d) for d in kb.diabetes_drugs]
    has_diabetes_med = any(
        drug in normalize(m.name) for m in medications for drug in diabetes_drugs
    )
    if has_diabetes_med:
        return None
    return DriftAdvisory(
        id="condition_med_gap",
        type="history_mismatch",
        message="Chronic condition noted without corresponding active medication. Clinician review recommended.",
        detail=(
            "Patient has diabetes listed in conditions but no diabetes-related medication "
            "appears in the current prescription."
        ),
        severity="caution",
    )


def analyze_drift(
    medications: Iterable[Medication],
    medical_history: Iterable[HistoryEntry],
    wearable_readings: Iterable[WearableReading] = (),
    allergies: Iterable[str] = (),
    chronic_conditions: Iterable[str] = (),
    *,
    now: datetime | None = None,
    kb: DrugKnowledgeBase | None = None,
) -> list[DriftAdvisory]:
    """Run the four drift checks; each contributes at most one advisory.

    ``allergies`` is accepted so callers can pass the full patient context;
    allergy conflicts are the allergy matcher's concern, not an advisory.
    """
    meds = list(medications)
    if not meds:
        return []

    now = now or utcnow()
    kb = kb or get_knowledge_base()
    history = list(medical_history)

    checks = [
        _recent_condition_check(history, now),
        _wearable_check(list(wearable_readings)),
        _timing_gap_check(meds, history, now),
        _condition_gap_check(meds, list(chronic_conditions), kb),
    ]
    return [advisory for advisory in checks if advisory is not None]
