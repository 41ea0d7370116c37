"""Drug-allergy conflict detection.

A medication conflicts with an allergy when the normalized names contain
one another, or when the allergy names a drug class (penicillin, sulfa,
nsaid, ...) whose member drugs appear in the medication name.
"""

from typing import Iterable

from carevault.models.medical_history import DRUG_ALLERGY_CONFLICT
from carevault.models.medication import ConflictResult, Medication
from carevault.services.audit import record_audit
from carevault.services.knowledge_base import DrugKnowledgeBase, get_knowledge_base
from carevault.services.normalizer import normalize


def check_conflict(
    medication: str,
    allergy: str,
    kb: DrugKnowledgeBase | None = None,
) -> bool:
    kb = kb or get_knowledge_base()
    norm_med = normalize(medication)
    norm_allergy = normalize(allergy)

    # Direct match
    if norm_med in norm_allergy or norm_allergy in norm_med:
        return True

    # Drug class mappings
    for class_key, drugs in kb.allergy_classes.items():
        norm_key = normalize(class_key)
        if norm_key in norm_allergy or norm_allergy in norm_key:
            if any(normalize(drug) in norm_med for drug in drugs):
                return True

    return False


def check_medications(
    medications: Iterable[Medication],
    allergies: Iterable[str],
    kb: DrugKnowledgeBase | None = None,
) -> list[ConflictResult]:
    """Return one conflict per (medication, allergy) pair that matches.

    Results are medication-major, allergy-minor and are not deduplicated.
    """
    kb = kb or get_knowledge_base()
    # Names with no letters or digits would substring-match everything
    allergy_list = [a for a in allergies if normalize(a)]
    conflicts: list[ConflictResult] = []

    for med in medications:
        if not normalize(med.name):
            continue
        for allergy in allergy_list:
            if check_conflict(med.name, allergy, kb):
                conflicts.append(ConflictResult(
                    medication=med.name,
                    allergy=allergy,
                    severity="high",
                ))

    return conflicts


async def log_conflict(
    patient_id: str,
    doctor_id: str,
    conflicts: list[ConflictResult],
    acknowledged: bool,
) -> bool:
    """Append a drug_allergy_conflict audit entry. Never raises."""
    return await record_audit(
        patient_id=patient_id,
        doctor_id=doctor_id,
        record_type=DRUG_ALLERGY_CONFLICT,
        title="Drug-Allergy Conflict Detected",
        findings_key="conflicts",
        findings=[c.model_dump() for c in conflicts],
        acknowledged=acknowledged,
    )
