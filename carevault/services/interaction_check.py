"""Drug-drug interaction detection across new and existing medications."""

from typing import Iterable

from carevault.models.medical_history import DRUG_INTERACTION_WARNING
from carevault.models.medication import InteractionResult, Medication
from carevault.services.audit import record_audit
from carevault.services.knowledge_base import DrugKnowledgeBase, get_knowledge_base
from carevault.services.normalizer import names_match, normalize


def drugs_match(medication: str, drug: str) -> bool:
    return names_match(medication, drug)


def _pair_key(a: str, b: str) -> frozenset[str]:
    return frozenset((a, b))


def check_interactions(
    new_medications: Iterable[Medication],
    existing_medications: Iterable[Medication] = (),
    kb: DrugKnowledgeBase | None = None,
) -> list[InteractionResult]:
    """Check every unordered pair of medications against the interaction table.

    Only the first match per concrete medication pair is kept, even when the
    pair matches several table rows or appears in both orientations.
    """
    kb = kb or get_knowledge_base()
    all_meds = [m for m in [*new_medications, *existing_medications] if normalize(m.name)]

    interactions: list[InteractionResult] = []
    seen: set[frozenset[str]] = set()

    for i in range(len(all_meds)):
        for j in range(i + 1, len(all_meds)):
            med1 = all_meds[i].name
            med2 = all_meds[j].name
            for rule in kb.interactions:
                drug_a, drug_b = rule.drugs
                forward = drugs_match(med1, drug_a) and drugs_match(med2, drug_b)
                reverse = drugs_match(med1, drug_b) and drugs_match(med2, drug_a)
                if not (forward or reverse):
                    continue
                key = _pair_key(med1, med2)
                if key in seen:
                    continue
                seen.add(key)
                interactions.append(InteractionResult(
                    drug1=med1,
                    drug2=med2,
                    severity=rule.severity,
                    description=rule.description,
                ))

    return interactions


async def log_interaction(
    patient_id: str,
    doctor_id: str,
    interactions: list[InteractionResult],
    acknowledged: bool,
) -> bool:
    """Append a drug_interaction_warning audit entry. Never raises."""
    return await record_audit(
        patient_id=patient_id,
        doctor_id=doctor_id,
        record_type=DRUG_INTERACTION_WARNING,
        title="Drug-Drug Interaction Warning",
        findings_key="interactions",
        findings=[i.model_dump() for i in interactions],
        acknowledged=acknowledged,
    )
