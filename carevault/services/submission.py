"""Prescription submission with drug-safety gates.

Flow for doctor-authored prescriptions:
1. Check the doctor holds an active access token for the patient
2. Drop draft medications without a name
3. Allergy gate: conflicts against the patient's recorded allergies
4. Interaction gate: the draft plus every medication already on record
5. Persist the prescription, then the audit entry for each acknowledged gate

Each gate that finds something is put to ``decide``. Declining at either gate
aborts the whole submission with nothing written. Gates run strictly in
order and each one reads fresh patient data when it starts, since the
previous gate may have waited on a human for an arbitrary time.

Patient self-entries skip the gates and are stored unverified.
"""

import logging
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Literal

from carevault.errors import AcknowledgmentRequired, AuthenticationRequired, ValidationFailure
from carevault.models.medication import ConflictResult, InteractionResult
from carevault.models.prescription import PrescriptionCreate, SubmissionResult
from carevault.models.profile import Profile
from carevault.services.access_tokens import ensure_doctor_access
from carevault.services.allergy_check import check_medications, log_conflict
from carevault.services.interaction_check import check_interactions, log_interaction
from carevault.services.knowledge_base import DrugKnowledgeBase
from carevault.services.prescriptions import add_prescription, existing_medications, list_prescriptions
from carevault.services.profiles import get_profile

logger = logging.getLogger(__name__)

GateKind = Literal["allergy", "interaction"]


@dataclass
class SafetyGate:
    kind: GateKind
    conflicts: list[ConflictResult] = field(default_factory=list)
    interactions: list[InteractionResult] = field(default_factory=list)


# Returns True to acknowledge and continue, False to cancel.
Decider = Callable[[SafetyGate], Awaitable[bool]]


def _conflict_key(c: ConflictResult) -> tuple[str, str]:
    return (c.medication, c.allergy)


def _interaction_key(i: InteractionResult) -> frozenset[str]:
    return frozenset((i.drug1, i.drug2))


def acknowledgment_decider(
    acknowledged_conflicts: list[ConflictResult],
    acknowledged_interactions: list[InteractionResult],
) -> Decider:
    """Decider for stateless clients that resubmit with what they acknowledged.

    A gate passes only if every current finding was acknowledged; otherwise
    AcknowledgmentRequired carries the findings back to the client.
    """
    seen_conflicts = {_conflict_key(c) for c in acknowledged_conflicts}
    seen_interactions = {_interaction_key(i) for i in acknowledged_interactions}

    async def decide(gate: SafetyGate) -> bool:
        if gate.kind == "allergy":
            covered = all(_conflict_key(c) in seen_conflicts for c in gate.conflicts)
        else:
            covered = all(_interaction_key(i) in seen_interactions for i in gate.interactions)
        if covered:
            return True
        raise AcknowledgmentRequired(
            "Drug-allergy conflicts detected" if gate.kind == "allergy"
            else "Drug-drug interactions detected",
            gate=gate.kind,
            conflicts=[c.model_dump() for c in gate.conflicts],
            interactions=[i.model_dump() for i in gate.interactions],
        )

    return decide


async def submit_prescription(
    actor: Profile | None,
    body: PrescriptionCreate,
    decide: Decider,
    kb: DrugKnowledgeBase | None = None,
) -> SubmissionResult:
    if actor is None:
        raise AuthenticationRequired("Not authenticated")

    if actor.role != "doctor":
        prescription = await add_prescription(actor, body)
        return SubmissionResult(status="submitted", prescription=prescription)

    if not body.patient_id:
        raise ValidationFailure("patient_id is required for doctor submissions")
    patient_id = body.patient_id
    await ensure_doctor_access(actor, patient_id)
    patient = await get_profile(patient_id)
    medications = [m for m in body.medications if m.name.strip()]

    acknowledged_conflicts: list[ConflictResult] = []
    acknowledged_interactions: list[InteractionResult] = []

    if medications:
        if patient.allergies:
            conflicts = check_medications(medications, patient.allergies, kb)
            if conflicts:
                logger.info("Allergy gate raised %d conflict(s) for %s", len(conflicts), patient_id)
                if not await decide(SafetyGate(kind="allergy", conflicts=conflicts)):
                    logger.info("Submission for %s cancelled at allergy gate", patient_id)
                    return SubmissionResult(status="cancelled", cancelled_at="allergy", conflicts=conflicts)
                acknowledged_conflicts = conflicts

        existing = existing_medications(await list_prescriptions(patient_id))
        interactions = check_interactions(medications, existing, kb)
        if interactions:
            logger.info("Interaction gate raised %d interaction(s) for %s", len(interactions), patient_id)
            if not await decide(SafetyGate(kind="interaction", interactions=interactions)):
                logger.info("Submission for %s cancelled at interaction gate", patient_id)
                return SubmissionResult(
                    status="cancelled",
                    cancelled_at="interaction",
                    conflicts=acknowledged_conflicts,
                    interactions=interactions,
                )
            acknowledged_interactions = interactions

    draft = PrescriptionCreate(
        title=body.title,
        description=body.description,
        medications=medications,
        file_url=body.file_url,
        file_type=body.file_type,
        patient_id=patient_id,
    )
    prescription = await add_prescription(actor, draft)

    # Audit writes are best effort; the prescription stands either way.
    if acknowledged_conflicts:
        await log_conflict(patient_id, actor.user_id, acknowledged_conflicts, True)
    if acknowledged_interactions:
        await log_interaction(patient_id, actor.user_id, acknowledged_interactions, True)

    return SubmissionResult(
        status="submitted",
        prescription=prescription,
        conflicts=acknowledged_conflicts,
        interactions=acknowledged_interactions,
    )
