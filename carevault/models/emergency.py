from pydantic import BaseModel

from carevault.models.medical_history import MedicalRecord
from carevault.models.medication import DriftAdvisory, WearableReading
from carevault.models.prescription import Prescription
from carevault.models.profile import MinimumSafeDataset


class PatientRecordView(BaseModel):
    patient_id: str
    expires_at: str
    safe_dataset: MinimumSafeDataset
    prescriptions: list[Prescription] = []
    medical_history: list[MedicalRecord] = []
    wearable_readings: list[WearableReading] = []
    advisories: list[DriftAdvisory] = []
