from pydantic import BaseModel, Field


class ExtractedMedication(BaseModel):
    name: str = ""
    dosage: str = ""
    frequency: str = ""


class OCRResult(BaseModel):
    """Structured extraction returned by the vision model.

    Field aliases match the JSON the model is prompted to emit.
    """
    medications: list[ExtractedMedication] = []
    prescription_title: str = Field("Scanned Prescription", alias="prescriptionTitle")
    additional_notes: str = Field("", alias="additionalNotes")

    model_config = {"populate_by_name": True}


class OCRScanRequest(BaseModel):
    image_base64: str = ""


class OCRScanResponse(BaseModel):
    result: OCRResult
    error: str | None = None
