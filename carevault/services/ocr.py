"""Prescription image scanning.

The scan is a convenience: any failure (no provider configured, provider
error, unreadable response) falls back to an empty extraction plus an
error message, and the user enters the medications by hand.
"""

import logging

from carevault.errors import OCRFailure, ValidationFailure
from carevault.models.ocr import OCRResult, OCRScanResponse
from carevault.services.llm import get_llm_client

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = """You are a medical prescription OCR assistant. Your task is to extract medication information from prescription images.

Extract ALL medications found in the image and return them in this exact JSON format:
{
  "medications": [
    {
      "name": "Medication Name",
      "dosage": "Dosage (e.g., 500mg)",
      "frequency": "Frequency (e.g., twice daily)"
    }
  ],
  "prescriptionTitle": "Brief description of the prescription",
  "additionalNotes": "Any other relevant information from the prescription"
}

If you cannot read the prescription or no medications are found, return:
{
  "medications": [],
  "prescriptionTitle": "Unreadable Prescription",
  "additionalNotes": "Could not extract medication information from this image"
}

Always respond with valid JSON only, no additional text."""

USER_PROMPT = "Please extract all medication information from this prescription image."


async def _extract(image_base64: str) -> OCRResult:
    client = get_llm_client()
    if not client.available():
        raise OCRFailure("Prescription scanning is not configured")
    try:
        return await client.generate_json(
            system=SYSTEM_PROMPT,
            user=USER_PROMPT,
            response_model=OCRResult,
            image=image_base64,
        )
    except ValueError as exc:
        raise OCRFailure("Could not read the scanning service response") from exc
    except Exception as exc:
        raise OCRFailure("Failed to scan prescription") from exc


async def scan_prescription(image_base64: str) -> OCRScanResponse:
    if not image_base64 or not image_base64.strip():
        raise ValidationFailure("No image provided")

    try:
        result = await _extract(image_base64)
    except OCRFailure as exc:
        logger.warning("Prescription scan failed: %s (%s)", exc.detail, exc.__cause__)
        return OCRScanResponse(result=OCRResult(), error=exc.detail)

    if result.medications:
        logger.info("Prescription scan found %d medication(s)", len(result.medications))
    else:
        logger.info("Prescription scan found no medications")
    return OCRScanResponse(result=result)
