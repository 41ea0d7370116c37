import json
import logging
import re
from typing import TypeVar

from anthropic import AsyncAnthropic
from openai import AsyncOpenAI
from pydantic import BaseModel, ValidationError

from carevault.config import (
    ANTHROPIC_API_KEY,
    LLM_DEFAULT_TIER,
    LLM_MODEL_FAST,
    LLM_MODEL_HIGH,
    LLM_MODEL_STANDARD,
    LLM_PROVIDER,
    OPENAI_API_KEY,
)
from carevault.models.ocr import OCRResult

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=BaseModel)


_ANTHROPIC_DEFAULTS = {
    "fast": "claude-3-haiku-20240307",
    "standard": "claude-3-5-sonnet-20240620",
    "high": "claude-3-5-sonnet-20240620",
}

_OPENAI_DEFAULTS = {
    "fast": "gpt-4o-mini",
    "standard": "gpt-4o",
    "high": "gpt-4o",
}

_DATA_URL = re.compile(r"^data:(?P<media>[\w/+.-]+);base64,(?P<data>.*)$", re.DOTALL)


def _strip_json(text: str) -> str:
    text = text.strip()
    if text.startswith("```"):
        text = re.sub(r"^```(?:json)?\s*", "", text)
        text = re.sub(r"\s*```$", "", text)
    start = text.find("{")
    end = text.rfind("}")
    if start != -1 and end != -1 and end > start:
        return text[start:end + 1]
    return text


def split_data_url(image: str) -> tuple[str, str]:
    """Return (media_type, base64 payload); bare base64 is assumed JPEG."""
    match = _DATA_URL.match(image.strip())
    if match:
        return match.group("media"), match.group("data")
    return "image/jpeg", image.strip()


def _coerce_ocr_result(data: object) -> dict:
    if isinstance(data, list):
        data = {"medications": data}
    if not isinstance(data, dict):
        return {}
    meds = []
    for item in data.get("medications") or []:
        if isinstance(item, dict):
            meds.append({
                "name": str(item.get("name") or ""),
                "dosage": str(item.get("dosage") or ""),
                "frequency": str(item.get("frequency") or ""),
            })
        elif item:
            meds.append({"name": str(item).strip()})
    coerced: dict = {"medications": meds}
    if isinstance(data.get("prescriptionTitle"), str):
        coerced["prescriptionTitle"] = data["prescriptionTitle"]
    if isinstance(data.get("additionalNotes"), str):
        coerced["additionalNotes"] = data["additionalNotes"]
    return coerced


def _coerce_payload(data: object, response_model: type[T]) -> object:
    if issubclass(response_model, OCRResult):
        return _coerce_ocr_result(data)
    return data


def _parse(raw: str, response_model: type[T]) -> T:
    raw = _strip_json(raw)
    try:
        return response_model.model_validate_json(raw)
    except ValidationError:
        payload = json.loads(raw)
        coerced = _coerce_payload(payload, response_model)
        return response_model.model_validate(coerced)


class LLMClient:
    def __init__(self) -> None:
        provider = (LLM_PROVIDER or "auto").lower()
        if provider == "auto":
            if ANTHROPIC_API_KEY:
                provider = "anthropic"
            elif OPENAI_API_KEY:
                provider = "openai"
            else:
                provider = "dummy"
        self.provider = provider

        self._anthropic = AsyncAnthropic(api_key=ANTHROPIC_API_KEY) if ANTHROPIC_API_KEY else None
        self._openai = AsyncOpenAI(api_key=OPENAI_API_KEY) if OPENAI_API_KEY else None

    def available(self) -> bool:
        if self.provider == "anthropic":
            return self._anthropic is not None
        if self.provider == "openai":
            return self._openai is not None
        return False

    def model_for_tier(self, tier: str | None) -> str:
        tier = (tier or LLM_DEFAULT_TIER or "fast").lower()
        if tier not in ("fast", "standard", "high"):
            tier = "standard"

        if tier == "fast" and LLM_MODEL_FAST:
            return LLM_MODEL_FAST
        if tier == "standard" and LLM_MODEL_STANDARD:
            return LLM_MODEL_STANDARD
        if tier == "high" and LLM_MODEL_HIGH:
            return LLM_MODEL_HIGH

        if self.provider == "anthropic":
            return _ANTHROPIC_DEFAULTS[tier]
        return _OPENAI_DEFAULTS[tier]

    async def generate_json(
        self,
        *,
        system: str,
        user: str,
        response_model: type[T],
        image: str | None = None,
        max_tokens: int = 1000,
        tier: str | None = None,
    ) -> T:
        """Ask the model for JSON matching ``response_model``.

        ``image`` is a data URL or bare base64 string sent alongside the
        user text for vision extraction.
        """
        if not self.available():
            raise RuntimeError("LLM provider unavailable")

        model = self.model_for_tier(tier)

        if self.provider == "anthropic":
            content: list[dict] = []
            if image:
                media_type, data = split_data_url(image)
                content.append({
                    "type": "image",
                    "source": {"type": "base64", "media_type": media_type, "data": data},
                })
            content.append({"type": "text", "text": user})
            message = await self._anthropic.messages.create(
                model=model,
                max_tokens=max_tokens,
                system=system,
                messages=[{"role": "user", "content": content}],
            )
            raw = ""
            for block in message.content:
                if hasattr(block, "text"):
                    raw += block.text
            return _parse(raw, response_model)

        user_content: list[dict] = [{"type": "text", "text": user}]
        if image:
            media_type, data = split_data_url(image)
            user_content.append({
                "type": "image_url",
                "image_url": {"url": f"data:{media_type};base64,{data}"},
            })
        response = await self._openai.chat.completions.create(
            model=model,
            max_tokens=max_tokens,
            response_format={"type": "json_object"},
            messages=[
                {"role": "system", "content": system},
                {"role": "user", "content": user_content},
            ],
        )
        raw = response.choices[0].message.content
        if not raw:
            raise RuntimeError("LLM returned no content")
        return _parse(raw, response_model)


_client: LLMClient | None = None


def get_llm_client() -> LLMClient:
    global _client
    if _client is None:
        _client = LLMClient()
    return _client
