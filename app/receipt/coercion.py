import json
import logging
import re
from dataclasses import dataclass
from typing import Any, Mapping

from pydantic import ValidationError

from app.receipt.base import ReceiptAnalysisResult, safe_default
from app.receipt.validation import Rejected, validate

logger = logging.getLogger("receipts")

PARSING_ERROR = "parsing error"
PROCESSING_ERROR = "processing error"

_CODE_FENCE = re.compile(r"^\s*```[A-Za-z0-9_-]*\s*\n?(.*?)\n?\s*```\s*$", re.DOTALL)


@dataclass(frozen=True)
class CoercionFailure:
    reason: str
    detail: str | None = None


def strip_code_fences(text: str) -> str:
    """Remove a surrounding ```json ... ``` (or bare ```) block, if any."""
    match = _CODE_FENCE.match(text)
    if match:
        return match.group(1).strip()
    return text.strip()


def _from_mapping(data: Mapping[str, Any]) -> ReceiptAnalysisResult | CoercionFailure:
    try:
        return ReceiptAnalysisResult.model_validate(data)
    except ValidationError as e:
        return CoercionFailure("schema mismatch", str(e))


def coerce(raw: Any) -> ReceiptAnalysisResult | CoercionFailure:
    """Turn a backend response into a ReceiptAnalysisResult.

    Accepts an already-parsed result, a mapping, or model text that should
    contain a JSON object (optionally wrapped in a markdown code fence).
    Never raises; failures come back as CoercionFailure.
    """
    if isinstance(raw, ReceiptAnalysisResult):
        return raw

    if isinstance(raw, Mapping):
        return _from_mapping(raw)

    if isinstance(raw, (bytes, bytearray)):
        try:
            raw = bytes(raw).decode("utf-8")
        except UnicodeDecodeError as e:
            return CoercionFailure("response is not valid UTF-8", str(e))

    if not isinstance(raw, str):
        return CoercionFailure("unsupported response type", type(raw).__name__)

    text = strip_code_fences(raw)
    if not text:
        return CoercionFailure("empty response")

    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        return CoercionFailure("invalid JSON", str(e))

    if not isinstance(data, dict):
        return CoercionFailure("JSON is not an object", type(data).__name__)

    return _from_mapping(data)


def finalize(raw: Any) -> ReceiptAnalysisResult:
    """Coerce and validate a backend response, falling back to the safe default."""
    coerced = coerce(raw)
    if isinstance(coerced, CoercionFailure):
        logger.warning(
            "Failed to parse receipt data, returning safe default",
            extra={"extra_data": {"reason": coerced.reason, "detail": coerced.detail}},
        )
        return safe_default(PARSING_ERROR)

    outcome = validate(coerced)
    if isinstance(outcome, Rejected):
        return safe_default(PROCESSING_ERROR)

    return outcome.result
