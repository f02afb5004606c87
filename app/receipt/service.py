import asyncio
import logging

from app.config import Settings
from app.receipt.base import RawExtraction, ReceiptAnalysisResult, ReceiptExtractor, UpstreamExtractionError
from app.receipt.coercion import finalize

logger = logging.getLogger("receipts")


class ReceiptProcessor:
    """Runs one receipt through the extractor and the validation rules.

    Upstream calls are bounded by the configured timeout and retried with
    exponential backoff. Unusable model output never raises; it becomes the
    safe default.
    """

    def __init__(self, extractor: ReceiptExtractor, settings: Settings):
        self.extractor = extractor
        self.timeout = settings.receipt_processing_timeout
        self.retries = settings.receipt_processing_retries
        self.backoff = settings.receipt_retry_backoff

    async def _extract_with_retries(self, image_bytes: bytes, content_type: str) -> RawExtraction:
        attempts = self.retries + 1
        last_err: Exception | None = None
        for attempt in range(attempts):
            try:
                return await asyncio.wait_for(
                    self.extractor.extract(image_bytes, content_type),
                    timeout=self.timeout,
                )
            except asyncio.TimeoutError as e:
                last_err = e
                reason = f"timed out after {self.timeout}s"
            except Exception as e:
                last_err = e
                reason = str(e) or type(e).__name__

            logger.warning(
                f"Receipt extraction attempt {attempt + 1}/{attempts} failed: {reason}",
                extra={"extra_data": {"attempt": attempt + 1, "attempts": attempts}},
            )
            if attempt + 1 < attempts and self.backoff > 0:
                await asyncio.sleep(self.backoff * 2 ** attempt)

        raise UpstreamExtractionError(f"Failed to process receipt: {last_err}") from last_err

    async def process(self, image_bytes: bytes, content_type: str = "image/jpeg") -> ReceiptAnalysisResult:
        raw = await self._extract_with_retries(image_bytes, content_type)
        result = finalize(raw)

        logger.info(
            "Receipt processed",
            extra={"extra_data": {
                "items_count": len(result.items),
                "additional_costs_count": len(result.additional_costs),
                "currency": result.currency,
                "error_text": result.error_text,
            }},
        )
        return result
