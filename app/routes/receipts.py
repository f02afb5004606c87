import logging

from fastapi import APIRouter, Depends, File, Request, UploadFile
from starlette.concurrency import run_in_threadpool

from app.config import Settings
from app.deps import get_receipt_processor, get_settings
from app.ratelimit import limiter, receipt_limit, receipt_rate_key
from app.receipt.base import ImageProcessingError, UpstreamExtractionError
from app.receipt.image import OUTPUT_CONTENT_TYPE, preprocess_image
from app.receipt.service import ReceiptProcessor
from app.schemas import (
    FILE_TOO_LARGE,
    IMAGE_PROCESSING_ERROR,
    INVALID_FILE_TYPE,
    MISSING_FILE,
    PROCESSING_ERROR,
    ReceiptAPIError,
    ReceiptProcessingResponse,
)

logger = logging.getLogger("receipts")
router = APIRouter()


@router.post("/receipt/process")
@limiter.limit(receipt_limit, key_func=receipt_rate_key)
async def process_receipt(
    request: Request,
    image: UploadFile | None = File(None),
    settings: Settings = Depends(get_settings),
    processor: ReceiptProcessor = Depends(get_receipt_processor),
):
    if image is None:
        raise ReceiptAPIError(
            400, MISSING_FILE, 'No image file provided. Please upload an image using the "image" field.'
        )

    if image.content_type not in settings.allowed_image_types:
        raise ReceiptAPIError(400, INVALID_FILE_TYPE, "Only image files are allowed")

    image_bytes = await image.read(settings.max_file_size + 1)
    if len(image_bytes) == 0:
        raise ReceiptAPIError(400, MISSING_FILE, "Uploaded image is empty")
    if len(image_bytes) > settings.max_file_size:
        raise ReceiptAPIError(
            413, FILE_TOO_LARGE, f"Image too large. Maximum size is {settings.max_file_size} bytes."
        )

    try:
        processed = await run_in_threadpool(
            preprocess_image,
            image_bytes,
            settings.image_max_dimension,
            settings.image_jpeg_quality,
        )
    except ImageProcessingError as e:
        logger.error(f"Error processing image: {e}")
        raise ReceiptAPIError(500, IMAGE_PROCESSING_ERROR, "Failed to process the uploaded image")

    try:
        result = await processor.process(processed, OUTPUT_CONTENT_TYPE)
    except UpstreamExtractionError as e:
        logger.error(f"Receipt processing error: {e}", exc_info=True)
        raise ReceiptAPIError(500, PROCESSING_ERROR, str(e))

    return ReceiptProcessingResponse(success=True, data=result).to_json()
