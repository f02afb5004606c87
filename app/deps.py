from fastapi import Depends, Request

from app.config import Settings
from app.receipt.base import ReceiptExtractor
from app.receipt.service import ReceiptProcessor
from app.schemas import SERVICE_UNAVAILABLE, ReceiptAPIError


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_extractor(request: Request) -> ReceiptExtractor:
    """The app-wide extractor built by create_app; None means misconfigured."""
    extractor = request.app.state.extractor
    if extractor is None:
        raise ReceiptAPIError(503, SERVICE_UNAVAILABLE, "Receipt scanning is not available")
    return extractor


def get_receipt_processor(
    extractor: ReceiptExtractor = Depends(get_extractor),
    settings: Settings = Depends(get_settings),
) -> ReceiptProcessor:
    return ReceiptProcessor(extractor, settings)
