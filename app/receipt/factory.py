from app.config import Settings
from app.receipt.base import ReceiptExtractor
from app.receipt.gemini_provider import GeminiReceiptExtractor
from app.receipt.openai_provider import OpenAIReceiptExtractor


def get_receipt_extractor(settings: Settings) -> ReceiptExtractor:
    """Return the configured receipt extraction provider."""
    provider = settings.receipt_provider
    if provider == "openai":
        if not settings.openai_api_key:
            raise ValueError("OPENAI_API_KEY is required for the openai receipt provider")
        return OpenAIReceiptExtractor(settings.openai_api_key, settings.openai_receipt_model)
    if provider == "gemini":
        if not settings.gemini_api_key:
            raise ValueError("GEMINI_API_KEY is required for the gemini receipt provider")
        return GeminiReceiptExtractor(settings.gemini_api_key, settings.gemini_receipt_model)
    raise ValueError(f"Unknown receipt provider: {provider}")
