import io
import os
from dataclasses import replace

os.environ.setdefault("APP_ENV", "test")
os.environ.setdefault("LOG_LEVEL", "DEBUG")

from fastapi.testclient import TestClient  # noqa: E402
import pytest  # noqa: E402
from PIL import Image  # noqa: E402

from app.config import Settings  # noqa: E402
from app.deps import get_extractor  # noqa: E402
from app.main import create_app  # noqa: E402
from app.ratelimit import limiter  # noqa: E402
from app.receipt.base import ReceiptAnalysisResult  # noqa: E402


def make_image(size=(64, 48), fmt="PNG", color=(255, 255, 255)) -> bytes:
    buf = io.BytesIO()
    Image.new("RGB", size, color).save(buf, format=fmt)
    return buf.getvalue()


def make_result(**overrides) -> ReceiptAnalysisResult:
    data = {
        "items": [
            {"name": "Flat white", "quantity": 2, "price": 4.50},
            {"name": "Banana bread", "quantity": 1, "price": 8.99},
        ],
        "additionalCosts": [],
        "totalPrice": 17.99,
        "currency": "AUD",
        "currencySymbol": "$",
    }
    data.update(overrides)
    return ReceiptAnalysisResult.model_validate(data)


class FakeExtractor:
    """Returns (or raises) the queued responses in order; the last one repeats."""

    def __init__(self, *responses):
        self.responses = list(responses)
        self.calls = []
        self.closed = False

    async def aclose(self) -> None:
        self.closed = True

    async def extract(self, image_bytes: bytes, content_type: str):
        self.calls.append((image_bytes, content_type))
        response = self.responses[min(len(self.calls), len(self.responses)) - 1]
        if isinstance(response, BaseException):
            raise response
        return response


@pytest.fixture()
def settings() -> Settings:
    return Settings(
        app_env="test",
        openai_api_key="sk-test",
        rate_limit="1000/minute",
        receipt_processing_timeout=5.0,
        receipt_processing_retries=1,
        receipt_retry_backoff=0,
    )


@pytest.fixture(autouse=True)
def _reset_rate_limits():
    limiter.reset()
    yield
    limiter.reset()


@pytest.fixture()
def png_bytes() -> bytes:
    return make_image()


@pytest.fixture()
def build_client(settings):
    def _build(extractor=None, raise_server_exceptions=True, **setting_overrides) -> TestClient:
        app_settings = replace(settings, **setting_overrides)
        app = create_app(app_settings)
        if extractor is not None:
            app.dependency_overrides[get_extractor] = lambda: extractor
        return TestClient(app, raise_server_exceptions=raise_server_exceptions)

    return _build
