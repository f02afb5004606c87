from pydantic import BaseModel

from app.receipt.base import ReceiptAnalysisResult

MISSING_FILE = "MISSING_FILE"
INVALID_FILE_TYPE = "INVALID_FILE_TYPE"
FILE_TOO_LARGE = "FILE_TOO_LARGE"
IMAGE_PROCESSING_ERROR = "IMAGE_PROCESSING_ERROR"
PROCESSING_ERROR = "PROCESSING_ERROR"
SERVICE_UNAVAILABLE = "SERVICE_UNAVAILABLE"
RATE_LIMITED = "RATE_LIMITED"
INTERNAL_ERROR = "INTERNAL_ERROR"


class ReceiptProcessingErrorOut(BaseModel):
    error: str
    message: str


class ReceiptProcessingResponse(BaseModel):
    success: bool
    data: ReceiptAnalysisResult | None = None
    error: ReceiptProcessingErrorOut | None = None

    def to_json(self) -> dict:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class ReceiptAPIError(Exception):
    """An HTTP-level failure rendered as the error envelope."""

    def __init__(self, status_code: int, code: str, message: str):
        super().__init__(message)
        self.status_code = status_code
        self.code = code
        self.message = message

    def to_response(self) -> ReceiptProcessingResponse:
        return ReceiptProcessingResponse(
            success=False,
            error=ReceiptProcessingErrorOut(error=self.code, message=self.message),
        )
