from typing import Protocol, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

SAFE_DEFAULT_CURRENCY = "USD"
SAFE_DEFAULT_CURRENCY_SYMBOL = "$"


class ReceiptItem(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str = Field(description="Descriptive item name as printed on the receipt")
    quantity: float = Field(description="Number of units purchased, greater than zero")
    price: float = Field(description="Price of a single unit, never negative")


class AdditionalCost(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    name: str = Field(description="Name of the charge, e.g. Tax, Tip, Service fee")
    amount: float = Field(description="Amount of the charge, never negative")
    included_in_subtotal: bool = Field(
        alias="includedInSubtotal",
        description=(
            "Whether this cost is already included in the subtotal (sum of cost of each item) "
            "or if it is added on top of it"
        ),
    )


class ReceiptAnalysisResult(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    items: list[ReceiptItem]
    additional_costs: list[AdditionalCost] = Field(
        default_factory=list,
        alias="additionalCosts",
        description="Additional costs like taxes, surcharges, tips, etc.",
    )
    total_price: float = Field(alias="totalPrice", description="Total amount printed on the receipt")
    currency: str = Field(description="ISO 4217 three-letter currency code, e.g. USD, EUR, GBP")
    currency_symbol: str | None = Field(default=None, alias="currencySymbol")
    error_text: str | None = Field(
        default=None,
        alias="errorText",
        description=(
            'Brief description of why this image could not be processed as a receipt '
            '(e.g. "not a receipt", "too blurry", "incomplete receipt", "multiple receipts")'
        ),
    )

    @field_validator("additional_costs", mode="before")
    @classmethod
    def _null_costs_to_empty(cls, v):
        return [] if v is None else v

    @property
    def has_error(self) -> bool:
        return bool(self.error_text)


# Backends either hand back a parsed result or the model's raw JSON text.
RawExtraction = Union[ReceiptAnalysisResult, str]


class ReceiptExtractor(Protocol):
    async def extract(self, image_bytes: bytes, content_type: str) -> RawExtraction: ...

    async def aclose(self) -> None: ...


class ImageProcessingError(Exception):
    """The uploaded bytes could not be decoded or re-encoded as an image."""


class UpstreamExtractionError(Exception):
    """The hosted model call failed (or timed out) on every attempt."""


def safe_default(error_text: str) -> ReceiptAnalysisResult:
    """Fallback result substituted when model output is unusable."""
    return ReceiptAnalysisResult(
        items=[],
        additional_costs=[],
        total_price=0,
        currency=SAFE_DEFAULT_CURRENCY,
        currency_symbol=SAFE_DEFAULT_CURRENCY_SYMBOL,
        error_text=error_text,
    )
