"""
Pydantic models for the rate confirmation extraction pipeline.

Defines strict types for extraction requests, raw model output,
canonical load records, derived metrics, and API payloads.
"""

from datetime import date
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


class ContractVersion(str, Enum):
    """
    Versioned extraction contracts.

    The version is the explicit discriminator between response shapes:
    the parser never guesses the shape from the text itself.
    """

    CSV_V2 = "csv-v2"  # Delimited data line + invoice email, ISO dates
    JSON_V1 = "json-v1"  # Structured object, ISO dates


class EquipmentCode(str, Enum):
    """Canonical trailer equipment codes."""

    VAN = "V"
    REEFER = "R"
    FLATBED = "F"
    VAN_OR_REEFER = "VR"

    @property
    def label(self) -> str:
        return {
            "V": "Van",
            "R": "Reefer",
            "F": "Flatbed",
            "VR": "Van-or-Reefer",
        }[self.value]


class LoadStatus(str, Enum):
    """Lifecycle status of a stored load."""

    PENDING = "pending"
    BOOKED = "booked"
    IN_TRANSIT = "in_transit"
    DELIVERED = "delivered"
    INVOICED = "invoiced"
    CANCELLED = "cancelled"


SUPPORTED_MEDIA_TYPES = (
    "application/pdf",
    "image/png",
    "image/jpeg",
    "image/webp",
    "image/gif",
)


# =============================================================================
# Pipeline Models
# =============================================================================


class ExtractionRequest(BaseModel):
    """
    A single document submitted for extraction.

    Attributes:
        content: Raw document bytes.
        media_type: MIME type of the document (e.g. application/pdf).
        source_file: Original filename, if known.
    """

    content: bytes = Field(..., description="Raw document bytes", repr=False)
    media_type: str = Field(default="application/pdf")
    source_file: str | None = Field(default=None)

    @field_validator("media_type")
    @classmethod
    def normalize_media_type(cls, v: str) -> str:
        """Lowercase and drop MIME parameters (e.g. '; charset=...')."""
        return v.split(";", 1)[0].strip().lower()


class RawExtractionResult(BaseModel):
    """Unprocessed model output, tagged with the contract that produced it."""

    contract_version: ContractVersion
    text: str = ""


class Location(BaseModel):
    """A city plus two-letter region (state/province) code."""

    city: str = ""
    state: str = ""

    def __str__(self) -> str:
        if self.city and self.state:
            return f"{self.city}, {self.state}"
        return self.city or self.state


class LoadRecord(BaseModel):
    """
    Canonical load record produced by one successful extraction.

    Money and distance fields default to 0 and are never negative.
    Dates serialize as YYYY-MM-DD.
    """

    load_id: str = ""
    pickup_date: date | None = None
    delivery_date: date | None = None
    broker_company: str = ""
    broker_mc: str = ""
    contact_name: str = ""
    contact_phone: str = ""
    contact_extension: str = ""
    contact_email: str = ""
    invoice_email: str = Field(
        default="",
        description="Billing address for invoices, distinct from the contact email",
    )
    origin: Location = Field(default_factory=Location)
    destination: Location = Field(default_factory=Location)
    pickup_address: str = ""
    delivery_address: str = ""
    equipment: str = Field(
        default="",
        description="EquipmentCode value, or the source text when unrecognized",
    )
    miles: float = Field(default=0.0, ge=0.0)
    posted_rate: float = Field(default=0.0, ge=0.0)
    booked_rate: float = Field(default=0.0, ge=0.0)
    shipper: str = ""
    receiver: str = ""
    commodity: str = ""
    weight: float = Field(default=0.0, ge=0.0)
    notes: str = ""

    @field_validator("pickup_date", "delivery_date", mode="before")
    @classmethod
    def empty_date_is_none(cls, v: Any) -> Any:
        """Treat an empty string as an unknown date."""
        if isinstance(v, str) and not v.strip():
            return None
        return v


class DerivedMetrics(BaseModel):
    """Figures computed from a normalized load."""

    rate_per_mile: str | None = Field(
        default=None,
        description="Booked rate / miles to 2 decimals; null when not computable",
        examples=["2.50"],
    )


class ExtractionOutcome(BaseModel):
    """Complete result of one successful pipeline run."""

    load: LoadRecord
    metrics: DerivedMetrics = Field(default_factory=DerivedMetrics)
    raw_line: str | None = Field(
        default=None,
        description="Delimited data line as returned by the model (csv contracts only)",
    )
    contract_version: ContractVersion
    source_file: str | None = None
    page_count: int | None = None
    warnings: list[str] = Field(default_factory=list)


# =============================================================================
# API Models
# =============================================================================


class HealthResponse(BaseModel):
    """Health check response."""

    status: str = Field(default="healthy")
    message: str = Field(default="")
    version: str = Field(default="1.0.0")


class ParseRateConfRequest(BaseModel):
    """JSON body for submitting a base64-encoded rate confirmation."""

    model_config = ConfigDict(populate_by_name=True)

    pdf_base64: str | None = Field(default=None, alias="pdfBase64")
    file_name: str | None = Field(default=None, alias="fileName")
    media_type: str = Field(default="application/pdf", alias="mediaType")


class StoredLoadResponse(BaseModel):
    """A load as persisted by the storage layer."""

    id: str = Field(..., description="Load ID (UUID)")
    user_id: str
    status: LoadStatus
    load: LoadRecord
    rate_per_mile: str | None = None
    raw_line: str | None = None
    contract_version: ContractVersion | None = None
    source_file: str | None = None
    created_at: str = Field(..., description="Creation timestamp (ISO format)")
    updated_at: str = Field(..., description="Last update timestamp (ISO format)")


class ParseRateConfResponse(BaseModel):
    """Response for a successful rate confirmation parse."""

    success: bool = True
    load: LoadRecord
    rate_per_mile: str | None = None
    raw_line: str | None = None
    contract_version: ContractVersion
    warnings: list[str] = Field(default_factory=list)
    stored: StoredLoadResponse


class LoadListResponse(BaseModel):
    """Paginated list of stored loads."""

    loads: list[StoredLoadResponse] = Field(default_factory=list)
    total: int = Field(..., ge=0)
    limit: int = Field(..., ge=1)
    offset: int = Field(..., ge=0)


class UpdateLoadRequest(BaseModel):
    """
    Partial update of a stored load.

    Only fields that are explicitly set are applied.
    """

    status: LoadStatus | None = None
    load_id: str | None = None
    pickup_date: date | None = None
    delivery_date: date | None = None
    broker_company: str | None = None
    broker_mc: str | None = None
    contact_name: str | None = None
    contact_phone: str | None = None
    contact_extension: str | None = None
    contact_email: str | None = None
    invoice_email: str | None = None
    origin: Location | None = None
    destination: Location | None = None
    pickup_address: str | None = None
    delivery_address: str | None = None
    equipment: str | None = None
    miles: float | None = Field(default=None, ge=0.0)
    posted_rate: float | None = Field(default=None, ge=0.0)
    booked_rate: float | None = Field(default=None, ge=0.0)
    shipper: str | None = None
    receiver: str | None = None
    commodity: str | None = None
    weight: float | None = Field(default=None, ge=0.0)
    notes: str | None = None


class ErrorResponse(BaseModel):
    """Structured failure returned to callers."""

    error: str = Field(..., description="Stable error kind tag")
    detail: str
    raw_output: str | None = Field(
        default=None,
        description="Verbatim model output, for diagnostic failures",
    )
    load: LoadRecord | None = Field(
        default=None,
        description="Parsed load, when extraction succeeded but persistence failed",
    )
