"""
Rate confirmation extraction package.

This package provides the extraction pipeline split into:
- contract: Versioned instruction contracts sent to the model
- parser: Delimited-text and JSON response parsing
- normalizers: Total field normalization (dates, money, equipment, locations)
- records: LoadRecord assembly and review warnings
- metrics: Derived figures (rate per mile)
- documents: Payload validation before the model call

The RateConfExtractor class orchestrates one document through all stages.
"""

import asyncio
import base64
import logging
from typing import Any

from openai import AsyncOpenAI, OpenAIError

from ...models import (
    ContractVersion,
    ExtractionOutcome,
    ExtractionRequest,
    RawExtractionResult,
)
from .contract import InstructionContract, get_contract
from .documents import DocumentService, get_document_service
from .exceptions import (
    ExtractionError,
    ExtractionUnavailable,
    InvalidInput,
    MalformedExtraction,
    PersistenceFailure,
)
from .metrics import compute_metrics, compute_rate_per_mile
from .normalizers import (
    normalize_date,
    normalize_email,
    normalize_equipment,
    normalize_location,
    normalize_miles,
    normalize_money,
    normalize_text,
)
from .parser import ParsedResponse, parse_response
from .records import build_load_record, collect_warnings

logger = logging.getLogger(__name__)

__all__ = [
    "RateConfExtractor",
    "ExtractionError",
    "ExtractionUnavailable",
    "InvalidInput",
    "MalformedExtraction",
    "PersistenceFailure",
    "ParsedResponse",
    "parse_response",
    "build_load_record",
    "compute_metrics",
    "compute_rate_per_mile",
    "normalize_date",
    "normalize_email",
    "normalize_equipment",
    "normalize_location",
    "normalize_miles",
    "normalize_money",
    "normalize_text",
    "get_extractor",
]


class RateConfExtractor:
    """
    Extracts structured loads from rate confirmation documents.

    Uses an OpenAI vision/document model with a fixed, versioned
    instruction contract. One call to ``extract`` runs:
    validate -> model call -> parse -> normalize -> metrics.

    The only side effect is the outbound model call, which is bounded by a
    hard timeout and never retried.
    """

    def __init__(
        self,
        api_key: str | None = None,
        model: str | None = None,
        contract_version: ContractVersion | str | None = None,
        timeout: float | None = None,
        client: Any = None,
        document_service: DocumentService | None = None,
    ):
        """
        Initialize the extractor.

        Args:
            api_key: OpenAI API key. If None, reads from config/environment.
            model: OpenAI model to use (must accept PDF/image input).
            contract_version: Instruction contract to extract with.
            timeout: Whole-operation budget in seconds.
            client: Pre-built OpenAI-compatible async client (tests).
            document_service: Payload validator.
        """
        if api_key is None or model is None or contract_version is None or timeout is None:
            from ...config import get_settings

            settings = get_settings()
            api_key = api_key if api_key is not None else settings.openai_api_key
            model = model or settings.openai_model
            contract_version = contract_version or settings.extraction_contract
            timeout = timeout if timeout is not None else settings.extraction_timeout_seconds

        self.api_key = api_key
        self.model = model
        self.contract: InstructionContract = get_contract(contract_version)
        self.timeout = timeout
        self.documents = document_service or get_document_service()
        self._client = client

    @property
    def client(self) -> Any:
        """Lazy-load the OpenAI client."""
        if self._client is None:
            if not self.api_key:
                raise ExtractionUnavailable(
                    "OpenAI API key not provided. Set OPENAI_API_KEY environment variable."
                )
            # Retries would break the time budget; callers retry the whole pipeline.
            self._client = AsyncOpenAI(
                api_key=self.api_key,
                timeout=self.timeout,
                max_retries=0,
            )
        return self._client

    def build_messages(self, request: ExtractionRequest) -> list[dict[str, Any]]:
        """Build the chat messages: contract as system prompt, document + instruction as user turn."""
        encoded = base64.b64encode(request.content).decode("utf-8")
        data_url = f"data:{request.media_type};base64,{encoded}"

        if request.media_type == "application/pdf":
            document_part = {
                "type": "file",
                "file": {
                    "filename": request.source_file or "rate_confirmation.pdf",
                    "file_data": data_url,
                },
            }
        else:
            document_part = {
                "type": "image_url",
                "image_url": {"url": data_url, "detail": "high"},
            }

        return [
            {"role": "system", "content": self.contract.system_prompt},
            {
                "role": "user",
                "content": [
                    document_part,
                    {"type": "text", "text": self.contract.user_instruction},
                ],
            },
        ]

    async def call_model(self, request: ExtractionRequest) -> RawExtractionResult:
        """
        Submit one request to the model and return its raw output.

        Raises:
            ExtractionUnavailable: On any transport, auth or quota failure.
        """
        client = self.client
        kwargs: dict[str, Any] = {
            "model": self.model,
            "messages": self.build_messages(request),
            "temperature": 0,
        }
        if self.contract.json_response:
            kwargs["response_format"] = {"type": "json_object"}

        try:
            response = await client.chat.completions.create(**kwargs)
        except OpenAIError as e:
            logger.error("Model call failed for '%s': %s", request.source_file, e)
            raise ExtractionUnavailable(f"Model call failed: {e}") from e

        text = ""
        if response.choices:
            text = response.choices[0].message.content or ""

        return RawExtractionResult(contract_version=self.contract.version, text=text)

    def process_response(
        self,
        raw: RawExtractionResult,
        source_file: str | None = None,
        page_count: int | None = None,
    ) -> ExtractionOutcome:
        """
        Turn raw model output into a normalized outcome.

        Deterministic and side-effect free.

        Raises:
            MalformedExtraction: If the output does not match the contract.
        """
        parsed = parse_response(raw)
        load = build_load_record(parsed)
        metrics = compute_metrics(load)

        return ExtractionOutcome(
            load=load,
            metrics=metrics,
            raw_line=parsed.raw_line,
            contract_version=raw.contract_version,
            source_file=source_file,
            page_count=page_count,
            warnings=collect_warnings(load, raw.contract_version),
        )

    async def _run(self, request: ExtractionRequest) -> ExtractionOutcome:
        page_count = None
        if request.media_type == "application/pdf":
            page_count = await asyncio.to_thread(self.documents.get_page_count, request.content)

        logger.info(
            "Extracting '%s' (%s, %d bytes, pages=%s) with contract %s",
            request.source_file,
            request.media_type,
            len(request.content),
            page_count if page_count is not None else "unknown",
            self.contract.version.value,
        )

        raw = await self.call_model(request)
        outcome = self.process_response(raw, request.source_file, page_count)

        logger.info(
            "Extracted load '%s' from '%s' (rpm=%s, %d warning(s))",
            outcome.load.load_id,
            request.source_file,
            outcome.metrics.rate_per_mile,
            len(outcome.warnings),
        )
        return outcome

    async def extract(
        self,
        request: ExtractionRequest,
        timeout: float | None = None,
    ) -> ExtractionOutcome:
        """
        Run the full pipeline for one document.

        Args:
            request: The document to extract.
            timeout: Override for the operation budget in seconds.

        Returns:
            ExtractionOutcome with the load, metrics and review warnings.

        Raises:
            InvalidInput: Payload rejected before any model call.
            ExtractionUnavailable: Model failure or budget exceeded.
            MalformedExtraction: Model output does not match the contract.
        """
        self.documents.validate(request)

        budget = timeout if timeout is not None else self.timeout
        try:
            return await asyncio.wait_for(self._run(request), timeout=budget)
        except asyncio.TimeoutError as e:
            logger.error("Extraction of '%s' timed out after %.1fs", request.source_file, budget)
            raise ExtractionUnavailable(
                f"Extraction timed out after {budget:.1f}s"
            ) from e


# =============================================================================
# Singleton Factory
# =============================================================================

_extractor: RateConfExtractor | None = None


def get_extractor() -> RateConfExtractor:
    """Get or create the extractor singleton."""
    global _extractor
    if _extractor is None:
        _extractor = RateConfExtractor()
    return _extractor
