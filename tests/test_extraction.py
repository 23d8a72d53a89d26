"""Tests for the extraction orchestrator."""

import io
import json

import httpx
import openai
import pytest
from PIL import Image

from app.tms.models import ContractVersion, ExtractionRequest, RawExtractionResult
from app.tms.services.extraction import (
    ExtractionUnavailable,
    InvalidInput,
    MalformedExtraction,
    RateConfExtractor,
)
from app.tms.services.extraction.contract import get_contract
from app.tms.services.extraction.documents import DocumentService


def _png_bytes() -> bytes:
    buffer = io.BytesIO()
    Image.new("RGB", (8, 8), color="white").save(buffer, format="PNG")
    return buffer.getvalue()


class TestExtract:
    """Tests for RateConfExtractor.extract."""

    @pytest.mark.asyncio
    async def test_successful_extraction(self, extractor: RateConfExtractor, sample_pdf_bytes: bytes):
        """Test a full run from document to outcome."""
        request = ExtractionRequest(content=sample_pdf_bytes, source_file="rc.pdf")

        outcome = await extractor.extract(request)

        assert outcome.load.load_id == "LD100"
        assert outcome.load.equipment == "R"
        assert outcome.load.miles == 800
        assert outcome.load.booked_rate == 2000
        assert outcome.load.posted_rate == 0
        assert outcome.load.invoice_email == "billing@acme.com"
        assert outcome.metrics.rate_per_mile == "2.50"
        assert outcome.contract_version == ContractVersion.CSV_V2
        assert outcome.source_file == "rc.pdf"
        assert outcome.page_count == 1
        assert outcome.raw_line.startswith("LD100,")
        assert outcome.warnings == []

    @pytest.mark.asyncio
    async def test_empty_document_rejected_before_model_call(self, extractor: RateConfExtractor):
        """Test that an empty payload never reaches the model."""
        with pytest.raises(InvalidInput):
            await extractor.extract(ExtractionRequest(content=b""))

        assert extractor.client.completions.calls == []

    @pytest.mark.asyncio
    async def test_non_pdf_rejected_before_model_call(self, extractor: RateConfExtractor):
        """Test that a payload without a PDF header never reaches the model."""
        with pytest.raises(InvalidInput, match="PDF header"):
            await extractor.extract(ExtractionRequest(content=b"hello world"))

        assert extractor.client.completions.calls == []

    @pytest.mark.asyncio
    async def test_model_error_is_unavailable(self, make_extractor, sample_pdf_bytes: bytes):
        """Test that SDK failures surface as ExtractionUnavailable."""
        error = openai.APIConnectionError(
            request=httpx.Request("POST", "https://api.openai.com/v1/chat/completions")
        )
        extractor = make_extractor(error=error)

        with pytest.raises(ExtractionUnavailable, match="Model call failed"):
            await extractor.extract(ExtractionRequest(content=sample_pdf_bytes))

        assert len(extractor.client.completions.calls) == 1

    @pytest.mark.asyncio
    async def test_timeout_is_unavailable(self, make_extractor, sample_pdf_bytes: bytes):
        """Test that exceeding the budget surfaces as ExtractionUnavailable."""
        extractor = make_extractor(delay=1.0, timeout=0.05)

        with pytest.raises(ExtractionUnavailable, match="timed out"):
            await extractor.extract(ExtractionRequest(content=sample_pdf_bytes))

    @pytest.mark.asyncio
    async def test_timeout_override(self, make_extractor, sample_pdf_bytes: bytes):
        """Test the per-call timeout override."""
        extractor = make_extractor(delay=1.0, timeout=30.0)

        with pytest.raises(ExtractionUnavailable, match="timed out"):
            await extractor.extract(ExtractionRequest(content=sample_pdf_bytes), timeout=0.05)

    @pytest.mark.asyncio
    async def test_missing_api_key_is_unavailable(
        self, sample_pdf_bytes: bytes, document_service: DocumentService
    ):
        """Test that an unconfigured key fails without a network call."""
        extractor = RateConfExtractor(
            api_key="",
            model="gpt-4.1",
            contract_version=ContractVersion.CSV_V2,
            timeout=5.0,
            document_service=document_service,
        )

        with pytest.raises(ExtractionUnavailable, match="API key"):
            await extractor.extract(ExtractionRequest(content=sample_pdf_bytes))

    @pytest.mark.asyncio
    async def test_malformed_output(self, make_extractor, sample_pdf_bytes: bytes):
        """Test that output without the data-line label is malformed and preserved."""
        extractor = make_extractor(content="Sorry, I can't help with that.")

        with pytest.raises(MalformedExtraction) as exc_info:
            await extractor.extract(ExtractionRequest(content=sample_pdf_bytes))

        assert exc_info.value.raw_output == "Sorry, I can't help with that."

    @pytest.mark.asyncio
    async def test_empty_output_is_malformed(self, make_extractor, sample_pdf_bytes: bytes):
        """Test that a null message body is treated as empty output."""
        extractor = make_extractor(content=None)

        with pytest.raises(MalformedExtraction) as exc_info:
            await extractor.extract(ExtractionRequest(content=sample_pdf_bytes))

        assert exc_info.value.raw_output == ""

    @pytest.mark.asyncio
    async def test_structured_contract(self, make_extractor, sample_pdf_bytes: bytes):
        """Test extraction under the json-v1 contract."""
        content = json.dumps({"load_number": "LD200", "rate": 1250, "miles": 500})
        extractor = make_extractor(content=content, contract=ContractVersion.JSON_V1)

        outcome = await extractor.extract(ExtractionRequest(content=sample_pdf_bytes))

        assert outcome.contract_version == ContractVersion.JSON_V1
        assert outcome.load.load_id == "LD200"
        assert outcome.metrics.rate_per_mile == "2.50"
        assert outcome.raw_line is None

        call = extractor.client.completions.calls[0]
        assert call["response_format"] == {"type": "json_object"}


class TestModelCall:
    """Tests for the request sent to the model."""

    @pytest.mark.asyncio
    async def test_call_parameters(self, extractor: RateConfExtractor, sample_pdf_bytes: bytes):
        """Test model, temperature and the absence of a JSON response format."""
        raw = await extractor.call_model(ExtractionRequest(content=sample_pdf_bytes))

        call = extractor.client.completions.calls[0]
        assert call["model"] == "gpt-4.1"
        assert call["temperature"] == 0
        assert "response_format" not in call
        assert raw.contract_version == ContractVersion.CSV_V2
        assert raw.text.startswith("CSV LINE:")

    def test_pdf_messages(self, extractor: RateConfExtractor, sample_pdf_bytes: bytes):
        """Test that PDFs are sent as a file part with the contract instruction."""
        messages = extractor.build_messages(
            ExtractionRequest(content=sample_pdf_bytes, source_file="rc.pdf")
        )
        contract = get_contract(ContractVersion.CSV_V2)

        assert messages[0] == {"role": "system", "content": contract.system_prompt}
        document_part, text_part = messages[1]["content"]
        assert document_part["type"] == "file"
        assert document_part["file"]["filename"] == "rc.pdf"
        assert document_part["file"]["file_data"].startswith("data:application/pdf;base64,")
        assert text_part == {"type": "text", "text": contract.user_instruction}

    def test_image_messages(self, extractor: RateConfExtractor):
        """Test that images are sent as an image_url part."""
        messages = extractor.build_messages(
            ExtractionRequest(content=_png_bytes(), media_type="image/png")
        )

        document_part = messages[1]["content"][0]
        assert document_part["type"] == "image_url"
        assert document_part["image_url"]["url"].startswith("data:image/png;base64,")

    @pytest.mark.asyncio
    async def test_image_extraction_skips_page_count(self, extractor: RateConfExtractor):
        """Test that image documents run without a page count."""
        outcome = await extractor.extract(
            ExtractionRequest(content=_png_bytes(), media_type="image/png", source_file="rc.png")
        )

        assert outcome.page_count is None
        assert outcome.load.load_id == "LD100"


class TestProcessResponse:
    """Tests for the deterministic post-call stages."""

    def test_process_response(self, extractor: RateConfExtractor, sample_csv_response: str):
        raw = RawExtractionResult(contract_version=ContractVersion.CSV_V2, text=sample_csv_response)

        outcome = extractor.process_response(raw, source_file="rc.pdf", page_count=2)

        assert outcome.load.load_id == "LD100"
        assert outcome.metrics.rate_per_mile == "2.50"
        assert outcome.page_count == 2

    def test_contract_prompts_carry_version(self):
        for version in ContractVersion:
            contract = get_contract(version)
            assert contract.version == version
            assert version.value in contract.system_prompt
        assert get_contract("csv-v2").json_response is False
        assert get_contract(ContractVersion.JSON_V1).json_response is True


class TestErrorShape:
    """Tests for the failure body every error kind reports."""

    @pytest.mark.parametrize(
        "error",
        [
            InvalidInput("No PDF data provided"),
            ExtractionUnavailable("Extraction timed out"),
            MalformedExtraction("No CSV line found", raw_output="garbage"),
        ],
    )
    def test_same_keys_for_every_kind(self, error):
        assert set(error.to_dict()) == {"error", "detail", "raw_output", "load"}
        assert error.to_dict()["error"] == error.kind

    def test_absent_fields_are_null(self):
        assert InvalidInput("bad").to_dict() == {
            "error": "InvalidInput",
            "detail": "bad",
            "raw_output": None,
            "load": None,
        }
