"""Tests for Pydantic models."""

from datetime import date

import pytest
from pydantic import ValidationError

from app.tms.models import (
    ContractVersion,
    EquipmentCode,
    ExtractionOutcome,
    ExtractionRequest,
    LoadRecord,
    Location,
    ParseRateConfRequest,
    UpdateLoadRequest,
)


class TestLoadRecord:
    """Tests for LoadRecord model."""

    def test_defaults(self):
        """Test that an empty record has empty/zero defaults."""
        load = LoadRecord()
        assert load.load_id == ""
        assert load.pickup_date is None
        assert load.miles == 0.0
        assert load.booked_rate == 0.0
        assert load.origin == Location()

    def test_empty_date_is_none(self):
        """Test that an empty date string means unknown."""
        load = LoadRecord(pickup_date="", delivery_date="2025-11-24")
        assert load.pickup_date is None
        assert load.delivery_date == date(2025, 11, 24)

    def test_dates_serialize_canonically(self):
        """Test that dates serialize as YYYY-MM-DD."""
        data = LoadRecord(pickup_date=date(2025, 1, 5)).model_dump(mode="json")
        assert data["pickup_date"] == "2025-01-05"

    @pytest.mark.parametrize("field", ["miles", "posted_rate", "booked_rate", "weight"])
    def test_negative_numbers_rejected(self, field: str):
        """Test that money and distance can never be negative."""
        with pytest.raises(ValidationError):
            LoadRecord(**{field: -1})

    def test_invalid_date_rejected(self):
        with pytest.raises(ValidationError):
            LoadRecord(pickup_date="not a date")


class TestLocation:
    """Tests for Location model."""

    def test_str(self):
        assert str(Location(city="Dallas", state="TX")) == "Dallas, TX"
        assert str(Location(city="Dallas")) == "Dallas"
        assert str(Location(state="TX")) == "TX"
        assert str(Location()) == ""


class TestEnums:
    """Tests for enumerations."""

    def test_equipment_labels(self):
        assert EquipmentCode.VAN.label == "Van"
        assert EquipmentCode.VAN_OR_REEFER.value == "VR"
        assert EquipmentCode("R").label == "Reefer"

    def test_contract_versions(self):
        assert ContractVersion("csv-v2") is ContractVersion.CSV_V2
        assert ContractVersion("json-v1") is ContractVersion.JSON_V1
        with pytest.raises(ValueError):
            ContractVersion("csv-v1")


class TestRequests:
    """Tests for request models."""

    def test_extraction_request_media_type(self):
        request = ExtractionRequest(content=b"%PDF", media_type=" IMAGE/PNG ")
        assert request.media_type == "image/png"
        assert request.source_file is None

    def test_extraction_request_hides_content_in_repr(self):
        request = ExtractionRequest(content=b"%PDF secret")
        assert "secret" not in repr(request)

    def test_parse_request_aliases(self):
        """Test that camelCase and snake_case bodies are both accepted."""
        camel = ParseRateConfRequest.model_validate({"pdfBase64": "abc", "fileName": "rc.pdf"})
        snake = ParseRateConfRequest.model_validate({"pdf_base64": "abc", "file_name": "rc.pdf"})
        assert camel.pdf_base64 == snake.pdf_base64 == "abc"
        assert camel.file_name == snake.file_name == "rc.pdf"
        assert camel.media_type == "application/pdf"

    def test_update_tracks_set_fields(self):
        changes = UpdateLoadRequest(booked_rate=1500)
        assert changes.model_fields_set == {"booked_rate"}
        with pytest.raises(ValidationError):
            UpdateLoadRequest(miles=-5)


class TestExtractionOutcome:
    """Tests for ExtractionOutcome model."""

    def test_rate_per_mile_defaults_to_absent(self):
        outcome = ExtractionOutcome(load=LoadRecord(), contract_version=ContractVersion.CSV_V2)
        assert outcome.metrics.rate_per_mile is None
        assert outcome.warnings == []
