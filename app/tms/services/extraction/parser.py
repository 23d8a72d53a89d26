"""
Parsing of raw model output into named raw fields.

Two response shapes are supported, selected by the contract version the
request was made with (never by inspecting the text):
- csv-v2: a labeled comma-separated data line plus a labeled invoice email
- json-v1: a JSON object with a fixed key set

Only structural problems fail here (MalformedExtraction). Missing or empty
values are left for the normalizers to default.
"""

import csv
import json
import logging
import re
from typing import Any

from pydantic import BaseModel, Field

from ...models import ContractVersion, RawExtractionResult
from .contract import (
    DATA_LINE_LABEL,
    DELIMITED_FIELDS,
    INVOICE_EMAIL_LABEL,
    STRUCTURED_KEYS,
)
from .exceptions import MalformedExtraction

logger = logging.getLogger(__name__)

_EMAIL = re.compile(r"[\w.+'-]+@[\w-]+(?:\.[\w-]+)+")


def _label_pattern(label: str) -> re.Pattern[str]:
    """
    Match a block label at the start of a line, case-insensitively.

    Tolerates markdown decoration such as ``**CSV LINE:**`` or ``## CSV LINE:``.
    """
    words = r"[ _]+".join(re.escape(word) for word in label.split())
    return re.compile(
        rf"^[ \t>#*_]*{words}[ \t*_]*:[ \t*_]*(?P<rest>.*)$",
        re.IGNORECASE | re.MULTILINE,
    )


_DATA_LINE_PATTERN = _label_pattern(DATA_LINE_LABEL)
_INVOICE_EMAIL_PATTERN = _label_pattern(INVOICE_EMAIL_LABEL)
_ANY_LABEL_PATTERNS = (_DATA_LINE_PATTERN, _INVOICE_EMAIL_PATTERN)


class ParsedResponse(BaseModel):
    """Named raw field values pulled out of one model response."""

    contract_version: ContractVersion
    fields: dict[str, Any] = Field(default_factory=dict)
    raw_line: str | None = None


def strip_code_fences(text: str) -> str:
    """Remove markdown code fence lines (```json / ```) around a response."""
    lines = [line for line in text.splitlines() if not line.strip().startswith("```")]
    return "\n".join(lines).strip()


def _block_value(text: str, pattern: re.Pattern[str]) -> str | None:
    """
    Return the value of a labeled block, or None if the label is absent.

    The value is the text after the colon on the label line, or else the
    first non-blank line that follows (unless that line is another label).
    """
    match = pattern.search(text)
    if not match:
        return None

    rest = match.group("rest").strip()
    if rest:
        return rest

    for line in text[match.end():].splitlines():
        if not line.strip():
            continue
        if any(p.match(line) for p in _ANY_LABEL_PATTERNS):
            return ""
        return line.strip()
    return ""


def split_data_line(line: str) -> list[str]:
    """Split a comma-separated data line, honoring double-quoted values."""
    try:
        values = next(csv.reader([line], skipinitialspace=True), [])
    except csv.Error:
        logger.warning("Data line is not valid CSV, falling back to plain split: %s", line[:200])
        values = line.split(",")
    return [value.strip() for value in values]


def parse_delimited_response(text: str) -> ParsedResponse:
    """
    Parse a csv-v2 response.

    Raises:
        MalformedExtraction: If the data-line label is missing. The raw
            response is attached verbatim.
    """
    cleaned = strip_code_fences(text or "")
    data_line = _block_value(cleaned, _DATA_LINE_PATTERN)
    if data_line is None:
        logger.error("No '%s' block in model response: %s", DATA_LINE_LABEL, (text or "")[:500])
        raise MalformedExtraction(
            f"Model response does not contain a '{DATA_LINE_LABEL}:' block",
            raw_output=text,
        )

    values = split_data_line(data_line) if data_line else []
    if len(values) != len(DELIMITED_FIELDS):
        logger.warning(
            "Data line has %d values, expected %d (missing positions default, extras ignored)",
            len(values),
            len(DELIMITED_FIELDS),
        )

    fields: dict[str, Any] = {
        name: values[index] if index < len(values) else ""
        for index, name in enumerate(DELIMITED_FIELDS)
    }

    invoice_block = _block_value(cleaned, _INVOICE_EMAIL_PATTERN) or ""
    email_match = _EMAIL.search(invoice_block)
    fields["invoice_email"] = email_match.group() if email_match else ""

    return ParsedResponse(
        contract_version=ContractVersion.CSV_V2,
        fields=fields,
        raw_line=data_line,
    )


def parse_structured_response(text: str) -> ParsedResponse:
    """
    Parse a json-v1 response.

    Raises:
        MalformedExtraction: If the payload is not a JSON object.
    """
    cleaned = strip_code_fences(text or "")
    try:
        data = json.loads(cleaned)
    except (ValueError, RecursionError) as e:
        logger.error("Failed to parse structured response: %s", (text or "")[:500])
        raise MalformedExtraction(
            f"Invalid JSON in extraction response: {e}",
            raw_output=text,
        ) from e

    if not isinstance(data, dict):
        raise MalformedExtraction(
            f"Expected a JSON object, got {type(data).__name__}",
            raw_output=text,
        )

    unknown = sorted(set(data) - set(STRUCTURED_KEYS))
    if unknown:
        logger.info("Ignoring unexpected keys in structured response: %s", unknown)

    return ParsedResponse(
        contract_version=ContractVersion.JSON_V1,
        fields={key: data.get(key) for key in STRUCTURED_KEYS},
    )


def parse_response(raw: RawExtractionResult) -> ParsedResponse:
    """Parse raw model output according to the contract that produced it."""
    if raw.contract_version == ContractVersion.JSON_V1:
        return parse_structured_response(raw.text)
    return parse_delimited_response(raw.text)
