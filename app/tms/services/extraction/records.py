"""
Assembly of canonical LoadRecords from parsed raw fields.
"""

import logging
from typing import Any

from ...models import ContractVersion, LoadRecord, Location
from .normalizers import (
    normalize_date,
    normalize_email,
    normalize_equipment,
    normalize_location,
    normalize_miles,
    normalize_money,
    normalize_text,
    normalize_weight,
)
from .parser import ParsedResponse

logger = logging.getLogger(__name__)


def _load_from_delimited(fields: dict[str, Any]) -> LoadRecord:
    return LoadRecord(
        load_id=normalize_text(fields.get("load_id")),
        pickup_date=normalize_date(fields.get("pickup_date")),
        delivery_date=normalize_date(fields.get("delivery_date")),
        broker_company=normalize_text(fields.get("broker_company")),
        contact_name=normalize_text(fields.get("contact_name")),
        contact_phone=normalize_text(fields.get("contact_phone")),
        contact_extension=normalize_text(fields.get("contact_extension")),
        contact_email=normalize_email(fields.get("contact_email")),
        invoice_email=normalize_email(fields.get("invoice_email")),
        origin=normalize_location(fields.get("origin")),
        destination=normalize_location(fields.get("destination")),
        equipment=normalize_equipment(fields.get("equipment")),
        miles=normalize_miles(fields.get("miles")),
        posted_rate=normalize_money(fields.get("posted_rate")),
        booked_rate=normalize_money(fields.get("booked_rate")),
        shipper=normalize_text(fields.get("shipper")),
        receiver=normalize_text(fields.get("receiver")),
    )


def _structured_location(city: Any, state: Any) -> Location:
    """Build a Location from separate city/state values, re-splitting when needed."""
    city_text = normalize_text(city)
    state_text = normalize_text(state)
    if not state_text:
        return normalize_location(city_text)
    return normalize_location(f"{city_text}, {state_text}" if city_text else state_text)


def _load_from_structured(fields: dict[str, Any]) -> LoadRecord:
    return LoadRecord(
        load_id=normalize_text(fields.get("load_number")),
        pickup_date=normalize_date(fields.get("pickup_date")),
        delivery_date=normalize_date(fields.get("delivery_date")),
        broker_company=normalize_text(fields.get("broker_name")),
        broker_mc=normalize_text(fields.get("broker_mc")),
        origin=_structured_location(fields.get("pickup_city"), fields.get("pickup_state")),
        destination=_structured_location(fields.get("delivery_city"), fields.get("delivery_state")),
        pickup_address=normalize_text(fields.get("pickup_address")),
        delivery_address=normalize_text(fields.get("delivery_address")),
        booked_rate=normalize_money(fields.get("rate")),
        miles=normalize_miles(fields.get("miles")),
        commodity=normalize_text(fields.get("commodity")),
        weight=normalize_weight(fields.get("weight")),
        notes=normalize_text(fields.get("notes")),
    )


def build_load_record(parsed: ParsedResponse) -> LoadRecord:
    """Normalize parsed raw fields into a LoadRecord."""
    if parsed.contract_version == ContractVersion.JSON_V1:
        return _load_from_structured(parsed.fields)
    return _load_from_delimited(parsed.fields)


def collect_warnings(load: LoadRecord, contract_version: ContractVersion) -> list[str]:
    """
    Flag suspicious or missing values on a normalized load.

    Warnings never fail the pipeline; they are surfaced for manual review.
    """
    warnings: list[str] = []

    if not load.load_id:
        warnings.append("Missing load number")
    if load.pickup_date is None:
        warnings.append("Pickup date missing or unparseable")
    if load.delivery_date is None:
        warnings.append("Delivery date missing or unparseable")
    if (
        load.pickup_date is not None
        and load.delivery_date is not None
        and load.delivery_date < load.pickup_date
    ):
        warnings.append(
            f"Delivery date {load.delivery_date.isoformat()} is before "
            f"pickup date {load.pickup_date.isoformat()}"
        )
    if load.miles == 0:
        warnings.append("Missing miles; rate per mile not computed")
    if load.booked_rate == 0:
        warnings.append("Missing booked rate")
    if contract_version == ContractVersion.CSV_V2 and not load.invoice_email:
        warnings.append("Missing invoice email")

    if warnings:
        logger.info("Load '%s' has %d warning(s): %s", load.load_id, len(warnings), warnings)
    return warnings
