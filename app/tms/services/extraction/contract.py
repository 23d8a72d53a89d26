"""
Versioned instruction contracts for the document-understanding model.

The contract fixes the exact output shape the parser expects. Changing
field order, naming or format rules is a breaking change: add a new
ContractVersion instead of editing an existing prompt.
"""

from pydantic import BaseModel, Field

from ...models import ContractVersion

# =============================================================================
# Delimited-text contract (csv-v2)
# =============================================================================

DATA_LINE_LABEL = "CSV LINE"
INVOICE_EMAIL_LABEL = "INVOICE EMAIL"

# Positional order of the data line. Index == position in the line.
DELIMITED_FIELDS: tuple[str, ...] = (
    "load_id",
    "pickup_date",
    "delivery_date",
    "broker_company",
    "contact_name",
    "contact_phone",
    "contact_extension",
    "contact_email",
    "origin",
    "destination",
    "equipment",
    "miles",
    "posted_rate",
    "booked_rate",
    "shipper",
    "receiver",
)


CSV_V2_SYSTEM_PROMPT = f"""You are a meticulous freight dispatcher reading trucking rate confirmations.
Extraction contract: {ContractVersion.CSV_V2.value}

Read the attached rate confirmation and respond with EXACTLY two labeled blocks and nothing else:

{DATA_LINE_LABEL}:
<one comma-separated line with these 16 values, in this order>

{INVOICE_EMAIL_LABEL}:
<the email address invoices/billing paperwork must be sent to>

## Data line positions (16, in order):
1. Load/order/reference number
2. Pickup date (YYYY-MM-DD)
3. Delivery date (YYYY-MM-DD)
4. Broker company name
5. Broker contact name
6. Contact phone
7. Contact phone extension
8. Contact email
9. Origin as "City ST" (two-letter state code)
10. Destination as "City ST" (two-letter state code)
11. Equipment code: V (van), R (reefer), F (flatbed), VR (van or reefer)
12. Total miles as a plain number. If the document does not state miles, estimate the driving distance between origin and destination.
13. Posted rate as a plain number, 0 if not shown
14. Booked (agreed total) rate as a plain number
15. Shipper name
16. Receiver name

## Rules:
- Never omit a position: leave it empty (two consecutive commas) when a value is not in the document.
- Do not use commas inside values; drop them or wrap the value in double quotes.
- No currency symbols, units or thousands separators in numeric positions.
- The invoice email is where billing goes, which may differ from the contact email.
- Do not add markdown, explanations or extra lines."""

CSV_V2_USER_INSTRUCTION = (
    f"Extract this rate confirmation using contract {ContractVersion.CSV_V2.value}."
)

# =============================================================================
# Structured contract (json-v1)
# =============================================================================

STRUCTURED_KEYS: tuple[str, ...] = (
    "load_number",
    "broker_name",
    "broker_mc",
    "rate",
    "pickup_date",
    "delivery_date",
    "pickup_city",
    "pickup_state",
    "pickup_address",
    "delivery_city",
    "delivery_state",
    "delivery_address",
    "commodity",
    "weight",
    "miles",
    "notes",
)

JSON_V1_SYSTEM_PROMPT = f"""You are a meticulous freight dispatcher reading trucking rate confirmations.
Extraction contract: {ContractVersion.JSON_V1.value}

Extract the following information from the attached rate confirmation and return it as JSON:

{{
    "load_number": "string - the load/order number",
    "broker_name": "string - the broker/shipper company name",
    "broker_mc": "string - broker MC number if visible",
    "rate": "number - the total rate/pay amount",
    "pickup_date": "string - pickup date in YYYY-MM-DD format",
    "delivery_date": "string - delivery date in YYYY-MM-DD format",
    "pickup_city": "string - pickup city",
    "pickup_state": "string - pickup state abbreviation",
    "pickup_address": "string - full pickup address if available",
    "delivery_city": "string - delivery city",
    "delivery_state": "string - delivery state abbreviation",
    "delivery_address": "string - full delivery address if available",
    "commodity": "string - what is being hauled",
    "weight": "number - weight in pounds if specified",
    "miles": "number - total miles if specified",
    "notes": "string - any special instructions or notes"
}}

Use null for anything not in the document.
Return ONLY valid JSON, no markdown or explanation."""

JSON_V1_USER_INSTRUCTION = (
    f"Extract this rate confirmation using contract {ContractVersion.JSON_V1.value}."
)


class InstructionContract(BaseModel):
    """A fixed prompt pair plus the response format it requires."""

    version: ContractVersion
    system_prompt: str = Field(..., repr=False)
    user_instruction: str
    json_response: bool = Field(
        default=False,
        description="Whether the model must be asked for a JSON object response",
    )


CONTRACTS: dict[ContractVersion, InstructionContract] = {
    ContractVersion.CSV_V2: InstructionContract(
        version=ContractVersion.CSV_V2,
        system_prompt=CSV_V2_SYSTEM_PROMPT,
        user_instruction=CSV_V2_USER_INSTRUCTION,
    ),
    ContractVersion.JSON_V1: InstructionContract(
        version=ContractVersion.JSON_V1,
        system_prompt=JSON_V1_SYSTEM_PROMPT,
        user_instruction=JSON_V1_USER_INSTRUCTION,
        json_response=True,
    ),
}


def get_contract(version: ContractVersion | str) -> InstructionContract:
    """Look up the instruction contract for a version tag."""
    return CONTRACTS[ContractVersion(version)]
