"""
Router for rate confirmation parsing endpoints.

Handles:
- Base64 JSON submission (browser clients)
- Multipart file upload

Both run the extraction pipeline and store the resulting load for the
authenticated user. Pipeline failures propagate as ExtractionError and are
rendered by the handler in main.py.
"""

import logging
import mimetypes
from typing import Annotated

from fastapi import APIRouter, Depends, File, UploadFile

from ..deps import get_current_user, get_load_store
from ..models import (
    ErrorResponse,
    ExtractionRequest,
    ParseRateConfRequest,
    ParseRateConfResponse,
)
from ..services.extraction import InvalidInput, RateConfExtractor, get_extractor
from ..services.extraction.documents import DocumentService
from ..services.identity import AuthenticatedUser
from ..services.storage import LoadStore

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/parse-rateconf", tags=["rateconf"])

ERROR_RESPONSES = {
    400: {"model": ErrorResponse, "description": "InvalidInput"},
    500: {"model": ErrorResponse, "description": "PersistenceFailure"},
    502: {"model": ErrorResponse, "description": "MalformedExtraction"},
    503: {"model": ErrorResponse, "description": "ExtractionUnavailable"},
}


async def _extract_and_store(
    request: ExtractionRequest,
    user: AuthenticatedUser,
    extractor: RateConfExtractor,
    store: LoadStore,
) -> ParseRateConfResponse:
    outcome = await extractor.extract(request)
    stored = store.insert(user.id, outcome)
    return ParseRateConfResponse(
        load=outcome.load,
        rate_per_mile=outcome.metrics.rate_per_mile,
        raw_line=outcome.raw_line,
        contract_version=outcome.contract_version,
        warnings=outcome.warnings,
        stored=stored,
    )


@router.post("", response_model=ParseRateConfResponse, responses=ERROR_RESPONSES)
async def parse_rateconf(
    body: ParseRateConfRequest,
    user: AuthenticatedUser = Depends(get_current_user),
    extractor: RateConfExtractor = Depends(get_extractor),
    store: LoadStore = Depends(get_load_store),
) -> ParseRateConfResponse:
    """
    Parse a base64-encoded rate confirmation and save it as a pending load.

    Body: ``{"pdfBase64": "...", "fileName": "rc.pdf", "mediaType": "application/pdf"}``
    """
    content = DocumentService.decode_base64(body.pdf_base64)
    logger.info("Received rate confirmation '%s' (%d bytes)", body.file_name, len(content))

    request = ExtractionRequest(
        content=content,
        media_type=body.media_type,
        source_file=body.file_name,
    )
    return await _extract_and_store(request, user, extractor, store)


@router.post("/upload", response_model=ParseRateConfResponse, responses=ERROR_RESPONSES)
async def upload_rateconf(
    file: Annotated[UploadFile, File(description="Rate confirmation PDF or image")],
    user: AuthenticatedUser = Depends(get_current_user),
    extractor: RateConfExtractor = Depends(get_extractor),
    store: LoadStore = Depends(get_load_store),
) -> ParseRateConfResponse:
    """Parse an uploaded rate confirmation and save it as a pending load."""
    try:
        content = await file.read()
    finally:
        await file.close()

    if not content:
        raise InvalidInput("Empty file provided")

    media_type = file.content_type or ""
    if not media_type or media_type == "application/octet-stream":
        media_type = mimetypes.guess_type(file.filename or "")[0] or "application/pdf"

    logger.info("Received upload '%s' (%s, %d bytes)", file.filename, media_type, len(content))

    request = ExtractionRequest(
        content=content,
        media_type=media_type,
        source_file=file.filename,
    )
    return await _extract_and_store(request, user, extractor, store)
