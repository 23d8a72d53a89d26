"""
Document payload checks run before any model call.

PDFs are checked for the PDF header and, when poppler is available,
inspected for their page count via pdf2image. Images must decode with Pillow.
"""

import base64
import binascii
import io
import logging

from pdf2image import pdfinfo_from_bytes
from PIL import Image, UnidentifiedImageError

from ...models import SUPPORTED_MEDIA_TYPES, ExtractionRequest
from .exceptions import InvalidInput

logger = logging.getLogger(__name__)


class DocumentService:
    """
    Service for validating document payloads.

    Raises InvalidInput for anything the model should never be asked about.
    """

    def __init__(self, max_bytes: int = 20 * 1024 * 1024):
        """
        Initialize the document service.

        Args:
            max_bytes: Largest accepted payload size.
        """
        self.max_bytes = max_bytes

    @staticmethod
    def decode_base64(data: str | None) -> bytes:
        """
        Decode a base64 payload, accepting an optional data-URL prefix.

        Raises:
            InvalidInput: If no data is given or it is not valid base64.
        """
        if not data or not data.strip():
            raise InvalidInput("No PDF data provided")

        payload = data.strip()
        if payload.startswith("data:") and "," in payload:
            payload = payload.split(",", 1)[1]

        try:
            return base64.b64decode(payload, validate=True)
        except (binascii.Error, ValueError) as e:
            raise InvalidInput(f"Document payload is not valid base64: {e}") from e

    def validate(self, request: ExtractionRequest) -> None:
        """
        Check that a request carries a usable document.

        Raises:
            InvalidInput: Empty, oversized, unsupported or undecodable payload.
        """
        if not request.content:
            raise InvalidInput("Empty document provided")

        if len(request.content) > self.max_bytes:
            raise InvalidInput(
                f"Document is {len(request.content)} bytes; limit is {self.max_bytes}"
            )

        if request.media_type not in SUPPORTED_MEDIA_TYPES:
            raise InvalidInput(
                f"Unsupported media type '{request.media_type}'. "
                f"Supported: {', '.join(SUPPORTED_MEDIA_TYPES)}"
            )

        if request.media_type == "application/pdf":
            if not request.content[:4] == b"%PDF":
                raise InvalidInput("Invalid PDF file: does not start with PDF header")
            return

        try:
            with Image.open(io.BytesIO(request.content)) as image:
                image.verify()
        except (UnidentifiedImageError, OSError, SyntaxError) as e:
            raise InvalidInput(f"Invalid image file: {e}") from e

    def get_page_count(self, pdf_bytes: bytes) -> int | None:
        """
        Get the total number of pages in a PDF.

        Returns None when the count cannot be determined (for example when
        poppler is not installed); page count is informational only.
        """
        try:
            info = pdfinfo_from_bytes(pdf_bytes)
        except Exception as e:
            logger.warning("Could not get page count: %s", e)
            return None
        return info.get("Pages")


# Singleton instance for convenience
_document_service: DocumentService | None = None


def get_document_service() -> DocumentService:
    """Get or create the document service singleton."""
    global _document_service
    if _document_service is None:
        from ...config import get_settings

        _document_service = DocumentService(max_bytes=get_settings().max_document_bytes)
    return _document_service
