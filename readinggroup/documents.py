import os
import secrets
import time
from logging import getLogger

from django.conf import settings
from django.utils.text import get_valid_filename

from readinggroup.exceptions import BadFile
from readinggroup.logging import ReadingGroupLogger
from readinggroup.records import Document
from readinggroup.storage import DOCUMENT_STORAGE

logger = getLogger(__name__)
structured_logger = ReadingGroupLogger.get_logger(__name__)

DOCUMENT_PREFIX = "uploads"


def validate_document(upload) -> None:
    """
    Reject anything that is not a PDF within the configured size limit.

    Raises:
        BadFile: If the upload is missing, has the wrong content type, is empty
            or is larger than ``READINGGROUP_DOCUMENT_MAX_SIZE``.
    """
    if upload is None:
        raise BadFile("No PDF file uploaded")

    content_type = getattr(upload, "content_type", None)
    if content_type != settings.READINGGROUP_DOCUMENT_CONTENT_TYPE:
        raise BadFile("Only PDF files are allowed")

    max_size = settings.READINGGROUP_DOCUMENT_MAX_SIZE
    if not upload.size:
        raise BadFile("The uploaded file is empty")
    if upload.size > max_size:
        raise BadFile(f"The uploaded file is larger than {max_size // (1024 * 1024)} MB")


def document_name(original_name: str) -> str:
    base = get_valid_filename(os.path.basename(original_name or "")) or "document.pdf"
    unique = f"{int(time.time() * 1000)}-{secrets.randbelow(10**9)}"
    return f"{DOCUMENT_PREFIX}/{unique}-{base}"


def store_document(upload) -> Document:
    """Validate an uploaded file and save it to document storage."""
    validate_document(upload)
    name = DOCUMENT_STORAGE.save(document_name(upload.name), upload)
    logger.info("Stored document %s (%d bytes)", name, upload.size)
    return Document(
        filename=os.path.basename(name),
        original_name=upload.name,
        path=name,
    )


def release_document(path: str) -> bool:
    """
    Delete a stored document.

    Failures are logged and reported through the return value; the topic
    operation that scheduled the release has already succeeded by then.
    """
    if not path:
        return False
    try:
        DOCUMENT_STORAGE.delete(path)
    except Exception as err:
        # Storage backends raise OSError, botocore errors and others
        structured_logger.error(
            "Could not release a stored document.",
            event_code="document_release_failed",
            reason=str(err),
            reason_code="storage_delete_failed",
            path=path,
        )
        return False
    logger.info("Released document %s", path)
    return True
