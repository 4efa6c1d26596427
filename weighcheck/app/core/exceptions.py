"""
Custom exceptions and error handlers for consistent error responses.

Every failure leaving the API carries an error code, a message and an
``action`` hint telling the client whether the user should fix their
input, try again, or contact an admin.
"""

import logging
import traceback
from typing import Any, Dict, Optional

from fastapi import HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from weighcheck.app.core.config import settings

logger = logging.getLogger("weighcheck.errors")


class ErrorAction:
    """What the user can do about a failure."""
    FIX_INPUT = "fix_input"
    TRY_AGAIN = "try_again"
    CONTACT_ADMIN = "contact_admin"


# Indonesian texts for the field app; English is carried by the exception itself.
LOCALIZED_MESSAGES: Dict[str, str] = {
    "ERR_VALIDATION_001": "Data tidak valid",
    "ERR_VALIDATION_002": "Nomor resi wajib diisi sebelum upload foto",
    "ERR_VALIDATION_003": "Lokasi GPS belum tersedia. Mohon tunggu atau isi alamat manual.",
    "ERR_FILE_001": "File terlalu besar (max 10MB)",
    "ERR_FILE_002": "Format tidak didukung. Gunakan JPG, PNG, WEBP, atau HEIC",
    "ERR_FILE_003": "Gambar tidak dapat dibaca",
    "ERR_BARCODE_001": "Format barcode tidak valid",
    "ERR_IMAGE_001": "Gagal mengompres gambar",
    "ERR_UPLOAD_001": "Gagal upload foto, silakan coba lagi",
    "ERR_ENTRY_DUPLICATE": "Nomor resi sudah pernah diinput",
    "ERR_PERM_001": "Anda tidak memiliki akses",
    "ERR_NOT_FOUND_001": "Data tidak ditemukan",
    "ERR_LOCATION_001": "Izin lokasi ditolak. Gunakan alamat manual.",
    "ERR_LOCATION_002": "Lokasi tidak tersedia.",
    "ERR_LOCATION_003": "Waktu tunggu habis saat mendapatkan lokasi.",
    "ERR_GEOCODE_429": "Terlalu banyak permintaan lokasi. Tunggu 1 detik.",
    "ERR_INTERNAL_SERVER": "Terjadi kesalahan server",
}


class AppException(Exception):
    """Base application exception."""

    def __init__(
        self,
        message: str,
        error_code: str,
        status_code: int = 500,
        details: Dict[str, Any] = None,
        action: str = ErrorAction.CONTACT_ADMIN,
    ):
        self.message = message
        self.error_code = error_code
        self.status_code = status_code
        self.details = details or {}
        self.action = action
        super().__init__(message)


class ValidationError(AppException):
    """Raised for input that is rejected before any side effect."""

    def __init__(
        self,
        message: str = "Validation error",
        details: Dict[str, Any] = None,
        error_code: str = "ERR_VALIDATION_001",
        status_code: int = status.HTTP_400_BAD_REQUEST,
    ):
        super().__init__(
            message=message,
            error_code=error_code,
            status_code=status_code,
            details=details,
            action=ErrorAction.FIX_INPUT,
        )


class MissingReceiptNumberError(ValidationError):
    def __init__(self):
        super().__init__(
            message="Receipt number is required before uploading evidence",
            error_code="ERR_VALIDATION_002",
        )


class MissingLocationError(ValidationError):
    def __init__(self):
        super().__init__(
            message="A location sample (GPS or manual address) is required before uploading evidence",
            error_code="ERR_VALIDATION_003",
        )


class TooLargeError(ValidationError):
    """Raised when an image exceeds the pre-compression ceiling."""

    def __init__(self, size: int, limit: int):
        super().__init__(
            message=f"File is too large ({size} bytes, max {limit} bytes)",
            details={"size": size, "limit": limit},
            error_code="ERR_FILE_001",
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
        )


class UnsupportedFormatError(ValidationError):
    """Raised when an image's MIME type is not on the allow-list."""

    def __init__(self, content_type: Optional[str], allowed: list):
        super().__init__(
            message=f"Unsupported image format '{content_type}'",
            details={"content_type": content_type, "allowed": allowed},
            error_code="ERR_FILE_002",
            status_code=status.HTTP_415_UNSUPPORTED_MEDIA_TYPE,
        )


class UnreadableImageError(ValidationError):
    """Raised when image bytes cannot be decoded for rendering."""

    def __init__(self, reason: str):
        super().__init__(
            message="Image could not be read",
            details={"reason": reason},
            error_code="ERR_FILE_003",
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        )


class InvalidBarcodeError(ValidationError):
    def __init__(self, code: str):
        super().__init__(
            message="Barcode must be alphanumeric with 10 to 20 characters",
            details={"code": code},
            error_code="ERR_BARCODE_001",
        )


class CompressionError(AppException):
    """
    Raised inside the compressor when encoding fails.

    Never leaves the compressor: it recovers by returning the original file.
    """

    def __init__(self, message: str = "Image compression failed"):
        super().__init__(
            message=message,
            error_code="ERR_IMAGE_001",
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            action=ErrorAction.TRY_AGAIN,
        )


class UploadError(AppException):
    """Raised when evidence could not be pushed to object storage."""

    def __init__(self, slot: int, reason: str):
        super().__init__(
            message=f"Upload of photo {slot} failed: {reason}",
            error_code="ERR_UPLOAD_001",
            status_code=status.HTTP_502_BAD_GATEWAY,
            details={"slot": slot, "reason": reason},
            action=ErrorAction.TRY_AGAIN,
        )
        self.slot = slot


class DuplicateReceiptError(AppException):
    """Raised when an entry with the same receipt number already exists."""

    def __init__(self, receipt_number: str):
        super().__init__(
            message=f"Receipt number '{receipt_number}' has already been recorded",
            error_code="ERR_ENTRY_DUPLICATE",
            status_code=status.HTTP_409_CONFLICT,
            details={"receipt_number": receipt_number},
            action=ErrorAction.FIX_INPUT,
        )


class InsufficientPermissionsError(AppException):
    """Raised when user doesn't have permission to perform an action."""

    def __init__(self, message: str = "Insufficient permissions", details: Dict[str, Any] = None):
        super().__init__(
            message=message,
            error_code="ERR_PERM_001",
            status_code=status.HTTP_403_FORBIDDEN,
            details=details,
            action=ErrorAction.CONTACT_ADMIN,
        )


class ResourceNotFoundError(AppException):
    """Raised when requested resource is not found."""

    def __init__(self, resource: str, resource_id: Any = None):
        message = f"{resource} not found"
        if resource_id:
            message = f"{resource} with ID {resource_id} not found"
        super().__init__(
            message=message,
            error_code="ERR_NOT_FOUND_001",
            status_code=status.HTTP_404_NOT_FOUND,
            details={"resource": resource, "id": resource_id},
            action=ErrorAction.FIX_INPUT,
        )


class LocationError(AppException):
    """Base class for geolocation acquisition failures."""

    def __init__(self, message: str, error_code: str, action: str):
        super().__init__(
            message=message,
            error_code=error_code,
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            action=action,
        )


class LocationPermissionDenied(LocationError):
    def __init__(self):
        super().__init__("Location permission denied", "ERR_LOCATION_001", ErrorAction.FIX_INPUT)


class LocationUnavailable(LocationError):
    def __init__(self):
        super().__init__("Location unavailable", "ERR_LOCATION_002", ErrorAction.TRY_AGAIN)


class LocationTimeout(LocationError):
    def __init__(self):
        super().__init__("Timed out while acquiring location", "ERR_LOCATION_003", ErrorAction.TRY_AGAIN)


class GeocodeRateLimited(AppException):
    def __init__(self):
        super().__init__(
            message="Rate limit exceeded. Please wait 1 second between requests.",
            error_code="ERR_GEOCODE_429",
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            action=ErrorAction.TRY_AGAIN,
        )


def _localize(request: Request, error_code: str, default: str) -> str:
    language = request.headers.get("accept-language", "")
    if language.lower().startswith("id"):
        return LOCALIZED_MESSAGES.get(error_code, default)
    return default


# Global Exception Handlers

async def app_exception_handler(request: Request, exc: AppException) -> JSONResponse:
    """Handler for custom application exceptions."""
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "error_code": exc.error_code,
            "message": _localize(request, exc.error_code, exc.message),
            "action": exc.action,
            "details": exc.details
        }
    )


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """Handler for FastAPI HTTPException with standardized format."""
    error_code_map = {
        400: "ERR_BAD_REQUEST",
        401: "ERR_UNAUTHORIZED",
        403: "ERR_FORBIDDEN",
        404: "ERR_NOT_FOUND",
        500: "ERR_INTERNAL_SERVER"
    }
    action_map = {
        401: ErrorAction.FIX_INPUT,
        403: ErrorAction.CONTACT_ADMIN,
        404: ErrorAction.FIX_INPUT,
    }

    error_code = error_code_map.get(exc.status_code, "ERR_UNKNOWN")

    return JSONResponse(
        status_code=exc.status_code,
        content={
            "error_code": error_code,
            "message": exc.detail,
            "action": action_map.get(exc.status_code, ErrorAction.TRY_AGAIN),
            "details": {}
        },
        headers=getattr(exc, "headers", None),
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Handler for Pydantic validation errors."""
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={
            "error_code": "ERR_VALIDATION",
            "message": _localize(request, "ERR_VALIDATION_001", "Validation error"),
            "action": ErrorAction.FIX_INPUT,
            "details": {
                "errors": exc.errors()
            }
        }
    )


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handler for unhandled exceptions."""
    logger.exception(
        "Unhandled exception",
        extra={"path": request.url.path, "exception_type": type(exc).__name__},
    )

    details: Dict[str, Any] = {}
    if settings.debug:
        # Development-only detail panel
        details = {
            "exception": type(exc).__name__,
            "traceback": traceback.format_exception(type(exc), exc, exc.__traceback__),
        }

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "error_code": "ERR_INTERNAL_SERVER",
            "message": _localize(request, "ERR_INTERNAL_SERVER", "An internal server error occurred"),
            "action": ErrorAction.CONTACT_ADMIN,
            "details": details
        }
    )
