"""
Barcode scanner endpoints.
"""

from fastapi import APIRouter, Depends

from weighcheck.app.core.dependencies import get_current_worker
from weighcheck.app.schemas.auth import CurrentWorker
from weighcheck.app.schemas.scanner import BarcodeValidateRequest, BarcodeValidateResponse
from weighcheck.app.services.barcode import sanitize_barcode, validate_receipt_barcode

router = APIRouter(prefix="/scanner", tags=["Scanner"])


@router.post("/validate", response_model=BarcodeValidateResponse)
async def validate_barcode(
    request: BarcodeValidateRequest,
    current_worker: CurrentWorker = Depends(get_current_worker),
):
    """Check a scanned code can be used as a receipt number (400 if not)."""
    code = validate_receipt_barcode(request.code)
    return BarcodeValidateResponse(valid=True, code=code, sanitized=sanitize_barcode(code))
