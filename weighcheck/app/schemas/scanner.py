"""
Barcode scanner schemas.
"""

from pydantic import BaseModel, Field


class BarcodeValidateRequest(BaseModel):
    code: str = Field(..., max_length=200)


class BarcodeValidateResponse(BaseModel):
    valid: bool
    code: str
    sanitized: str
