"""
Evidence pipeline.

One photo, one slot: validate -> compress -> watermark -> name -> upload.
Preconditions (receipt number and location) are checked before any work
is done, so a rejected request has no side effects.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

from weighcheck.app.core.exceptions import MissingLocationError, MissingReceiptNumberError, ValidationError
from weighcheck.app.services.compression import AdaptiveCompressor
from weighcheck.app.services.filenames import EVIDENCE_SLOTS, derive_name
from weighcheck.app.services.image_validation import UploadedImage, validate_image
from weighcheck.app.services.location import LocationSample
from weighcheck.app.services.storage import EvidenceUploader
from weighcheck.app.services.watermark import WatermarkCompositor

logger = logging.getLogger("weighcheck.evidence")


@dataclass(frozen=True)
class EvidenceResult:
    slot: int
    url: str
    filename: str
    compressed: bool
    original_size: int
    final_size: int
    compression_note: Optional[str] = None


class EvidencePipeline:
    def __init__(
        self,
        uploader: EvidenceUploader,
        compressor: Optional[AdaptiveCompressor] = None,
        compositor: Optional[WatermarkCompositor] = None,
    ):
        self.uploader = uploader
        self.compressor = compressor or AdaptiveCompressor()
        self.compositor = compositor or WatermarkCompositor()

    async def process(
        self,
        image: UploadedImage,
        slot: int,
        receipt_number: Optional[str],
        location: Optional[LocationSample],
        timestamp: Optional[datetime] = None,
    ) -> EvidenceResult:
        """
        Turn one uploaded photo into stored, watermarked evidence.

        Raises:
            MissingReceiptNumberError, MissingLocationError, ValidationError,
            TooLargeError, UnsupportedFormatError, UnreadableImageError,
            UploadError
        """
        if not receipt_number or not receipt_number.strip():
            raise MissingReceiptNumberError()
        if location is None:
            raise MissingLocationError()
        if slot not in EVIDENCE_SLOTS:
            raise ValidationError(f"Evidence slot must be 1 or 2, got {slot}", details={"slot": slot})

        validate_image(image)

        compression = await self.compressor.compress(image)
        watermarked = await self.compositor.composite(
            compression.image.data,
            location,
            timestamp or datetime.now(timezone.utc),
        )

        name = derive_name(receipt_number.strip(), slot, "jpg")
        url = await self.uploader.upload(watermarked, name, slot)

        logger.info(
            "Evidence stored",
            extra={
                "slot": slot,
                "object_name": name,
                "compressed": compression.compressed,
                "original_size": image.size,
                "final_size": len(watermarked),
            },
        )

        return EvidenceResult(
            slot=slot,
            url=url,
            filename=name,
            compressed=compression.compressed,
            original_size=image.size,
            final_size=len(watermarked),
            compression_note=compression.reason,
        )
