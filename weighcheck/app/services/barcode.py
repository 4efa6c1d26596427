"""
Barcode decoding for receipt numbers.

A live camera produces many noisy reads; a code is only accepted once the
same value has been seen often enough among the most recent detections.
"""

import logging
import re
from collections import deque
from dataclasses import dataclass
from typing import Callable, Iterable, List, Optional, Protocol

from PIL import Image

from weighcheck.app.core.exceptions import InvalidBarcodeError

logger = logging.getLogger("weighcheck.barcode")

RECEIPT_BARCODE_PATTERN = re.compile(r"^[A-Z0-9]{10,20}$", re.IGNORECASE)


@dataclass(frozen=True)
class ConfidencePolicy:
    """Accept a code seen ``min_occurrences`` times in the last ``window`` detections."""
    window: int = 10
    min_occurrences: int = 3


class FrameDecoder(Protocol):
    def decode(self, frame: Image.Image) -> List[str]:
        ...


class PyzbarFrameDecoder:
    """ZBar decoding restricted to the 1-D symbologies printed on shipping labels."""

    SYMBOL_NAMES = ("CODE128", "EAN13", "EAN8", "CODE39", "CODABAR", "UPCA", "UPCE")

    def __init__(self):
        from pyzbar.pyzbar import ZBarSymbol, decode

        self._decode = decode
        self._symbols = [getattr(ZBarSymbol, name) for name in self.SYMBOL_NAMES]

    def decode(self, frame: Image.Image) -> List[str]:
        results = self._decode(frame.convert("L"), symbols=self._symbols)
        codes = []
        for result in results or []:
            text = result.data.decode("utf-8", errors="replace").strip()
            if text:
                codes.append(text)
        return codes


def _no_haptic(code: str) -> None:
    return None


class BarcodeDecoder:
    """
    Confidence-filtered barcode stream.

    Usage:
        decoder = BarcodeDecoder(PyzbarFrameDecoder(), on_accept=vibrate)
        for frame in frames:
            code = decoder.feed_frame(frame)
            if code:
                break
    """

    def __init__(
        self,
        frame_decoder: Optional[FrameDecoder] = None,
        policy: Optional[ConfidencePolicy] = None,
        on_accept: Optional[Callable[[str], None]] = None,
    ):
        self.frame_decoder = frame_decoder
        self.policy = policy or ConfidencePolicy()
        self.on_accept = on_accept or _no_haptic
        self._detections = deque(maxlen=self.policy.window)
        self.stopped = False
        self.accepted: Optional[str] = None

    @property
    def detections(self) -> List[str]:
        return list(self._detections)

    def observe(self, code: str) -> Optional[str]:
        """Record one detection; returns the code when it is accepted."""
        if self.stopped:
            return None

        code = code.strip()
        if not code:
            return None

        self._detections.append(code)
        if self._detections.count(code) < self.policy.min_occurrences:
            return None

        self.stopped = True
        self.accepted = code
        try:
            self.on_accept(code)
        except Exception as e:
            logger.warning("Haptic feedback failed", extra={"error": str(e)})
        return code

    def observe_many(self, codes: Iterable[str]) -> Optional[str]:
        for code in codes:
            accepted = self.observe(code)
            if accepted:
                return accepted
        return None

    def feed_frame(self, frame: Image.Image) -> Optional[str]:
        if self.stopped:
            return None
        if self.frame_decoder is None:
            raise RuntimeError("BarcodeDecoder has no frame decoder")
        return self.observe_many(self.frame_decoder.decode(frame))

    def resume(self) -> None:
        """Re-arm after a rejected code."""
        self._detections.clear()
        self.stopped = False
        self.accepted = None


def format_barcode(code: str) -> str:
    return code.strip().upper()


def sanitize_barcode(code: str) -> str:
    """Drop everything but letters and digits."""
    return re.sub(r"[^A-Z0-9]", "", code, flags=re.IGNORECASE).upper()


def validate_receipt_barcode(code: str) -> str:
    """
    Check a scanned code can serve as a receipt number.

    Returns:
        The formatted (trimmed, upper-cased) code

    Raises:
        InvalidBarcodeError: not alphanumeric or not 10 to 20 characters
    """
    cleaned = (code or "").strip()
    if not RECEIPT_BARCODE_PATTERN.match(cleaned):
        raise InvalidBarcodeError(code)
    return format_barcode(cleaned)
