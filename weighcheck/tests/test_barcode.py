"""
Barcode confidence filter tests.
"""

import pytest
from PIL import Image

from weighcheck.app.core.exceptions import InvalidBarcodeError
from weighcheck.app.services.barcode import (
    BarcodeDecoder,
    ConfidencePolicy,
    format_barcode,
    sanitize_barcode,
    validate_receipt_barcode,
)


def test_accepts_after_three_matching_reads():
    accepted = []
    decoder = BarcodeDecoder(on_accept=accepted.append)

    assert decoder.observe("JT1234567890") is None
    assert decoder.observe("NOISE") is None
    assert decoder.observe("JT1234567890") is None
    assert decoder.observe("JT1234567890") == "JT1234567890"

    assert accepted == ["JT1234567890"]
    assert decoder.stopped is True
    assert decoder.accepted == "JT1234567890"


def test_detections_after_acceptance_are_ignored():
    decoder = BarcodeDecoder()
    decoder.observe_many(["A"] * 3)

    assert decoder.observe("A") is None
    assert decoder.detections == ["A", "A", "A"]


def test_old_reads_fall_out_of_the_window():
    decoder = BarcodeDecoder()

    decoder.observe("JT1234567890")
    for i in range(9):
        decoder.observe(f"NOISE{i}")
    decoder.observe("JT1234567890")

    assert decoder.observe("JT1234567890") is None
    assert decoder.detections.count("JT1234567890") == 2


def test_policy_is_configurable():
    decoder = BarcodeDecoder(policy=ConfidencePolicy(window=5, min_occurrences=2))
    assert decoder.observe_many(["X1", "X2", "X1"]) == "X1"


def test_failing_haptic_does_not_block_acceptance():
    def vibrate(code):
        raise RuntimeError("vibration unsupported")

    decoder = BarcodeDecoder(on_accept=vibrate)
    assert decoder.observe_many(["C"] * 3) == "C"


def test_resume_rearms_decoder():
    decoder = BarcodeDecoder()
    decoder.observe_many(["BAD"] * 3)

    decoder.resume()

    assert decoder.stopped is False
    assert decoder.accepted is None
    assert decoder.detections == []
    assert decoder.observe_many(["GOOD"] * 3) == "GOOD"


def test_feed_frame_uses_frame_decoder():
    class ScriptedDecoder:
        def __init__(self):
            self.frames = 0

        def decode(self, frame):
            self.frames += 1
            return ["JT1234567890"]

    frame_decoder = ScriptedDecoder()
    decoder = BarcodeDecoder(frame_decoder)
    frame = Image.new("RGB", (10, 10))

    results = [decoder.feed_frame(frame) for _ in range(4)]

    assert results == [None, None, "JT1234567890", None]
    assert frame_decoder.frames == 3


def test_feed_frame_without_decoder():
    with pytest.raises(RuntimeError):
        BarcodeDecoder().feed_frame(Image.new("RGB", (10, 10)))


@pytest.mark.parametrize("code", ["jt1234567890", " JT1234567890 ", "A" * 20, "1234567890"])
def test_valid_receipt_barcodes(code):
    assert validate_receipt_barcode(code) == code.strip().upper()


@pytest.mark.parametrize("code", ["", "SHORT1234", "A" * 21, "JT-123456789", "JT 1234567890"])
def test_invalid_receipt_barcodes(code):
    with pytest.raises(InvalidBarcodeError) as exc_info:
        validate_receipt_barcode(code)
    assert exc_info.value.status_code == 400


def test_format_and_sanitize():
    assert format_barcode("  jt12abc ") == "JT12ABC"
    assert sanitize_barcode("jt-12/abc 99") == "JT12ABC99"
