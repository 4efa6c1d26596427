"""
Watermark overlay tests.
"""

import io
from datetime import datetime, timezone

import pytest
from PIL import Image

from weighcheck.app.core.exceptions import UnreadableImageError
from weighcheck.app.services.location import LocationSample
from weighcheck.app.services.watermark import (
    MANUAL_LOCATION_MARKER,
    PillowRenderer,
    WatermarkCompositor,
    build_overlay_lines,
    format_timestamp,
)

CAPTURED = datetime(2024, 8, 17, 3, 4, 5, tzinfo=timezone.utc)

GPS_SAMPLE = LocationSample(
    latitude=-6.2088,
    longitude=106.8456,
    accuracy=12.4,
    captured_at=CAPTURED,
    address="Jalan Sudirman 1, Jakarta Pusat",
)


def test_timestamp_in_display_timezone():
    assert format_timestamp(CAPTURED) == "17 Agu 2024 10:04:05 WIB"


def test_naive_timestamp_is_treated_as_utc():
    assert format_timestamp(datetime(2024, 1, 2, 20, 0, 0)) == "03 Jan 2024 03:00:00 WIB"


def test_overlay_lines_for_gps_sample():
    lines = build_overlay_lines(GPS_SAMPLE, CAPTURED)

    assert [line.text for line in lines] == [
        "17 Agu 2024 10:04:05 WIB",
        "-6.208800, 106.845600",
        "Jalan Sudirman 1, Jakarta Pusat",
        "Accuracy: ±12m",
    ]
    assert [line.style for line in lines] == ["primary", "primary", "address", "detail"]


def test_overlay_lines_for_manual_sample():
    sample = LocationSample.manual("  Gudang Cakung blok C  ", CAPTURED)

    lines = build_overlay_lines(sample, CAPTURED)

    assert lines[1].text == MANUAL_LOCATION_MARKER
    assert lines[2].text == "Gudang Cakung blok C"
    assert lines[3].text == "Accuracy: n/a"


def test_address_line_is_omitted_when_unknown():
    sample = LocationSample(latitude=1.0, longitude=2.0, accuracy=5, captured_at=CAPTURED)
    assert len(build_overlay_lines(sample, CAPTURED)) == 3


@pytest.mark.asyncio
async def test_composite_keeps_dimensions_and_outputs_jpeg(image_factory):
    data = image_factory(size=(1024, 768), fmt="PNG")

    output = await WatermarkCompositor().composite(data, GPS_SAMPLE, CAPTURED)

    with Image.open(io.BytesIO(output)) as decoded:
        assert decoded.format == "JPEG"
        assert decoded.size == (1024, 768)


@pytest.mark.asyncio
async def test_band_darkens_bottom_of_image(image_factory):
    data = image_factory(size=(800, 600), color=(255, 255, 255))

    output = await WatermarkCompositor().composite(data, GPS_SAMPLE, CAPTURED)

    with Image.open(io.BytesIO(output)) as decoded:
        top = decoded.getpixel((5, 5))
        bottom_corner = decoded.getpixel((decoded.width - 2, decoded.height - 2))
    assert sum(top) > 700
    assert sum(bottom_corner) < 400


@pytest.mark.asyncio
async def test_long_address_is_truncated_not_rejected(image_factory):
    sample = LocationSample(
        latitude=-6.2, longitude=106.8, accuracy=3, captured_at=CAPTURED, address="Jalan " * 200
    )
    output = await WatermarkCompositor().composite(image_factory(size=(320, 240)), sample, CAPTURED)
    assert output[:2] == b"\xff\xd8"


def test_unreadable_image_raises():
    with pytest.raises(UnreadableImageError) as exc_info:
        PillowRenderer().render(b"garbage", build_overlay_lines(GPS_SAMPLE, CAPTURED))
    assert exc_info.value.status_code == 422


def test_decompression_bomb_is_unreadable(image_factory, mocker):
    png = image_factory(size=(200, 200), fmt="PNG")
    mocker.patch.object(Image, "MAX_IMAGE_PIXELS", 1000)

    with pytest.raises(UnreadableImageError) as exc_info:
        PillowRenderer().render(png, build_overlay_lines(GPS_SAMPLE, CAPTURED))
    assert exc_info.value.error_code == "ERR_FILE_003"


@pytest.mark.asyncio
async def test_custom_renderer_receives_lines():
    received = {}

    class RecordingRenderer:
        def render(self, image_bytes, lines):
            received["lines"] = lines
            return b"rendered"

    compositor = WatermarkCompositor(renderer=RecordingRenderer(), tz_name="UTC", tz_label="UTC")
    output = await compositor.composite(b"raw", GPS_SAMPLE, CAPTURED)

    assert output == b"rendered"
    assert received["lines"][0].text == "17 Agu 2024 03:04:05 UTC"
