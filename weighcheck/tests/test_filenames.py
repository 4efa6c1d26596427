"""
Evidence filename tests.
"""

import pytest
from weighcheck.app.core.exceptions import ValidationError
from weighcheck.app.services.filenames import derive_name, find_stale_slots


def test_invalid_characters_are_replaced():
    assert derive_name("JT/123:ABC", 1, "jpg") == "JT_123_ABC_foto1.jpg"


def test_every_reserved_character_is_replaced():
    assert derive_name('a/b\\c:d*e?f"g<h>i|j', 2, "jpg") == "a_b_c_d_e_f_g_h_i_j_foto2.jpg"


def test_stem_is_truncated_to_fifty_characters():
    name = derive_name("X" * 80, 1, "jpg")
    assert name == "X" * 50 + "_foto1.jpg"


def test_extension_is_normalised():
    assert derive_name("JT1", 2, ".JPG") == "JT1_foto2.jpg"


@pytest.mark.parametrize("receipt", ["", "   "])
def test_empty_receipt_is_rejected(receipt):
    with pytest.raises(ValidationError):
        derive_name(receipt, 1, "jpg")


@pytest.mark.parametrize("slot", [0, 3])
def test_slot_outside_range_is_rejected(slot):
    with pytest.raises(ValidationError):
        derive_name("JT1", slot, "jpg")


def test_find_stale_slots_flags_renamed_receipt():
    urls = {
        1: "https://res.cloudinary.com/test/image/upload/v1712345678/weight-entries/JT_OLD_foto1.jpg",
        2: "https://res.cloudinary.com/test/image/upload/v1712345678/weight-entries/JT_NEW_foto2.jpg",
    }

    assert find_stale_slots("JT/NEW", urls) == [1]


def test_find_stale_slots_ignores_foreign_urls():
    urls = {1: "https://example.com/photo.jpg", 2: None}
    assert find_stale_slots("JT1", urls) == []
