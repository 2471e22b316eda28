import dataclasses
import math
import sys

import pytest

from qexposed.formats import FORMATS, FormatSpec, get_format


def test_registry_keys_and_default_order() -> None:
    assert list(FORMATS) == [
        "e4m3",
        "e5m2",
        "e8m0",
        "e2m3",
        "e3m2",
        "e2m1",
        "half",
        "bfloat",
        "float",
        "double",
    ]


def test_e4m3_properties_and_masks() -> None:
    spec = FORMATS["e4m3"]
    assert spec.name == "E4M3 (FP8)"
    assert spec.total_bits == 8
    assert spec.exponent_bits == 4
    assert spec.mantissa_bits == 3
    assert spec.sign_bits == 1
    assert spec.exponent_bias == 7
    assert spec.mantissa_mask == 0b00000111
    assert spec.exponent_mask == 0b01111000
    assert spec.sign_mask == 0b10000000


def test_e8m0_has_no_sign_bit() -> None:
    spec = FORMATS["e8m0"]
    assert spec.sign_bits == 0
    assert spec.signed is False
    assert spec.mantissa_mask == 0
    assert spec.exponent_mask == 0xFF
    assert spec.sign_mask == 0
    assert spec.has_zero is False


def test_range_reserves_top_exponent_for_special_values() -> None:
    assert FORMATS["e4m3"].max_value == 240.0
    assert FORMATS["e4m3"].min_value == -240.0
    assert FORMATS["e5m2"].max_value == 57344.0
    assert FORMATS["e8m0"].max_value == math.ldexp(1.0, 127)
    assert FORMATS["double"].max_value == sys.float_info.max


def test_range_uses_top_exponent_without_special_values() -> None:
    assert FORMATS["e2m3"].max_value == 7.5
    assert FORMATS["e3m2"].max_value == 28.0
    assert FORMATS["e2m1"].max_value == 6.0
    assert FORMATS["e2m1"].min_value == -6.0


def test_smallest_positive_is_smallest_normal() -> None:
    assert FORMATS["e4m3"].smallest_positive == 0.015625
    assert FORMATS["e2m3"].smallest_positive == 1.0
    assert FORMATS["e8m0"].min_value == FORMATS["e8m0"].smallest_positive


def test_rejects_widths_that_do_not_fit() -> None:
    with pytest.raises(ValueError, match="exceed"):
        FormatSpec(
            name="bad",
            total_bits=8,
            exponent_bits=5,
            mantissa_bits=4,
            exponent_bias=15,
        )


def test_rejects_more_than_one_spare_bit() -> None:
    with pytest.raises(ValueError, match="unused bits"):
        FormatSpec(name="bad", total_bits=10, exponent_bits=4, mantissa_bits=3, exponent_bias=7)


def test_rejects_nan_pattern_wider_than_format() -> None:
    with pytest.raises(ValueError, match="NaN pattern"):
        FormatSpec(
            name="bad",
            total_bits=8,
            exponent_bits=4,
            mantissa_bits=3,
            exponent_bias=7,
            has_nan=True,
            nan_patterns=frozenset({0x1FF}),
        )


def test_format_spec_is_immutable() -> None:
    with pytest.raises(dataclasses.FrozenInstanceError):
        FORMATS["e4m3"].exponent_bias = 8  # type: ignore[misc]


def test_nan_pattern_matching_ignores_sign() -> None:
    spec = FORMATS["e4m3"]
    assert spec.is_nan(0x7F)
    assert spec.is_nan(0xFF)
    assert not spec.is_nan(0x7E)
    assert not spec.is_infinity(0x78)


def test_default_nan_and_infinity_rules() -> None:
    spec = FORMATS["e5m2"]
    assert spec.is_infinity(0x7C)
    assert spec.is_infinity(0xFC)
    assert not spec.is_nan(0x7C)
    for bits in (0x7D, 0x7E, 0x7F, 0xFD, 0xFE, 0xFF):
        assert spec.is_nan(bits)
        assert spec.is_special(bits)


def test_exponent_only_format_all_ones_is_nan() -> None:
    spec = FORMATS["e8m0"]
    assert spec.is_nan(0xFF)
    assert not spec.is_nan(0xFE)


def test_formats_without_specials_never_report_them() -> None:
    spec = FORMATS["e2m3"]
    assert not any(spec.is_special(bits) for bits in range(1 << spec.total_bits))


def test_get_format_is_case_insensitive() -> None:
    assert get_format(" E4M3 ") is FORMATS["e4m3"]


def test_get_format_unknown_key() -> None:
    with pytest.raises(ValueError, match="Unknown format"):
        get_format("fp99")


def test_nan_patterns_with_sign_bit_are_reduced_to_magnitude() -> None:
    spec = FormatSpec(
        name="signed nan",
        total_bits=8,
        exponent_bits=4,
        mantissa_bits=3,
        exponent_bias=7,
        has_nan=True,
        nan_patterns=frozenset({0xFF}),
    )
    assert spec.nan_patterns == frozenset({0x7F})
    assert spec.is_nan(0xFF)
    assert spec.is_nan(0x7F)
    assert not spec.is_nan(0xFE)
