import pytest

from qexposed.codec import Decomposed, extract
from qexposed.equation import SPECIAL_EQUATION, build_base2_equation, build_base10_equation
from qexposed.formats import FORMATS


def _base2(key: str, bits: int) -> str:
    spec = FORMATS[key]
    return build_base2_equation(spec, extract(spec, bits))


def _base10(key: str, bits: int) -> str:
    spec = FORMATS[key]
    return build_base10_equation(spec, extract(spec, bits))


@pytest.mark.parametrize(
    ("key", "bits", "expected"),
    [
        ("e4m3", 0x7E, "(-1)^0 × 10_2^(1111_2 - 0111_2) × 1.110_2"),
        ("e4m3", 0xC8, "(-1)^1 × 10_2^(1001_2 - 0111_2) × 1.000_2"),
        ("e4m3", 0x07, "(-1)^0 × 10_2^(1 - 0111_2) × 0.111_2"),
        ("e4m3", 0x00, "(-1)^0 × 0"),
        ("e4m3", 0x80, "(-1)^1 × 0"),
        ("e5m2", 0x01, "(-1)^0 × 10_2^(1 - 01111_2) × 0.01_2"),
        ("bfloat", 0x0001, "(-1)^0 × 10_2^(1 - 01111111_2) × 0.0000001_2"),
        ("e8m0", 0x00, "(-1)^0 × 10_2^(00000000_2 - 01111111_2) × 1_2"),
        ("e8m0", 0x80, "(-1)^0 × 10_2^(10000000_2 - 01111111_2) × 1_2"),
    ],
)
def test_base2_equation(key: str, bits: int, expected: str) -> None:
    assert _base2(key, bits) == expected


@pytest.mark.parametrize(
    ("key", "bits", "expected"),
    [
        ("e4m3", 0x7E, "1 × 2^8 × 1.75"),
        ("e4m3", 0xFE, "-1 × 2^8 × 1.75"),
        ("e4m3", 0x08, "1 × 2^-6"),
        ("e4m3", 0x07, "1 × 2^-9 × 7"),
        ("e4m3", 0x06, "1 × 2^-8 × 3"),
        ("e4m3", 0x01, "1 × 2^-9"),
        ("e4m3", 0x00, "1 × 2^-9 × 0"),
        ("e4m3", 0x80, "-1 × 2^-9 × 0"),
        ("e5m2", 0x03, "1 × 2^-16 × 3"),
        ("e2m3", 0x07, "1 × 2^-3 × 7"),
        ("e8m0", 0x00, "1 × 2^-127"),
        ("half", 0x0001, "1 × 2^-14 × 0.0009765625"),
        ("bfloat", 0x0001, "1 × 2^-126 × 0.0078125"),
        ("bfloat", 0x0040, "1 × 2^-127"),
        ("bfloat", 0x0000, "1 × 2^-126 × 0"),
        ("double", 0x3FF8000000000000, "1 × 2^0 × 1.5"),
    ],
)
def test_base10_equation(key: str, bits: int, expected: str) -> None:
    assert _base10(key, bits) == expected


def test_base10_subnormal_fraction_is_exact_for_wide_formats() -> None:
    assert _base10("float", 0x00000001) == "1 × 2^-126 × 0.00000011920928955078125"


@pytest.mark.parametrize(("key", "bits"), [("e4m3", 0x7F), ("e4m3", 0xFF), ("e5m2", 0x7C), ("e5m2", 0x7E), ("e8m0", 0xFF)])
def test_special_values_have_no_equation(key: str, bits: int) -> None:
    assert _base2(key, bits) == SPECIAL_EQUATION
    assert _base10(key, bits) == SPECIAL_EQUATION


def test_equations_clamp_out_of_range_components() -> None:
    spec = FORMATS["e2m3"]
    d = Decomposed(sign=0, exponent=99, significand=7)
    assert build_base10_equation(spec, d) == "1 × 2^2 × 1.875"
    assert build_base2_equation(spec, d) == "(-1)^0 × 10_2^(11_2 - 01_2) × 1.111_2"
