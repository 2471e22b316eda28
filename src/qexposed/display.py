from __future__ import annotations

import math
from decimal import Decimal, localcontext
from fractions import Fraction
from typing import Any, Iterable

from .codec import (
    bits_to_array,
    bits_to_bit_text,
    bits_to_hex_float,
    bits_to_raw_decimal,
    bits_to_raw_hex,
    extract,
    role_boundaries,
)
from .convert import (
    bits_to_value,
    format_value_text,
    normalize_input_value,
    ulp_size,
    value_to_bits,
)
from .equation import build_base10_equation, build_base2_equation
from .exact import exact_ratio, get_exact_base10_value
from .formats import FORMATS, FormatSpec

ERROR_DIGITS = 12


def classify(spec: FormatSpec, bits: int) -> str:
    if spec.is_nan(bits):
        return "NaN"
    d = extract(spec, bits)
    if spec.is_infinity(bits):
        return "-inf" if d.sign else "+inf"
    if d.exponent == 0 and (spec.has_zero or d.significand):
        if d.significand == 0:
            return "-0" if d.sign else "+0"
        return "subnormal"
    return "normal"


def _format_fraction(value: Fraction) -> str:
    if value == 0:
        return "0"
    with localcontext() as ctx:
        ctx.prec = ERROR_DIGITS
        quotient = Decimal(value.numerator) / Decimal(value.denominator)
    return format(quotient, f".{ERROR_DIGITS}g")


def format_ulp_size(size: Fraction | None) -> str:
    if size is None:
        return "n/a"
    return _format_fraction(size)


def quantization_error_metrics(spec: FormatSpec, value: float, bits: int) -> tuple[str, str]:
    """Absolute and ULP error of storing ``value`` as ``bits``."""
    if math.isnan(value) or spec.is_nan(bits):
        return "n/a", "n/a"

    quantized = bits_to_value(spec, bits)
    if math.isinf(value) or math.isinf(quantized):
        if value == quantized:
            return "0", "0"
        return "n/a", "n/a"

    numerator, denominator = exact_ratio(spec, extract(spec, bits))
    abs_error = abs(Fraction(value) - Fraction(numerator, denominator))
    if abs_error == 0:
        return "0", "0"

    size = ulp_size(spec, bits)
    if size is None:
        return _format_fraction(abs_error), "n/a"
    return _format_fraction(abs_error), _format_fraction(abs_error / size)


def build_panel_display_data(spec: FormatSpec, bits: int) -> dict[str, Any]:
    d = extract(spec, bits)
    value = bits_to_value(spec, bits)
    return {
        "format": spec.name,
        "value": value,
        "value_text": format_value_text(value),
        "classification": classify(spec, bits),
        "sign": d.sign,
        "exponent": d.exponent,
        "significand": d.significand,
        "bit_text": bits_to_bit_text(spec, bits),
        "bit_array": bits_to_array(spec, bits),
        "role_boundaries": role_boundaries(spec),
        "raw_hex": bits_to_raw_hex(spec, bits),
        "raw_decimal": bits_to_raw_decimal(bits),
        "hex_float": bits_to_hex_float(spec, bits),
        "base2_equation": build_base2_equation(spec, d),
        "base10_equation": build_base10_equation(spec, d),
        "exact_value": get_exact_base10_value(spec, d),
        "ulp_size": format_ulp_size(ulp_size(spec, bits)),
    }


def build_panel_display_data_from_value(spec: FormatSpec, value: float) -> dict[str, Any]:
    normalized, overflow_text = normalize_input_value(spec, value)
    bits = value_to_bits(spec, normalized)

    panel = build_panel_display_data(spec, bits)
    abs_error, ulp_error = quantization_error_metrics(spec, value, bits)
    panel.update(
        {
            "input_text": format_value_text(value),
            "overflow_text": overflow_text,
            "abs_error": abs_error,
            "ulp_error": ulp_error,
        }
    )
    return panel


def build_all_panel_display_data(
    value: float,
    keys: Iterable[str] | None = None,
) -> dict[str, dict[str, Any]]:
    results: dict[str, dict[str, Any]] = {}
    for key in keys if keys is not None else FORMATS:
        results[key] = build_panel_display_data_from_value(FORMATS[key], value)
    return results
