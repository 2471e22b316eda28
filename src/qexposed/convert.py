from __future__ import annotations

import math
import re
import sys
from decimal import Decimal
from fractions import Fraction
from typing import Any

import numpy as np

from .codec import Decomposed, compose, extract
from .formats import FormatSpec

VALUE_TEXT_MAX_DIGITS = 20
ALL_VALUES_MAX_BITS = 16

_EXPONENTIAL_RE = re.compile(r"^(-?)(\d+)(?:\.(\d+))?[eE]([+-]?\d+)$")


def _uint_dtype_for_bits(bits: int) -> Any:
    if bits <= 8:
        return np.uint8
    if bits <= 16:
        return np.uint16
    if bits <= 32:
        return np.uint32
    if bits <= 64:
        return np.uint64
    raise ValueError(f"Unsupported float width: {bits}")


def _round_half_up(value: Fraction) -> int:
    return math.floor(value + Fraction(1, 2))


def _floor_log2(value: Fraction) -> int:
    exponent = value.numerator.bit_length() - value.denominator.bit_length()
    if value < Fraction(2) ** exponent:
        exponent -= 1
    return exponent


def bits_to_value(spec: FormatSpec, bits: int) -> float:
    if spec.is_nan(bits):
        return math.nan

    d = extract(spec, bits)
    sign = -1.0 if d.sign else 1.0
    if spec.is_infinity(bits):
        return math.copysign(math.inf, sign)

    bias = spec.exponent_bias
    if d.exponent == 0:
        if d.significand == 0:
            if not spec.has_zero:
                return math.copysign(math.ldexp(1.0, -bias), sign)
            return math.copysign(0.0, sign)
        magnitude = math.ldexp(d.significand, 1 - bias - spec.mantissa_bits)
        return math.copysign(magnitude, sign)

    full_mantissa = (1 << spec.mantissa_bits) | d.significand
    magnitude = math.ldexp(full_mantissa, d.exponent - bias - spec.mantissa_bits)
    return math.copysign(magnitude, sign)


def native_value(spec: FormatSpec, bits: int) -> float:
    """Decode ``bits`` through numpy's hardware type for ``spec``."""
    if spec.native_dtype is None:
        raise ValueError(f"{spec.name} has no native numpy dtype.")
    raw = np.array([bits], dtype=_uint_dtype_for_bits(spec.total_bits))
    return float(raw.view(spec.native_dtype)[0])


def canonical_nan_bits(spec: FormatSpec) -> int:
    return compose(
        spec,
        Decomposed(sign=0, exponent=spec.exponent_all_ones, significand=spec.max_significand),
    )


def max_finite_bits(spec: FormatSpec, sign: int = 0) -> int:
    """Largest-magnitude pattern that is neither NaN nor infinity."""
    top = spec.exponent_all_ones
    if not spec.has_infinity:
        if not spec.has_nan:
            return compose(spec, Decomposed(sign, top, spec.max_significand))
        if spec.nan_patterns is None:
            if spec.mantissa_bits:
                return compose(spec, Decomposed(sign, top, 0))
        else:
            lowest = max(-1, spec.max_significand - len(spec.nan_patterns) - 1)
            for significand in range(spec.max_significand, lowest, -1):
                bits = compose(spec, Decomposed(sign, top, significand))
                if not spec.is_nan(bits):
                    return bits
    return compose(spec, Decomposed(sign, top - 1, spec.max_significand))


def _encode_subnormal(spec: FormatSpec, sign: int, magnitude: Fraction) -> int:
    scale = Fraction(2) ** (1 - spec.exponent_bias - spec.mantissa_bits)
    significand = _round_half_up(magnitude / scale)
    if significand > spec.max_significand:
        return compose(spec, Decomposed(sign, 1, 0))
    return compose(spec, Decomposed(sign, 0, significand))


def value_to_bits(spec: FormatSpec, value: float) -> int:
    """Encode ``value`` as the nearest pattern of ``spec``, ties away from zero."""
    value = float(value)
    if math.isnan(value):
        return canonical_nan_bits(spec) if spec.has_nan else 0

    sign = 1 if math.copysign(1.0, value) < 0 else 0
    top = spec.exponent_all_ones
    if math.isinf(value):
        if spec.has_infinity:
            return compose(spec, Decomposed(sign, top, 0))
        return max_finite_bits(spec, sign)

    if value == 0:
        return compose(spec, Decomposed(sign, 0, 0))

    bias = spec.exponent_bias
    magnitude = Fraction(abs(value))
    if spec.has_zero and magnitude < Fraction(2) ** (1 - bias):
        return _encode_subnormal(spec, sign, magnitude)

    exponent = _floor_log2(magnitude)
    fraction = magnitude / Fraction(2) ** exponent
    significand = _round_half_up((fraction - 1) * (1 << spec.mantissa_bits))
    if significand == 1 << spec.mantissa_bits:
        significand = 0
        exponent += 1

    biased = exponent + bias
    if biased <= 0:
        if spec.has_zero:
            return _encode_subnormal(spec, sign, magnitude)
        return compose(spec, Decomposed(sign, 0, 0))

    if biased > top or (biased == top and (spec.has_infinity or spec.has_nan)):
        if spec.has_infinity:
            return compose(spec, Decomposed(sign, top, 0))
        if biased == top:
            candidate = compose(spec, Decomposed(sign, top, significand))
            if not spec.is_nan(candidate):
                return candidate
        return max_finite_bits(spec, sign)

    return compose(spec, Decomposed(sign, biased, significand))


def check_overflow(spec: FormatSpec, value: float) -> bool:
    if not math.isfinite(value):
        return False
    if value < 0:
        return value < spec.min_value
    return value > spec.max_value


def handle_overflow(spec: FormatSpec, value: float) -> tuple[float, str]:
    if not math.isfinite(value):
        return value, format_value_text(value)

    negative = value < 0
    if spec.has_infinity:
        overflow = -math.inf if negative else math.inf
        return overflow, format_value_text(overflow)
    if spec.has_nan:
        return math.nan, "NaN"

    clamped = spec.min_value if negative else spec.max_value
    return clamped, format_value_text(clamped)


def normalize_input_value(spec: FormatSpec, value: float) -> tuple[float, str | None]:
    """Return the value a display should show for a typed ``value``.

    Overflowing input resolves through :func:`handle_overflow` and comes with
    display text. Otherwise the value is replaced by its round-tripped
    representable value when the two differ by more than machine epsilon.
    """
    if not math.isfinite(value):
        return value, None

    if check_overflow(spec, value):
        return handle_overflow(spec, value)

    actual = bits_to_value(spec, value_to_bits(spec, value))
    if abs(value - actual) > sys.float_info.epsilon:
        return actual, None
    return value, None


def _to_exponential(value: float) -> str:
    sign, digits, exponent = Decimal(repr(value)).normalize().as_tuple()
    text = "".join(str(digit) for digit in digits)
    scientific = len(text) - 1 + int(exponent)
    mantissa = text[0] + ("." + text[1:] if len(text) > 1 else "")
    return f"{'-' if sign else ''}{mantissa}e{scientific:+d}"


def expand_exponential_to_plain(text: str) -> str:
    match = _EXPONENTIAL_RE.match(text)
    if match is None:
        return text
    sign, int_part, frac_part, exponent = match.groups()
    digits = int_part + (frac_part or "")
    point = len(int_part) + int(exponent)

    if point <= 0:
        return f"{sign}0.{'0' * -point}{digits}"
    if point >= len(digits):
        return sign + digits + "0" * (point - len(digits))
    return f"{sign}{digits[:point]}.{digits[point:]}"


def format_value_text(value: float) -> str:
    """Shortest round-trip text, plain unless that needs more than 20 digits."""
    if math.isnan(value):
        return "NaN"
    if math.isinf(value):
        return "Infinity" if value > 0 else "-Infinity"
    if value == 0:
        return "-0" if math.copysign(1.0, value) < 0 else "0"

    exponential = _to_exponential(value)
    plain = expand_exponential_to_plain(exponential)
    digit_count = sum(ch.isdigit() for ch in plain)
    return exponential if digit_count > VALUE_TEXT_MAX_DIGITS else plain


def ulp_size(spec: FormatSpec, bits: int) -> Fraction | None:
    if spec.is_special(bits):
        return None
    d = extract(spec, bits)
    exponent = d.exponent
    if exponent == 0 and (spec.has_zero or d.significand):
        exponent = 1
    return Fraction(2) ** (exponent - spec.exponent_bias - spec.mantissa_bits)


def all_values(spec: FormatSpec) -> tuple[np.ndarray, np.ndarray]:
    if spec.total_bits > ALL_VALUES_MAX_BITS:
        raise ValueError(
            f"Refusing to enumerate {spec.total_bits}-bit {spec.name}; "
            f"limit is {ALL_VALUES_MAX_BITS} bits."
        )
    patterns = np.arange(1 << spec.total_bits, dtype=np.uint64)
    values = np.array([bits_to_value(spec, int(bits)) for bits in patterns], dtype=np.float64)
    return patterns, values
