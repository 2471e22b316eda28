from __future__ import annotations

import math

from .codec import Decomposed, compose, extract
from .exact import fraction_to_decimal
from .formats import FormatSpec

SPECIAL_EQUATION = "Special (NaN/∞)"

# Subnormals of formats whose smallest step 2^(1-bias-M) stays above this
# exponent are shown as an integer multiple of a power of two.
SMALL_STEP_EXPONENT = -20
COLLAPSE_MAX_FRACTION_BITS = 4


def _binary(value: int, width: int) -> str:
    return format(value, f"0{width}b")


def _is_zero_encoding(spec: FormatSpec, d: Decomposed) -> bool:
    return spec.has_zero and d.exponent == 0 and d.significand == 0


def build_base2_equation(spec: FormatSpec, decomposed: Decomposed) -> str:
    bits = compose(spec, decomposed)
    if spec.is_special(bits):
        return SPECIAL_EQUATION

    d = extract(spec, bits)
    sign_pow = f"(-1)^{d.sign}"
    if _is_zero_encoding(spec, d):
        return f"{sign_pow} × 0"

    bias_text = f"{_binary(spec.exponent_bias, spec.exponent_bits)}_2"
    fraction_text = _binary(d.significand, spec.mantissa_bits) if spec.mantissa_bits else ""

    if d.exponent == 0 and (spec.has_zero or d.significand):
        mantissa = f"0.{fraction_text}_2" if fraction_text else "0_2"
        return f"{sign_pow} × 10_2^(1 - {bias_text}) × {mantissa}"

    exponent_text = f"{_binary(d.exponent, spec.exponent_bits)}_2"
    mantissa = f"1.{fraction_text}_2" if fraction_text else "1_2"
    return f"{sign_pow} × 10_2^({exponent_text} - {bias_text}) × {mantissa}"


def _subnormal_base10(sign_factor: str, significand: int, bias: int, mantissa_bits: int) -> str:
    step_exponent = 1 - bias - mantissa_bits
    small = step_exponent > SMALL_STEP_EXPONENT
    if significand == 0:
        return f"{sign_factor} × 2^{step_exponent if small else 1 - bias} × 0"

    trailing = (significand & -significand).bit_length() - 1
    odd = significand >> trailing
    if small:
        if odd == 1:
            return f"{sign_factor} × 2^{step_exponent + trailing}"
        return f"{sign_factor} × 2^{step_exponent + trailing} × {odd}"

    fraction_bits = mantissa_bits - trailing
    if odd == 1 and fraction_bits <= COLLAPSE_MAX_FRACTION_BITS:
        return f"{sign_factor} × 2^{1 - bias - fraction_bits}"
    fraction = fraction_to_decimal(odd, 1 << fraction_bits)
    return f"{sign_factor} × 2^{1 - bias} × {fraction}"


def build_base10_equation(spec: FormatSpec, decomposed: Decomposed) -> str:
    bits = compose(spec, decomposed)
    if spec.is_special(bits):
        return SPECIAL_EQUATION

    d = extract(spec, bits)
    sign_factor = "-1" if d.sign else "1"
    if d.exponent == 0 and (spec.has_zero or d.significand):
        return _subnormal_base10(sign_factor, d.significand, spec.exponent_bias, spec.mantissa_bits)

    exp_adj = d.exponent - spec.exponent_bias
    if d.significand == 0:
        return f"{sign_factor} × 2^{exp_adj}"
    mantissa = 1 + math.ldexp(d.significand, -spec.mantissa_bits)
    return f"{sign_factor} × 2^{exp_adj} × {mantissa!r}"
