from __future__ import annotations

from .codec import Decomposed, compose, extract
from .formats import FormatSpec

MAX_FRACTION_DIGITS = 1000
PLAIN_EXPONENT_RANGE = (-3, 3)


def fraction_to_decimal(numerator: int, denominator: int) -> str:
    """Exact base-10 expansion of ``numerator / denominator``.

    A repeating tail is wrapped in parentheses, e.g. ``1/6 -> "0.1(6)"``.
    Expansion stops after ``MAX_FRACTION_DIGITS`` fractional digits.
    """
    if denominator == 0:
        raise ValueError("Denominator must be non-zero.")
    if numerator == 0:
        return "0"

    sign = "-" if (numerator < 0) != (denominator < 0) else ""
    denominator = abs(denominator)
    whole, remainder = divmod(abs(numerator), denominator)
    if remainder == 0:
        return f"{sign}{whole}"

    digits: list[str] = []
    seen: dict[int, int] = {}
    while remainder and len(digits) < MAX_FRACTION_DIGITS:
        if remainder in seen:
            start = seen[remainder]
            fixed = "".join(digits[:start])
            repeating = "".join(digits[start:])
            return f"{sign}{whole}.{fixed}({repeating})"
        seen[remainder] = len(digits)
        digit, remainder = divmod(remainder * 10, denominator)
        digits.append(str(digit))

    return f"{sign}{whole}." + "".join(digits)


def _plain_digits(digits: str, exponent: int) -> str:
    if exponent < 0:
        return "0." + "0" * (-exponent - 1) + digits
    if exponent >= len(digits) - 1:
        return digits + "0" * (exponent - len(digits) + 1)
    return f"{digits[:exponent + 1]}.{digits[exponent + 1:]}"


def format_decimal_exponent(decimal_text: str) -> str:
    """Render terminating decimal text plainly or as ``d.ddd×10^e``."""
    sign = ""
    if decimal_text.startswith("-"):
        sign = "-"
        decimal_text = decimal_text[1:]

    int_part, _, frac_part = decimal_text.partition(".")
    int_part = int_part.lstrip("0")
    frac_part = frac_part.rstrip("0")
    if not int_part and not frac_part:
        return sign + "0"

    if int_part:
        digits = int_part + frac_part
        exponent = len(int_part) - 1
    else:
        digits = frac_part.lstrip("0")
        exponent = -(len(frac_part) - len(digits) + 1)

    low, high = PLAIN_EXPONENT_RANGE
    if low <= exponent <= high:
        return sign + _plain_digits(digits, exponent)

    significant = digits.rstrip("0")
    mantissa = significant[0] + ("." + significant[1:] if len(significant) > 1 else "")
    return f"{sign}{mantissa}×10^{exponent}"


def _scaled_ratio(mantissa: int, power: int) -> tuple[int, int]:
    if power >= 0:
        return mantissa << power, 1
    return mantissa, 1 << -power


def exact_ratio(spec: FormatSpec, decomposed: Decomposed) -> tuple[int, int]:
    """``(numerator, denominator)`` of a finite pattern; the denominator is a power of two."""
    d = extract(spec, compose(spec, decomposed))
    bias = spec.exponent_bias
    mantissa_bits = spec.mantissa_bits

    if d.exponent == 0 and (spec.has_zero or d.significand):
        numerator, denominator = _scaled_ratio(d.significand, 1 - bias - mantissa_bits)
    else:
        full_mantissa = (1 << mantissa_bits) | d.significand
        numerator, denominator = _scaled_ratio(full_mantissa, d.exponent - bias - mantissa_bits)

    return (-numerator if d.sign else numerator), denominator


def get_exact_base10_value(spec: FormatSpec, decomposed: Decomposed) -> str:
    bits = compose(spec, decomposed)
    d = extract(spec, bits)
    if spec.is_nan(bits):
        return "NaN"
    if spec.is_infinity(bits):
        return "-Infinity" if d.sign else "Infinity"
    if spec.has_zero and d.exponent == 0 and d.significand == 0:
        return "-0" if d.sign else "0"

    numerator, denominator = exact_ratio(spec, d)
    text = fraction_to_decimal(numerator, denominator)
    if "(" in text:
        return text
    return format_decimal_exponent(text)
