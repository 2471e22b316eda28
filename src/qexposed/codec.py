from __future__ import annotations

from dataclasses import dataclass

from .formats import FormatSpec


@dataclass(frozen=True)
class Decomposed:
    sign: int
    exponent: int
    significand: int


def clean_input(text: str) -> str:
    return text.strip().replace("_", "").replace(" ", "")


def parse_bits_input(text: str, spec: FormatSpec) -> int:
    """Parse ``0x``/``0b``/decimal bit-pattern text for ``spec``."""
    cleaned = clean_input(text)
    if not cleaned:
        return 0
    prefix = cleaned[:2].lower()
    base = 16 if prefix == "0x" else 2 if prefix == "0b" else 10
    try:
        bits = int(cleaned, base)
    except ValueError as exc:
        raise ValueError(f"Invalid bit pattern: {text!r}") from exc
    check_bits(spec, bits)
    return bits


def check_bits(spec: FormatSpec, bits: int) -> None:
    if bits < 0 or bits >> spec.total_bits:
        raise ValueError(
            f"Bit pattern {bits:#x} does not fit in {spec.total_bits} bits for {spec.name}."
        )


def extract(spec: FormatSpec, bits: int) -> Decomposed:
    sign = 1 if spec.sign_mask and bits & spec.sign_mask else 0
    exponent = (bits & spec.exponent_mask) >> spec.mantissa_bits
    significand = bits & spec.mantissa_mask
    return Decomposed(sign=sign, exponent=exponent, significand=significand)


def compose(spec: FormatSpec, decomposed: Decomposed) -> int:
    sign = decomposed.sign % 2 if spec.signed else 0
    exponent = max(0, min(spec.exponent_all_ones, decomposed.exponent))
    significand = decomposed.significand & spec.mantissa_mask
    return (
        (sign << (spec.total_bits - 1))
        | (exponent << spec.mantissa_bits)
        | significand
    )


def clamp_decomposed(spec: FormatSpec, decomposed: Decomposed) -> Decomposed:
    return Decomposed(
        sign=1 if decomposed.sign > 0 else 0,
        exponent=max(0, min(spec.exponent_all_ones, decomposed.exponent)),
        significand=max(0, min(spec.max_significand, decomposed.significand)),
    )


def bits_to_array(spec: FormatSpec, bits: int) -> list[int]:
    return [(bits >> i) & 1 for i in range(spec.total_bits - 1, -1, -1)]


def role_boundaries(spec: FormatSpec) -> tuple[int, int]:
    return (spec.sign_bits, spec.sign_bits + spec.exponent_bits)


def bits_to_bit_text(spec: FormatSpec, bits: int) -> str:
    text = format(bits, f"0{spec.total_bits}b")
    sign_end, exponent_end = role_boundaries(spec)
    parts = [text[:sign_end], text[sign_end:exponent_end], text[exponent_end:]]
    return "|".join(part for part in parts if part)


def bits_to_raw_hex(spec: FormatSpec, bits: int) -> str:
    hex_digits = -(-spec.total_bits // 4)
    return "0x" + format(bits, f"0{hex_digits}x")


def bits_to_raw_decimal(bits: int) -> str:
    return str(bits)


def _fraction_to_hex(mantissa_bits: int, mantissa: int) -> str:
    needed = -(-mantissa_bits // 4)
    if needed == 0:
        return "0"
    pad_bits = needed * 4 - mantissa_bits
    text = format(mantissa << pad_bits, f"0{needed}x").rstrip("0")
    return text or "0"


def bits_to_hex_float(spec: FormatSpec, bits: int) -> str:
    if spec.is_nan(bits):
        return "nan"
    d = extract(spec, bits)
    prefix = "-0x" if d.sign else "0x"
    if spec.is_infinity(bits):
        return "-inf" if d.sign else "inf"

    fraction = _fraction_to_hex(spec.mantissa_bits, d.significand)
    if d.exponent == 0 and (spec.has_zero or d.significand):
        if d.significand == 0:
            return prefix + "0p+0"
        return f"{prefix}0.{fraction}p{1 - spec.exponent_bias:+d}"
    return f"{prefix}1.{fraction}p{d.exponent - spec.exponent_bias:+d}"


def toggle_bit(spec: FormatSpec, bits: int, index_from_left: int) -> int:
    if not 0 <= index_from_left < spec.total_bits:
        raise ValueError(
            f"Bit index {index_from_left} out of range for {spec.total_bits}-bit {spec.name}."
        )
    return bits ^ (1 << (spec.total_bits - 1 - index_from_left))


def carry_to_format(source: FormatSpec, target: FormatSpec, bits: int) -> int:
    carried = clamp_decomposed(target, extract(source, bits))
    return compose(target, carried)
