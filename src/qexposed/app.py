from __future__ import annotations

import argparse
import logging
import math
import sys
from decimal import Decimal, InvalidOperation
from typing import Any, Sequence

from .codec import bits_to_raw_hex, clean_input, parse_bits_input
from .display import (
    build_all_panel_display_data,
    build_panel_display_data,
    build_panel_display_data_from_value,
)
from .formats import DEFAULT_FORMAT_KEY, FORMATS, get_format

logger = logging.getLogger(__name__)

PANEL_ROWS: tuple[tuple[str, str], ...] = (
    ("format", "Format"),
    ("value_text", "Value"),
    ("classification", "Class"),
    ("bit_text", "Bits"),
    ("sign", "Sign"),
    ("exponent", "Exponent"),
    ("significand", "Significand"),
    ("raw_hex", "Raw hex"),
    ("raw_decimal", "Raw decimal"),
    ("hex_float", "Hex (%a)"),
    ("base2_equation", "Base-2"),
    ("base10_equation", "Base-10"),
    ("exact_value", "Exact"),
    ("ulp_size", "ULP size"),
)

VALUE_ROWS: tuple[tuple[str, str], ...] = (
    ("input_text", "Input"),
    ("overflow_text", "Overflow"),
    ("abs_error", "Abs error"),
    ("ulp_error", "ULP error"),
)


def parse_value_text(text: str) -> float:
    """Parse typed value text; accepts ``nan``, ``inf``, ``-infinity`` and scientific input."""
    cleaned = clean_input(text)
    if cleaned in {"", "+", "-"}:
        return 0.0

    try:
        value = Decimal(cleaned)
    except InvalidOperation as exc:
        raise ValueError(f"Invalid value input: {text!r}") from exc

    if value.is_nan():
        return math.nan
    try:
        return float(value)
    except OverflowError:
        return math.inf if value >= 0 else -math.inf


def format_panel(panel: dict[str, Any], rows: Sequence[tuple[str, str]] = PANEL_ROWS) -> str:
    width = max(len(label) for _, label in rows)
    lines: list[str] = []
    for key, label in rows:
        if key not in panel or panel[key] is None:
            continue
        lines.append(f"{label:<{width}}  {panel[key]}")
    return "\n".join(lines)


def format_registry() -> str:
    lines = []
    for key, spec in FORMATS.items():
        lines.append(
            f"{key:<7} {spec.name:<12} {spec.total_bits:>2} bits  "
            f"E{spec.exponent_bits} M{spec.mantissa_bits} bias={spec.exponent_bias}"
        )
    return "\n".join(lines)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="qexposed",
        description="Inspect bit patterns of narrow and standard floating-point formats.",
    )
    parser.add_argument(
        "-f",
        "--format",
        default=DEFAULT_FORMAT_KEY,
        help=f"format key (default: {DEFAULT_FORMAT_KEY}); see --list",
    )
    source = parser.add_mutually_exclusive_group(required=True)
    source.add_argument("-b", "--bits", help="bit pattern as 0x.., 0b.. or decimal")
    source.add_argument("-x", "--value", help="real value, e.g. 448, 1.5e-3, nan, -inf")
    source.add_argument("--list", action="store_true", help="list known formats")
    parser.add_argument(
        "--all",
        action="store_true",
        help="with --value, show the value in every known format",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="enable debug logging")
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    if args.all and args.value is None:
        parser.error("--all can only be combined with --value")

    if args.list:
        print(format_registry())
        return 0

    try:
        spec = get_format(args.format)
        if args.bits is not None:
            bits = parse_bits_input(args.bits, spec)
            logger.debug("decoding %s as %s", bits_to_raw_hex(spec, bits), spec.name)
            print(format_panel(build_panel_display_data(spec, bits)))
            return 0

        value = parse_value_text(args.value)
    except ValueError as exc:
        parser.error(str(exc))

    rows = PANEL_ROWS + VALUE_ROWS
    if args.all:
        panels = build_all_panel_display_data(value)
        print("\n\n".join(format_panel(panel, rows) for panel in panels.values()))
        return 0

    logger.debug("encoding %r as %s", value, spec.name)
    print(format_panel(build_panel_display_data_from_value(spec, value), rows))
    return 0


if __name__ == "__main__":
    sys.exit(main())
