from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import Any

import numpy as np

logger = logging.getLogger(__name__)

DEFAULT_FORMAT_KEY = "e4m3"


@dataclass(frozen=True)
class FormatSpec:
    """Parametric binary floating-point layout, ``[sign | exponent | mantissa]``.

    The sign field is present when one bit is left over after the exponent
    and mantissa. Masks and range constants are derived once at construction.
    """

    name: str
    total_bits: int
    exponent_bits: int
    mantissa_bits: int
    exponent_bias: int
    has_infinity: bool = False
    has_nan: bool = False
    nan_patterns: frozenset[int] | None = None
    has_zero: bool = True
    native_dtype: Any = None

    sign_bits: int = field(init=False)
    sign_mask: int = field(init=False)
    exponent_mask: int = field(init=False)
    mantissa_mask: int = field(init=False)
    exponent_all_ones: int = field(init=False)
    max_significand: int = field(init=False)
    max_value: float = field(init=False)
    min_value: float = field(init=False)
    smallest_positive: float = field(init=False)

    def __post_init__(self) -> None:
        if self.exponent_bits < 1:
            raise ValueError(f"{self.name}: exponent_bits must be >= 1")
        if self.mantissa_bits < 0 or self.total_bits < 1:
            raise ValueError(f"{self.name}: bit widths must be non-negative")
        spare = self.total_bits - self.exponent_bits - self.mantissa_bits
        if spare < 0:
            raise ValueError(
                f"{self.name}: {self.exponent_bits} exponent bits + "
                f"{self.mantissa_bits} mantissa bits exceed {self.total_bits} total bits"
            )
        if spare > 1:
            raise ValueError(
                f"{self.name}: {spare} unused bits; at most one sign bit is supported"
            )

        if self.nan_patterns is not None:
            patterns = frozenset(int(p) for p in self.nan_patterns)
            if any(p < 0 or p >> self.total_bits for p in patterns):
                raise ValueError(f"{self.name}: NaN pattern wider than {self.total_bits} bits")
            # Matched against magnitude bits, so a set sign bit is dropped.
            magnitude_mask = (1 << (self.exponent_bits + self.mantissa_bits)) - 1
            patterns = frozenset(p & magnitude_mask for p in patterns)
            object.__setattr__(self, "nan_patterns", patterns)

        exponent_all_ones = (1 << self.exponent_bits) - 1
        object.__setattr__(self, "sign_bits", spare)
        object.__setattr__(self, "sign_mask", (1 << (self.total_bits - 1)) if spare else 0)
        object.__setattr__(self, "exponent_mask", exponent_all_ones << self.mantissa_bits)
        object.__setattr__(self, "mantissa_mask", (1 << self.mantissa_bits) - 1)
        object.__setattr__(self, "exponent_all_ones", exponent_all_ones)
        object.__setattr__(self, "max_significand", (1 << self.mantissa_bits) - 1)

        top_exponent = exponent_all_ones
        if self.has_infinity or self.has_nan:
            top_exponent -= 1
        max_value = _scaled(
            2 - math.ldexp(1.0, -self.mantissa_bits), top_exponent - self.exponent_bias
        )
        smallest_positive = _scaled(1.0, 1 - self.exponent_bias)
        object.__setattr__(self, "max_value", max_value)
        object.__setattr__(self, "smallest_positive", smallest_positive)
        object.__setattr__(self, "min_value", -max_value if spare else smallest_positive)

    @property
    def signed(self) -> bool:
        return self.sign_bits == 1

    def magnitude_bits(self, bits: int) -> int:
        return bits & ~self.sign_mask & ((1 << self.total_bits) - 1)

    def is_nan(self, bits: int) -> bool:
        if not self.has_nan:
            return False
        if self.nan_patterns is not None:
            return self.magnitude_bits(bits) in self.nan_patterns

        exponent = (bits & self.exponent_mask) >> self.mantissa_bits
        mantissa = bits & self.mantissa_mask
        return exponent == self.exponent_all_ones and (
            self.mantissa_bits == 0 or mantissa != 0
        )

    def is_infinity(self, bits: int) -> bool:
        if not self.has_infinity:
            return False
        exponent = (bits & self.exponent_mask) >> self.mantissa_bits
        mantissa = bits & self.mantissa_mask
        return exponent == self.exponent_all_ones and mantissa == 0

    def is_special(self, bits: int) -> bool:
        return self.is_nan(bits) or self.is_infinity(bits)


def _scaled(mantissa: float, exponent: int) -> float:
    try:
        return math.ldexp(mantissa, exponent)
    except OverflowError:
        return math.inf


FORMATS: dict[str, FormatSpec] = {
    "e4m3": FormatSpec(
        name="E4M3 (FP8)",
        total_bits=8,
        exponent_bits=4,
        mantissa_bits=3,
        exponent_bias=7,
        has_infinity=False,
        has_nan=True,
        nan_patterns=frozenset({0b0_1111_111}),
    ),
    "e5m2": FormatSpec(
        name="E5M2 (FP8)",
        total_bits=8,
        exponent_bits=5,
        mantissa_bits=2,
        exponent_bias=15,
        has_infinity=True,
        has_nan=True,
    ),
    "e8m0": FormatSpec(
        name="E8M0 (E8)",
        total_bits=8,
        exponent_bits=8,
        mantissa_bits=0,
        exponent_bias=127,
        has_infinity=False,
        has_nan=True,
        has_zero=False,
    ),
    "e2m3": FormatSpec(
        name="E2M3 (FP6)",
        total_bits=6,
        exponent_bits=2,
        mantissa_bits=3,
        exponent_bias=1,
    ),
    "e3m2": FormatSpec(
        name="E3M2 (FP6)",
        total_bits=6,
        exponent_bits=3,
        mantissa_bits=2,
        exponent_bias=3,
    ),
    "e2m1": FormatSpec(
        name="E2M1 (FP4)",
        total_bits=4,
        exponent_bits=2,
        mantissa_bits=1,
        exponent_bias=1,
    ),
    "half": FormatSpec(
        name="half",
        total_bits=16,
        exponent_bits=5,
        mantissa_bits=10,
        exponent_bias=15,
        has_infinity=True,
        has_nan=True,
        native_dtype=np.float16,
    ),
    "bfloat": FormatSpec(
        name="bfloat",
        total_bits=16,
        exponent_bits=8,
        mantissa_bits=7,
        exponent_bias=127,
        has_infinity=True,
        has_nan=True,
    ),
    "float": FormatSpec(
        name="float",
        total_bits=32,
        exponent_bits=8,
        mantissa_bits=23,
        exponent_bias=127,
        has_infinity=True,
        has_nan=True,
        native_dtype=np.float32,
    ),
    "double": FormatSpec(
        name="double",
        total_bits=64,
        exponent_bits=11,
        mantissa_bits=52,
        exponent_bias=1023,
        has_infinity=True,
        has_nan=True,
        native_dtype=np.float64,
    ),
}


def get_format(key: str) -> FormatSpec:
    cleaned = key.strip().lower()
    try:
        spec = FORMATS[cleaned]
    except KeyError:
        known = ", ".join(FORMATS)
        raise ValueError(f"Unknown format {key!r}; expected one of: {known}") from None
    logger.debug("resolved format %r -> %s", key, spec.name)
    return spec
