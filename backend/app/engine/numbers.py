"""
Locale-independent number formatting and parsing.

PVGIS reads and writes numbers with "." as the decimal separator. Every call
site passes the convention explicitly instead of relying on process locale.
"""

import re
from dataclasses import dataclass
from decimal import Decimal
from typing import Optional, Union


@dataclass(frozen=True)
class NumberFormat:
    decimal_point: str = "."
    group_separator: str = ","


INVARIANT = NumberFormat()


def format_number(value: Union[int, float], fmt: NumberFormat = INVARIANT) -> str:
    """
    Render a number as plain positional digits.

    Never uses exponent notation or digit grouping, e.g. 1e-05 -> "0.00001".
    """
    if isinstance(value, bool):
        raise TypeError("Booleans are not numeric upstream fields.")
    if isinstance(value, int):
        return str(value)

    text = format(Decimal(repr(float(value))), "f")
    if fmt.decimal_point != ".":
        text = text.replace(".", fmt.decimal_point)
    return text


def _number_pattern(fmt: NumberFormat) -> re.Pattern:
    group = re.escape(fmt.group_separator)
    point = re.escape(fmt.decimal_point)
    return re.compile(
        rf"^[+-]?"
        rf"(?:\d+(?:{group}\d+)*(?:{point}\d*)?|{point}\d+)"
        rf"(?:[eE][+-]?\d+)?$"
    )


def parse_number(token: Optional[str], fmt: NumberFormat = INVARIANT) -> float:
    """
    Parse a numeric token under the given convention.

    Accepts an optional sign, digit grouping, a fractional part and an
    exponent. Anything unparseable yields 0.0, so absent and zero cannot
    be told apart by the caller.
    """
    if token is None:
        return 0.0

    text = token.strip()
    if not text or not _number_pattern(fmt).match(text):
        return 0.0

    text = text.replace(fmt.group_separator, "")
    if fmt.decimal_point != ".":
        text = text.replace(fmt.decimal_point, ".")
    return float(text)
