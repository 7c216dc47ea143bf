"""Cell formatting for table charts.

``format_value(value, spec)`` turns a raw scalar into the display string for a
table cell. Specs are parsed from the loose ``column_formatting`` mappings saved
with a chart into one of a closed set of frozen dataclasses; ``format_value``
dispatches on that type. Formatting never raises: anything malformed degrades
to the raw string form of the value.
"""

from __future__ import annotations

import math
import re
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal, localcontext
from typing import Any, Dict, Mapping, Optional, Tuple, Union

import pandas as pd

DEFAULT_PRECISION = 2

FORMAT_TYPES = ("currency", "percentage", "number", "date", "text")
NUMBER_FORMATS = (
    "default",
    "comma",
    "international",
    "indian",
    "european",
    "percentage",
    "currency",
    "adaptive_international",
    "adaptive_indian",
)
DATE_FORMATS = (
    "default",
    "iso_datetime",
    "dd_mm_yyyy",
    "mm_dd_yyyy",
    "yyyy_mm_dd",
    "dd_mm_yyyy_time",
    "time_only",
)

DATE_PATTERNS = {
    "iso_datetime": "%Y-%m-%d %H:%M:%S",
    "dd_mm_yyyy": "%d/%m/%Y",
    "mm_dd_yyyy": "%m/%d/%Y",
    "yyyy_mm_dd": "%Y-%m-%d",
    "dd_mm_yyyy_time": "%d-%m-%Y %H:%M:%S",
    "time_only": "%H:%M:%S",
}

# Largest unit first.
INTERNATIONAL_UNITS: Tuple[Tuple[float, str], ...] = ((1e9, "B"), (1e6, "M"), (1e3, "K"))
INDIAN_UNITS: Tuple[Tuple[float, str], ...] = ((1e7, "Cr"), (1e5, "L"), (1e3, "K"))

_LEADING_NUMBER = re.compile(r"^[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?")
_URL_PATTERN = re.compile(r"^(https?://|www\.)", re.IGNORECASE)


@dataclass(frozen=True)
class _Affixed:
    precision: int = DEFAULT_PRECISION
    prefix: str = ""
    suffix: str = ""

    def wrap(self, text: str) -> str:
        return f"{self.prefix}{text}{self.suffix}"


@dataclass(frozen=True)
class CurrencyFormat(_Affixed):
    pass


@dataclass(frozen=True)
class PercentageFormat(_Affixed):
    pass


@dataclass(frozen=True)
class NumberFormat(_Affixed):
    pass


@dataclass(frozen=True)
class DateFormat(_Affixed):
    date_format: str = "default"


@dataclass(frozen=True)
class TextFormat(_Affixed):
    pass


@dataclass(frozen=True)
class GroupedNumberFormat(_Affixed):
    number_format: str = "default"


ColumnFormat = Union[CurrencyFormat, PercentageFormat, NumberFormat, DateFormat, TextFormat, GroupedNumberFormat]

_TYPE_TO_FORMAT = {
    "currency": CurrencyFormat,
    "percentage": PercentageFormat,
    "number": NumberFormat,
    "text": TextFormat,
}


def is_null(value: Any) -> bool:
    if value is None:
        return True
    if not pd.api.types.is_scalar(value):
        return False
    try:
        return bool(pd.isna(value))
    except (TypeError, ValueError):
        return False


def raw_string(value: Any) -> str:
    """String form of a cell value; integral floats drop their ``.0``."""
    if is_null(value):
        return ""
    if isinstance(value, float) and math.isfinite(value) and value.is_integer():
        return str(int(value))
    return str(value)


def parse_number(value: Any) -> Optional[float]:
    """Parse the leading number of ``value``; ``None`` when there is none."""
    if isinstance(value, bool) or is_null(value):
        return None
    if isinstance(value, (int, float)):
        out = float(value)
    else:
        try:
            out = float(value)
        except (TypeError, ValueError):
            match = _LEADING_NUMBER.match(str(value).strip())
            if not match:
                return None
            out = float(match.group(0))
    if math.isnan(out) or math.isinf(out):
        return None
    return out


def to_number(value: Any) -> float:
    """Numeric value used by the numeric kinds; anything unparseable is 0."""
    out = parse_number(value)
    return 0.0 if out is None else out


def _precision(raw: Any) -> int:
    if isinstance(raw, bool) or (isinstance(raw, float) and not raw.is_integer()):
        return DEFAULT_PRECISION
    try:
        out = int(raw)
    except (TypeError, ValueError, OverflowError):
        return DEFAULT_PRECISION
    return out if 0 <= out <= 20 else DEFAULT_PRECISION


def parse_format_spec(raw: Any) -> Optional[ColumnFormat]:
    """Coerce a saved ``column_formatting`` entry into a ``ColumnFormat``.

    ``numberFormat`` (or ``number_format``) supersedes ``type``; a bare
    ``precision`` with no ``type`` renders plain fixed decimals. Unknown types
    fall back to text, bad precision falls back to the default.
    """
    if raw is None:
        return None
    if isinstance(raw, (CurrencyFormat, PercentageFormat, NumberFormat, DateFormat, TextFormat, GroupedNumberFormat)):
        return raw
    if not isinstance(raw, Mapping):
        return TextFormat()

    precision = _precision(raw.get("precision", DEFAULT_PRECISION))
    prefix = raw.get("prefix") or ""
    suffix = raw.get("suffix") or ""
    prefix = prefix if isinstance(prefix, str) else str(prefix)
    suffix = suffix if isinstance(suffix, str) else str(suffix)

    number_format = raw.get("numberFormat", raw.get("number_format"))
    if isinstance(number_format, str) and number_format in NUMBER_FORMATS:
        return GroupedNumberFormat(precision=precision, prefix=prefix, suffix=suffix, number_format=number_format)

    kind = raw.get("type")
    if not kind and raw.get("precision") is not None:
        # Bare precision means plain fixed decimals.
        return GroupedNumberFormat(precision=precision, prefix=prefix, suffix=suffix, number_format="default")
    kind = kind or "text"
    if kind == "date":
        date_format = raw.get("dateFormat", raw.get("date_format")) or "default"
        if date_format not in DATE_FORMATS:
            date_format = "default"
        return DateFormat(precision=precision, prefix=prefix, suffix=suffix, date_format=date_format)
    cls = _TYPE_TO_FORMAT.get(kind, TextFormat)
    return cls(precision=precision, prefix=prefix, suffix=suffix)


# ---------------- Number grouping ----------------
def to_fixed(value: float, precision: int = DEFAULT_PRECISION) -> str:
    """``value`` with ``precision`` decimals; exact ties round away from zero."""
    if not math.isfinite(value):
        return str(value)
    with localcontext() as ctx:
        ctx.prec = 400
        exact = Decimal(value).quantize(Decimal(10) ** -precision, rounding=ROUND_HALF_UP)
    return format(exact, "f")


def _split_fixed(value: float, precision: int) -> Tuple[str, str, str]:
    text = to_fixed(value, precision)
    sign = ""
    if text.startswith("-"):
        sign, text = "-", text[1:]
    whole, _, frac = text.partition(".")
    return sign, whole, frac


def _group_international(whole: str, sep: str = ",") -> str:
    groups = []
    while len(whole) > 3:
        groups.insert(0, whole[-3:])
        whole = whole[:-3]
    groups.insert(0, whole)
    return sep.join(groups)


def _group_indian(whole: str) -> str:
    if len(whole) <= 3:
        return whole
    head, tail = whole[:-3], whole[-3:]
    groups = []
    while len(head) > 2:
        groups.insert(0, head[-2:])
        head = head[:-2]
    groups.insert(0, head)
    return ",".join(groups + [tail])


def group_international(value: float, precision: int) -> str:
    sign, whole, frac = _split_fixed(value, precision)
    out = sign + _group_international(whole)
    return f"{out}.{frac}" if frac else out


def group_indian(value: float, precision: int) -> str:
    sign, whole, frac = _split_fixed(value, precision)
    out = sign + _group_indian(whole)
    return f"{out}.{frac}" if frac else out


def group_european(value: float, precision: int) -> str:
    sign, whole, frac = _split_fixed(value, precision)
    out = sign + _group_international(whole, sep=".")
    return f"{out},{frac}" if frac else out


def scale_adaptive(value: float, precision: int, units: Tuple[Tuple[float, str], ...]) -> str:
    magnitude = abs(value)
    sign = "-" if value < 0 else ""
    for divisor, letter in units:
        if magnitude >= divisor:
            return f"{sign}{to_fixed(magnitude / divisor, precision)}{letter}"
    return to_fixed(value, precision)


def format_number(value: float, number_format: str, precision: int = DEFAULT_PRECISION) -> str:
    """Render ``value`` with one of the ``NUMBER_FORMATS`` variants."""
    if number_format in ("international", "comma"):
        return group_international(value, precision)
    if number_format == "indian":
        return group_indian(value, precision)
    if number_format == "european":
        return group_european(value, precision)
    if number_format == "percentage":
        return f"{to_fixed(value, precision)}%"
    if number_format == "currency":
        return "$" + group_international(value, precision)
    if number_format == "adaptive_international":
        return scale_adaptive(value, precision, INTERNATIONAL_UNITS)
    if number_format == "adaptive_indian":
        return scale_adaptive(value, precision, INDIAN_UNITS)
    return to_fixed(value, precision)


# ---------------- Dates ----------------
def parse_date(value: Any) -> Optional[pd.Timestamp]:
    try:
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            ts = pd.to_datetime(value, unit="ms")
        else:
            ts = pd.to_datetime(value)
    except (ValueError, TypeError, OverflowError):
        return None
    if not isinstance(ts, pd.Timestamp) or pd.isna(ts):
        return None
    return ts


def format_date(value: Any, date_format: str = "default") -> Optional[str]:
    ts = parse_date(value)
    if ts is None:
        return None
    if date_format in DATE_PATTERNS:
        return ts.strftime(DATE_PATTERNS[date_format])
    return f"{ts.month}/{ts.day}/{ts.year}"


# ---------------- Public API ----------------
def format_value(value: Any, spec: Any = None) -> str:
    """Display string for ``value`` under ``spec`` (a mapping or ``ColumnFormat``)."""
    if is_null(value):
        return ""
    fmt = parse_format_spec(spec)
    if fmt is None:
        return raw_string(value)

    if isinstance(fmt, GroupedNumberFormat):
        number = parse_number(value)
        if number is None:
            return raw_string(value)
        return fmt.wrap(format_number(number, fmt.number_format, fmt.precision))
    if isinstance(fmt, CurrencyFormat):
        return fmt.wrap("$" + to_fixed(to_number(value), fmt.precision))
    if isinstance(fmt, PercentageFormat):
        return fmt.wrap(to_fixed(to_number(value) * 100, fmt.precision) + "%")
    if isinstance(fmt, NumberFormat):
        return fmt.wrap(to_fixed(to_number(value), fmt.precision))
    if isinstance(fmt, DateFormat):
        text = format_date(value, fmt.date_format)
        return raw_string(value) if text is None else fmt.wrap(text)
    if isinstance(fmt, TextFormat):
        return fmt.wrap(raw_string(value))
    raise TypeError(f"Unhandled column format {type(fmt).__name__}")


def format_cell(value: Any, column: str, column_formatting: Optional[Mapping[str, Any]] = None) -> str:
    return format_value(value, (column_formatting or {}).get(column))


def format_spec_to_dict(fmt: ColumnFormat) -> Dict[str, Any]:
    out: Dict[str, Any] = {"precision": fmt.precision, "prefix": fmt.prefix, "suffix": fmt.suffix}
    if isinstance(fmt, GroupedNumberFormat):
        out["numberFormat"] = fmt.number_format
        return out
    for kind, cls in _TYPE_TO_FORMAT.items():
        if type(fmt) is cls:
            out["type"] = kind
    if isinstance(fmt, DateFormat):
        out["type"] = "date"
        out["dateFormat"] = fmt.date_format
    return out


def is_url(value: Any) -> bool:
    if not isinstance(value, str):
        return False
    return bool(_URL_PATTERN.match(value.strip()))


def normalize_url(url: str) -> str:
    trimmed = url.strip()
    if trimmed.lower().startswith("www."):
        return f"https://{trimmed}"
    return trimmed
