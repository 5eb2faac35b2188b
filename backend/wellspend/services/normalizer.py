"""
Normalizer Service
Resolves canonical fields (amount, date, description, category) from loosely
named columns and coerces them to typed values. Nothing in here raises on bad
input: an unusable value is simply reported as None.
"""
from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal
from typing import Any, Dict, Mapping, Optional, Sequence, Tuple
import math
import re

from dateutil import parser as date_parser

Row = Dict[str, Any]

EPOCH = datetime(1970, 1, 1)


@dataclass
class NormalizedRow:
    processed: Row
    amount: Optional[float]
    date: Optional[datetime]
    description: Optional[str]


class Normalizer:
    """Field resolution and coercion for uploaded rows"""

    # Ordered alias lists: the first alias holding a non-empty value wins
    AMOUNT_FIELDS = ("amount", "cost", "price", "total", "value", "sum")
    DATE_FIELDS = ("date", "created_at", "timestamp", "time", "when")
    DESCRIPTION_FIELDS = ("description", "desc", "name", "title", "label", "service", "item")

    FIELD_ALIASES = {
        "amount": AMOUNT_FIELDS,
        "date": DATE_FIELDS,
        "description": DESCRIPTION_FIELDS,
    }

    _NON_NUMERIC = re.compile(r"[^0-9.\-]")
    _LEADING_NUMBER = re.compile(r"-?(?:\d+(?:\.\d*)?|\.\d+)")
    _DIGITS = re.compile(r"\d+")

    @staticmethod
    def is_present(value: Any) -> bool:
        if value is None:
            return False
        if isinstance(value, str):
            return bool(value.strip())
        return True

    @staticmethod
    def resolve_field(row: Mapping[str, Any], aliases: Sequence[str]) -> Optional[Tuple[str, Any]]:
        """Return (alias, value) for the first alias with a non-empty value"""
        for alias in aliases:
            value = row.get(alias)
            if Normalizer.is_present(value):
                return alias, value
        return None

    @staticmethod
    def parse_amount(value: Any) -> Optional[float]:
        """
        Coerce a raw amount to float.

        Strings lose every character that is not a digit, '.' or '-' and the
        leading number of what remains is used ("$1,234.50" -> 1234.5).
        Anything without a finite number in it yields None.
        """
        if value is None:
            return None

        try:
            if isinstance(value, bool):
                value = str(value)
            if isinstance(value, (int, float, Decimal)):
                amount = float(value)
            else:
                cleaned = Normalizer._NON_NUMERIC.sub("", str(value))
                match = Normalizer._LEADING_NUMBER.match(cleaned)
                if not match:
                    return None
                amount = float(match.group(0))
        except (ValueError, TypeError, OverflowError):
            return None

        return amount if math.isfinite(amount) else None

    @staticmethod
    def parse_date(value: Any) -> Optional[datetime]:
        """
        Best effort date parsing, returning naive UTC datetimes.

        Numbers are millisecond epochs, as are strings of ten or more digits.
        Other strings go through ISO-8601 parsing first and the permissive
        dateutil parser second.
        """
        if value is None or isinstance(value, bool):
            return None

        try:
            if isinstance(value, datetime):
                return Normalizer._to_naive_utc(value)
            if isinstance(value, date):
                return datetime(value.year, value.month, value.day)
            if isinstance(value, (int, float)):
                return Normalizer._from_epoch_millis(value)
            if not isinstance(value, str):
                return None

            text = value.strip()
            if not text or text.lower() in ("nan", "none", "null", "undefined"):
                return None

            if Normalizer._DIGITS.fullmatch(text):
                if len(text) >= 10:
                    return Normalizer._from_epoch_millis(int(text))
                if len(text) not in (4, 6, 8):
                    return None

            try:
                parsed = date_parser.isoparse(text)
            except (ValueError, OverflowError):
                parsed = date_parser.parse(text)
            return Normalizer._to_naive_utc(parsed)
        except (ValueError, OverflowError, TypeError, OSError):
            return None

    @staticmethod
    def _from_epoch_millis(millis) -> datetime:
        return EPOCH + timedelta(milliseconds=millis)

    @staticmethod
    def _to_naive_utc(value: datetime) -> datetime:
        if value.tzinfo is not None:
            return value.astimezone(timezone.utc).replace(tzinfo=None)
        return value

    @staticmethod
    def extract_amount(row: Mapping[str, Any]) -> Optional[float]:
        resolved = Normalizer.resolve_field(row, Normalizer.AMOUNT_FIELDS)
        return Normalizer.parse_amount(resolved[1]) if resolved else None

    @staticmethod
    def extract_date(row: Mapping[str, Any]) -> Optional[datetime]:
        resolved = Normalizer.resolve_field(row, Normalizer.DATE_FIELDS)
        return Normalizer.parse_date(resolved[1]) if resolved else None

    @staticmethod
    def extract_description(row: Mapping[str, Any]) -> Optional[str]:
        """
        First alias holding a non-blank string, trimmed. Only when no alias
        holds a string is the first non-string value converted with str().
        """
        for alias in Normalizer.DESCRIPTION_FIELDS:
            value = row.get(alias)
            if isinstance(value, str) and value.strip():
                return value.strip()

        for alias in Normalizer.DESCRIPTION_FIELDS:
            value = row.get(alias)
            if value is not None and not isinstance(value, str):
                return str(value)
        return None

    @staticmethod
    def merge_canonical(row: Mapping[str, Any], category: str) -> Row:
        """Copy of the row with canonical keys filled in from their aliases"""
        processed = dict(row)
        for field, aliases in Normalizer.FIELD_ALIASES.items():
            if Normalizer.is_present(processed.get(field)):
                continue
            resolved = Normalizer.resolve_field(row, aliases)
            if resolved:
                processed[field] = resolved[1]

        if not Normalizer.is_present(processed.get("category")):
            processed["category"] = category
        return processed

    @staticmethod
    def normalize_row(row: Any, category: str) -> NormalizedRow:
        if not isinstance(row, Mapping):
            row = {}

        return NormalizedRow(
            processed=Normalizer.merge_canonical(row, category),
            amount=Normalizer.extract_amount(row),
            date=Normalizer.extract_date(row),
            description=Normalizer.extract_description(row),
        )
