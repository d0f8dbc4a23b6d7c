import re
from datetime import date, datetime
from typing import List, Optional, Union

from clubdues.domain.errors import ValidationError

MONTH_TOKEN_RE = re.compile(r"^\d{4}-(0[1-9]|1[0-2])$")
MONTH_FORMAT_MESSAGE = "month must be in format YYYY-MM"


def is_month_token(value: Optional[str]) -> bool:
    return bool(value) and MONTH_TOKEN_RE.match(str(value)) is not None


def parse_month_token(value: Optional[str]) -> str:
    """Return a validated YYYY-MM token or raise a ValidationError."""
    token = str(value or "").strip()
    if not is_month_token(token):
        raise ValidationError(MONTH_FORMAT_MESSAGE)
    return token


def month_token(moment: Union[date, datetime]) -> str:
    return f"{moment.year:04d}-{moment.month:02d}"


def token_year(token: str) -> int:
    return int(token[:4])


def year_months(year: int) -> List[str]:
    return [f"{year:04d}-{month:02d}" for month in range(1, 13)]
