"""Sequential reference numbers for records the ERP does not number itself.

A reference is ``<prefix><year><separator><zero-padded sequence>``, for
example ``APR25.00007`` or ``MT2025/0001``. The next number follows the
highest key of the current period, starting at 1 for an empty period. An
unparseable key falls back to a timestamp so a create never fails for want of
a number.
"""

import re
from dataclasses import dataclass
from datetime import datetime
from typing import Optional


@dataclass(frozen=True)
class ReferenceFormat:
    prefix: str
    year_format: str = "%y"
    separator: str = ""
    width: int = 5

    def period(self, now: datetime) -> str:
        return f"{self.prefix}{now.strftime(self.year_format)}{self.separator}"

    def format(self, number: int, now: datetime) -> str:
        return f"{self.period(now)}{number:0{self.width}d}"

    def parse(self, reference: str, now: datetime) -> Optional[int]:
        """Sequence number of ``reference`` within the current year.

        Returns 0 for a well-formed reference from an earlier year, so the
        sequence restarts, and None when the reference does not match.
        """
        year_digits = len(now.strftime(self.year_format))
        pattern = (
            re.escape(self.prefix)
            + rf"(\d{{{year_digits}}})"
            + re.escape(self.separator)
            + r"(\d+)"
        )
        match = re.fullmatch(pattern, (reference or "").strip())
        if not match:
            return None
        if match.group(1) != now.strftime(self.year_format):
            return 0
        return int(match.group(2))

    def fallback(self, now: datetime) -> str:
        return f"{self.prefix}{now.strftime('%y%m%d%H%M%S')}"


def increment_reference(last: Optional[str], fmt: ReferenceFormat, now: Optional[datetime] = None) -> str:
    """Next reference after ``last``.

    >>> increment_reference("APR25.00007", ReferenceFormat("APR", separator="."), datetime(2025, 3, 1))
    'APR25.00008'
    """
    now = now or datetime.now()
    if not last:
        return fmt.format(1, now)
    current = fmt.parse(last, now)
    if current is None:
        return fmt.fallback(now)
    return fmt.format(current + 1, now)
