from __future__ import annotations

from datetime import date, datetime
from typing import List

ONES: tuple[str, ...] = (
    "", "One", "Two", "Three", "Four", "Five", "Six", "Seven", "Eight", "Nine",
    "Ten", "Eleven", "Twelve", "Thirteen", "Fourteen", "Fifteen", "Sixteen",
    "Seventeen", "Eighteen", "Nineteen",
)
TENS: tuple[str, ...] = (
    "", "", "Twenty", "Thirty", "Forty", "Fifty", "Sixty", "Seventy", "Eighty", "Ninety",
)

CRORE = 10_000_000
LAKH = 100_000
THOUSAND = 1_000

CURRENCY_LABEL = "Rupees"
FRACTION_LABEL = "Paise"


# ---------------------------------------------------------------------------
# Numeral grouping
# ---------------------------------------------------------------------------


def format_indian_number(amount: float) -> str:
    """
    Format an amount with two decimals and Indian digit grouping.

    The last three integer digits form one group, every group further left
    has two digits: 1234567.89 -> "12,34,567.89".
    """
    text = f"{abs(float(amount)):.2f}"
    integer_part, decimal_part = text.split(".")
    sign = "-" if float(amount) < 0 and text.strip("0.") else ""

    if len(integer_part) <= 3:
        return f"{sign}{integer_part}.{decimal_part}"

    head, last_three = integer_part[:-3], integer_part[-3:]
    groups: List[str] = []
    while len(head) > 2:
        groups.insert(0, head[-2:])
        head = head[:-2]
    if head:
        groups.insert(0, head)
    return f"{sign}{','.join(groups)},{last_three}.{decimal_part}"


# ---------------------------------------------------------------------------
# Amount in words
# ---------------------------------------------------------------------------


def _below_hundred(n: int) -> str:
    if n < 20:
        return ONES[n]
    tens, ones = divmod(n, 10)
    return TENS[tens] + (f" {ONES[ones]}" if ones else "")


def _below_thousand(n: int) -> str:
    hundreds, rest = divmod(n, 100)
    parts: List[str] = []
    if hundreds:
        parts.append(f"{ONES[hundreds]} Hundred")
    if rest:
        parts.append(_below_hundred(rest))
    return " ".join(parts)


def integer_to_words(n: int) -> str:
    """Spell a non-negative integer in crore / lakh / thousand groups."""
    if n < 0:
        raise ValueError("n must be >= 0")
    if n == 0:
        return "Zero"

    parts: List[str] = []
    crores, n = divmod(n, CRORE)
    lakhs, n = divmod(n, LAKH)
    thousands, n = divmod(n, THOUSAND)

    # Counts above 99 crore are spelled recursively ("One Hundred Crore").
    if crores:
        parts.append(f"{integer_to_words(crores)} Crore")
    if lakhs:
        parts.append(f"{_below_hundred(lakhs)} Lakh")
    if thousands:
        parts.append(f"{_below_hundred(thousands)} Thousand")
    if n:
        parts.append(_below_thousand(n))
    return " ".join(parts)


def amount_in_words(
    amount: float,
    currency_label: str = CURRENCY_LABEL,
    fraction_label: str = FRACTION_LABEL,
) -> str:
    paise_total = int(round(abs(float(amount)) * 100))
    rupees, paise = divmod(paise_total, 100)

    words = f"{integer_to_words(rupees)} {currency_label}"
    if paise:
        words += f" and {integer_to_words(paise)} {fraction_label}"
    return f"{words} Only"


# ---------------------------------------------------------------------------
# Dates
# ---------------------------------------------------------------------------


def format_date(value: str | date | None) -> str:
    """Render an ISO date as DD-MM-YYYY, echoing anything unparsable."""
    if not value:
        return ""
    if isinstance(value, date):
        return value.strftime("%d-%m-%Y")
    try:
        parsed = datetime.fromisoformat(str(value).strip().replace("Z", "+00:00"))
    except ValueError:
        return str(value)
    return parsed.strftime("%d-%m-%Y")
