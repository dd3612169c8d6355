"""
Display Context

Language and currency are passed explicitly to every projection and
formatting function that needs them, instead of living in global state.

DESIGN DECISION: Formatting mirrors the locale each currency is usually
shown in: EUR as de-DE ("1.234,56 €"), USD as en-US ("$1,234.56") and
GBP as en-GB ("£1,234.56"). Month labels follow the UI language.
"""

from dataclasses import dataclass
from datetime import date
from decimal import ROUND_HALF_UP, Decimal
from typing import Union

from fintrack.models.finance import Currency, Language


MONTH_NAMES_SHORT = {
    Language.EN: ["Jan", "Feb", "Mar", "Apr", "May", "Jun",
                  "Jul", "Aug", "Sep", "Oct", "Nov", "Dec"],
    Language.DE: ["Jan", "Feb", "Mär", "Apr", "Mai", "Jun",
                  "Jul", "Aug", "Sep", "Okt", "Nov", "Dez"],
    Language.AR: ["يناير", "فبراير", "مارس", "أبريل", "مايو", "يونيو",
                  "يوليو", "أغسطس", "سبتمبر", "أكتوبر", "نوفمبر", "ديسمبر"],
}

# symbol, thousands separator, decimal separator, symbol goes first
_CURRENCY_FORMATS = {
    Currency.EUR: ("€", ".", ",", False),
    Currency.USD: ("$", ",", ".", True),
    Currency.GBP: ("£", ",", ".", True),
}

_CENT = Decimal("0.01")


@dataclass(frozen=True)
class DisplayContext:
    """Language and currency used to label and format projection output."""

    language: Language = Language.EN
    currency: Currency = Currency.EUR

    def format_currency(self, amount: Union[Decimal, int, float]) -> str:
        symbol, thousands, decimal_sep, prefix = _CURRENCY_FORMATS[self.currency]

        value = Decimal(str(amount)).quantize(_CENT, rounding=ROUND_HALF_UP)
        sign = "-" if value < 0 else ""
        whole, _, cents = f"{abs(value):,.2f}".partition(".")
        number = whole.replace(",", thousands) + decimal_sep + cents

        if prefix:
            return f"{sign}{symbol}{number}"
        return f"{sign}{number} {symbol}"

    def month_label(self, month: date, with_year: bool = True) -> str:
        """Short month label, e.g. 'Mar 24' or 'Mär 24'."""
        name = MONTH_NAMES_SHORT[self.language][month.month - 1]
        if not with_year:
            return name
        return f"{name} {month.strftime('%y')}"

    def day_label(self, day: date) -> str:
        if self.language == Language.EN:
            return f"{MONTH_NAMES_SHORT[self.language][day.month - 1]} {day.day}"
        return f"{day.day}. {MONTH_NAMES_SHORT[self.language][day.month - 1]}"


DEFAULT_CONTEXT = DisplayContext()
