"""
Currency conversion utility.
Pure helpers for converting and displaying monetary amounts; the caller supplies the rate.
"""

from decimal import ROUND_DOWN, Decimal
from typing import Dict, List, Optional

from costcalc.schemas.currency_rate import CurrencyInfo


# Display symbols. Codes missing here are rendered with the raw code.
CURRENCY_SYMBOLS: Dict[str, str] = {
    "USD": "$",
    "EUR": "€",
    "GBP": "£",
    "CAD": "C$",
    "AUD": "A$",
    "NZD": "NZ$",
    "CHF": "CHF",
    "JPY": "¥",
    "SEK": "kr",
    "NOK": "kr",
    "DKK": "kr",
    "PLN": "zł",
    "CZK": "Kč",
    "HUF": "Ft",
    "RON": "lei",
    "BGN": "лв",
    "RUB": "₽",
    "CNY": "¥",
    "INR": "₹",
    "BRL": "R$",
    "MXN": "$",
    "ZAR": "R",
    "TRY": "₺",
    "KRW": "₩",
    "SGD": "S$",
    "HKD": "HK$",
    "THB": "฿",
    "MYR": "RM",
    "IDR": "Rp",
    "PHP": "₱",
    "VND": "₫",
}

SUPPORTED_CURRENCIES: List[CurrencyInfo] = [
    CurrencyInfo(code="USD", name="US Dollar", symbol="$", flag="🇺🇸"),
    CurrencyInfo(code="EUR", name="Euro", symbol="€", flag="🇪🇺"),
    CurrencyInfo(code="GBP", name="British Pound", symbol="£", flag="🇬🇧"),
    CurrencyInfo(code="JPY", name="Japanese Yen", symbol="¥", flag="🇯🇵"),
    CurrencyInfo(code="CAD", name="Canadian Dollar", symbol="C$", flag="🇨🇦"),
    CurrencyInfo(code="AUD", name="Australian Dollar", symbol="A$", flag="🇦🇺"),
    CurrencyInfo(code="CHF", name="Swiss Franc", symbol="CHF", flag="🇨🇭"),
    CurrencyInfo(code="CNY", name="Chinese Yuan", symbol="¥", flag="🇨🇳"),
    CurrencyInfo(code="SEK", name="Swedish Krona", symbol="kr", flag="🇸🇪"),
    CurrencyInfo(code="NZD", name="New Zealand Dollar", symbol="NZ$", flag="🇳🇿"),
    CurrencyInfo(code="MXN", name="Mexican Peso", symbol="$", flag="🇲🇽"),
    CurrencyInfo(code="SGD", name="Singapore Dollar", symbol="S$", flag="🇸🇬"),
    CurrencyInfo(code="HKD", name="Hong Kong Dollar", symbol="HK$", flag="🇭🇰"),
    CurrencyInfo(code="NOK", name="Norwegian Krone", symbol="kr", flag="🇳🇴"),
    CurrencyInfo(code="KRW", name="South Korean Won", symbol="₩", flag="🇰🇷"),
    CurrencyInfo(code="TRY", name="Turkish Lira", symbol="₺", flag="🇹🇷"),
    CurrencyInfo(code="RUB", name="Russian Ruble", symbol="₽", flag="🇷🇺"),
    CurrencyInfo(code="INR", name="Indian Rupee", symbol="₹", flag="🇮🇳"),
    CurrencyInfo(code="BRL", name="Brazilian Real", symbol="R$", flag="🇧🇷"),
    CurrencyInfo(code="ZAR", name="South African Rand", symbol="R", flag="🇿🇦"),
]


def same_currency(from_currency: str, to_currency: str) -> bool:
    """Case-insensitive currency code comparison."""
    return from_currency.upper() == to_currency.upper()


def convert(amount: float, from_currency: str, to_currency: str, rate: float) -> float:
    """
    Convert an amount between two currencies.

    Args:
        amount: Amount in the source currency
        from_currency: Source currency code
        to_currency: Target currency code
        rate: Units of target currency per unit of source currency

    Returns:
        Amount in the target currency; unchanged when the codes match
    """
    if same_currency(from_currency, to_currency):
        return amount
    return amount * rate


def get_currency_symbol(currency_code: str) -> str:
    """Symbol for a currency code, or the code itself when unknown."""
    return CURRENCY_SYMBOLS.get(currency_code.upper(), currency_code)


def format_currency(amount: float, currency_code: str) -> str:
    """Render an amount with its currency symbol, truncated to two decimal places."""
    cents = Decimal(str(amount)).quantize(Decimal("0.01"), rounding=ROUND_DOWN)
    return f"{get_currency_symbol(currency_code)}{cents}"


def get_currency_info(currency_code: str) -> Optional[CurrencyInfo]:
    """Look up display metadata for a supported currency."""
    code = currency_code.upper()
    for info in SUPPORTED_CURRENCIES:
        if info.code == code:
            return info
    return None
