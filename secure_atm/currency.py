"""
Amount Handling Module

Parses, validates and formats monetary amounts. All amounts are Decimal
quantized to cents; float is never used for money.
"""

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP, getcontext
from typing import Union

from .errors import InvalidInput

# Set global decimal context for financial precision
getcontext().prec = 28

CENTS = Decimal('0.01')


def quantize_amount(value: Decimal) -> Decimal:
    """
    Round to cents
    
    Raises:
        InvalidInput: If the value has too many digits to carry cents
    """
    try:
        return value.quantize(CENTS, rounding=ROUND_HALF_UP)
    except InvalidOperation:
        raise InvalidInput("Amount is too large")


def to_amount(value: Union[str, int, float, Decimal]) -> Decimal:
    """
    Convert a caller-supplied value to a Decimal amount
    
    Floats are converted through their string form. Strings may carry
    surrounding whitespace but nothing else.
    
    Raises:
        InvalidInput: If the value is not a finite number
    """
    if isinstance(value, bool):
        raise InvalidInput("Amount must be a number")
    if isinstance(value, Decimal):
        amount = value
    else:
        text = str(value).strip()
        if not text:
            raise InvalidInput("Amount must not be empty")
        try:
            amount = Decimal(text)
        except InvalidOperation:
            raise InvalidInput(f"Cannot convert '{value}' to an amount")
    
    if not amount.is_finite():
        raise InvalidInput("Amount must be finite")
    return amount


def validate_amount(value: Union[str, int, float, Decimal], maximum: Decimal) -> Decimal:
    """
    Validate a transaction amount
    
    Args:
        value: Requested amount
        maximum: Largest single transaction allowed
        
    Returns:
        Amount quantized to cents
        
    Raises:
        InvalidInput: If the amount is not positive, not finite, has
            sub-cent precision, or exceeds the maximum
    """
    amount = to_amount(value)
    if amount <= 0:
        raise InvalidInput("Amount must be positive")
    if amount > maximum:
        raise InvalidInput(f"Amount exceeds single transaction maximum of {format_amount(maximum)}")
    if amount != quantize_amount(amount):
        raise InvalidInput("Amount cannot have fractional cents")
    return quantize_amount(amount)


def format_amount(amount: Decimal, currency: str = "") -> str:
    """Format for display"""
    text = f"{quantize_amount(amount):,.2f}"
    if currency:
        return f"{currency} {text}"
    return text
