from decimal import Decimal, InvalidOperation


def parse_amount(value):
    """
    Parse a currency amount into a Decimal without passing through float.
    Returns None when the value is not a finite number.
    """
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, float):
        value = repr(value)
    try:
        amount = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        return None
    if not amount.is_finite():
        return None
    return amount


def wire_number(amount):
    """JSON-friendly rendering of a Decimal: int when whole, otherwise float."""
    amount = Decimal(amount)
    if amount == amount.to_integral_value():
        return int(amount)
    return float(amount)
