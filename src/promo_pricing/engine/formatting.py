"""Display helpers for prices, savings and discount badges."""
from .models import Promotion


def format_price(value: float) -> str:
    """$32.00"""
    return f"${value:,.2f}"


def format_savings(value: float) -> str:
    """Save $8.00, or an empty string when nothing is saved."""
    if value <= 0:
        return ""
    return f"Save {format_price(value)}"


def format_discount_percentage(value: float) -> str:
    """20% OFF, rounded to a whole percent; empty when there is no discount."""
    rounded = round(value)
    if rounded <= 0:
        return ""
    return f"{rounded}% OFF"


def discount_display(promotion: Promotion) -> str:
    """Default badge text for a promotion listing."""
    value = promotion.discount_value
    amount = str(int(value)) if value == int(value) else f"{value:.2f}"
    if promotion.discount_type == 'percentage':
        return f"{amount}% OFF"
    return f"${amount} OFF"
