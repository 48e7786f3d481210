"""Formatting utilities for display"""


def format_percentage(value: float, total: float) -> str:
    """Format percentage value

    Args:
        value: Current value
        total: Total value

    Returns:
        Formatted percentage string

    Examples:
        >>> format_percentage(3, 4)
        '75%'
    """
    if total == 0:
        return "0%"

    return f"{(value / total) * 100:.0f}%"
