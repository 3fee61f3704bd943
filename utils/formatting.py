"""
Formatting utilities.
"""


def format_file_size(size_bytes: int, decimals: int = 1) -> str:
    """
    Format a byte count for display.

    Args:
        size_bytes: Size in bytes.
        decimals: Decimal places for KB and above.

    Returns:
        Formatted size string (e.g. "25 MB", "1.5 KB", "512 bytes").
    """
    if size_bytes < 1024:
        return f"{size_bytes} bytes"

    value = float(size_bytes)
    for unit in ("KB", "MB", "GB"):
        value /= 1024
        if value < 1024 or unit == "GB":
            break

    text = f"{value:.{decimals}f}"
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return f"{text} {unit}"
