"""Helpers for compact terminal display."""


def truncate_text(text: str, max_length: int = 60) -> str:
    """Truncate text to max_length, appending an ellipsis when shortened."""
    if len(text) <= max_length:
        return text
    return text[: max_length - 1] + "…"


def truncate_url(url: str, max_length: int = 50) -> str:
    """Truncate a URL, keeping its start and end visible."""
    if len(url) <= max_length:
        return url
    head = (max_length - 3) // 2
    tail = max_length - 3 - head
    return f"{url[:head]}...{url[-tail:]}"


def short_key(value: str, keep: int = 8) -> str:
    """Shorten a hex key or bech32 string to its first and last characters."""
    if len(value) <= keep * 2 + 1:
        return value
    return f"{value[:keep]}…{value[-keep:]}"


def format_size(size_bytes: int) -> str:
    """Format a byte count as KB with two decimals."""
    return f"{size_bytes / 1024:.2f} KB"
