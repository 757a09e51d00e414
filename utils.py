# ===================================
# utils.py - Utility Functions
# ===================================

from typing import Any


def sanitize_symbol(symbol: str) -> str:
    """Sanitize and validate stock symbol"""
    if not symbol:
        raise ValueError("Symbol cannot be empty")

    # Remove whitespace and convert to uppercase
    clean_symbol = symbol.strip().upper()

    # Basic validation (alphanumeric plus dots and dashes, e.g. BRK.B, BF-B)
    if not clean_symbol.replace('.', '').replace('-', '').isalnum():
        raise ValueError(f"Invalid symbol format: {symbol}")

    return clean_symbol


def to_float(value: Any, default: float = 0.0) -> float:
    """Coerce an Alpha Vantage numeric string to float, falling back on parse failure"""
    try:
        return float(value)
    except (TypeError, ValueError):
        return default


def format_bytes(size: int) -> str:
    """Render a byte count as KB or MB"""
    if size >= 1024 * 1024:
        return f"{size / (1024 * 1024):.1f} MB"
    return f"{size / 1024:.1f} KB"
