"""Merchant normalization - turns transaction descriptions into clustering keys"""

from typing import Optional

NOISE_TOKENS = frozenset({"recurring", "bill", "payment", "auto", "autopay"})
MAX_PATTERN_TOKENS = 3


def extract_merchant_pattern(raw: Optional[str]) -> str:
    """
    Canonicalize a transaction description into a merchant pattern.

    Lower-cases, drops payment-processing noise words and keeps the first
    three remaining tokens in their original order.

    Example:
        "AMAZON PRIME AUTO PAY" -> "amazon prime pay"
        "RECURRING BILL PAYMENT" -> ""
    """
    if not raw:
        return ""

    tokens = [token for token in raw.lower().split() if token not in NOISE_TOKENS]
    return " ".join(tokens[:MAX_PATTERN_TOKENS])
