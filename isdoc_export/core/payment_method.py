from typing import List, Optional, Tuple

BANK_TRANSFER_CODE = "42"

# Ordered: first substring hit wins
PAYMENT_METHOD_CODES: List[Tuple[str, str]] = [
    ("cash", "10"),
    ("hotově", "10"),
    ("check", "20"),
    ("šek", "20"),
    ("transfer", "42"),
    ("převod", "42"),
    ("příkazem", "42"),
    ("card", "48"),
    ("karta", "48"),
    ("kartou", "48"),
    ("debit", "49"),
    ("inkaso", "49"),
    ("cod", "50"),
    ("dobírka", "50"),
    ("composition", "97"),
    ("zaúčtování", "97"),
]


def classify_payment_method(method: Optional[str]) -> str:
    """
    Map a free-text payment method ("Úhrada kartou", "Příkazem") to the
    ISDOC PaymentMeansCode. Unknown methods fall back to bank transfer (42).
    """
    lower_method = (method or "").lower()

    for keyword, code in PAYMENT_METHOD_CODES:
        if keyword in lower_method:
            return code

    return BANK_TRANSFER_CODE
