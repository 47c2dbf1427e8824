from typing import Optional

from ..schema.models import BankAccount


def resolve_bank_account(account_number: Optional[str], bank_code: Optional[str]) -> Optional[BankAccount]:
    """
    Structured bank account from the raw "<account>/<bank code>" halves.

    Returns None unless both halves are present. IBAN/BIC are never derived
    from the local account number.
    """
    account_number = (account_number or "").strip()
    bank_code = (bank_code or "").strip()

    if not account_number or not bank_code:
        return None

    return BankAccount(account_number=account_number, bank_code=bank_code)
