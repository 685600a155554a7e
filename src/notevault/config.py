"""NoteVault configuration — plain frozen dataclass, no env loading.

The host application constructs this from its own settings and passes it
to ``NoteVault``.
"""

from dataclasses import dataclass


@dataclass(frozen=True)
class NoteVaultConfig:
    admin_principal: str
    custody_principal: str = "notevault:custody"
    allow_zero_amount: bool = True
    # False reproduces the legacy release path: withdrawals are paid out of
    # the withdrawing caller's own account instead of the custody account.
    release_from_custody: bool = True
    persist_retries: int = 1
    persist_retry_delay: float = 2.0
