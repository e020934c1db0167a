"""Bank account types."""

import enum

from stripy.data import datacls


class BankAccountStatus(enum.StrEnum):
    """Verification status of a bank account."""

    NEW = "new"
    VALIDATED = "validated"
    VERIFIED = "verified"
    ERRORED = "errored"


@datacls
class BankAccount:
    """A bank account that transfers are sent to."""

    id: str | None
    object: str | None
    bank_name: str | None
    last4: str | None
    country: str | None
    currency: str | None
    status: BankAccountStatus | str | None
    fingerprint: str | None
    routing_number: str | None


@datacls
class BankAccountParams:
    """
    Details of a bank account to attach. Sent as nested "bank_account[...]" form fields; a
    bank account token can be sent in place of account details.
    """

    country: str
    routing_number: str
    account_number: str
