"""
Module to access the /recipients resource.

A recipient is a person or corporation that transfers are sent to. Recipients have a bank
account, and optionally debit cards, that funds are transferred to.
"""

import enum

from dataclasses import field
from datetime import datetime
from stripy.bank import BankAccount, BankAccountParams
from stripy.card import CardList, CardParams
from stripy.codec import encode_form
from stripy.data import datacls
from stripy.form import Form
from stripy.pagination import Iter, ListParams, make_list_datacls, paginate
from typing import Any
from urllib.parse import quote


class RecipientType(enum.StrEnum):
    """Type of recipient."""

    INDIVIDUAL = "individual"
    CORPORATION = "corporation"


@datacls
class Recipient:
    """A recipient of transfers."""

    id: str
    object: str | None
    livemode: bool = False
    created: datetime | None
    type: RecipientType | str | None
    name: str | None
    description: str | None
    email: str | None
    metadata: dict[str, str] = field(default_factory=dict)
    active_account: BankAccount | None
    cards: CardList | None
    default_card: str | None
    verified: bool = False
    migrated_to: str | None
    deleted: bool = False


RecipientList = make_list_datacls("RecipientList", Recipient)


@datacls
class DeletedRecipient:
    """Acknowledgement of a deleted recipient."""

    id: str
    deleted: bool = False


@datacls
class RecipientParams:
    """
    Parameters to create or update a recipient.

    Attributes:
    • name: full legal name of the individual or corporation
    • type: type of recipient
    • bank_account: bank account details or token
    • card: debit card details or token
    • tax_id: tax identifier of the recipient
    • email: email address of the recipient
    • description: arbitrary description of the recipient
    • default_card: identifier of the card to transfer to by default; update only
    • metadata: key/value pairs to attach to the recipient
    • expand: names of response fields to expand
    """

    name: str | None
    type: RecipientType | None
    bank_account: BankAccountParams | str | None
    card: CardParams | str | None
    tax_id: str | None
    email: str | None
    description: str | None
    default_card: str | None
    metadata: dict[str, str] | None
    expand: list[str] | None


@datacls
class RecipientListParams(ListParams):
    """
    Parameters to list recipients.

    Attributes:
    • verified: only list recipients with the specified verification status
    """

    verified: bool | None


class Recipients:
    """
    Operations of the /recipients resource.

    Parameters:
    • client: client to perform requests with
    """

    path = "/recipients"

    def __init__(self, client: Any):
        self.client = client

    def _path(self, id: str) -> str:
        if not id:
            raise ValueError("recipient id is required")
        return f"{self.path}/{quote(id, safe='')}"

    async def create(self, params: RecipientParams) -> Recipient:
        """Create a recipient. The name and type parameters are required."""
        if not params.name or not params.type:
            raise ValueError("recipient name and type are required")
        return await self.client.call("POST", self.path, encode_form(params), Recipient)

    async def get(self, id: str, params: RecipientParams | None = None) -> Recipient:
        """Return the details of a recipient."""
        form = encode_form(params) if params is not None else None
        return await self.client.call("GET", self._path(id), form, Recipient)

    async def update(self, id: str, params: RecipientParams | None = None) -> Recipient:
        """Update the properties of a recipient. Parameters that are not set are unchanged."""
        form = encode_form(params) if params is not None else None
        return await self.client.call("POST", self._path(id), form, Recipient)

    async def delete(self, id: str) -> DeletedRecipient:
        """Delete a recipient."""
        return await self.client.call("DELETE", self._path(id), None, DeletedRecipient)

    async def list(self, params: RecipientListParams | None = None) -> Iter[Recipient]:
        """Return an iterator over recipients, with the first page fetched."""

        async def fetch(form: Form):
            return await self.client.call("GET", self.path, form, RecipientList)

        return await paginate(fetch, params or RecipientListParams())
