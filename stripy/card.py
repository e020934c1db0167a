"""Payment card types."""

from stripy.data import datacls
from stripy.pagination import make_list_datacls


@datacls
class Card:
    """A payment card attached to a customer or recipient."""

    id: str
    object: str | None
    brand: str | None
    funding: str | None
    last4: str | None
    exp_month: int | None
    exp_year: int | None
    fingerprint: str | None
    country: str | None
    name: str | None
    address_line1: str | None
    address_line2: str | None
    address_city: str | None
    address_state: str | None
    address_zip: str | None
    address_country: str | None
    cvc_check: str | None
    address_line1_check: str | None
    address_zip_check: str | None
    customer: str | None
    recipient: str | None


CardList = make_list_datacls("CardList", Card)


@datacls
class CardParams:
    """
    Details of a payment card to attach. Sent as nested "card[...]" form fields; a card
    token can be sent in place of card details.
    """

    number: str
    exp_month: int
    exp_year: int
    cvc: str | None
    name: str | None
    address_line1: str | None
    address_line2: str | None
    address_city: str | None
    address_state: str | None
    address_zip: str | None
    address_country: str | None
