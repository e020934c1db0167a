"""
Module to support form-encoded request parameters.

Request parameters are sent to the API as form fields, either in the query string or in an
"application/x-www-form-urlencoded" request body. Nested values are expressed by appending
bracketed keys to the field name:

  • nested object member: card[number]=4242424242424242
  • mapping entry: metadata[order_id]=6735
  • list of values: expand[]=default_card
  • list of objects: items[0][plan]=gold

A parameters dataclass field can be excluded from encoding with `local_field`, for values
that control the client rather than the request. A field containing a mapping of
pre-formatted field names can be merged into the top level of the form with `inline_field`.
"""

import dataclasses
import multidict

from typing import Any


Form = multidict.MultiDict
"""Multi-value dictionary of form fields to send in a request."""


FORM_METADATA = "stripy.form"
LOCAL = "local"
INLINE = "inline"


def local_field(**kwargs) -> Any:
    """Return a dataclass field that is not encoded into form fields."""
    return dataclasses.field(metadata={FORM_METADATA: LOCAL}, **kwargs)


def inline_field(**kwargs) -> Any:
    """Return a dataclass field whose mapping entries are merged into the top level form."""
    return dataclasses.field(metadata={FORM_METADATA: INLINE}, **kwargs)


def field_mode(field: dataclasses.Field) -> str | None:
    """Return the form encoding mode of a dataclass field, or None if encoded normally."""
    return field.metadata.get(FORM_METADATA)


def field_name(prefix: str | None, key: str | int) -> str:
    """Return the name of a form field nested under a prefix."""
    return f"{prefix}[{key}]" if prefix else str(key)
