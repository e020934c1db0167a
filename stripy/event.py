"""
Module to access the /events resource.

An event records a change to an object of the account. The changed object is carried in the
event data; its type depends on the event type (e.g. a "recipient.updated" event carries a
recipient).
"""

import json

from dataclasses import field
from datetime import datetime
from stripy.codec import JSONCodec
from stripy.data import datacls
from stripy.form import Form
from stripy.pagination import Iter, ListParams, make_list_datacls, paginate
from typing import Any, TypeVar
from urllib.parse import quote


T = TypeVar("T")


@datacls
class EventData:
    """
    Data of an event.

    Attributes:
    • object: the object the event relates to, as a JSON object
    • previous_attributes: values of attributes changed by an update event
    """

    object: dict[str, Any] = field(default_factory=dict)
    previous_attributes: dict[str, Any] | None

    def decode(self, python_type: type[T]) -> T:
        """Return the event object decoded into the specified type."""
        return JSONCodec.get(python_type).decode(self.object)


@datacls
class Event:
    """An event that occurred in the account."""

    id: str
    object: str | None
    livemode: bool = False
    created: datetime | None
    type: str
    data: EventData | None
    pending_webhooks: int | None
    request: str | None
    api_version: str | None

    def get_obj_value(self, *keys: str) -> str | None:
        """
        Return a value of the event object, located by a path of keys through nested
        objects. String values are returned as-is; other values are returned in their JSON
        representation.

        Returns None if no keys are specified, if any key along the path is not found, if an
        intermediate value is not an object, or if the value is null.
        """
        if not keys or self.data is None:
            return None
        node = self.data.object
        for key in keys:
            if not isinstance(node, dict) or key not in node:
                return None
            node = node[key]
        if node is None:
            return None
        return node if isinstance(node, str) else json.dumps(node)


EventList = make_list_datacls("EventList", Event)


@datacls
class EventListParams(ListParams):
    """
    Parameters to list events.

    Attributes:
    • type: event type to list; can contain a "*" wildcard (e.g. "charge.*")
    • created: creation time of events to list; for a range, use filters

    Example:
      params = EventListParams(type="charge.*")
      params.filters.add_filter("created", "gte", 1400000000)
    """

    type: str | None
    created: datetime | None


class Events:
    """
    Operations of the /events resource.

    Parameters:
    • client: client to perform requests with
    """

    path = "/events"

    def __init__(self, client: Any):
        self.client = client

    async def get(self, id: str) -> Event:
        """Return the details of an event."""
        if not id:
            raise ValueError("event id is required")
        return await self.client.call("GET", f"{self.path}/{quote(id, safe='')}", None, Event)

    async def list(self, params: EventListParams | None = None) -> Iter[Event]:
        """Return an iterator over events, with the first page fetched."""

        async def fetch(form: Form):
            return await self.client.call("GET", self.path, form, EventList)

        return await paginate(fetch, params or EventListParams())
