"""
Module to support pagination of list operations.

A list operation returns items in pages; each page carries a `has_more` flag indicating if
additional pages exist beyond it. The next page is requested by supplying a cursor in the
request parameters, which is derived from the items of the current page. By default, the
cursor is the identifier of the last item of the page, supplied as `starting_after`:

  GET /recipients?limit=5
  GET /recipients?limit=5&starting_after=rp_104bYJ2eZvKYlo2C

An iterator wraps a page-fetching function bound to a resource, and presents a pull
interface over all items, fetching pages strictly on demand:

  recipients = await client.recipients.list(params)
  while not recipients.stop():
      recipient = await recipients.next()

An iterator is also an asynchronous iterable:

  async for recipient in await client.recipients.list(params):
      ...

An error raised by the fetch function, or by the cursor deriving the next page, ends
pagination. It is raised by the call to `next` that follows it, and by every call to `next`
thereafter, without any further fetch.
"""

import dataclasses
import logging

from collections import deque
from collections.abc import Awaitable, Callable, Sequence
from operator import attrgetter
from stripy.codec import encode_form
from stripy.data import datacls, make_datacls
from stripy.form import Form, inline_field, local_field
from typing import Any, Generic, TypeVar


_logger = logging.getLogger(__name__)


Item = TypeVar("Item")


class Filters(Form):
    """
    Form fields that filter the items of a list operation.

    Example:
      filters = Filters()
      filters.add_filter("created", "gte", "1400000000")  # created[gte]=1400000000
    """

    def add_filter(self, key: str, op: str | None, value: Any) -> None:
        """
        Add a filter on a field.

        Parameters:
        • key: name of the field to filter on
        • op: comparison operator (e.g. "gt", "lte"), or empty for equality
        • value: the value to compare the field to
        """
        self.add(f"{key}[{op}]" if op else key, str(value))


@datacls
class ListParams:
    """
    Parameters common to all list operations.

    Attributes:
    • limit: maximum number of items to return in each page
    • starting_after: cursor to request the page of items after an item
    • ending_before: cursor to request the page of items before an item
    • expand: names of response fields to expand
    • filters: additional filters on item fields; an entry replaces a parameter of the same
      name
    • single: fetch a single page of items, regardless of the page has_more flag
    """

    limit: int | None = None
    starting_after: str | None = None
    ending_before: str | None = None
    expand: list[str] | None = None
    filters: Filters = inline_field(default_factory=Filters)
    single: bool = local_field(default=False)


@datacls
class ListMeta:
    """
    Metadata of a fetched page.

    Attributes:
    • total_count: total number of items in the collection, if provided
    • has_more: whether additional pages exist beyond the page
    • url: the URL of the list operation, if provided
    """

    total_count: int | None
    has_more: bool = False
    url: str | None


def make_list_datacls(cls_name: str, item_type: type) -> type:
    """
    Return a list page dataclass for the specified item type, suitable to decode the
    response of a list operation.

    Parameters:
    • cls_name: the name to assign the dataclass
    • item_type: the type of each item in the page
    """
    return make_datacls(
        cls_name,
        (
            ("data", list[item_type], dataclasses.field(default_factory=list)),
            ("has_more", bool, dataclasses.field(default=False)),
            ("total_count", int | None),
            ("url", str | None),
        ),
    )


class Cursor:
    """
    Base class for strategies to advance list operation parameters to the next page.
    """

    def advance(self, form: Form, items: Sequence[Any]) -> Form | None:
        """
        Return form fields to request the page that follows the specified items, or None if
        no further page can be requested.

        Parameters:
        • form: form fields that were used to request the page
        • items: the items of the page
        """
        raise NotImplementedError


class IDCursor(Cursor):
    """
    Advances pages using the identifier of an item.

    Parameters:
    • key: function that returns the identifier of an item  [item.id]

    Paging forward, `starting_after` is set to the identifier of the last item in the page. If
    the page was requested with `ending_before`, paging continues backward, and
    `ending_before` is set to the identifier of the first item in the page.
    """

    def __init__(self, key: Callable[[Any], str] = attrgetter("id")):
        self.key = key

    def advance(self, form: Form, items: Sequence[Any]) -> Form | None:
        if not items:
            return None
        form = Form(form)
        if "ending_before" in form:
            form["ending_before"] = self.key(items[0])
        else:
            form["starting_after"] = self.key(items[-1])
        return form


class OffsetCursor(Cursor):
    """Advances pages by the number of items fetched, using the `offset` parameter."""

    def advance(self, form: Form, items: Sequence[Any]) -> Form | None:
        if not items:
            return None
        form = Form(form)
        form["offset"] = str(int(form.get("offset", 0)) + len(items))
        return form


Fetch = Callable[[Form], Awaitable[Any]]


class Iter(Generic[Item]):
    """
    Iterator over the items of a paginated list operation.

    Parameters:
    • fetch: coroutine function that fetches a page, given its form fields
    • params: list parameters, or None for default paging
    • form: form fields to request the first page  [encoded from params]
    • cursor: strategy to request subsequent pages  [IDCursor()]

    The fetch function must return a list page dataclass (see `make_list_datacls`), or an
    object with equivalent `data`, `has_more`, `total_count` and `url` attributes.

    The first page is fetched when the iterator is started (see the `paginate` function), or
    by the first call to `next`.
    An iterator is not safe for concurrent use by multiple tasks.
    """

    def __init__(
        self,
        fetch: Fetch,
        params: ListParams | None = None,
        form: Form | None = None,
        *,
        cursor: Cursor | None = None,
    ):
        self._fetch = fetch
        self._params = params or ListParams()
        self._form = Form(form) if form is not None else encode_form(self._params)
        self._cursor = cursor or IDCursor()
        self._items = deque()
        self._meta = ListMeta()
        self._error = None
        self._raised = False
        self._fetches = 0

    @property
    def meta(self) -> ListMeta:
        """Metadata of the most recently fetched page."""
        return self._meta

    @property
    def error(self) -> Exception | None:
        """Error that ended pagination, or None."""
        return self._error

    def _more(self) -> bool:
        if not self._fetches:
            return True
        return self._meta.has_more and not self._params.single and self._form is not None

    async def _page(self) -> None:
        self._fetches += 1
        try:
            page = await self._fetch(Form(self._form))
            items = list(page.data or ())
            meta = ListMeta(total_count=page.total_count, has_more=page.has_more, url=page.url)
            form = self._cursor.advance(self._form, items) if meta.has_more else None
        except Exception as e:
            _logger.debug("page %d failed: %r", self._fetches, e)
            self._error = e
            return
        _logger.debug(
            "page %d fetched: %d items, has_more=%s", self._fetches, len(items), meta.has_more
        )
        self._items.extend(items)
        self._meta = meta
        self._form = form

    async def start(self) -> "Iter[Item]":
        """Fetch the first page of items, if not already fetched."""
        if not self._fetches:
            await self._page()
        return self

    def stop(self) -> bool:
        """
        Return True if there are no more items to be returned. Items are exhausted if no items
        remain in the current page and no further page can be fetched, or if an error ended
        pagination and has been raised by `next`.
        """
        if self._error is not None:
            return self._raised
        return not self._items and not self._more()

    async def next(self) -> Item | None:
        """
        Return the next item. If the current page is exhausted and another page exists, it is
        fetched first. Returns None if items are exhausted.

        Raises the error that ended pagination, if any.
        """
        if self._error is None and not self._items and self._more():
            await self._page()
        if self._error is not None:
            self._raised = True
            raise self._error
        if not self._items:
            return None
        return self._items.popleft()

    def __aiter__(self):
        return self

    async def __anext__(self) -> Item:
        if self.stop():
            raise StopAsyncIteration
        item = await self.next()
        if item is None and self.stop():
            raise StopAsyncIteration
        return item


async def paginate(
    fetch: Fetch,
    params: ListParams | None = None,
    form: Form | None = None,
    *,
    cursor: Cursor | None = None,
) -> Iter:
    """
    Return an iterator over the items of a paginated list operation, with its first page
    fetched. An error fetching the first page is raised by the first call to `next`.

    Parameters:
    • fetch: coroutine function that fetches a page, given its form fields
    • params: list parameters, or None for default paging
    • form: form fields to request the first page  [encoded from params]
    • cursor: strategy to request subsequent pages  [IDCursor()]
    """
    return await Iter(fetch, params, form, cursor=cursor).start()
