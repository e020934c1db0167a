import pytest

from stripy.codec import DecodeError, encode_form
from stripy.data import datacls
from stripy.error import TransportError
from stripy.form import Form
from stripy.pagination import (
    Filters,
    IDCursor,
    Iter,
    ListParams,
    OffsetCursor,
    make_list_datacls,
    paginate,
)


pytestmark = pytest.mark.asyncio


@datacls
class Item:
    id: str
    value: int


ItemList = make_list_datacls("ItemList", Item)


class Collection:
    """In-memory paginated collection, recording each fetch."""

    def __init__(self, count: int, limit: int = 10, fail: set[int] = frozenset()):
        self.items = [Item(id=f"it_{n}", value=n) for n in range(count)]
        self.limit = limit
        self.fail = fail  # 1-based fetch numbers that fail
        self.forms = []

    def _index(self, id):
        return [item.id for item in self.items].index(id)

    async def fetch(self, form: Form):
        self.forms.append(Form(form))
        if len(self.forms) in self.fail:
            raise TransportError("connection reset")
        limit = int(form.get("limit", self.limit))
        if "ending_before" in form:
            stop = self._index(form["ending_before"])
            start = max(0, stop - limit)
            more = start > 0
        else:
            start = self._index(form["starting_after"]) + 1 if "starting_after" in form else 0
            start = start + int(form.get("offset", 0))
            stop = min(start + limit, len(self.items))
            more = stop < len(self.items)
        return ItemList(
            data=self.items[start:stop], has_more=more, total_count=len(self.items)
        )


async def drain(it: Iter) -> list:
    items = []
    while not it.stop():
        items.append(await it.next())
    return items


async def test_iterate_all_pages():
    collection = Collection(12)
    it = await paginate(collection.fetch, ListParams(limit=5))
    stops = []
    values = []
    for _ in range(13):
        stops.append(it.stop())
        if not stops[-1]:
            values.append((await it.next()).value)
    assert stops == [False] * 12 + [True]
    assert values == list(range(12))
    assert len(collection.forms) == 3
    assert [f.get("starting_after") for f in collection.forms] == [None, "it_4", "it_9"]
    assert all(f["limit"] == "5" for f in collection.forms)


async def test_page_sizes_concatenated_in_order():
    collection = Collection(23, limit=7)
    it = await paginate(collection.fetch)
    items = await drain(it)
    assert items == collection.items
    assert len({item.id for item in items}) == 23


async def test_first_page_fetched_eagerly():
    collection = Collection(3)
    it = await paginate(collection.fetch)
    assert len(collection.forms) == 1
    assert it.meta.total_count == 3


async def test_iter_not_started_fetches_nothing():
    collection = Collection(3)
    it = Iter(collection.fetch)
    assert collection.forms == []
    await it.start()
    await it.start()
    assert len(collection.forms) == 1


async def test_single_page():
    collection = Collection(12)
    it = await paginate(collection.fetch, ListParams(limit=5, single=True))
    assert it.meta.has_more is True
    items = await drain(it)
    assert [item.value for item in items] == [0, 1, 2, 3, 4]
    assert it.stop()
    assert await it.next() is None
    assert len(collection.forms) == 1


async def test_single_not_sent():
    collection = Collection(3)
    await paginate(collection.fetch, ListParams(single=True))
    assert "single" not in collection.forms[0]


async def test_second_page_error():
    collection = Collection(12, limit=5, fail={2})
    it = await paginate(collection.fetch)
    items = [await it.next() for _ in range(5)]
    assert [item.value for item in items] == [0, 1, 2, 3, 4]
    assert not it.stop()
    with pytest.raises(TransportError) as exc_info:
        await it.next()
    error = exc_info.value
    assert it.stop()
    assert it.error is error
    for _ in range(3):
        with pytest.raises(TransportError) as again:
            await it.next()
        assert again.value is error
    assert len(collection.forms) == 2


async def test_first_page_error_raised_by_next():
    collection = Collection(12, fail={1})
    it = await paginate(collection.fetch)
    assert not it.stop()
    with pytest.raises(TransportError):
        await it.next()
    assert it.stop()
    assert len(collection.forms) == 1


async def test_failed_page_items_not_surfaced():
    async def fetch(form):
        if "starting_after" in form:
            raise DecodeError("bad page")
        return ItemList(data=[Item(id="it_0", value=0)], has_more=True)

    it = await paginate(fetch)
    assert (await it.next()).id == "it_0"
    with pytest.raises(DecodeError):
        await it.next()
    with pytest.raises(DecodeError):
        await it.next()


async def test_meta_reflects_latest_page():
    collection = Collection(12, limit=5)
    it = await paginate(collection.fetch)
    assert it.meta.has_more is True
    assert it.meta.total_count == 12
    for _ in range(6):
        await it.next()
    assert len(collection.forms) == 2
    assert it.meta.has_more is True
    for _ in range(5):
        await it.next()
    assert len(collection.forms) == 3
    assert it.meta.has_more is False


async def test_meta_kept_after_error():
    collection = Collection(12, limit=5, fail={2})
    it = await paginate(collection.fetch)
    for _ in range(5):
        await it.next()
    with pytest.raises(TransportError):
        await it.next()
    assert it.meta.has_more is True


async def test_next_after_stop_does_not_fetch():
    collection = Collection(4, limit=5)
    it = await paginate(collection.fetch)
    await drain(it)
    assert it.stop()
    for _ in range(3):
        assert await it.next() is None
    assert len(collection.forms) == 1


async def test_empty_collection():
    collection = Collection(0)
    it = await paginate(collection.fetch)
    assert it.stop()
    assert await it.next() is None


async def test_empty_page_with_more_ends_pagination():
    calls = []

    async def fetch(form):
        calls.append(form)
        return ItemList(data=[], has_more=True)

    it = await paginate(fetch)
    assert it.stop()
    assert await it.next() is None
    assert len(calls) == 1


async def test_async_for():
    collection = Collection(12, limit=5)
    it = await paginate(collection.fetch)
    assert [item.value async for item in it] == list(range(12))
    assert len(collection.forms) == 3


async def test_ending_before_pages_backward():
    collection = Collection(12, limit=5)
    it = await paginate(collection.fetch, ListParams(ending_before="it_11"))
    values = [item.value for item in await drain(it)]
    assert values == [6, 7, 8, 9, 10, 1, 2, 3, 4, 5, 0]
    assert [f["ending_before"] for f in collection.forms] == ["it_11", "it_6", "it_1"]
    assert all("starting_after" not in f for f in collection.forms)


async def test_offset_cursor():
    collection = Collection(12, limit=5)
    it = await paginate(collection.fetch, cursor=OffsetCursor())
    values = [item.value for item in await drain(it)]
    assert values == list(range(12))
    assert [f.get("offset") for f in collection.forms] == [None, "5", "10"]


async def test_explicit_form_overrides_params():
    collection = Collection(12, limit=5)
    form = Form(limit="4")
    it = await paginate(collection.fetch, ListParams(limit=5), form)
    await it.next()
    assert collection.forms[0]["limit"] == "4"


def test_filters():
    filters = Filters()
    filters.add_filter("created", "gte", 1400000000)
    filters.add_filter("created", "lt", "1500000000")
    filters.add_filter("limit", "", "5")
    assert list(filters.items()) == [
        ("created[gte]", "1400000000"),
        ("created[lt]", "1500000000"),
        ("limit", "5"),
    ]


async def test_list_params_form():
    collection = Collection(3)
    params = ListParams(limit=2, expand=["data.card"])
    params.filters.add_filter("created", "gt", 1)
    await paginate(collection.fetch, params)
    form = collection.forms[0]
    assert form["limit"] == "2"
    assert form.getall("expand[]") == ["data.card"]
    assert form["created[gt]"] == "1"


async def test_next_fetches_first_page_without_start():
    collection = Collection(3)
    it = Iter(collection.fetch)
    assert not it.stop()
    item = await it.next()
    assert item is not None
    assert item.value == 0
    assert len(collection.forms) == 1


async def test_drain_without_start():
    collection = Collection(12, limit=5)
    assert [item.value for item in await drain(Iter(collection.fetch))] == list(range(12))
    assert len(collection.forms) == 3


async def test_single_page_without_start():
    collection = Collection(12)
    it = Iter(collection.fetch, ListParams(limit=5, single=True))
    assert not it.stop()
    assert len(await drain(it)) == 5
    assert len(collection.forms) == 1


async def test_cursor_error_ends_pagination():
    calls = []

    async def fetch(form):
        calls.append(form)
        return ItemList(data=[Item(id="it_0", value=0)], has_more=True)

    it = Iter(fetch, cursor=IDCursor(key=lambda item: item["id"]))
    await it.start()
    assert isinstance(it.error, TypeError)
    assert not it.stop()
    with pytest.raises(TypeError) as exc_info:
        await it.next()
    assert exc_info.value is it.error
    assert it.stop()
    with pytest.raises(TypeError) as again:
        await it.next()
    assert again.value is it.error
    assert len(calls) == 1


def test_filter_replaces_param():
    params = ListParams(limit=5, expand=["data.card"])
    params.filters.add_filter("limit", "", 4)
    form = encode_form(params)
    assert form.getall("limit") == ["4"]
    assert list(form.items()) == [("expand[]", "data.card"), ("limit", "4")]
