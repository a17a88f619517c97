import gc
import threading
from types import SimpleNamespace

from hyperapi import SORT_LINKS, Schema, SchemaFactory, SortLinkCache

from conftest import WIDGET_SCHEMA, Widget


class _CountingSchemaFactory(SchemaFactory):
    def __init__(self, *args, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self.lookups = 0

    def get_schema(self, type_or_class):
        self.lookups += 1
        return super().get_schema(type_or_class)


def test_sort_links_are_cached() -> None:
    cache = SortLinkCache()
    schema_factory = _CountingSchemaFactory([WIDGET_SCHEMA])

    assert cache.get_sort_links(schema_factory, "widget") == frozenset({"name", "owner_id"})
    assert cache.get_sort_links(schema_factory, "widget") == frozenset({"name", "owner_id"})
    assert schema_factory.lookups == 1
    assert len(cache) == 1


def test_unknown_schema_is_not_cached() -> None:
    cache = SortLinkCache()
    schema_factory = SchemaFactory()

    assert cache.get_sort_links(schema_factory, "unknown") == frozenset()
    assert cache.get_sort_links(None, "widget") == frozenset()
    assert cache.get_sort_links(schema_factory, None) == frozenset()
    assert len(cache) == 0

    # registered later: picked up on the next lookup
    schema_factory.register(WIDGET_SCHEMA, Widget)
    assert cache.get_sort_links(schema_factory, "widget") == frozenset({"name", "owner_id"})


def test_invalidate() -> None:
    cache = SortLinkCache()
    first, second = SchemaFactory([WIDGET_SCHEMA]), SchemaFactory([WIDGET_SCHEMA])
    cache.get_sort_links(first, "widget")
    cache.get_sort_links(second, "widget")
    assert len(cache) == 2

    cache.invalidate(first)
    assert len(cache) == 1
    cache.invalidate(object())
    cache.invalidate()
    assert len(cache) == 0


def test_replacing_a_schema_drops_its_sort_links() -> None:
    schema_factory = SchemaFactory([Schema("thing", collection_filters={"a": ("eq",)})])
    other = SchemaFactory([Schema("thing", collection_filters={"c": ("eq",)})])
    assert SORT_LINKS.get_sort_links(schema_factory, "thing") == frozenset({"a"})
    assert SORT_LINKS.get_sort_links(other, "thing") == frozenset({"c"})

    schema_factory.register(Schema("thing", collection_filters={"b": ("eq",)}))

    assert SORT_LINKS.get_sort_links(schema_factory, "thing") == frozenset({"b"})
    assert SORT_LINKS.get_sort_links(other, "thing") == frozenset({"c"})


def test_entries_are_dropped_with_their_schema_source() -> None:
    cache = SortLinkCache()
    schema_factory = SchemaFactory([WIDGET_SCHEMA])
    cache.get_sort_links(schema_factory, "widget")
    assert len(cache) == 1

    del schema_factory
    gc.collect()
    assert len(cache) == 0


def test_schema_source_without_weakref_support() -> None:
    class _SlottedSource:
        __slots__ = ()

        def get_schema(self, type_or_class):
            return WIDGET_SCHEMA

    cache = SortLinkCache()
    source = _SlottedSource()

    assert cache.get_sort_links(source, "widget") == frozenset({"name", "owner_id"})
    assert len(cache) == 0
    cache.invalidate(source)


def test_concurrent_lookups() -> None:
    cache = SortLinkCache()
    schema_factory = SchemaFactory([WIDGET_SCHEMA])
    other = SimpleNamespace(get_schema=lambda type_or_class: None)
    results: list = []
    errors: list = []
    start = threading.Barrier(8)

    def _lookup() -> None:
        try:
            start.wait()
            for _ in range(200):
                results.append(cache.get_sort_links(schema_factory, "widget"))
                cache.get_sort_links(other, "widget")
                cache.invalidate(schema_factory)
        except Exception as exc:  # pylint: disable=broad-except
            errors.append(exc)

    threads = [threading.Thread(target=_lookup) for _ in range(8)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert errors == []
    assert len(results) == 8 * 200
    assert set(results) == {frozenset({"name", "owner_id"})}
