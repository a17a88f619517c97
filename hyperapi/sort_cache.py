"""
Process wide cache of the sortable field names of a resource type

The sortable fields of a type are the collection filters declared in its schema.
Entries are keyed by the schema source object (weakly referenced) and the type name:
when a schema source is garbage collected its entries disappear. Entries are cheap
to recompute, invalidate() can be used to drop them explicitly.
"""
import threading
import weakref
from typing import Any, Dict, FrozenSet, Optional
import hyperapi

EMPTY: FrozenSet[str] = frozenset()


class SortLinkCache:
    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._entries: "weakref.WeakKeyDictionary[Any, Dict[str, FrozenSet[str]]]" = weakref.WeakKeyDictionary()

    def get_sort_links(self, schema_source: Any, type: Optional[str]) -> FrozenSet[str]:
        """
        :param schema_source: object implementing get_schema(type)
        :param type: resource type name
        :return: names of the sortable fields of `type`
        """
        if schema_source is None or type is None:
            return EMPTY

        with self._lock:
            try:
                cached = self._entries.get(schema_source, {}).get(type)
            except TypeError:
                # schema source can't be weakly referenced
                cached = None
        if cached is not None:
            return cached

        schema = schema_source.get_schema(type)
        if schema is None:
            return EMPTY

        links = frozenset(schema.collection_filters.keys())
        with self._lock:
            try:
                self._entries.setdefault(schema_source, {})[type] = links
            except TypeError:
                hyperapi.log.debug(f"Not caching sort links for {schema_source}")
        return links

    def invalidate(self, schema_source: Any = None) -> None:
        """
        :param schema_source: drop the entries of this schema source, or all entries when None
        """
        with self._lock:
            if schema_source is None:
                self._entries.clear()
                return
            try:
                self._entries.pop(schema_source, None)
            except TypeError:
                # not weakly referenceable, so it was never cached
                return

    def __len__(self) -> int:
        with self._lock:
            return sum(len(types) for types in self._entries.values())


SORT_LINKS = SortLinkCache()
