from types import SimpleNamespace
from typing import Any, Dict, Optional

import pytest

from hyperapi import (
    ID_FIELD,
    AbstractBaseResourceManager,
    Action,
    ApiRequest,
    Pagination,
    ResourceManagerLocator,
    Schema,
    SchemaFactory,
    SortLinkCache,
    api_context,
)

BASE_URL = "http://test/v1"


class Widget:
    def __init__(self, id: Any, name: str = "", owner_id: Optional[int] = None) -> None:
        self.id = id
        self.name = name
        self.owner_id = owner_id


class Gizmo:
    def __init__(self, id: Any, size: int = 0) -> None:
        self.id = id
        self.size = size


WIDGET_SCHEMA = Schema(
    id="widget",
    fields=("name", "owner_id"),
    collection_filters={"name": ("eq", "ne"), "owner_id": ("eq", "null", "notnull")},
    resource_actions={"activate": Action("activate")},
    collection_actions={"count": Action("count", output="int")},
)
GIZMO_SCHEMA = Schema(id="gizmo", fields=("size",))


class MemoryResourceManager(AbstractBaseResourceManager):
    """
    Resource manager that keeps its objects in a dict and records the internal calls
    """

    def __init__(self, objects=(), **kwargs) -> None:
        super().__init__(**kwargs)
        self.objects: Dict[Any, Any] = {obj.id: obj for obj in objects}
        self.calls: list = []

    def _list_internal(self, type, criteria, options):
        self.calls.append(("list", type, dict(criteria)))
        result = [self.objects[key] for key in sorted(self.objects)]
        for key, value in criteria.items():
            if key == ID_FIELD:
                result = [obj for obj in result if str(obj.id) == str(value)]
            elif isinstance(value, list):
                result = [obj for obj in result if any(str(getattr(obj, key, None)) == str(c.value) for c in value)]
            else:
                result = [obj for obj in result if getattr(obj, key, None) == value]
        marker = self.get_marker(options.pagination)
        if marker is not None:
            result = [obj for obj in result if obj.id > marker]
        if options.pagination is not None and options.pagination.limit is not None:
            result = result[: options.pagination.limit + 1]
        return result

    def _create_internal(self, type, api_request):
        self.calls.append(("create", type))
        obj = Widget(max(self.objects, default=0) + 1, **(api_request.request_object or {}))
        self.objects[obj.id] = obj
        return obj

    def _update_internal(self, type, id, obj, api_request):
        self.calls.append(("update", id))
        obj.name = (api_request.request_object or {}).get("name", obj.name)
        return obj

    def _delete_internal(self, type, id, obj, api_request):
        self.calls.append(("delete", id))
        return self.objects.pop(obj.id)

    def _get_link_internal(self, type, id, link, api_request):
        self.calls.append(("link", id, link))
        obj = self.get_by_id(type, id)
        return getattr(obj, link, None) if obj is not None else None

    def _resource_action_internal(self, obj, api_request):
        self.calls.append(("resource_action", obj.id, api_request.action))
        return obj

    def _collection_action_internal(self, objs, api_request):
        self.calls.append(("collection_action", api_request.action))
        return len(objs)


def fake_url_builder(base: str = BASE_URL, **overrides) -> SimpleNamespace:
    """
    url builder that doesn't need a transport request, pass eg. next=lambda last_id, type=None: None to disable urls
    """
    builder = dict(
        resource_collection=lambda type: f"{base}/{type}",
        resource_reference_link=lambda resource: f"{base}/{resource.type}/{resource.id}",
        resource_link=lambda resource, name: f"{base}/{resource.type}/{resource.id}/{name}",
        action_link=lambda resource, name: f"{base}/{resource.type}/{resource.id}?action={name}",
        sort=lambda field: f"{base}/widget?sort={field}",
        next=lambda last_id, type=None: f"{base}/{type}?marker={last_id}",
    )
    builder.update(overrides)
    return SimpleNamespace(**builder)


def make_request(type: str = "widget", id: Any = None, method: str = "GET", limit: Optional[int] = None, **kwargs) -> ApiRequest:
    api_request = ApiRequest("v1")
    api_request.method = method
    api_request.type = type
    api_request.id = id
    api_request.pagination = Pagination(limit=limit) if limit is not None else None
    for name, value in kwargs.items():
        setattr(api_request, name, value)
    return api_request


@pytest.fixture
def schema_factory() -> SchemaFactory:
    schema_factory = SchemaFactory(name="test")
    schema_factory.register(WIDGET_SCHEMA, Widget)
    schema_factory.register(GIZMO_SCHEMA, Gizmo)
    return schema_factory


@pytest.fixture
def locator() -> ResourceManagerLocator:
    return ResourceManagerLocator()


@pytest.fixture
def widgets() -> list:
    return [Widget(i, name=f"w{i}", owner_id=(i if i % 2 else None)) for i in range(1, 6)]


@pytest.fixture
def manager(widgets, schema_factory, locator) -> MemoryResourceManager:
    manager = MemoryResourceManager(widgets, schema_factory=schema_factory, locator=locator, sort_links=SortLinkCache())
    locator.register("widget", manager, Widget)
    return manager


@pytest.fixture
def gizmo_manager(schema_factory, locator) -> MemoryResourceManager:
    manager = MemoryResourceManager([Gizmo(7, size=3)], schema_factory=schema_factory, locator=locator, sort_links=SortLinkCache())
    locator.register("gizmo", manager, Gizmo)
    return manager


@pytest.fixture
def context(schema_factory):
    with api_context(schema_factory=schema_factory, url_builder=fake_url_builder()) as ctx:
        yield ctx
