# Value objects of the api:
# - request side: Condition, Pagination, Sort, ListOptions
# - schema side: Schema, Action
# - response side: Resource, WrappedResource, Collection
#
# Resources and Collections are what the resource managers render,
# the ResponseWriterHandler serializes them with their to_dict method
#
from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple

ID_FIELD = "id"
COLLECTION_TYPE = "collection"
SCHEMA_TYPE = "schema"
# keys of the rendered resources that fields can't replace
RESERVED_FIELDS = (ID_FIELD, "type", "links", "actions")


class ConditionType(Enum):
    """
    Filter modifiers, a modifier is given in the query string as a suffix of the field name:
    name_ne=foo => Condition(NE, "foo") for the "name" field
    """

    EQ = "eq"
    NE = "ne"
    LT = "lt"
    LTE = "lte"
    GT = "gt"
    GTE = "gte"
    PREFIX = "prefix"
    LIKE = "like"
    NOTLIKE = "notlike"
    NULL = "null"
    NOTNULL = "notnull"

    @property
    def suffix(self) -> str:
        return "" if self is ConditionType.EQ else "_" + self.value

    @property
    def has_value(self) -> bool:
        return self not in (ConditionType.NULL, ConditionType.NOTNULL)

    @classmethod
    def split_param(cls, param: str) -> Tuple[str, "ConditionType"]:
        """
        :param param: query string parameter name, eg. "name_ne"
        :return: field name and condition type, eg. ("name", ConditionType.NE)
        """
        for condition_type in cls:
            if condition_type is ConditionType.EQ:
                continue
            if param.endswith(condition_type.suffix) and len(param) > len(condition_type.suffix):
                return param[: -len(condition_type.suffix)], condition_type
        return param, ConditionType.EQ


@dataclass(frozen=True)
class Condition:
    condition_type: ConditionType = ConditionType.EQ
    value: Any = None

    def to_dict(self) -> Dict[str, Any]:
        return {"modifier": self.condition_type.value, "value": self.value}


@dataclass
class Pagination:
    """
    Cursor pagination: the marker is the (formatted) id of the last item of the previous page
    partial and next are set when the rendered page was truncated
    """

    limit: Optional[int] = None
    marker: Optional[str] = None
    partial: bool = False
    next: Optional[str] = None

    def copy(self) -> "Pagination":
        return replace(self)

    def to_dict(self) -> Dict[str, Any]:
        result = {"limit": self.limit, "marker": self.marker, "partial": self.partial}
        if self.next is not None:
            result["next"] = self.next
        return result


@dataclass(frozen=True)
class Sort:
    name: str
    order: str = "asc"

    @property
    def reverse(self) -> bool:
        return self.order == "desc"

    def to_dict(self) -> Dict[str, Any]:
        return {"name": self.name, "order": self.order}


@dataclass
class ListOptions:
    """
    The list related parts of a request, passed to the internal list operation of a resource manager
    """

    pagination: Optional[Pagination] = None
    sort: Optional[Sort] = None
    include: List[str] = field(default_factory=list)

    @classmethod
    def from_request(cls, request) -> "ListOptions":
        if request is None:
            return cls()
        pagination = request.pagination.copy() if request.pagination is not None else None
        return cls(pagination=pagination, sort=request.sort, include=list(request.include))


@dataclass(frozen=True)
class Action:
    name: str
    input: Optional[str] = None
    output: Optional[str] = None


@dataclass(frozen=True, eq=False)
class Schema:
    """
    Read-only description of a resource type

    :param id: the resource type name
    :param fields: names of the fields that are rendered
    :param collection_filters: filterable field name => allowed condition modifiers
    :param resource_actions: actions available on a single resource
    :param collection_actions: actions available on the collection
    """

    id: str
    fields: Tuple[str, ...] = ()
    collection_filters: Mapping[str, Tuple[str, ...]] = field(default_factory=dict)
    resource_actions: Mapping[str, Action] = field(default_factory=dict)
    collection_actions: Mapping[str, Action] = field(default_factory=dict)
    plural_name: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "pluralName": self.plural_name or self.id + "s",
            "resourceFields": list(self.fields),
            "collectionFilters": {name: list(modifiers) for name, modifiers in self.collection_filters.items()},
            "resourceActions": {name: {"input": a.input, "output": a.output} for name, a in self.resource_actions.items()},
            "collectionActions": {name: {"input": a.input, "output": a.output} for name, a in self.collection_actions.items()},
        }


class Resource:
    """
    Hypermedia representation of one domain object
    """

    def __init__(self, type: str, id: Any = None, fields: Optional[Dict[str, Any]] = None) -> None:
        self.type = type
        self.id = id
        self.fields = fields if fields is not None else {}
        self.links: Dict[str, str] = {}
        self.actions: Dict[str, str] = {}

    def to_dict(self) -> Dict[str, Any]:
        result = {"id": self.id, "type": self.type}
        result.update((name, value) for name, value in self.fields.items() if name not in RESERVED_FIELDS)
        result["links"] = dict(self.links)
        result["actions"] = dict(self.actions)
        return result

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} {self.type}:{self.id}>"


class WrappedResource(Resource):
    """
    Resource that reads its fields from the wrapped object, the schema decides which fields are exposed
    """

    def __init__(self, id_formatter, schema: Schema, obj: Any, id_accessor: Callable[[Any], Any]) -> None:
        fields = {name: getattr(obj, name, None) for name in schema.fields if name != ID_FIELD}
        raw_id = id_accessor(obj)
        formatted_id = id_formatter.format_id(schema.id, raw_id) if raw_id is not None else None
        super().__init__(schema.id, formatted_id, fields)
        self.schema = schema
        self.obj = obj


@dataclass
class Collection:
    resource_type: Optional[str] = None
    data: List[Resource] = field(default_factory=list)
    pagination: Optional[Pagination] = None
    sort_links: Dict[str, str] = field(default_factory=dict)
    filters: Dict[str, Optional[List[Condition]]] = field(default_factory=dict)
    sort: Optional[Sort] = None
    links: Dict[str, str] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        filters = {}
        for name, conditions in self.filters.items():
            filters[name] = None if conditions is None else [condition.to_dict() for condition in conditions]
        return {
            "type": COLLECTION_TYPE,
            "resourceType": self.resource_type,
            "links": dict(self.links),
            "data": [resource.to_dict() for resource in self.data],
            "pagination": self.pagination.to_dict() if self.pagination is not None else None,
            "sortLinks": dict(self.sort_links),
            "sort": self.sort.to_dict() if self.sort is not None else None,
            "filters": filters,
        }
