# resource_manager.py: implements the generic resource manager
#
# The public CRUD operations (get_by_id, list, create, update, delete, get_link and the actions)
# are final: they fix the sequence criteria -> internal operation -> authorize.
# Concrete managers implement the abstract _*_internal hooks, they don't override the sequence.
#
# The second half of this module renders the results of the operations as hypermedia:
# Resources for single objects and Collections (with sort, filter and pagination metadata) for lists.
#
# pylint: disable=unused-argument,redefined-builtin
#
import abc
from typing import Any, Callable, Dict, List, Optional, Set, final
import hyperapi
from .context import ApiContext
from .interfaces import Locator, SchemaSource
from .model import ID_FIELD, Collection, ListOptions, Pagination, Resource, Schema, WrappedResource
from .sort_cache import SORT_LINKS, SortLinkCache

# The public operations, subclasses implement the corresponding internal hooks
FINAL_METHODS = (
    "get_by_id",
    "list",
    "list_by_criteria",
    "create",
    "update",
    "delete",
    "get_link",
    "resource_action",
    "collection_action",
)


def default_id_accessor(obj: Any) -> Any:
    """
    :param obj: domain object
    :return: the value of its "id" attribute or None
    """
    return getattr(obj, ID_FIELD, None)


def get_first_from_list(obj: Any) -> Any:
    """
    :param obj: result of a list operation: a Collection, a list or anything else
    :return: the first item or None
    """
    if isinstance(obj, Collection):
        return get_first_from_list(obj.data)
    if isinstance(obj, (list, tuple)):
        return obj[0] if obj else None
    return None


def to_list(obj: Any) -> List[Any]:
    if obj is None:
        return []
    if isinstance(obj, Collection):
        return list(obj.data)
    if isinstance(obj, (list, tuple)):
        return list(obj)
    return [obj]


class AbstractBaseResourceManager(abc.ABC):
    """
    Base class of the resource managers, one manager handles one or more resource types

    :param schema_factory: schema source used for rendering
    :param locator: ResourceManagerLocator, used to render objects managed by other managers
    """

    # Explicit accessor for the id of the domain objects, used for the pagination cursor
    id_accessor: Callable[[Any], Any] = staticmethod(default_id_accessor)

    def __init__(self, schema_factory: Optional[SchemaSource] = None, locator: Optional[Locator] = None, sort_links: Optional[SortLinkCache] = None) -> None:
        self.schema_factory = schema_factory
        self.locator = locator
        self.sort_links = sort_links if sort_links is not None else SORT_LINKS
        self.resources_to_create: Set[type] = set()

    def __init_subclass__(cls, **kwargs):
        super().__init_subclass__(**kwargs)
        for method_name in FINAL_METHODS:
            if method_name in cls.__dict__:
                raise TypeError(f"{cls.__name__} overrides the final method '{method_name}', implement its internal hook instead")

    def authorize(self, obj: Any) -> Any:
        """
        Called with the result of every operation, the return value is what the caller gets.
        This runs after the internal operation: it filters results, it doesn't prevent the operation.
        """
        return obj

    def add_resource_to_create_response(self, cls: type) -> None:
        """
        Only instances of the registered classes are rendered by this manager,
        other objects are rendered by the manager the locator returns for their class
        """
        self.resources_to_create.add(cls)

    def get_default_criteria(self, by_id: bool) -> Dict[Any, Any]:
        """
        Criteria that are merged into every list, eg. for soft-deleted or tenant scoped objects.
        These criteria take precedence over the request conditions.

        :param by_id: whether the criteria are used to look up a single object by id
        """
        return {}

    def handle_exception(self, exc: Exception, api_request) -> bool:
        return False

    #
    # Final operations
    #
    @final
    def get_by_id(self, type: str, id: Any, options: Optional[ListOptions] = None) -> Any:
        """
        :return: the object with the given id or None
        """
        return self.authorize(self._get_by_id_internal(type, id, options if options is not None else ListOptions()))

    @final
    def list(self, type: str, api_request) -> Any:
        return self.authorize(self._list_request_internal(type, api_request))

    @final
    def list_by_criteria(self, type: str, criteria: Dict[Any, Any], options: Optional[ListOptions] = None) -> List[Any]:
        """
        List objects matching `criteria`, the default criteria are merged in
        :return: list
        """
        criteria = dict(criteria)
        criteria.update(self.get_default_criteria(False))
        result = self.authorize(self._list_internal(type, criteria, options if options is not None else ListOptions()))
        return to_list(result)

    @final
    def create(self, type: str, api_request) -> Any:
        return self.authorize(self._create_internal(type, api_request))

    @final
    def update(self, type: str, id: Any, api_request) -> Any:
        """
        Only objects the caller can retrieve can be updated
        :return: updated object or None when there's no such object
        """
        obj = self.get_by_id(type, id, ListOptions.from_request(api_request))
        if obj is None:
            return None
        return self._update_internal(type, id, obj, api_request)

    @final
    def delete(self, type: str, id: Any, api_request) -> Any:
        """
        :return: deleted object or None when there's no such object
        """
        obj = self.get_by_id(type, id, ListOptions.from_request(api_request))
        if obj is None:
            return None
        return self._delete_internal(type, id, obj, api_request)

    @final
    def get_link(self, type: str, id: Any, link: str, api_request) -> Any:
        return self.authorize(self._get_link_internal(type, id, link, api_request))

    @final
    def resource_action(self, type: str, api_request) -> Any:
        obj = self.get_by_id(type, api_request.id, ListOptions())
        if obj is None:
            return None
        return self._resource_action_internal(obj, api_request)

    @final
    def collection_action(self, type: str, api_request) -> Any:
        objs = self.list(type, api_request)
        if objs is None:
            return None
        return self._collection_action_internal(objs, api_request)

    #
    # Internal operations
    #
    def _get_by_id_internal(self, type: str, id: Any, options: ListOptions) -> Any:
        criteria = dict(self.get_default_criteria(True))
        criteria[ID_FIELD] = id
        return get_first_from_list(self._list_internal(type, criteria, options))

    def _list_request_internal(self, type: str, api_request) -> Any:
        criteria: Dict[Any, Any] = dict(api_request.conditions)
        criteria.update(self.get_default_criteria(False))
        return self._list_internal(type, criteria, ListOptions.from_request(api_request))

    @abc.abstractmethod
    def _list_internal(self, type: str, criteria: Dict[Any, Any], options: ListOptions) -> Any:
        raise NotImplementedError

    @abc.abstractmethod
    def _create_internal(self, type: str, api_request) -> Any:
        raise NotImplementedError

    @abc.abstractmethod
    def _update_internal(self, type: str, id: Any, obj: Any, api_request) -> Any:
        raise NotImplementedError

    @abc.abstractmethod
    def _delete_internal(self, type: str, id: Any, obj: Any, api_request) -> Any:
        raise NotImplementedError

    @abc.abstractmethod
    def _get_link_internal(self, type: str, id: Any, link: str, api_request) -> Any:
        raise NotImplementedError

    @abc.abstractmethod
    def _resource_action_internal(self, obj: Any, api_request) -> Any:
        raise NotImplementedError

    @abc.abstractmethod
    def _collection_action_internal(self, objs: Any, api_request) -> Any:
        raise NotImplementedError

    #
    # Pagination cursor
    #
    def get_marker(self, pagination: Optional[Pagination]) -> Optional[int]:
        """
        :param pagination: requested pagination
        :return: the numeric id encoded in the pagination marker or None
        """
        if pagination is None or pagination.marker is None:
            return None
        marker = ApiContext.get_context().id_formatter.parse_id(pagination.marker)
        return self._to_int(marker)

    def get_last_id(self, items: List[Any]) -> Optional[int]:
        """
        :param items: non-empty list of domain objects
        :return: numeric id of the last item or None
        """
        if not items:
            return None
        try:
            id = self.id_accessor(items[-1])
        except AttributeError:
            return None
        return self._to_int(id)

    @staticmethod
    def _to_int(value: Any) -> Optional[int]:
        if value is None or isinstance(value, bool):
            return None
        if isinstance(value, int):
            return value
        try:
            return int(str(value))
        except ValueError:
            return None

    #
    # Hypermedia rendering
    #
    def convert_response(self, obj: Any, api_request) -> Any:
        """
        :param obj: result of an operation
        :param api_request: the request or None
        :return: Collection for lists, Resource (or None) otherwise
        """
        if isinstance(obj, Collection):
            return obj
        if isinstance(obj, (list, tuple)):
            return self.create_collection(list(obj), api_request)
        return self.create_resource(obj, ApiContext.get_context().id_formatter, api_request)

    def create_collection(self, items: List[Any], api_request) -> Collection:
        collection = Collection()
        if api_request is not None:
            collection.resource_type = self.get_collection_type(items, api_request)

        id_formatter = ApiContext.get_context().id_formatter

        if api_request is not None:
            self.add_sort(collection, api_request)
            items = self.add_pagination(items, collection, api_request)
            self.add_filters(collection, api_request)

        for obj in items:
            resource = self.create_resource(obj, id_formatter, api_request)
            if resource is None:
                continue
            collection.data.append(resource)
            if collection.resource_type is None:
                collection.resource_type = resource.type

        url_builder = self._url_builder()
        if url_builder is not None and collection.resource_type is not None:
            self_link = url_builder.resource_collection(collection.resource_type)
            if self_link is not None:
                collection.links["self"] = self_link

        return collection

    def get_collection_type(self, items: List[Any], api_request) -> Optional[str]:
        return api_request.type

    def add_sort(self, collection: Collection, api_request) -> None:
        sort_links: Dict[str, str] = {}
        url_builder = self._url_builder()
        if url_builder is not None:
            for name in sorted(self.get_sort_links(collection.resource_type)):
                sort_url = url_builder.sort(name)
                if sort_url is not None:
                    sort_links[name] = sort_url
        collection.sort_links = sort_links
        collection.sort = api_request.sort

    def get_sort_links(self, type: Optional[str]):
        return self.sort_links.get_sort_links(self.schema_factory, type)

    def add_pagination(self, items: List[Any], collection: Collection, api_request) -> List[Any]:
        """
        If more items than the requested limit were fetched, truncate the list and add a next link.
        Without a next link the list is returned untouched.

        :return: the items to render
        """
        if api_request.pagination is None:
            return items

        pagination = api_request.pagination.copy()
        limit = pagination.limit
        if limit is not None and len(items) > limit:
            page = items[:limit]
            last_id = self.get_last_id(page)
            url_builder = self._url_builder()
            marker_type = self.get_marker_type(page, collection, api_request)
            next_url = url_builder.next(last_id, marker_type) if last_id is not None and url_builder is not None else None
            if next_url is not None:
                items = page
                pagination.partial = True
                pagination.next = next_url
            else:
                hyperapi.log.debug(f"No next link for {collection.resource_type} (last id {last_id})")

        collection.pagination = pagination
        return items

    def get_marker_type(self, page: List[Any], collection: Collection, api_request) -> Optional[str]:
        """
        :return: type the next marker is formatted for, the type of the rendered items
        """
        if collection.resource_type is not None:
            return collection.resource_type
        schema = self.get_schema_for_display(page[-1])
        return schema.id if schema is not None else api_request.type

    def add_filters(self, collection: Collection, api_request) -> None:
        conditions = dict(api_request.conditions)
        schema = self.schema_factory.get_schema(collection.resource_type) if self.schema_factory else None
        if schema is not None:
            for name in schema.collection_filters:
                conditions.setdefault(name, None)
        collection.filters = dict(sorted(conditions.items()))

    def create_resource(self, obj: Any, id_formatter, api_request) -> Optional[Resource]:
        """
        :param obj: domain object
        :param id_formatter: IdFormatter
        :param api_request: ApiRequest or None
        :return: Resource or None when obj can't be rendered
        """
        if obj is None:
            return None

        if isinstance(obj, Resource):
            return obj

        if self.resources_to_create and type(obj) not in self.resources_to_create and self.locator is not None:
            manager = self.locator.get_resource_manager_by_type(self.locator.get_type(type(obj)))
            if manager is not None and manager is not self:
                return manager.convert_response(obj, api_request)

        schema = self.get_schema_for_display(obj)
        if schema is None:
            hyperapi.log.debug(f"No schema for {type(obj)}, not rendering {obj}")
            return None

        resource = self.construct_resource(id_formatter, schema, obj)
        self.add_links(obj, schema, resource)
        self.add_actions(obj, schema, resource)
        return resource

    def get_schema_for_display(self, obj: Any) -> Optional[Schema]:
        if self.schema_factory is None:
            return None
        return self.schema_factory.get_schema(type(obj))

    def construct_resource(self, id_formatter, schema: Schema, obj: Any) -> Resource:
        resource = WrappedResource(id_formatter, schema, obj, self.id_accessor)
        url_builder = self._url_builder()
        if url_builder is not None:
            self_link = url_builder.resource_reference_link(resource)
            if self_link is not None:
                resource.links["self"] = self_link
        return resource

    def get_links(self, resource: Resource) -> Dict[str, Optional[str]]:
        """
        :return: link name => name of the field that has to be set for the link to be shown (or None)
        """
        return {}

    def add_links(self, obj: Any, schema: Schema, resource: Resource) -> None:
        url_builder = self._url_builder()
        if url_builder is None:
            return
        for link_name, field_name in self.get_links(resource).items():
            link = url_builder.resource_link(resource, link_name)
            if link is None:
                continue
            if field_name is not None and resource.fields.get(field_name) is None:
                continue
            resource.links[link_name] = link

    def add_actions(self, obj: Any, schema: Schema, resource: Resource) -> None:
        if not schema.resource_actions:
            return
        url_builder = self._url_builder()
        if url_builder is None:
            return
        for name in schema.resource_actions:
            resource.actions[name] = url_builder.action_link(resource, name)

    @staticmethod
    def _url_builder():
        if not ApiContext.has_context():
            return None
        return ApiContext.get_url_builder()

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__}>"
