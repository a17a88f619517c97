# sqla_manager.py: resource manager for flask-sqlalchemy models
#
# - criteria (request conditions and default criteria) become query filters
# - the pagination marker is the primary key of the last item of the previous page,
#   one item more than the page limit is fetched so the base manager can add a next link
# - actions are the model methods decorated with @api_action
#
# pylint: disable=redefined-builtin
#
import datetime
import inspect
import decimal
from http import HTTPStatus
from typing import Any, Dict, Iterable, Optional, Tuple
from sqlalchemy import inspect as sqla_inspect
from sqlalchemy.orm import with_parent
from sqlalchemy.orm.interfaces import MANYTOONE
import hyperapi
from .context import ApiContext
from .errors import ValidationError
from .model import ID_FIELD, RESERVED_FIELDS, Condition, ConditionType, ListOptions, Schema
from .resource_manager import AbstractBaseResourceManager
from .schema import get_api_action

BASE_MODIFIERS = (ConditionType.EQ, ConditionType.NE, ConditionType.NULL, ConditionType.NOTNULL)
ORDERED_MODIFIERS = (ConditionType.LT, ConditionType.LTE, ConditionType.GT, ConditionType.GTE)
STRING_MODIFIERS = (ConditionType.PREFIX, ConditionType.LIKE, ConditionType.NOTLIKE)
ORDERED_TYPES = (int, float, decimal.Decimal, datetime.date, datetime.datetime, datetime.time)


def _python_type(column) -> Optional[type]:
    try:
        return column.type.python_type
    except NotImplementedError:
        # custom column types don't have to implement python_type
        return None


def column_modifiers(column) -> Tuple[str, ...]:
    """
    :param column: sqlalchemy column
    :return: names of the condition modifiers that make sense for the column type
    """
    python_type = _python_type(column)
    modifiers = list(BASE_MODIFIERS)
    if python_type is not None and issubclass(python_type, ORDERED_TYPES):
        modifiers += ORDERED_MODIFIERS
    if python_type is str:
        modifiers += ORDERED_MODIFIERS + STRING_MODIFIERS
    return tuple(modifier.value for modifier in modifiers)


def schema_from_model(model, type_name: Optional[str] = None, fields: Optional[Iterable[str]] = None, filters=None, plural_name=None) -> Schema:
    """
    Create a Schema for a sqlalchemy model:
    - the fields are the mapped columns (or `fields`)
    - every column is a collection filter (or the names in `filters`)
    - @api_action decorated methods are the actions

    :param model: sqlalchemy declarative model
    :param type_name: resource type, defaults to the lowercase class name
    :return: Schema
    """
    mapper = sqla_inspect(model)
    columns = {attr.key: attr.columns[0] for attr in mapper.column_attrs}
    type_name = type_name or model.__name__.lower()
    fields = tuple(fields) if fields is not None else tuple(name for name in columns if name == ID_FIELD or name not in RESERVED_FIELDS)
    filter_names = filters if filters is not None else list(columns)
    collection_filters = {name: column_modifiers(columns[name]) for name in filter_names if name in columns}

    resource_actions = {}
    collection_actions = {}
    for klass in reversed(model.__mro__):
        for name, attr in vars(klass).items():
            if isinstance(attr, classmethod):
                action = get_api_action(attr.__func__)
                if action is not None:
                    collection_actions[name] = action
            elif inspect.isfunction(attr):
                action = get_api_action(attr)
                if action is not None:
                    resource_actions[name] = action

    return Schema(
        id=type_name,
        fields=fields,
        collection_filters=collection_filters,
        resource_actions=resource_actions,
        collection_actions=collection_actions,
        plural_name=plural_name,
    )


class SQLAlchemyResourceManager(AbstractBaseResourceManager):
    """
    Resource manager for a flask-sqlalchemy model

    :param db: flask_sqlalchemy.SQLAlchemy instance
    :param model: the model class
    """

    def __init__(self, db, model, schema_factory=None, locator=None, **kwargs) -> None:
        super().__init__(schema_factory, locator, **kwargs)
        self.db = db
        self.model = model
        mapper = sqla_inspect(model)
        self.columns = {attr.key: attr.columns[0] for attr in mapper.column_attrs}
        self.relationships = {rel.key: rel for rel in mapper.relationships}
        self.pk_name = mapper.get_property_by_column(mapper.primary_key[0]).key
        pk_name = self.pk_name
        self.id_accessor = lambda obj: getattr(obj, pk_name, None)

    @property
    def session(self):
        return self.db.session

    @property
    def schema(self) -> Optional[Schema]:
        if self.schema_factory is None:
            return None
        return self.schema_factory.get_schema(self.model)

    #
    # Querying
    #
    def _list_internal(self, type: str, criteria: Dict[Any, Any], options: ListOptions) -> Any:
        query = self.session.query(self.model)
        for key, value in criteria.items():
            query = query.filter(*self.criterion_expressions(key, value))
        return self.paginate(query, options).all()

    def paginate(self, query, options: ListOptions):
        """
        Continue after the pagination marker, sort and fetch one item more than the page limit

        :param query: query on self.model
        :return: the query
        """
        reverse = options.sort is not None and options.sort.name in (ID_FIELD, self.pk_name) and options.sort.reverse
        marker = self.get_marker(options.pagination)
        if marker is not None:
            pk = getattr(self.model, self.pk_name)
            query = query.filter(pk < marker if reverse else pk > marker)

        query = self.apply_sort(query, options)

        if options.pagination is not None and options.pagination.limit is not None:
            query = query.limit(options.pagination.limit + 1)

        return query

    def get_column(self, key: str):
        if key == ID_FIELD:
            key = self.pk_name
        column = self.columns.get(key)
        if column is None:
            raise ValidationError(f"Invalid filter {key}")
        return getattr(self.model, key)

    def criterion_expressions(self, key: str, value: Any) -> list:
        """
        :param key: field name or ID_FIELD
        :param value: list of Conditions (request conditions), or a plain value (default criteria)
        :return: list of sqlalchemy filter expressions
        """
        attr = self.get_column(key)
        if isinstance(value, Condition):
            value = [value]
        if isinstance(value, (list, tuple)) and value and all(isinstance(v, Condition) for v in value):
            return [self.condition_expression(key, attr, condition) for condition in value]
        if value is None:
            return [attr.is_(None)]
        if isinstance(value, (list, tuple, set, frozenset)):
            return [attr.in_([self.coerce(key, attr, v) for v in value])]
        return [attr == self.coerce(key, attr, value)]

    def condition_expression(self, key: str, attr, condition: Condition):
        condition_type = condition.condition_type
        schema = self.schema
        if schema is not None and key in schema.collection_filters:
            if condition_type.value not in schema.collection_filters[key]:
                raise ValidationError(f"Invalid modifier {condition_type.value} for {key}")

        if condition_type is ConditionType.NULL:
            return attr.is_(None)
        if condition_type is ConditionType.NOTNULL:
            return attr.isnot(None)
        if condition_type is ConditionType.PREFIX:
            return attr.like(f"{condition.value}%")
        if condition_type is ConditionType.LIKE:
            return attr.like(condition.value)
        if condition_type is ConditionType.NOTLIKE:
            return attr.notlike(condition.value)

        value = self.coerce(key, attr, condition.value)
        if condition_type is ConditionType.NE:
            return attr != value
        if condition_type is ConditionType.LT:
            return attr < value
        if condition_type is ConditionType.LTE:
            return attr <= value
        if condition_type is ConditionType.GT:
            return attr > value
        if condition_type is ConditionType.GTE:
            return attr >= value
        return attr == value

    def coerce(self, key: str, attr, value: Any) -> Any:
        """
        Convert query string values to the python type of the column
        """
        if key in (ID_FIELD, self.pk_name) and isinstance(value, str) and ApiContext.has_context():
            value = ApiContext.get_context().id_formatter.parse_id(value)
        if not isinstance(value, str):
            return value
        python_type = _python_type(self.columns[self.pk_name if key == ID_FIELD else key])
        if python_type in (None, str):
            return value
        try:
            if python_type is bool:
                return value.lower() in ("1", "true", "yes")
            if python_type in (int, float, decimal.Decimal):
                return python_type(value)
            if python_type is datetime.datetime:
                return datetime.datetime.fromisoformat(value)
            if python_type is datetime.date:
                return datetime.date.fromisoformat(value)
        except (ValueError, decimal.InvalidOperation):
            raise ValidationError(f"Invalid value for {key}: {value}")
        return value

    def apply_sort(self, query, options: ListOptions):
        pk = getattr(self.model, self.pk_name)
        sort = options.sort
        if sort is not None:
            name = self.pk_name if sort.name == ID_FIELD else sort.name
            if name in self.columns:
                attr = getattr(self.model, name)
                query = query.order_by(attr.desc() if sort.reverse else attr)
                if name == self.pk_name:
                    return query
            else:
                hyperapi.log.debug(f"{self.model} has no attribute {sort.name}")
        return query.order_by(pk)

    def get_collection_type(self, items, api_request) -> Optional[str]:
        if api_request.link:
            # related objects are of another type, infer it from the items
            return None
        return api_request.type

    #
    # Modification
    #
    def parse_attributes(self, data: Any) -> Dict[str, Any]:
        """
        :param data: request payload
        :return: the payload items that can be set on the model
        """
        if data is None:
            return {}
        if not isinstance(data, dict):
            raise ValidationError("Invalid payload")
        schema = self.schema
        writable = set(schema.fields) if schema is not None else set(self.columns)
        attributes = {}
        for name, value in data.items():
            if name in RESERVED_FIELDS or name == self.pk_name:
                continue
            if name not in writable or name not in self.columns:
                hyperapi.log.warning(f"Ignoring unknown attribute {self.model.__name__}.{name}")
                continue
            attributes[name] = value
        return attributes

    def _create_internal(self, type: str, api_request) -> Any:
        obj = self.model(**self.parse_attributes(api_request.request_object))
        self.session.add(obj)
        self.session.flush()
        return obj

    def _update_internal(self, type: str, id: Any, obj: Any, api_request) -> Any:
        for name, value in self.parse_attributes(api_request.request_object).items():
            setattr(obj, name, value)
        self.session.flush()
        return obj

    def _delete_internal(self, type: str, id: Any, obj: Any, api_request) -> Any:
        self.session.delete(obj)
        self.session.flush()
        return obj

    #
    # Links: the relationships of the model
    #
    def get_links(self, resource) -> Dict[str, Optional[str]]:
        links = {}
        for rel_name, relationship in self.relationships.items():
            backing_field = None
            if relationship.direction == MANYTOONE:
                local_columns = [column.key for column in relationship.local_columns]
                backing_field = next((name for name in local_columns if name in resource.fields), None)
            links[rel_name] = backing_field
        return links

    def _get_link_internal(self, type: str, id: Any, link: str, api_request) -> Any:
        if link not in self.relationships:
            return None
        obj = self.get_by_id(type, id, ListOptions())
        if obj is None:
            return None
        relationship = self.relationships[link]
        if not relationship.uselist:
            return getattr(obj, link)
        # related lists are paged like the collection of the related model
        related_manager = self.get_related_manager(relationship.mapper.class_)
        query = self.session.query(related_manager.model).filter(with_parent(obj, getattr(self.model, link)))
        return related_manager.paginate(query, ListOptions.from_request(api_request)).all()

    def get_related_manager(self, model) -> "SQLAlchemyResourceManager":
        """
        :return: the exposed manager of `model`, or a manager created for it
        """
        if self.locator is not None:
            manager = self.locator.get_resource_manager_by_type(self.locator.get_type(model))
            if isinstance(manager, SQLAlchemyResourceManager) and manager.model is model:
                return manager
        return SQLAlchemyResourceManager(self.db, model, self.schema_factory, self.locator)

    #
    # Actions
    #
    def _action_args(self, api_request) -> Dict[str, Any]:
        args = api_request.request_object or {}
        if not isinstance(args, dict):
            raise ValidationError("Invalid action arguments")
        return args

    def _resource_action_internal(self, obj: Any, api_request) -> Any:
        method = getattr(obj, api_request.action, None)
        if method is None or get_api_action(method) is None:
            raise ValidationError(f'Invalid action "{api_request.action}"', HTTPStatus.NOT_FOUND.value)
        result = method(**self._action_args(api_request))
        self.session.flush()
        return result

    def _collection_action_internal(self, objs: Any, api_request) -> Any:
        method = getattr(self.model, api_request.action, None)
        if method is None or get_api_action(method) is None:
            raise ValidationError(f'Invalid action "{api_request.action}"', HTTPStatus.NOT_FOUND.value)
        result = method(objs, **self._action_args(api_request))
        self.session.flush()
        return result

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} {self.model.__name__}>"
