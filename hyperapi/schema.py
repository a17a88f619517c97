"""
In-memory schema registry

Schemas are registered by type name and, optionally, by the classes whose instances they describe.
Lookups by class walk the mro so subclasses of a registered class share its schema.
"""
from typing import Any, Dict, Iterable, List, Optional
import hyperapi
from .model import SCHEMA_TYPE, Action, Schema
from .sort_cache import SORT_LINKS

# The schema of the schemas themselves, exposed by the SchemaResourceManager
SCHEMA_SCHEMA = Schema(
    id=SCHEMA_TYPE,
    fields=("pluralName", "resourceFields", "collectionFilters", "resourceActions", "collectionActions"),
)


class SchemaFactory:
    """
    Schema registry, instances are the "schema source" used as the sort link cache key
    """

    def __init__(self, schemas: Iterable[Schema] = (), name: str = "default") -> None:
        self.name = name
        self._schemas: Dict[str, Schema] = {}
        self._classes: Dict[type, str] = {}
        self.register(SCHEMA_SCHEMA, Schema)
        for schema in schemas:
            self.register(schema)

    def register(self, schema: Schema, *classes: type) -> Schema:
        """
        :param schema: schema to register
        :param classes: classes whose instances are rendered with this schema
        :return: schema
        """
        if schema.id in self._schemas and self._schemas[schema.id] is not schema:
            hyperapi.log.warning(f"Replacing schema {schema.id}")
            SORT_LINKS.invalidate(self)
        self._schemas[schema.id] = schema
        for cls in classes:
            self._classes[cls] = schema.id
        return schema

    def get_schema(self, type_or_class: Any) -> Optional[Schema]:
        """
        :param type_or_class: type name or class
        :return: Schema or None
        """
        if type_or_class is None:
            return None
        if isinstance(type_or_class, str):
            return self._schemas.get(type_or_class)
        if isinstance(type_or_class, type):
            for cls in type_or_class.__mro__:
                type_name = self._classes.get(cls)
                if type_name is not None:
                    return self._schemas.get(type_name)
        return None

    def list_schemas(self) -> List[Schema]:
        return [self._schemas[name] for name in sorted(self._schemas)]

    def __repr__(self) -> str:
        return f"<SchemaFactory {self.name} ({len(self._schemas)} schemas)>"


def api_action(input: Optional[str] = None, output: Optional[str] = None):
    """
    Decorator to expose a method as an api action
    Instance methods become resource actions, classmethods collection actions:

        @api_action(output="user")
        def activate(self, **kwargs): ...

        @classmethod
        @api_action()
        def purge(cls, objs, **kwargs): ...

    :param input: type name of the action input
    :param output: type name of the action output
    """

    def _api_action(func):
        func.__api_action__ = Action(func.__name__, input, output)
        return func

    return _api_action


def get_api_action(func) -> Optional[Action]:
    return getattr(func, "__api_action__", None)
