from http import HTTPStatus
from typing import Any, Dict
from .errors import ValidationError
from .model import ID_FIELD, ListOptions, Resource, Schema
from .resource_manager import AbstractBaseResourceManager


class SchemaResourceManager(AbstractBaseResourceManager):
    """
    Exposes the registered schemas as read-only "schema" resources,
    the X-API-Schemas response header points to this collection
    """

    id_accessor = staticmethod(lambda schema: schema.id)

    def _list_internal(self, type: str, criteria: Dict[Any, Any], options: ListOptions) -> Any:
        schemas = self.schema_factory.list_schemas() if self.schema_factory is not None else []
        schema_id = criteria.get(ID_FIELD)
        if schema_id is not None:
            return [schema for schema in schemas if schema.id == schema_id]
        return schemas

    def _read_only(self, *args, **kwargs):
        raise ValidationError("Schemas are read-only", HTTPStatus.METHOD_NOT_ALLOWED.value)

    _create_internal = _read_only
    _update_internal = _read_only
    _delete_internal = _read_only
    _resource_action_internal = _read_only
    _collection_action_internal = _read_only

    def _get_link_internal(self, type: str, id: Any, link: str, api_request) -> Any:
        return None

    def construct_resource(self, id_formatter, schema: Schema, obj: Any) -> Resource:
        fields = obj.to_dict()
        fields.pop(ID_FIELD, None)
        resource = Resource(schema.id, obj.id, fields)
        url_builder = self._url_builder()
        if url_builder is not None:
            self_link = url_builder.resource_reference_link(resource)
            if self_link is not None:
                resource.links["self"] = self_link
            collection_link = url_builder.resource_collection(obj.id)
            if collection_link is not None:
                resource.links["collection"] = collection_link
        return resource
