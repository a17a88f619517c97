from typing import Any, Optional, Protocol

from .model import Resource, Schema


class SchemaSource(Protocol):
    def get_schema(self, type_or_class: Any) -> Optional[Schema]:
        ...


class IdFormatter(Protocol):
    def format_id(self, type: str, id: Any) -> Optional[str]:
        ...

    def parse_id(self, id: Optional[str]) -> Any:
        ...


class UrlBuilder(Protocol):
    """
    All methods return None when no url can be built, the caller omits the link
    """

    def resource_reference_link(self, resource: Resource) -> Optional[str]:
        ...

    def resource_link(self, resource: Resource, name: str) -> Optional[str]:
        ...

    def action_link(self, resource: Resource, name: str) -> Optional[str]:
        ...

    def sort(self, field: str) -> Optional[str]:
        ...

    def next(self, last_id: Any, type: Optional[str] = None) -> Optional[str]:
        ...

    def resource_collection(self, type: str) -> Optional[str]:
        ...


class Locator(Protocol):
    def get_type(self, cls: type) -> Optional[str]:
        ...

    def get_resource_manager_by_type(self, type: Optional[str]) -> Any:
        ...


class RequestParser(Protocol):
    def parse(self, api_request: Any) -> bool:
        ...


class RequestHandler(Protocol):
    def handle(self, api_request: Any) -> None:
        ...

    def handle_exception(self, api_request: Any, exc: Exception) -> bool:
        ...
