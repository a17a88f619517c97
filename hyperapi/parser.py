"""
Parse the api related parts of a request:
- path: {URL_PREFIX}/{version}/{type}/{id}/{link}
- query args: limit, marker, sort, order, include, action and the filter conditions
- body: json object for POST, PUT and PATCH

Requests with a path outside of the api are declined so the application can handle them.
"""
from typing import Optional
import hyperapi
from .config import get_config, get_int_config
from .errors import ValidationError
from .model import Condition, ConditionType, Pagination, Sort

# query string arguments that aren't filter conditions
RESERVED_ARGS = ("limit", "marker", "sort", "order", "include", "action", "yaml")
BODY_METHODS = ("POST", "PUT", "PATCH")
DEFAULT_PAGE_LIMIT = 100
MAX_PAGE_LIMIT = 1000


class ApiRequestParser:
    """
    :param schema_factory: used to recognize field names that look like "field_modifier"
    """

    def __init__(self, schema_factory=None) -> None:
        self.schema_factory = schema_factory

    def parse(self, api_request) -> bool:
        """
        :param api_request: ApiRequest wrapping the transport request
        :return: False if this isn't an api request
        """
        request = api_request.request
        if request is None:
            return False

        parts = self.parse_path(request.path, api_request.version)
        if parts is None:
            return False

        api_request.type, api_request.id, api_request.link = (parts + [None, None, None])[:3]
        args = request.args
        api_request.action = args.get("action") or None
        api_request.include = [inc for inc in args.get("include", "").split(",") if inc]
        api_request.pagination = self.parse_pagination(args)
        api_request.sort = self.parse_sort(args)
        api_request.conditions = self.parse_conditions(api_request.type, args)
        if api_request.method in BODY_METHODS:
            api_request.request_object = self.parse_body(request)
        hyperapi.log.debug(f"Parsed {api_request}")
        return True

    @staticmethod
    def parse_path(path: str, version: str) -> Optional[list]:
        """
        :return: the path segments after the version or None if the path isn't an api path
        """
        prefix = (get_config("URL_PREFIX") or "").strip("/")
        segments = [segment for segment in path.split("/") if segment]
        if prefix:
            prefix_segments = prefix.split("/")
            if segments[: len(prefix_segments)] != prefix_segments:
                return None
            segments = segments[len(prefix_segments) :]
        if not segments or segments[0] != version:
            return None
        return segments[1:]

    @staticmethod
    def parse_pagination(args) -> Pagination:
        default_limit = get_int_config("DEFAULT_PAGE_LIMIT", DEFAULT_PAGE_LIMIT)
        max_limit = get_int_config("MAX_PAGE_LIMIT", MAX_PAGE_LIMIT)
        try:
            limit = int(args.get("limit", default_limit))
        except ValueError:
            raise ValidationError("Pagination Value Error")
        if limit <= 0:
            limit = 1
        if limit > max_limit:
            limit = max_limit
        return Pagination(limit=limit, marker=args.get("marker") or None)

    @staticmethod
    def parse_sort(args) -> Optional[Sort]:
        name = args.get("sort")
        if not name:
            return None
        order = args.get("order", "asc").lower()
        if name.startswith("-"):
            name, order = name[1:], "desc"
        if order not in ("asc", "desc"):
            raise ValidationError(f"Invalid sort order {order}")
        return Sort(name=name, order=order)

    def parse_conditions(self, type: Optional[str], args) -> dict:
        """
        :return: field name => list of Conditions, in query string order
        """
        schema = self.schema_factory.get_schema(type) if self.schema_factory is not None and type else None
        conditions = {}
        for param, value in args.items(multi=True):
            if param in RESERVED_ARGS:
                continue
            if schema is not None and param in schema.collection_filters:
                field_name, condition_type = param, ConditionType.EQ
            else:
                field_name, condition_type = ConditionType.split_param(param)
            condition = Condition(condition_type, value if condition_type.has_value else None)
            conditions.setdefault(field_name, []).append(condition)
        return conditions

    @staticmethod
    def parse_body(request):
        if not request.get_data():
            return None
        result = request.get_json(force=True, silent=True)
        if not isinstance(result, dict):
            raise ValidationError(f"Invalid JSON Payload : {result}")
        return result
