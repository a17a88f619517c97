# The request pipeline, invoked for every request the transport receives:
#
# 1. wrap the transport request and establish the api context
# 2. parse the request, non-api requests are passed on to `chain`
# 3. run the handlers in order
# 4. on error: offer the error to every handler, unclaimed errors result in a 500
#    (or are re-raised when THROW_ERRORS is configured)
# 5. always: commit the response and remove the context
#
from typing import Any, Callable, List, Optional
import hyperapi
from .config import get_bool_config, get_config
from .context import ApiContext
from .id_formatter import DefaultIdFormatter
from .interfaces import IdFormatter, RequestHandler, RequestParser, SchemaSource
from .model import SCHEMA_TYPE
from .request import ApiRequest
from .url_builder import flask_url_builder

SCHEMAS_HEADER = "X-API-Schemas"


class ApiRequestPipeline:
    """
    :param parser: fills in the ApiRequest, returns False for non-api requests
    :param handlers: handlers, invoked in order
    :param schema_factory: schema source bound to the api context
    :param id_formatter: IdFormatter bound to the api context
    :param url_builder_factory: callable(api_request, id_formatter) returning the UrlBuilder
    :param throw_errors: re-raise unhandled errors instead of returning a 500
    :param version: api version, the first path segment of api urls
    """

    def __init__(
        self,
        parser: RequestParser,
        handlers: List[RequestHandler],
        schema_factory: Optional[SchemaSource] = None,
        id_formatter: Optional[IdFormatter] = None,
        url_builder_factory: Optional[Callable] = None,
        throw_errors: Optional[bool] = None,
        version: Optional[str] = None,
    ) -> None:
        self.parser = parser
        self.handlers = list(handlers)
        self.schema_factory = schema_factory
        self.id_formatter = id_formatter if id_formatter is not None else DefaultIdFormatter()
        self.url_builder_factory = url_builder_factory if url_builder_factory is not None else flask_url_builder
        self.throw_errors = get_bool_config("THROW_ERRORS") if throw_errors is None else throw_errors
        self.version = version or get_config("API_VERSION") or "v1"

    def process(self, request, response, chain: Callable) -> Any:
        """
        :param request: transport request
        :param response: transport response, written when the request is committed
        :param chain: called with (request, response) for requests that aren't api requests
        :return: the response, or the result of `chain`
        """
        api_request = ApiRequest(self.version, request, response)
        declined = False

        try:
            context = ApiContext.new_context()
            context.api_request = api_request
            context.schema_factory = self.schema_factory
            context.id_formatter = self.id_formatter
            context.url_builder = self.url_builder_factory(api_request, self.id_formatter)

            if not self.parser.parse(api_request):
                declined = True
                return chain(request, response)

            schema_url = context.url_builder.resource_collection(SCHEMA_TYPE) if context.url_builder else None
            if schema_url is not None:
                api_request.set_header(get_config("SCHEMAS_HEADER") or SCHEMAS_HEADER, schema_url)

            for handler in self.handlers:
                handler.handle(api_request)

        except Exception as exc:
            if declined:
                raise
            handled = False
            for handler in self.handlers:
                handled |= bool(handler.handle_exception(api_request, exc))
            if not handled:
                hyperapi.log.exception(f"Unhandled exception in API for request [{api_request}]: {exc}")
                if self.throw_errors:
                    raise
                if not api_request.committed:
                    api_request.response_code = 500
        finally:
            try:
                if not declined:
                    api_request.commit()
            finally:
                ApiContext.remove()

        return response
