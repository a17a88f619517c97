# flake8: noqa: F401
#
# The logger and the HyperAPI class are imported first:
# the other modules access hyperapi.log and hyperapi.HyperAPI at runtime
#
from .api_init import log, HyperAPI
from .errors import ErrorKind, ApiError, ValidationError, GenericError, UnAuthorizedError, NotFoundError, error_kind
from .model import (
    ID_FIELD,
    Action,
    Collection,
    Condition,
    ConditionType,
    ListOptions,
    Pagination,
    Resource,
    Schema,
    Sort,
    WrappedResource,
)
from .context import ApiContext, api_context
from .request import ApiRequest
from .id_formatter import DefaultIdFormatter, TypedIdFormatter
from .schema import SchemaFactory, api_action
from .locator import ResourceManagerLocator
from .sort_cache import SORT_LINKS, SortLinkCache
from .resource_manager import AbstractBaseResourceManager
from .schema_manager import SchemaResourceManager
from .sqla_manager import SQLAlchemyResourceManager, schema_from_model
from .parser import ApiRequestParser
from .pipeline import ApiRequestPipeline
from .handlers import (
    AbstractApiRequestHandler,
    ResourceManagerHandler,
    ResponseConverterHandler,
    TransactionHandler,
    ResponseWriterHandler,
    ExceptionHandler,
)
from .url_builder import FlaskUrlBuilder
from .json_encoder import HyperJSONEncoder, HyperJSONProvider
from .__about__ import __version__, __description__

__all__ = (
    "__version__",
    "__description__",
    #
    "HyperAPI",
    "log",
    # model:
    "ID_FIELD",
    "Action",
    "Collection",
    "Condition",
    "ConditionType",
    "ListOptions",
    "Pagination",
    "Resource",
    "Schema",
    "Sort",
    "WrappedResource",
    # request processing:
    "ApiContext",
    "api_context",
    "ApiRequest",
    "ApiRequestParser",
    "ApiRequestPipeline",
    "AbstractApiRequestHandler",
    "ResourceManagerHandler",
    "ResponseConverterHandler",
    "TransactionHandler",
    "ResponseWriterHandler",
    "ExceptionHandler",
    "FlaskUrlBuilder",
    "DefaultIdFormatter",
    "TypedIdFormatter",
    # resources:
    "SchemaFactory",
    "api_action",
    "ResourceManagerLocator",
    "SORT_LINKS",
    "SortLinkCache",
    "AbstractBaseResourceManager",
    "SchemaResourceManager",
    "SQLAlchemyResourceManager",
    "schema_from_model",
    # json:
    "HyperJSONEncoder",
    "HyperJSONProvider",
    # Errors:
    "ErrorKind",
    "ApiError",
    "ValidationError",
    "GenericError",
    "UnAuthorizedError",
    "NotFoundError",
    "error_kind",
)
