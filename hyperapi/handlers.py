#  This file contains the standard request handlers, in the order they're usually chained:
#  - ResourceManagerHandler: call the resource manager operation for the request
#  - ResponseConverterHandler: render the result as a Resource or Collection
#  - TransactionHandler: commit the sqlalchemy session (rollback on errors)
#  - ResponseWriterHandler: serialize the response object (json, or yaml when requested)
#  - ExceptionHandler: turn client visible errors into an error document
#
# pylint: disable=unused-argument
#
import json
from http import HTTPStatus
from typing import Any, Dict
import yaml
import hyperapi
from .errors import NotFoundError, ValidationError, error_kind
from .json_encoder import HyperJSONEncoder
from .model import ListOptions

JSON_CONTENT_TYPE = "application/json"
YAML_CONTENT_TYPE = "text/yaml"


def wants_yaml(api_request) -> bool:
    return bool(api_request.query_args.get("yaml"))


def write_response(api_request, payload: Any) -> None:
    """
    Serialize `payload` into the response body of `api_request`
    """
    body = json.dumps(payload, cls=HyperJSONEncoder)
    if wants_yaml(api_request):
        body = yaml.safe_dump(json.loads(body), sort_keys=False)
        api_request.response_content_type = YAML_CONTENT_TYPE
    else:
        api_request.response_content_type = JSON_CONTENT_TYPE
    api_request.response_body = body.encode("utf-8")


class AbstractApiRequestHandler:
    """
    Handlers are called in order for every api request, handle_exception is called when
    any handler raised. Return True from handle_exception to mark the error as handled.
    """

    def handle(self, api_request) -> None:
        pass

    def handle_exception(self, api_request, exc: Exception) -> bool:
        return False

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__}>"


class ResourceManagerHandler(AbstractApiRequestHandler):
    """
    Dispatch the request to the resource manager of the requested type:

    GET    /{type}                  => list
    GET    /{type}/{id}             => get_by_id
    GET    /{type}/{id}/{link}      => get_link
    POST   /{type}                  => create
    POST   /{type}?action=name      => collection_action
    POST   /{type}/{id}?action=name => resource_action
    PUT    /{type}/{id}             => update (PATCH too)
    DELETE /{type}/{id}             => delete

    A missing object results in a 404
    """

    def __init__(self, locator) -> None:
        self.locator = locator

    def handle(self, api_request) -> None:
        if api_request.type is None:
            raise NotFoundError("No resource type")
        manager = self.locator.get_resource_manager(api_request)
        if manager is None:
            raise NotFoundError(f"Unknown type {api_request.type}")

        type, id, method = api_request.type, api_request.id, api_request.method

        if method in ("GET", "HEAD"):
            if api_request.action:
                raise ValidationError("Actions must be invoked with POST", HTTPStatus.METHOD_NOT_ALLOWED.value)
            if id is None:
                result = manager.list(type, api_request)
                if result is None:
                    result = []
            elif api_request.link:
                result = manager.get_link(type, id, api_request.link, api_request)
            else:
                result = manager.get_by_id(type, id, ListOptions.from_request(api_request))
        elif method == "POST":
            if api_request.action:
                self.check_action(manager, api_request)
                if id is None:
                    result = manager.collection_action(type, api_request)
                else:
                    result = manager.resource_action(type, api_request)
            elif id is not None:
                raise ValidationError("POSTing to instance is not allowed", HTTPStatus.METHOD_NOT_ALLOWED.value)
            else:
                result = manager.create(type, api_request)
                api_request.response_code = HTTPStatus.CREATED.value
        elif method in ("PUT", "PATCH"):
            self.require_id(api_request)
            result = manager.update(type, id, api_request)
        elif method == "DELETE":
            self.require_id(api_request)
            result = manager.delete(type, id, api_request)
        else:
            raise ValidationError(f"Method {method} not allowed", HTTPStatus.METHOD_NOT_ALLOWED.value)

        if result is None:
            raise NotFoundError(f"{type} {id or ''} not found")

        api_request.response_object = result

    @staticmethod
    def require_id(api_request) -> None:
        if api_request.id is None:
            raise ValidationError(f"{api_request.method} requires an id", HTTPStatus.METHOD_NOT_ALLOWED.value)

    @staticmethod
    def check_action(manager, api_request) -> None:
        """
        Only actions declared in the schema can be invoked
        """
        schema_factory = getattr(manager, "schema_factory", None)
        schema = schema_factory.get_schema(api_request.type) if schema_factory is not None else None
        if schema is None:
            return
        actions = schema.collection_actions if api_request.id is None else schema.resource_actions
        if api_request.action not in actions:
            raise NotFoundError(f"Invalid action {api_request.action}")

    def handle_exception(self, api_request, exc: Exception) -> bool:
        manager = self.locator.get_resource_manager(api_request)
        if manager is None:
            return False
        return bool(manager.handle_exception(exc, api_request))


class ResponseConverterHandler(AbstractApiRequestHandler):
    """
    Render the domain object(s) of the response as a Resource or Collection
    """

    # action results of these types are returned as they are
    PLAIN_TYPES = (dict, str, int, float, bool)

    def __init__(self, locator) -> None:
        self.locator = locator

    def handle(self, api_request) -> None:
        obj = api_request.response_object
        if obj is None or isinstance(obj, self.PLAIN_TYPES):
            return
        manager = self.locator.get_resource_manager(api_request)
        if manager is None:
            return
        api_request.response_object = manager.convert_response(obj, api_request)


class TransactionHandler(AbstractApiRequestHandler):
    """
    Commit the sqlalchemy session when all previous handlers succeeded, rollback on errors

    :param db: flask_sqlalchemy.SQLAlchemy instance
    """

    def __init__(self, db) -> None:
        self.db = db

    def handle(self, api_request) -> None:
        if api_request.method in ("GET", "HEAD"):
            return
        self.db.session.commit()

    def handle_exception(self, api_request, exc: Exception) -> bool:
        hyperapi.log.debug(f"Rolling back {api_request}")
        self.db.session.rollback()
        return False


class ResponseWriterHandler(AbstractApiRequestHandler):
    """
    Serialize the response object, json by default, yaml if the "yaml" query argument is set
    """

    def handle(self, api_request) -> None:
        if api_request.committed:
            return
        obj = api_request.response_object
        if obj is None:
            if api_request.response_code == HTTPStatus.OK.value:
                api_request.response_code = HTTPStatus.NO_CONTENT.value
            return
        write_response(api_request, obj)


class ExceptionHandler(AbstractApiRequestHandler):
    """
    Claim the errors we raised ourselves (NotFoundError, ValidationError, ...) and write them as:
    {
        "type": "error",
        "status": 404,
        "code": "NOT_FOUND",
        "message": "NotFoundError (debug logging disabled)"
    }
    Other errors are left to the pipeline
    """

    def handle_exception(self, api_request, exc: Exception) -> bool:
        kind = error_kind(exc)
        if not kind.client_visible:
            return False
        if api_request.committed:
            hyperapi.log.warning(f"Response already committed, can't report {exc}")
            return True
        status_code = getattr(exc, "status_code", HTTPStatus.INTERNAL_SERVER_ERROR.value)
        error: Dict[str, Any] = {
            "type": "error",
            "status": status_code,
            "code": kind.value,
            "message": getattr(exc, "message", str(exc)),
        }
        api_request.response_code = status_code
        write_response(api_request, error)
        return True
