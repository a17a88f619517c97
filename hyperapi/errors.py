# Exception Handlers
#
# The application loglevel determines the level of detail shown to the user.
# If set to debug, too much sensitive info might be shown !
#
# Client visible exceptions are caught by the ExceptionHandler and formatted, for example:
# {
#      "type": "error",
#      "status": 403,
#      "code": "UNAUTHORIZED",
#      "message": "Authorization Error: "
# }
#
import traceback
from enum import Enum
from http import HTTPStatus
from flask import has_request_context, request
from sqlalchemy.exc import DontWrapMixin
import hyperapi
from .config import is_debug

HIDDEN_LOG = "(debug logging disabled)"


class ErrorKind(Enum):
    """
    Classification of the errors raised while processing an api request,
    the pipeline and the ExceptionHandler only look at the kind
    """

    NOT_FOUND = "NOT_FOUND"
    VALIDATION = "VALIDATION"
    UNAUTHORIZED = "UNAUTHORIZED"
    GENERIC = "GENERIC"
    INTERNAL = "INTERNAL"

    @property
    def client_visible(self) -> bool:
        return self is not ErrorKind.INTERNAL


class ApiError(Exception, DontWrapMixin):
    kind = ErrorKind.GENERIC
    status_code = HTTPStatus.INTERNAL_SERVER_ERROR.value
    message = ""


class NotFoundError(ApiError):
    """
    This exception is raised when an item was not found
    """

    kind = ErrorKind.NOT_FOUND
    status_code = HTTPStatus.NOT_FOUND.value
    message = "NotFoundError "

    def __init__(self, message="", status_code=HTTPStatus.NOT_FOUND.value):
        """
        :param message: Message to be returned in the (json) body
        :param status_code: HTTP Status code
        """
        ApiError.__init__(self, message)
        self.status_code = status_code
        hyperapi.log.info("Not found: %s", message)
        if is_debug():
            self.message += message
        else:
            self.message += HIDDEN_LOG


class UnAuthorizedError(ApiError):
    """
    This exception is raised when an authorization error occured
    we use FORBIDDEN(403) instead of UNAUTHORIZED(401)
    """

    kind = ErrorKind.UNAUTHORIZED
    status_code = HTTPStatus.FORBIDDEN.value
    message = "Authorization Error: "

    def __init__(self, message="", status_code=HTTPStatus.FORBIDDEN.value):
        ApiError.__init__(self, message)
        self.status_code = status_code
        hyperapi.log.error("UnAuthorizedError: %s", message)
        if is_debug():
            self.message += message
        else:
            self.message += HIDDEN_LOG


class GenericError(ApiError):
    """
    This exception is raised when an error has been detected
    """

    kind = ErrorKind.GENERIC
    status_code = HTTPStatus.INTERNAL_SERVER_ERROR.value
    message = "Generic Error: "

    def __init__(self, message, status_code=HTTPStatus.INTERNAL_SERVER_ERROR.value):
        ApiError.__init__(self, message)
        self.status_code = status_code
        hyperapi.log.error("Generic Error: %s", message)
        if is_debug():
            if has_request_context():
                hyperapi.log.info(f"Error in {request.url}")
            hyperapi.log.debug(traceback.format_exc(120))
            self.message += str(message)
        else:
            self.message += HIDDEN_LOG


class ValidationError(ApiError):
    """
    This exception is raised when invalid input has been detected (client side input)
    Always send back the message to the client in the response
    """

    kind = ErrorKind.VALIDATION
    status_code = HTTPStatus.BAD_REQUEST.value
    message = "Validation Error: "

    def __init__(self, message="", status_code=HTTPStatus.BAD_REQUEST.value):
        ApiError.__init__(self, message)
        self.status_code = status_code
        hyperapi.log.warning("ValidationError: %s", message)
        self.message += message


def error_kind(exc: BaseException) -> ErrorKind:
    """
    :param exc: exception raised while processing a request
    :return: the ErrorKind of the exception, INTERNAL for anything we didn't raise ourselves
    """
    kind = getattr(exc, "kind", None)
    if isinstance(kind, ErrorKind):
        return kind
    return ErrorKind.INTERNAL
