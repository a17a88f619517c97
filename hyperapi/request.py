"""
The ApiRequest holds the state of a single api request while it travels through the handler chain:
- what was requested: type, id, link, action, conditions, pagination, sort, include and the payload
- what will be returned: response object, status code, headers and the serialized body

The transport request and response are werkzeug (flask) objects,
the response is only written to when the request is committed.
"""
from http import HTTPStatus
from typing import Any, Dict, List, Optional
from werkzeug.wrappers import Request, Response
from .model import Condition, Pagination, Sort


class ApiRequest:
    """
    Request state for the handler chain
    """

    def __init__(self, version: str, request: Optional[Request] = None, response: Optional[Response] = None) -> None:
        self.version = version
        self.request = request
        self.response = response
        self.method = request.method.upper() if request is not None else "GET"
        self.type: Optional[str] = None
        self.id: Optional[str] = None
        self.link: Optional[str] = None
        self.action: Optional[str] = None
        self.conditions: Dict[str, List[Condition]] = {}
        self.pagination: Optional[Pagination] = None
        self.sort: Optional[Sort] = None
        self.include: List[str] = []
        self.request_object: Any = None
        self.response_object: Any = None
        self.response_code: int = HTTPStatus.OK.value
        self.response_content_type: Optional[str] = None
        self.response_headers: Dict[str, str] = {}
        self.response_body: Optional[bytes] = None
        self._committed = False

    @property
    def query_args(self):
        if self.request is None:
            return {}
        return self.request.args

    @property
    def committed(self) -> bool:
        return self._committed

    def set_header(self, name: str, value: str) -> None:
        self.response_headers[name] = value

    def commit(self) -> None:
        """
        Write the response state to the transport response.
        Only the first call has an effect, later calls are ignored.
        """
        if self._committed:
            return
        self._committed = True
        if self.response is None:
            return
        self.response.status_code = int(self.response_code)
        for name, value in self.response_headers.items():
            self.response.headers[name] = value
        if self.response_content_type:
            self.response.content_type = self.response_content_type
        if self.response_body is not None:
            self.response.set_data(self.response_body)

    def __repr__(self) -> str:
        return f"<ApiRequest {self.method} {self.version}/{self.type}/{self.id or ''} action={self.action}>"
