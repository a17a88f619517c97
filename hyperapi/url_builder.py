# Hypermedia url construction for the flask transport
#
# urls have the form {host}{URL_PREFIX}/{version}/{type}/{id}/{link}
# collection urls (sort, next) are derived from the url of the current request
#
from typing import Any, Optional
from urllib.parse import quote, urlencode
from .config import get_config
from .model import Resource


class FlaskUrlBuilder:
    """
    UrlBuilder for requests handled by the flask transport.
    Every method returns None when the url can't be built
    """

    # query string arguments that are dropped when building a url for another page or sort order
    PAGE_ARGS = ("marker",)
    SORT_ARGS = ("marker", "sort", "order")

    def __init__(self, api_request, id_formatter) -> None:
        self.api_request = api_request
        self.id_formatter = id_formatter

    @property
    def base_url(self) -> Optional[str]:
        request = self.api_request.request
        if request is None:
            return None
        prefix = (get_config("URL_PREFIX") or "").rstrip("/")
        return f"{request.host_url.rstrip('/')}{prefix}/{self.api_request.version}"

    def resource_collection(self, type: str) -> Optional[str]:
        base_url = self.base_url
        if base_url is None or not type:
            return None
        return f"{base_url}/{quote(type)}"

    def resource_reference_link(self, resource: Resource) -> Optional[str]:
        collection_url = self.resource_collection(resource.type)
        if collection_url is None or resource.id is None:
            return None
        return f"{collection_url}/{quote(str(resource.id))}"

    def resource_link(self, resource: Resource, name: str) -> Optional[str]:
        reference = self.resource_reference_link(resource)
        if reference is None:
            return None
        return f"{reference}/{quote(name)}"

    def action_link(self, resource: Resource, name: str) -> Optional[str]:
        reference = self.resource_reference_link(resource)
        if reference is None:
            return None
        return f"{reference}?{urlencode({'action': name})}"

    def sort(self, field: str) -> Optional[str]:
        return self._current_url(self.SORT_ARGS, sort=field)

    def next(self, last_id: Any, type: Optional[str] = None) -> Optional[str]:
        """
        :param type: type of the listed resources, the request type by default
        """
        if last_id is None:
            return None
        marker = self.id_formatter.format_id(type or self.api_request.type, last_id)
        if marker is None:
            return None
        return self._current_url(self.PAGE_ARGS, marker=marker)

    def _current_url(self, ignore_args, **extra_args) -> Optional[str]:
        """
        :param ignore_args: query arguments of the current request that are dropped
        :param extra_args: query arguments that are appended
        :return: url of the current request with modified query arguments
        """
        request = self.api_request.request
        if request is None:
            return None
        args = [(k, v) for k, v in request.args.items(multi=True) if k not in ignore_args]
        args += list(extra_args.items())
        return f"{request.base_url}?{urlencode(args)}"


def flask_url_builder(api_request, id_formatter) -> FlaskUrlBuilder:
    return FlaskUrlBuilder(api_request, id_formatter)
