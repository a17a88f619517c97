# -*- coding: utf-8 -*-

"""Per-request api context.

The context is established by the request pipeline before the request is parsed
and removed when the request is committed. It is stored in a ContextVar so
every worker thread (or task) only sees the context of its own request.
"""

from __future__ import annotations

from contextlib import contextmanager
from contextvars import ContextVar, Token
from typing import Any, Iterator, Optional

from .id_formatter import DefaultIdFormatter


class ApiContext:
    """
    Holds the collaborators of the request that is being processed
    """

    def __init__(self) -> None:
        self.api_request: Any = None
        self.schema_factory: Any = None
        self.id_formatter: Any = DefaultIdFormatter()
        self.url_builder: Any = None
        self._token: Optional[Token] = None

    @classmethod
    def new_context(cls) -> "ApiContext":
        """Create a context and make it the current one."""
        context = cls()
        context._token = _CONTEXT.set(context)
        return context

    @classmethod
    def get_context(cls) -> "ApiContext":
        context = _CONTEXT.get()
        if context is None:
            raise RuntimeError("Working outside of api context")
        return context

    @classmethod
    def has_context(cls) -> bool:
        return _CONTEXT.get() is not None

    @classmethod
    def get_url_builder(cls) -> Any:
        return cls.get_context().url_builder

    @classmethod
    def remove(cls) -> None:
        """Remove the current context, the previous one (if any) becomes current again."""
        context = _CONTEXT.get()
        if context is None:
            return
        token, context._token = context._token, None
        if token is None:
            _CONTEXT.set(None)
            return
        try:
            _CONTEXT.reset(token)
        except ValueError:
            # token was created in another contextvars.Context
            _CONTEXT.set(None)


_CONTEXT: ContextVar[Optional[ApiContext]] = ContextVar("hyperapi_context", default=None)


@contextmanager
def api_context(api_request=None, schema_factory=None, id_formatter=None, url_builder=None) -> Iterator[ApiContext]:
    """Establish a context for the duration of the with block, eg. for background jobs and tests."""
    context = ApiContext.new_context()
    try:
        context.api_request = api_request
        context.schema_factory = schema_factory
        if id_formatter is not None:
            context.id_formatter = id_formatter
        context.url_builder = url_builder
        yield context
    finally:
        ApiContext.remove()
