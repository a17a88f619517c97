import logging
import os
import sys
from flask import Flask, request
import flask.app
from .handlers import ExceptionHandler, ResourceManagerHandler, ResponseConverterHandler, ResponseWriterHandler, TransactionHandler
from .id_formatter import DefaultIdFormatter
from .json_encoder import HyperJSONProvider
from .locator import ResourceManagerLocator
from .model import SCHEMA_TYPE, Schema
from .parser import ApiRequestParser
from .pipeline import ApiRequestPipeline
from .schema import SchemaFactory
from .schema_manager import SchemaResourceManager
from .sqla_manager import SQLAlchemyResourceManager, schema_from_model
from typing import Any, List, Optional


class HyperAPI:
    """This class configures the Flask application to serve api requests through the request pipeline
    :param app: a Flask application.
    :param schema_factory: schema registry, a new SchemaFactory by default
    :param locator: resource manager locator, a new ResourceManagerLocator by default
    :param app_db: flask_sqlalchemy.SQLAlchemy instance, taken from the app extensions when omitted
    :param LOGLEVEL: loglevel configuration variable, values from logging module (0: trace, .. 50: critical)
    """

    # Configuration settings are stored as class variables, app.config takes precedence
    API_VERSION = "v1"
    URL_PREFIX = ""
    THROW_ERRORS = False
    DEFAULT_PAGE_LIMIT = 100
    MAX_PAGE_LIMIT = 1000
    SCHEMAS_HEADER = "X-API-Schemas"
    LOGLEVEL = logging.WARNING

    def __init__(self, app: Optional[flask.app.Flask] = None, *args, **kwargs) -> None:
        """
        Constructor
        """
        self.app = app
        self.db = None
        self.schema_factory = None
        self.locator = None
        self.pipeline = None
        if app is not None:
            self.init_app(app, *args, **kwargs)

    def init_app(
        self,
        app: flask.app.Flask,
        schema_factory: Optional[SchemaFactory] = None,
        locator: Optional[ResourceManagerLocator] = None,
        app_db: Any = None,
        id_formatter: Any = None,
        handlers: Optional[List[Any]] = None,
        **kwargs,
    ) -> None:
        """
        API and application initialization
        :param handlers: replaces the default handler chain
        :param kwargs: configuration settings, eg. API_VERSION="v2"
        """
        if not isinstance(app, Flask):  # pragma: no cover
            raise TypeError("'app' should be Flask.")

        self.app = app
        if app_db is None:
            app_db = app.extensions.get("sqlalchemy")
        self.db = app_db

        for conf_name, conf_val in kwargs.items():
            app.config[conf_name] = conf_val

        if app.config.get("DEBUG", False):
            log.setLevel(logging.DEBUG)

        app.json = HyperJSONProvider(app)

        self.schema_factory = schema_factory if schema_factory is not None else SchemaFactory()
        self.locator = locator if locator is not None else ResourceManagerLocator()
        self.expose(SchemaResourceManager(self.schema_factory, self.locator), SCHEMA_TYPE, Schema)

        if handlers is None:
            handlers = self.default_handlers()

        with app.app_context():
            self.pipeline = ApiRequestPipeline(
                ApiRequestParser(self.schema_factory),
                handlers,
                schema_factory=self.schema_factory,
                id_formatter=id_formatter if id_formatter is not None else DefaultIdFormatter(),
            )

        # pylint: disable=unused-variable
        @app.before_request
        def process_api_request():
            # None lets flask dispatch requests outside of the api
            return self.pipeline.process(request._get_current_object(), app.response_class(), lambda req, resp: None)

        if self.db is not None:

            # pylint: disable=unused-argument,unused-variable
            @app.teardown_appcontext
            def shutdown_session(exception=None):
                """cfr. https://flask.palletsprojects.com/en/latest/patterns/sqlalchemy/"""
                self.db.session.remove()

    def default_handlers(self) -> List[Any]:
        handlers = [ResourceManagerHandler(self.locator), ResponseConverterHandler(self.locator)]
        if self.db is not None:
            handlers.append(TransactionHandler(self.db))
        handlers += [ResponseWriterHandler(), ExceptionHandler()]
        return handlers

    def expose(self, manager: Any, type: str, *classes: type) -> Any:
        """
        Serve `type` resources with `manager`
        :param classes: classes whose instances are of this type
        :return: manager
        """
        self.locator.register(type, manager, *classes)
        if manager.schema_factory is None:
            manager.schema_factory = self.schema_factory
        return manager

    def expose_model(self, model: type, type_name: Optional[str] = None, **kwargs) -> SQLAlchemyResourceManager:
        """
        Serve a sqlalchemy model, the schema is derived from the model columns and actions
        :param model: sqlalchemy declarative model
        :param kwargs: passed to schema_from_model (fields, filters, plural_name)
        :return: the SQLAlchemyResourceManager for the model
        """
        if self.db is None:  # pragma: no cover
            raise RuntimeError("No database configured")
        schema = self.schema_factory.register(schema_from_model(model, type_name, **kwargs), model)
        manager = SQLAlchemyResourceManager(self.db, model, self.schema_factory, self.locator)
        manager.add_resource_to_create_response(model)
        return self.expose(manager, schema.id, model)

    @staticmethod
    def init_logging(loglevel: int = logging.WARNING) -> logging.Logger:
        """
        Specify the log format used in the webserver logs
        The webserver will catch stderr so we redirect eveything to sys.stderr
        """
        log = logging.getLogger("hyperapi")
        if log.level == logging.NOTSET:
            handler = logging.StreamHandler(sys.stderr)
            formatter = logging.Formatter("[%(asctime)s] %(levelname)s: %(message)s")
            handler.setFormatter(formatter)
            log.setLevel(loglevel)
            log.addHandler(handler)
        return log


#
# logging initialization
#
try:
    DEBUG = os.getenv("DEBUG", logging.WARNING)
    LOGLEVEL = int(DEBUG)
except ValueError:  # pragma: no cover
    print(f'Invalid LogLevel in DEBUG Environment Variable! "{DEBUG}"')
    LOGLEVEL = logging.INFO

log = HyperAPI.init_logging(LOGLEVEL)
