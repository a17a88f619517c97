# hyperapi to json encoding

import datetime
import decimal
import json
from enum import Enum
from uuid import UUID
from flask.json.provider import DefaultJSONProvider
import hyperapi
from .config import is_debug
from .model import Action, Collection, Condition, Pagination, Resource, Schema, Sort


class _HyperJSONEncoder:
    """
    JSON encoding for the api representations (Resource, Collection, ...) and common types
    """

    # pylint: disable=too-many-return-statements,arguments-differ,method-hidden
    def default(self, obj, **kwargs):
        """
        override the default json encoding
        :param obj: object to be encoded
        :return: encoded/serialized object
        """
        if obj is None:
            return None
        if isinstance(obj, (Resource, Collection, Schema, Condition, Pagination, Sort)):
            return obj.to_dict()
        if isinstance(obj, Action):
            return {"name": obj.name, "input": obj.input, "output": obj.output}
        if isinstance(obj, datetime.timedelta):
            return str(obj)
        if isinstance(obj, datetime.datetime):
            return obj.isoformat(" ")
        if isinstance(obj, (datetime.date, datetime.time)):
            return obj.isoformat()
        if isinstance(obj, (set, frozenset, tuple)):
            return list(obj)
        if isinstance(obj, Enum):
            return obj.value
        if isinstance(obj, UUID):  # pragma: no cover
            return str(obj)
        if isinstance(obj, decimal.Decimal):  # pragma: no cover
            return float(obj)
        if isinstance(obj, bytes):  # pragma: no cover
            if obj == b"":
                return ""
            hyperapi.log.debug("HyperJSONEncoder: serializing bytes obj")
            return obj.hex()

        # We shouldn't get here in a normal setup
        if not is_debug():  # pragma: no cover
            hyperapi.log.warning(f'JSON Encoding Error: Unknown object type "{type(obj)}" for {obj}')
            return {"error": "HyperJSONEncoder invalid object"}

        return self.ghetto_encode(obj)

    @staticmethod
    def ghetto_encode(obj):  # pragma: no cover
        """
        if everything else failed, try to encode the public obj attributes
        i.e. those attributes without a _ prefix
        :param obj: object to be encoded
        :return: encoded/serialized object
        """
        try:
            result = {}
            for k, v in vars(obj).items():
                if not k.startswith("_"):
                    if isinstance(v, (int, float)) or v is None:
                        result[k] = v
                    else:
                        result[k] = str(v)
        except TypeError:
            result = str(obj)
        return result


class HyperJSONProvider(_HyperJSONEncoder, DefaultJSONProvider):
    """
    Flask JSON encoding
    """

    pass


class HyperJSONEncoder(_HyperJSONEncoder, json.JSONEncoder):
    """
    Common JSON encoding
    """

    pass
