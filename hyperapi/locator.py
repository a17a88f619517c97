from typing import Any, Dict, Optional
import hyperapi


class ResourceManagerLocator:
    """
    Maps classes to resource types and resource types to the resource manager responsible for them
    """

    def __init__(self) -> None:
        self._managers: Dict[str, Any] = {}
        self._types: Dict[type, str] = {}

    def register(self, type: str, manager: Any, *classes: type) -> Any:
        """
        :param type: resource type name
        :param manager: resource manager for this type
        :param classes: classes whose instances have this resource type
        :return: manager
        """
        hyperapi.log.info(f"Registering {manager} for {type}")
        self._managers[type] = manager
        for cls in classes:
            self._types[cls] = type
        if getattr(manager, "locator", None) is None:
            manager.locator = self
        return manager

    def get_type(self, cls: type) -> Optional[str]:
        if cls is None:
            return None
        for klass in getattr(cls, "__mro__", (cls,)):
            type_name = self._types.get(klass)
            if type_name is not None:
                return type_name
        return None

    def get_resource_manager_by_type(self, type: Optional[str]) -> Any:
        if type is None:
            return None
        return self._managers.get(type)

    def get_resource_manager(self, api_request) -> Any:
        return self.get_resource_manager_by_type(api_request.type)
