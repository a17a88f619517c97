from typing import Any, Optional


class DefaultIdFormatter:
    """
    Plain id formatting: ids are rendered with str() and parsed back as strings.
    Subclasses may implement obfuscated ids, the resource manager only relies on
    parse_id returning something int() understands for numeric ids.
    """

    def format_id(self, type: str, id: Any) -> Optional[str]:
        if id is None:
            return None
        return str(id)

    def parse_id(self, id: Optional[str]) -> Any:
        if id is None:
            return None
        id = str(id).strip()
        return id or None


class TypedIdFormatter(DefaultIdFormatter):
    """
    Prefix ids with a short type marker, eg. "1u42" for user 42.
    Ids with a wrong or missing prefix don't parse.
    """

    def __init__(self, prefixes: Optional[dict] = None) -> None:
        self.prefixes = dict(prefixes or {})

    def _prefix(self, type: str) -> str:
        return self.prefixes.get(type) or "1" + type[:1].lower()

    def format_id(self, type: str, id: Any) -> Optional[str]:
        if id is None:
            return None
        return f"{self._prefix(type)}{id}"

    def parse_id(self, id: Optional[str]) -> Any:
        id = super().parse_id(id)
        if id is None or len(id) < 3 or not id[0].isdigit() or not id[1].isalpha():
            return None
        return id[2:] or None
