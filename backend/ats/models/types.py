import json
from typing import Any

from sqlalchemy import Text
from sqlalchemy.types import TypeDecorator


class JSONList(TypeDecorator):
    """List persisted as a JSON string in a TEXT column.

    Mutating the list in place is not tracked; assign a new list instead.
    """

    impl = Text
    cache_ok = True

    def process_bind_param(self, value: Any, dialect) -> str:  # noqa: ANN001
        return json.dumps(list(value or []))

    def process_result_value(self, value: Any, dialect) -> list:  # noqa: ANN001
        if not value:
            return []
        try:
            parsed = json.loads(value)
        except (TypeError, ValueError):
            return []
        return parsed if isinstance(parsed, list) else []


class JSONDict(TypeDecorator):
    """Opaque string-keyed map persisted as a JSON object in a TEXT column."""

    impl = Text
    cache_ok = True

    def process_bind_param(self, value: Any, dialect) -> str:  # noqa: ANN001
        return json.dumps({str(k): v for k, v in (value or {}).items()})

    def process_result_value(self, value: Any, dialect) -> dict[str, Any]:  # noqa: ANN001
        if not value:
            return {}
        try:
            parsed = json.loads(value)
        except (TypeError, ValueError):
            return {}
        return parsed if isinstance(parsed, dict) else {}
