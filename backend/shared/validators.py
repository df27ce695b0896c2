"""Settings helpers for list-valued environment variables."""

from __future__ import annotations

import json
from typing import TYPE_CHECKING, Any

from pydantic_settings import EnvSettingsSource

if TYPE_CHECKING:
    from pydantic.fields import FieldInfo

_ORIGIN_LIST_FIELDS = {"cors_origins"}


def parse_origin_list(value: str | list[str]) -> list[str]:
    """Accept a list, a JSON array string, or a comma-separated string of origins.

    Raises ValueError when the result would be empty or the JSON is not an
    array of strings.
    """
    if isinstance(value, list):
        origins = value
    elif value.strip().startswith("["):
        try:
            origins = json.loads(value)
        except json.JSONDecodeError as e:
            raise ValueError(f"Invalid JSON array: {e}") from e
        if not isinstance(origins, list) or not all(isinstance(item, str) for item in origins):
            raise ValueError("JSON value must be an array of strings")
    else:
        origins = [part.strip() for part in value.split(",") if part.strip()]

    if not origins:
        raise ValueError("Origin list must not be empty")
    return origins


class OriginListEnvSettingsSource(EnvSettingsSource):
    """Hand origin-list env values to the field validator as raw strings.

    pydantic-settings would otherwise try to JSON-decode list fields and
    reject the comma-separated form.
    """

    def prepare_field_value(
        self,
        field_name: str,
        field: FieldInfo,
        value: Any,  # noqa: ANN401
        value_is_complex: bool,  # noqa: FBT001
    ) -> Any:  # noqa: ANN401
        if field_name in _ORIGIN_LIST_FIELDS and isinstance(value, str):
            return value
        return super().prepare_field_value(field_name, field, value, value_is_complex)
