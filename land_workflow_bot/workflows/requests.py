"""Utilities for reading Slack modal state into form models."""

from __future__ import annotations

from typing import Any, Dict, Mapping, Type, TypeVar
from urllib.parse import urlparse

from .models import FormModel

F = TypeVar("F", bound=FormModel)


def _control_value(control: Mapping[str, Any]) -> str | None:
    value = control.get("value")
    if isinstance(value, str):
        return value
    selected = control.get("selected_option")
    if isinstance(selected, dict):
        selected_value = selected.get("value")
        if isinstance(selected_value, str):
            return selected_value
    return None


def extract_view_values(view: Mapping[str, Any]) -> Dict[str, str | None]:
    """Flatten ``view.state.values`` into ``{action_id: value}``.

    Text inputs carry ``value``; static selects carry ``selected_option``.
    """

    values = (view.get("state") or {}).get("values") or {}
    flattened: Dict[str, str | None] = {}
    for block_id, block in values.items():
        if not isinstance(block, dict):
            continue
        for action_id, control in block.items():
            if not isinstance(control, dict):
                continue
            value = _control_value(control)
            flattened[action_id] = value
            # modals built here use the same id for block and action
            flattened.setdefault(block_id, value)
    return flattened


def parse_form(view: Mapping[str, Any], form_type: Type[F]) -> F:
    values = extract_view_values(view)
    known = {name: values.get(name) for name in form_type.model_fields}
    return form_type.model_validate(known)


def is_valid_http_url(url: str | None) -> bool:
    if not url:
        return False
    parsed = urlparse(url)
    return parsed.scheme in ("http", "https") and bool(parsed.netloc)
