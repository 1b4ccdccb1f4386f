"""Placeholder values and ``{name}`` substitution."""

from typing import Any, Protocol
from urllib.parse import quote

from shield_action.model.models import Placeholders, ShieldEvent, Token, TokenKind

__all__ = [
    "NullNameResolver",
    "TokenNameResolver",
    "apply_placeholders",
    "build_placeholders",
    "replace_placeholders",
]


class TokenNameResolver(Protocol):
    """Turns tokens into display values. Owned by the presentation layer."""

    def application_name(self, token: Token) -> str | None: ...

    def web_domain(self, token: Token) -> str | None: ...


class NullNameResolver:
    def application_name(self, token: Token) -> str | None:  # noqa: ARG002
        return None

    def web_domain(self, token: Token) -> str | None:  # noqa: ARG002
        return None


def build_placeholders(
    event: ShieldEvent,
    selection_id: str | None,
    names: TokenNameResolver | None = None,
) -> Placeholders:
    """イベントごとに一度だけプレースホルダーを組み立てる."""
    names = names or NullNameResolver()
    return {
        "action": event.button.value,
        "applicationName": names.application_name(event.token)
        if event.kind is TokenKind.APPLICATION
        else None,
        "webDomain": names.web_domain(event.token)
        if event.kind is TokenKind.WEB_DOMAIN
        else None,
        "familyActivitySelectionId": selection_id,
    }


def replace_placeholders(
    text: str, placeholders: Placeholders, *, encode: bool = False
) -> str:
    """Replace ``{key}`` with its value; ``None`` becomes an empty string.

    ``encode`` percent-encodes each value so it can sit inside a URI.
    """
    for key, value in placeholders.items():
        replacement = value or ""
        if encode:
            replacement = quote(replacement, safe="")
        text = text.replace(f"{{{key}}}", replacement)
    return text


def apply_placeholders(value: Any, placeholders: Placeholders) -> Any:
    """Recursively substitute into every string inside dicts and lists."""
    if isinstance(value, str):
        return replace_placeholders(value, placeholders)
    if isinstance(value, dict):
        return {k: apply_placeholders(v, placeholders) for k, v in value.items()}
    if isinstance(value, list):
        return [apply_placeholders(v, placeholders) for v in value]
    return value
