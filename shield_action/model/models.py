__all__ = [
    "Behavior",
    "BlockState",
    "ButtonConfig",
    "ButtonPressed",
    "EffectiveBlockPolicy",
    "EngineResponse",
    "Placeholders",
    "Selection",
    "ShieldEvent",
    "Token",
    "TokenKind",
]


from dataclasses import dataclass, field
from enum import Enum
from typing import Any, NewType

from shield_action.errors import ActionMalformedError

# 外部システムが発行する不透明な識別子。比較とハッシュのみ行う
Token = NewType("Token", str)

Placeholders = dict[str, str | None]

MS_PER_SECOND = 1000


class TokenKind(Enum):
    """Kind of blocked entity a token identifies."""

    APPLICATION = "application"
    WEB_DOMAIN = "webDomain"
    CATEGORY = "category"


class ButtonPressed(Enum):
    """Button on the shield screen."""

    PRIMARY = "primary"
    SECONDARY = "secondary"


class Behavior(Enum):
    """What the host does with the shield after the response."""

    CLOSE = "close"
    DEFER = "defer"

    @classmethod
    def parse(cls, value: object) -> "Behavior":
        """未知の値や欠損は close として扱う."""
        if value == cls.DEFER.value:
            return cls.DEFER
        return cls.CLOSE


_KIND_FIELDS = {
    TokenKind.APPLICATION: "applicationTokens",
    TokenKind.WEB_DOMAIN: "webDomainTokens",
    TokenKind.CATEGORY: "categoryTokens",
}


@dataclass(frozen=True)
class Selection:
    """Named group of application, category and web domain tokens."""

    id: str
    application_tokens: frozenset[Token] = frozenset()
    category_tokens: frozenset[Token] = frozenset()
    web_domain_tokens: frozenset[Token] = frozenset()

    def tokens_for(self, kind: TokenKind) -> frozenset[Token]:
        if kind is TokenKind.APPLICATION:
            return self.application_tokens
        if kind is TokenKind.WEB_DOMAIN:
            return self.web_domain_tokens
        return self.category_tokens

    def contains(self, token: Token, kind: TokenKind) -> bool:
        return token in self.tokens_for(kind)

    @property
    def total_tokens(self) -> int:
        return (
            len(self.application_tokens)
            + len(self.category_tokens)
            + len(self.web_domain_tokens)
        )

    @property
    def is_empty(self) -> bool:
        return self.total_tokens == 0

    def with_token(self, token: Token, kind: TokenKind) -> "Selection":
        """Return a copy with ``token`` added to the set for ``kind``."""
        return self.union(Selection.of(self.id, **{_KIND_FIELDS[kind]: [token]}))

    def union(self, other: "Selection") -> "Selection":
        return Selection(
            id=self.id,
            application_tokens=self.application_tokens | other.application_tokens,
            category_tokens=self.category_tokens | other.category_tokens,
            web_domain_tokens=self.web_domain_tokens | other.web_domain_tokens,
        )

    def subtract(self, other: "Selection") -> "Selection":
        return Selection(
            id=self.id,
            application_tokens=self.application_tokens - other.application_tokens,
            category_tokens=self.category_tokens - other.category_tokens,
            web_domain_tokens=self.web_domain_tokens - other.web_domain_tokens,
        )

    def intersects(self, other: "Selection") -> bool:
        return bool(
            self.application_tokens & other.application_tokens
            or self.category_tokens & other.category_tokens
            or self.web_domain_tokens & other.web_domain_tokens
        )

    @classmethod
    def of(
        cls,
        selection_id: str,
        applicationTokens: Any = (),  # noqa: N803
        categoryTokens: Any = (),  # noqa: N803
        webDomainTokens: Any = (),  # noqa: N803
    ) -> "Selection":
        return cls(
            id=selection_id,
            application_tokens=frozenset(Token(t) for t in applicationTokens),
            category_tokens=frozenset(Token(t) for t in categoryTokens),
            web_domain_tokens=frozenset(Token(t) for t in webDomainTokens),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "applicationTokens": sorted(self.application_tokens),
            "categoryTokens": sorted(self.category_tokens),
            "webDomainTokens": sorted(self.web_domain_tokens),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Selection":
        """ストアに保存された辞書から復元する."""
        selection_id = data.get("id")
        if not isinstance(selection_id, str) or not selection_id:
            msg = f"selection record without id: {data!r}"
            raise ValueError(msg)
        return cls.of(
            selection_id,
            applicationTokens=data.get("applicationTokens") or (),
            categoryTokens=data.get("categoryTokens") or (),
            webDomainTokens=data.get("webDomainTokens") or (),
        )


@dataclass(frozen=True)
class ShieldEvent:
    """One button press delivered by the host."""

    button: ButtonPressed
    token: Token
    kind: TokenKind


@dataclass
class ButtonConfig:
    """Configuration for one shield button.

    ``actions`` is kept as raw mappings; each entry is parsed right before it
    runs so a malformed entry only affects itself.
    """

    actions: list[Any] = field(default_factory=list)
    legacy_type: str | None = None
    legacy_fields: dict[str, Any] = field(default_factory=dict)
    behavior: Behavior = Behavior.CLOSE
    delay_ms: float | None = None
    only_monitored: bool = True

    @classmethod
    def from_mapping(cls, data: Any) -> "ButtonConfig":
        if not isinstance(data, dict):
            msg = f"button config must be a mapping, got {type(data).__name__}"
            raise ActionMalformedError(msg)

        actions = data.get("actions")
        if actions is None:
            actions = []
        if not isinstance(actions, list):
            msg = "'actions' must be a list"
            raise ActionMalformedError(msg)

        legacy_type = data.get("type")
        if legacy_type is not None and not isinstance(legacy_type, str):
            msg = "'type' must be a string"
            raise ActionMalformedError(msg)

        # delayMs を優先し、旧形式の delay (秒) はミリ秒に換算する
        delay_ms: float | None = None
        raw_delay_ms = data.get("delayMs")
        raw_delay = data.get("delay")
        if _is_number(raw_delay_ms):
            delay_ms = float(raw_delay_ms)
        elif _is_number(raw_delay):
            delay_ms = float(raw_delay) * MS_PER_SECOND
        if delay_ms is not None and delay_ms < 0:
            delay_ms = None

        only_monitored = data.get(
            "onlyFamilySelectionIdsContainingMonitoredActivityNames", True
        )

        return cls(
            actions=list(actions),
            legacy_type=legacy_type,
            legacy_fields={k: v for k, v in data.items() if k != "actions"},
            behavior=Behavior.parse(data.get("behavior")),
            delay_ms=delay_ms,
            only_monitored=only_monitored is not False,
        )


def _is_number(value: object) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


@dataclass(frozen=True)
class EngineResponse:
    """The only value returned to the host."""

    behavior: Behavior = Behavior.CLOSE
    delay_ms: float | None = None

    def to_dict(self) -> dict[str, Any]:
        return {"behavior": self.behavior.value, "delayMs": self.delay_ms}


@dataclass(frozen=True)
class BlockState:
    """Persisted blocking state owned by the block mutator."""

    blocklist: Selection = Selection("blocklist")
    block_all_mode: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "blocklist": self.blocklist.to_dict(),
            "blockAllMode": self.block_all_mode,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "BlockState":
        blocklist = data.get("blocklist")
        return cls(
            blocklist=Selection.from_dict(blocklist)
            if isinstance(blocklist, dict)
            else Selection("blocklist"),
            block_all_mode=bool(data.get("blockAllMode", False)),
        )


@dataclass(frozen=True)
class EffectiveBlockPolicy:
    """Shield state derived from the block state and the whitelist."""

    block_all_mode: bool
    blocked: Selection
    exempt: Selection
    active_selection_ids: tuple[str, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {
            "blockAllMode": self.block_all_mode,
            "blocked": self.blocked.to_dict(),
            "exempt": self.exempt.to_dict(),
            "activeSelectionIds": list(self.active_selection_ids),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "EffectiveBlockPolicy":
        return cls(
            block_all_mode=bool(data.get("blockAllMode", False)),
            blocked=Selection.from_dict(data["blocked"]),
            exempt=Selection.from_dict(data["exempt"]),
            active_selection_ids=tuple(data.get("activeSelectionIds") or ()),
        )
