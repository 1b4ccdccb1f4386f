"""Whitelist and block-state mutations, each followed by a policy recompute."""

from enum import Enum
from typing import Protocol

from shield_action.logger import get_logger
from shield_action.model.models import (
    BlockState,
    EffectiveBlockPolicy,
    Selection,
    Token,
    TokenKind,
)
from shield_action.store.selections import WHITELIST_ID, SelectionStore

__all__ = ["BlockMutator", "BlockPolicy", "MutationOp", "StoreBlockPolicy"]

log = get_logger("engine.block")


class MutationOp(Enum):
    ADD_WHITELIST = "add_whitelist"
    REMOVE_BLOCK = "remove_block"
    BLOCK = "block"
    RESET = "reset"
    DISABLE_BLOCK_ALL = "disable_block_all"
    ENABLE_BLOCK_ALL = "enable_block_all"


class BlockPolicy(Protocol):
    def update_block(self, triggered_by: str) -> None: ...


class StoreBlockPolicy:
    """Derive the effective shield state and persist it for the host.

    blocked = blocklist - whitelist; a stored selection counts as active when
    it still has at least one blocked token.
    """

    def __init__(self, selections: SelectionStore) -> None:
        self.selections = selections

    def compute(self) -> EffectiveBlockPolicy:
        state = self.selections.get_block_state()
        whitelist = self.selections.get_whitelist()
        blocked = state.blocklist.subtract(whitelist)
        active = sorted(
            s.id for s in self.selections.list_selections() if s.intersects(blocked)
        )
        return EffectiveBlockPolicy(
            block_all_mode=state.block_all_mode,
            blocked=blocked,
            exempt=whitelist,
            active_selection_ids=tuple(active),
        )

    def update_block(self, triggered_by: str) -> None:
        policy = self.compute()
        self.selections.save_effective_policy(policy)
        log.info(
            "Block policy updated (triggeredBy=%s): blockAll=%s active=%s",
            triggered_by,
            policy.block_all_mode,
            list(policy.active_selection_ids),
        )


class BlockMutator:
    """Read-modify-write on the shared store; last writer wins."""

    def __init__(
        self,
        selections: SelectionStore,
        policy: BlockPolicy | None = None,
    ) -> None:
        self.selections = selections
        self.policy = policy or StoreBlockPolicy(selections)

    def mutate(
        self,
        op: MutationOp,
        selection: Selection | None = None,
        *,
        triggered_by: str = "shieldAction",
    ) -> None:
        """操作を適用し、その後必ずブロックポリシーを再計算する."""
        tokens = selection or Selection(WHITELIST_ID)

        if op is MutationOp.ADD_WHITELIST:
            self.selections.update_whitelist(lambda w: w.union(tokens))
        elif op is MutationOp.REMOVE_BLOCK:
            self.selections.update_block_state(
                lambda s: BlockState(s.blocklist.subtract(tokens), s.block_all_mode)
            )
        elif op is MutationOp.BLOCK:
            self.selections.update_block_state(
                lambda s: BlockState(s.blocklist.union(tokens), s.block_all_mode)
            )
        elif op is MutationOp.DISABLE_BLOCK_ALL:
            self.selections.update_block_state(
                lambda s: BlockState(s.blocklist, block_all_mode=False)
            )
        elif op is MutationOp.ENABLE_BLOCK_ALL:
            self.selections.update_block_state(
                lambda s: BlockState(s.blocklist, block_all_mode=True)
            )
        elif op is MutationOp.RESET:
            self.selections.save_block_state(BlockState())
            self.selections.save_whitelist(Selection(WHITELIST_ID))

        log.info(
            "Applied %s (%d token(s), triggeredBy=%s)",
            op.value,
            tokens.total_tokens,
            triggered_by,
        )
        self.policy.update_block(triggered_by)

    # ------------------------------------------------------------------
    # Convenience wrappers
    def add_token_to_whitelist(
        self, token: Token, kind: TokenKind, *, triggered_by: str = "shieldAction"
    ) -> None:
        self.mutate(
            MutationOp.ADD_WHITELIST,
            Selection(WHITELIST_ID).with_token(token, kind),
            triggered_by=triggered_by,
        )

    def add_selection_to_whitelist(
        self, selection: Selection, *, triggered_by: str = "shieldAction"
    ) -> None:
        self.mutate(MutationOp.ADD_WHITELIST, selection, triggered_by=triggered_by)

    def unblock_selection(
        self, selection: Selection, *, triggered_by: str = "shieldAction"
    ) -> None:
        self.mutate(MutationOp.REMOVE_BLOCK, selection, triggered_by=triggered_by)

    def block_selection(
        self, selection: Selection, *, triggered_by: str = "shieldAction"
    ) -> None:
        self.mutate(MutationOp.BLOCK, selection, triggered_by=triggered_by)

    def reset_blocks(self, *, triggered_by: str = "shieldAction") -> None:
        self.mutate(MutationOp.RESET, triggered_by=triggered_by)

    def disable_block_all_mode(self, *, triggered_by: str = "shieldAction") -> None:
        self.mutate(MutationOp.DISABLE_BLOCK_ALL, triggered_by=triggered_by)

    def enable_block_all_mode(self, *, triggered_by: str = "shieldAction") -> None:
        self.mutate(MutationOp.ENABLE_BLOCK_ALL, triggered_by=triggered_by)
