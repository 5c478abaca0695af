# retrylint/scope.py
# ---------------------------------------------------------------------------
# Scope state carried down the syntax tree.
#
# A ScopeFrame is immutable: every node gets the frame its parent handed it
# and returns a new one for its own children. Leaving a subtree therefore
# restores the enclosing frame with no bookkeeping; siblings never observe
# each other's retry depth.
#
# The one function-wide effect (an assertion helper bound to the outer
# handle) lives on FunctionScope, which every frame of that function shares
# and which is replaced when the walk enters the next function declaration.
# ---------------------------------------------------------------------------

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Optional

from tree_sitter import Node

PACKAGE_SCOPE = "<package>"


@dataclass(eq=False)
class FunctionScope:
    name: str
    helper_bound: bool = False


@dataclass(frozen=True)
class RetryEntry:
    """A retry call whose function literal has not been entered yet."""

    literal: Node
    handle: Optional[str]
    depth: int


@dataclass(frozen=True)
class ScopeFrame:
    depth: int = 0
    function: FunctionScope = field(
        default_factory=lambda: FunctionScope(PACKAGE_SCOPE)
    )
    retry_depth: int = 0  # 0 = not inside a retry body
    retry_handle: Optional[str] = None
    pending: Optional[RetryEntry] = None

    @property
    def retrying(self) -> bool:
        return self.retry_depth > 0

    def descend(self, node: Node) -> ScopeFrame:
        depth = self.depth + 1
        pending = self.pending
        if pending is None:
            return replace(self, depth=depth)
        if node == pending.literal:
            return replace(
                self,
                depth=depth,
                retry_depth=pending.depth,
                retry_handle=pending.handle,
                pending=None,
            )
        # the literal sits directly inside the call's argument list
        if node.type == "argument_list":
            return replace(self, depth=depth)
        return replace(self, depth=depth, pending=None)

    def enter_function(self, name: str) -> ScopeFrame:
        return replace(self, function=FunctionScope(name))

    def enter_retry(self, literal: Node, handle: Optional[str]) -> ScopeFrame:
        return replace(self, pending=RetryEntry(literal, handle, self.depth))
