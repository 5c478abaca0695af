# retrylint/checks.py
# ---------------------------------------------------------------------------
# Call-shape predicates and the rules built on them
#
#  RT001  outer_failer     – t.Fatal / t.Errorf / ... on *testing.T in a retry body
#  RT002  outer_assertion  – assert/require fed the *testing.T (directly, or via
#                            require.New(t) earlier in the function) in a retry body
#  RT003  outer_handle_argument – *testing.T passed to any other call in a
#                                 retry body (mustStart(t, srv) can fail it)
#
#   //nolint                 ← suppress every rule on that line
#   //nolint:RT001,RT003     ← suppress the listed rules on that line
# ---------------------------------------------------------------------------

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Tuple

from tree_sitter import Node

from retrylint import golang
from retrylint.config import Config
from retrylint.scope import ScopeFrame

Finding = Tuple[int, int, str, str]  # line, column, message, code


@dataclass
class FileContext:
    path: str
    lines: List[str]
    cfg: Config
    retry_name: str  # local name of the retry package in this file
    testing_name: str  # local name of the testing package in this file

    def line(self, lineno: int) -> str:
        if 0 < lineno <= len(self.lines):
            return self.lines[lineno - 1]
        return ""


# ── suppression check  (//nolint & codes) ────────────────────────────────────
_NOLINT = re.compile(r"//nolint(?::(?P<codes>[\w-]+(?:,[\w-]+)*))?(?=\s|//|$)")
NOLINT_ANY = ("retrylint", "all")


def suppressed(line: str, code: str) -> bool:
    m = _NOLINT.search(line)
    if m is None:
        return False
    if m.group("codes") is None:
        return True
    codes = m.group("codes").split(",")
    return code in codes or any(c in codes for c in NOLINT_ANY)


# ── predicates ───────────────────────────────────────────────────────────────
def retry_entry(call: Node, ctx: FileContext) -> Optional[Tuple[Node, Optional[str]]]:
    """``retry.Run(t, func(r *retry.R) {...})`` -> (func literal, ``"r"``).

    The literal's position comes from the entry point table. A literal whose
    first parameter reuses the outer handle's name (``func(t *retry.R)``) is
    already safe and does not open a retry scope.
    """
    sel = golang.selector(call)
    if sel is None:
        return None
    pkg, member = sel
    if golang.text(pkg) != ctx.retry_name:
        return None
    index = ctx.cfg.entry_points.get(member)
    if index is None:
        return None
    args = golang.call_arguments(call)
    if index >= len(args) or args[index].type != "func_literal":
        return None
    literal = args[index]
    param = golang.first_parameter(literal)
    if param is None:
        return None
    names = golang.parameter_names(param)
    handle = names[0] if names else None
    if handle == ctx.cfg.outer_handle:
        return None
    return literal, handle


def binds_outer_helper(call: Node, ctx: FileContext) -> bool:
    """``require.New(t)`` / ``assert.New(t)``"""
    sel = golang.selector(call)
    if sel is None:
        return False
    pkg, member = sel
    if golang.text(pkg) not in ctx.cfg.assert_packages:
        return False
    if member != ctx.cfg.helper_constructor:
        return False
    args = golang.call_arguments(call)
    if not args or args[0].type != "identifier":
        return False
    return golang.text(args[0]) == ctx.cfg.outer_handle


def is_assertion_call(call: Node, ctx: FileContext) -> bool:
    sel = golang.selector(call)
    return sel is not None and golang.text(sel[0]) in ctx.cfg.assert_packages


def declares_outer_handle(node: Node, ctx: FileContext) -> bool:
    """Is ``node`` an identifier declared as ``*testing.T``?"""
    if node.type != "identifier":
        return False
    declared = golang.resolve_parameter_type(node)
    return golang.is_handle_type(declared, ctx.testing_name, ctx.cfg.handle_type)


# ── CodeCheck base class  (every rule returns (line, column, msg, code)) ────
class CodeCheck:
    code: str  # e.g. RT001

    def check(
        self, node: Node, frame: ScopeFrame, ctx: FileContext
    ) -> Sequence[Finding]:
        return ()


class OuterFailer(CodeCheck):
    code = "RT001"

    def check(self, node, frame, ctx):
        if not frame.retrying:
            return ()
        sel = golang.selector(node)
        if sel is None:
            return ()
        receiver, member = sel
        if member not in ctx.cfg.failers or not declares_outer_handle(receiver, ctx):
            return ()
        line, col = golang.position(node)
        if suppressed(ctx.line(line), self.code):
            return ()
        recv = golang.text(receiver)
        return (
            (
                line,
                col,
                f"{recv}.{member} on *{ctx.testing_name}.{ctx.cfg.handle_type} "
                f"inside a retry body; use the retry handle",
                self.code,
            ),
        )


class OuterAssertion(CodeCheck):
    code = "RT002"

    def check(self, node, frame, ctx):
        if not frame.retrying or not is_assertion_call(node, ctx):
            return ()
        args = golang.call_arguments(node)
        handle = frame.retry_handle
        via_bound = frame.function.helper_bound and not any(
            a.type == "identifier" and golang.text(a) == handle for a in args
        )
        direct = bool(args) and declares_outer_handle(args[0], ctx)
        if not (via_bound or direct):
            return ()
        line, col = golang.position(node)
        if suppressed(ctx.line(line), self.code):
            return ()
        callee = golang.text(node.child_by_field_name("function"))
        if direct:
            msg = f"{callee} given the outer {golang.text(args[0])} inside a retry body"
        else:
            msg = (
                f"{callee} uses a helper bound to the outer "
                f"{ctx.cfg.outer_handle} inside a retry body"
            )
        return ((line, col, msg, self.code),)


class OuterHandleArgument(CodeCheck):
    """The outer handle passed on to a helper, ``mustStart(t, srv)``.

    Retry and assertion calls are left to the retry scope and RT002.
    """

    code = "RT003"

    def check(self, node, frame, ctx):
        if not frame.retrying or is_assertion_call(node, ctx):
            return ()
        sel = golang.selector(node)
        if sel is not None and golang.text(sel[0]) == ctx.retry_name:
            return ()
        arg = next(
            (a for a in golang.call_arguments(node) if declares_outer_handle(a, ctx)),
            None,
        )
        if arg is None:
            return ()
        line, col = golang.position(node)
        if suppressed(ctx.line(line), self.code):
            return ()
        callee = golang.text(node.child_by_field_name("function"))
        return (
            (
                line,
                col,
                f"{golang.text(arg)} passed to {callee} inside a retry body; "
                f"pass the retry handle",
                self.code,
            ),
        )


# built-in registry
BUILTIN_CHECKS: Dict[str, CodeCheck] = {
    "outer_failer": OuterFailer(),
    "outer_assertion": OuterAssertion(),
    "outer_handle_argument": OuterHandleArgument(),
}


def active_checks(cfg: Config) -> Dict[str, CodeCheck]:
    if "all" in cfg.checks:
        return dict(BUILTIN_CHECKS)
    return {
        k: c
        for k, c in BUILTIN_CHECKS.items()
        if k in cfg.checks or c.code in cfg.checks
    }
