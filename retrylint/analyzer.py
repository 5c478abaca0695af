# retrylint/analyzer.py
# ---------------------------------------------------------------------------
# Per-file driver: parse, filter on imports, walk, collect violations.
#
# The walk is depth-first pre-order over an explicit stack of
# (node, parent frame) pairs. A node derives its own frame from the parent's
# and hands that to its children, so state is restored on backtrack.
# ---------------------------------------------------------------------------

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Union

from tree_sitter import Node

from retrylint import golang
from retrylint.checks import (
    FileContext,
    active_checks,
    binds_outer_helper,
    retry_entry,
)
from retrylint.config import Config
from retrylint.errors import GoParseError, OperationalError
from retrylint.scope import ScopeFrame
from retrylint.store import Violation

LOG = logging.getLogger("retrylint")

NOT_ELIGIBLE = "does not import both the retry and testing packages"


@dataclass
class FileResult:
    path: str
    violations: List[Violation] = field(default_factory=list)
    skipped: Optional[str] = None
    error: Optional[GoParseError] = None


class Analyzer:
    def __init__(self, path: Union[str, Path], src: Union[str, bytes], cfg: Config):
        self.path = str(path)
        self.src = src.encode("utf-8") if isinstance(src, str) else src
        self.cfg = cfg
        self.checks = active_checks(cfg)
        self.viol: List[Violation] = []
        self.ctx: Optional[FileContext] = None

    def run(self) -> FileResult:
        tree = golang.parse(self.src)
        root = tree.root_node
        bad = golang.first_error(root)
        if bad is not None:
            line, col = golang.position(bad)
            return FileResult(self.path, error=GoParseError(self.path, line, col))

        cfg = self.cfg
        if not (
            golang.imports_package(root, cfg.retry_import)
            and golang.imports_package(root, cfg.testing_import)
        ):
            return FileResult(self.path, skipped=NOT_ELIGIBLE)

        names = {**cfg.package_names, **golang.import_names(root)}
        self.ctx = FileContext(
            path=self.path,
            lines=self.src.decode("utf-8", errors="replace").splitlines(),
            cfg=cfg,
            retry_name=names[cfg.retry_import],
            testing_name=names[cfg.testing_import],
        )
        LOG.debug("Visiting: %s", self.path)
        self.walk(root)
        return FileResult(self.path, violations=self.viol)

    def walk(self, root: Node) -> None:
        stack = [(root, ScopeFrame())]
        while stack:
            node, parent = stack.pop()
            frame = self.visit(node, parent)
            stack.extend((child, frame) for child in reversed(node.children))

    def visit(self, node: Node, parent: ScopeFrame) -> ScopeFrame:
        frame = parent.descend(node)
        if node.type in golang.FUNCTION_DECLARATIONS:
            # every function counts, helpers and sub-tests included
            name = golang.function_name(node)
            LOG.debug("  Processing: %s", name)
            return frame.enter_function(name)
        if node.type == "call_expression":
            return self.visit_call(node, frame)
        return frame

    def visit_call(self, node: Node, frame: ScopeFrame) -> ScopeFrame:
        ctx = self.ctx
        # The retry call itself is judged in the enclosing scope since its own
        # arguments legitimately take the outer handle; only the literal's
        # body is inside the retry.
        entry = retry_entry(node, ctx)

        if binds_outer_helper(node, ctx):
            frame.function.helper_bound = True

        for chk in self.checks.values():
            for line, col, msg, code in chk.check(node, frame, ctx):
                self.viol.append(
                    Violation(self.path, frame.function.name, line, col, code, msg)
                )

        if entry is not None:
            literal, handle = entry
            return frame.enter_retry(literal, handle)
        return frame


def lint_source(
    src: Union[str, bytes], path: str = "source_test.go", cfg: Config = None
) -> List[Violation]:
    """Lint one in-memory Go file. Parse errors raise GoParseError."""
    res = Analyzer(path, src, cfg or Config()).run()
    if res.error is not None:
        raise res.error
    return res.violations


def analyze_file(f: Path, cfg: Config) -> FileResult:
    try:
        src = f.read_bytes()
    except OSError as e:
        raise OperationalError(f"failed to read '{f}': {e}") from e
    return Analyzer(f, src, cfg).run()
