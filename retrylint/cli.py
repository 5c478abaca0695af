# retrylint/cli.py
# ---------------------------------------------------------------------------
# retrylint – find *testing.T failures reported from inside retry.Run bodies
#
#   retrylint                      scan the current directory
#   retrylint --root ./api -v      scan another tree, log every file visited
#   retrylint --output json        machine readable report on stdout
#
# Exit status
#   0  no violations
#   1  violations found (report on stderr)
#   2  operational error (cwd, directory walk, unreadable file, bad config)
# ---------------------------------------------------------------------------

from __future__ import annotations

import argparse
import json
import logging
import os
import sys
from concurrent.futures import ProcessPoolExecutor
from pathlib import Path
from typing import Any, Dict, List, Optional, TextIO, Tuple

from retrylint import __version__
from retrylint.analyzer import FileResult, analyze_file
from retrylint.config import Config
from retrylint.errors import OperationalError
from retrylint.store import ViolationStore

EXIT_OK = 0
EXIT_VIOLATIONS = 1
EXIT_ERROR = 2

HEADER = "Found tests using testing.T inside retry.Run:"

# ── logging ──────────────────────────────────────────────────────────────────
LOG = logging.getLogger("retrylint")
LOG.addHandler(logging.StreamHandler(sys.stderr))
LOG.setLevel(logging.INFO)


# ── util ─────────────────────────────────────────────────────────────────────
def is_go_file(p: Path, cfg: Config) -> bool:
    # packages can keep retry helpers outside _test.go files, so by default
    # every .go file is a candidate and the import filter decides
    if p.is_symlink() or not p.is_file():
        return False
    if cfg.tests_only:
        return p.name.endswith("_test" + cfg.suffix)
    return p.name.endswith(cfg.suffix)


def collect(root: Path, cfg: Config) -> List[Path]:
    if not root.is_dir():
        raise OperationalError(f"failed to walk directory: '{root}' is not a directory")

    def _fail(err: OSError) -> None:
        raise OperationalError(f"failed to walk directory: {err}") from err

    res = []
    for dirpath, dirnames, filenames in os.walk(root, onerror=_fail):
        dirnames[:] = [d for d in dirnames if d not in cfg.exclude]
        for name in filenames:
            p = Path(dirpath) / name
            if is_go_file(p, cfg):
                res.append(p)
    return sorted(res)


def scan_root(cfg: Config) -> Path:
    try:
        cwd = os.getcwd()
    except OSError as e:
        raise OperationalError(f"failed to get cwd: {e}") from e
    return Path(cwd, cfg.root).resolve()


def _analyze_file_wrapper(args: Tuple[Path, Config]) -> FileResult:
    """Top-level so the process pool can pickle it."""
    f, cfg = args
    return analyze_file(f, cfg)


def run_lint(cfg: Config) -> Tuple[ViolationStore, List[FileResult]]:
    files = collect(scan_root(cfg), cfg)
    if cfg.jobs == 1 or len(files) < 2:
        results = [analyze_file(f, cfg) for f in files]
    else:
        with ProcessPoolExecutor(max_workers=cfg.jobs) as pool:
            results = list(pool.map(_analyze_file_wrapper, [(f, cfg) for f in files]))

    store = ViolationStore()
    for r in results:
        if r.error is not None:
            if cfg.strict:
                raise OperationalError(str(r.error)) from r.error
            LOG.warning("failed to parse (skipping): %s", r.error)
            continue
        store.extend(r.violations)

    eligible = sum(1 for r in results if r.error is None and r.skipped is None)
    LOG.info(
        "Scanned %d Go files (%d importing retry), %d violation(s)",
        len(files),
        eligible,
        len(store),
    )
    return store, results


# ── report ───────────────────────────────────────────────────────────────────
def _rel(path: str, root: Path) -> str:
    try:
        return os.path.relpath(path, root)
    except ValueError:
        return path  # just skip truncation


def _rows(store: ViolationStore, root: Path) -> List[Dict[str, Any]]:
    return [
        dict(
            file=_rel(v.path, root),
            function=v.function,
            line=v.line,
            column=v.column,
            code=v.code,
            message=v.message,
        )
        for v in store
    ]


def report(
    store: ViolationStore,
    root: Path,
    fmt: str = "text",
    output_file: Optional[str] = None,
    stream: Optional[TextIO] = None,
) -> None:
    if fmt == "json":
        output = json.dumps(_rows(store, root), indent=2) + "\n"
    elif fmt == "markdown":
        lines = []
        for path in store.files():
            lines.append(f"### {_rel(path, root)}")
            for fn in store.functions(path):
                for v in store.positions(path, fn):
                    lines.append(f"- Line {v.line}: {fn}: {v.message} (code: {v.code})")
            lines.append("")
        output = "\n".join(lines)
    else:
        if not store:
            return
        lines = [HEADER]
        for path in store.files():
            rel = _rel(path, root)
            lines.append(f"  {rel}:")
            for fn in store.functions(path):
                lines.append(f"    {fn}")
                for v in store.positions(path, fn):
                    lines.append(f"      {v.render(rel)}")
        output = "\n".join(lines) + "\n"

    if output_file:
        with open(output_file, "w", encoding="utf-8") as f:
            f.write(output)
        return
    if stream is None:
        stream = sys.stderr if fmt == "text" else sys.stdout
    stream.write(output)


# ── CLI ──────────────────────────────────────────────────────────────────────
def cli_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        "retrylint",
        description="Report *testing.T failures used inside retry.Run bodies",
    )
    p.add_argument("--root", help="Directory to scan (default: current directory)")
    p.add_argument("--config", type=Path, help="Path to YAML config file")
    p.add_argument("--checks", help="Comma-separated rule names or codes to run")
    p.add_argument(
        "--tests-only", action="store_true", help="Only scan *_test.go files"
    )
    p.add_argument(
        "--strict", action="store_true", help="Treat unparsable files as fatal"
    )
    p.add_argument("--jobs", type=int, help="Worker processes (1 = no pool)")
    p.add_argument(
        "--output", choices=["text", "json", "markdown"], help="Output format"
    )
    p.add_argument("--output-file", help="File to write the report to")
    p.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    p.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return p


def run(args: argparse.Namespace) -> int:
    try:
        cfg = Config.from_args(args)
        LOG.setLevel(logging.DEBUG if cfg.verbose else logging.INFO)
        store, _ = run_lint(cfg)
        root = scan_root(cfg)
    except OperationalError as e:
        sys.stderr.write(f"{e}\n")
        return EXIT_ERROR
    report(store, root, cfg.output, cfg.output_file)
    return EXIT_VIOLATIONS if store else EXIT_OK


def main(argv: Optional[List[str]] = None) -> None:
    args = cli_parser().parse_args(argv)
    sys.exit(run(args))


# run standalone
if __name__ == "__main__":
    main()
