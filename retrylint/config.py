"""
Central configuration for retrylint.

The defaults describe the consul ``sdk/testutil/retry`` harness. A project
with a different harness can override any of them from ``.retrylint.yaml``
in the scanned root, from ``--config FILE``, or from the command line.
"""

from __future__ import annotations

import argparse
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from retrylint.errors import ConfigError

LOG = logging.getLogger("retrylint")

DEFAULT_CONFIG_NAME = ".retrylint.yaml"

RETRY_IMPORT = "github.com/hashicorp/consul/sdk/testutil/retry"
TESTING_IMPORT = "testing"

# member -> index of the func literal argument
ENTRY_POINTS: Dict[str, int] = {
    "Run": 1,  # retry.Run(t, <FUNC>)
    "RunWith": 2,  # retry.RunWith(<FAILER>, t, <FUNC>)
}

FAILERS = ("Error", "Errorf", "Fail", "FailNow", "Fatal", "Fatalf")
ASSERT_PACKAGES = ("assert", "require")


class Config:
    root: str = "."
    suffix: str = ".go"
    tests_only: bool = False
    exclude: List[str] = [".git"]
    retry_import: str = RETRY_IMPORT
    testing_import: str = TESTING_IMPORT
    handle_type: str = "T"
    outer_handle: str = "t"
    entry_points: Dict[str, int] = ENTRY_POINTS
    failers: List[str] = list(FAILERS)
    assert_packages: List[str] = list(ASSERT_PACKAGES)
    helper_constructor: str = "New"
    checks: List[str] = ["all"]
    strict: bool = False
    jobs: Optional[int] = None
    output: str = "text"
    output_file: Optional[str] = None
    verbose: bool = False

    FIELDS = (
        "root",
        "suffix",
        "tests_only",
        "exclude",
        "retry_import",
        "testing_import",
        "handle_type",
        "outer_handle",
        "entry_points",
        "failers",
        "assert_packages",
        "helper_constructor",
        "checks",
        "strict",
        "jobs",
        "output",
        "output_file",
        "verbose",
    )

    def __init__(self, **overrides: Any) -> None:
        # copy the mutable defaults so instances never share them
        for f in ("exclude", "failers", "assert_packages", "checks"):
            setattr(self, f, list(getattr(type(self), f)))
        self.entry_points = dict(type(self).entry_points)
        self.update(overrides, source="keyword arguments")

    def update(self, values: Dict[str, Any], source: str) -> None:
        for k, v in values.items():
            if k not in self.FIELDS:
                LOG.warning("ignoring unknown config key %r in %s", k, source)
                continue
            setattr(self, k, self._coerce(k, v, source))

    def _coerce(self, key: str, value: Any, source: str) -> Any:
        if key == "entry_points":
            if not isinstance(value, dict) or not all(
                isinstance(i, int) and i >= 0 for i in value.values()
            ):
                raise ConfigError(
                    f"{source}: entry_points must map member names to argument indexes"
                )
            return {str(k): int(i) for k, i in value.items()}
        if key in ("exclude", "failers", "assert_packages", "checks"):
            if isinstance(value, str):
                return [p.strip() for p in value.split(",") if p.strip()]
            if not isinstance(value, (list, tuple)):
                raise ConfigError(f"{source}: {key} must be a list")
            return [str(v) for v in value]
        if key == "jobs" and value is not None:
            if not isinstance(value, int) or value < 1:
                raise ConfigError(f"{source}: jobs must be a positive integer")
        if key == "output" and value not in ("text", "json", "markdown"):
            raise ConfigError(f"{source}: unknown output format {value!r}")
        return value

    def load_yaml(self, path: Path) -> None:
        if not path.exists():
            return
        try:
            data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
        except (OSError, yaml.YAMLError) as e:
            raise ConfigError(f"failed to read config '{path}': {e}") from e
        if not isinstance(data, dict):
            raise ConfigError(f"config '{path}' must be a mapping")
        self.update(data, source=str(path))

    def load_ns(self, ns: argparse.Namespace) -> None:
        for f in self.FIELDS:
            v = getattr(ns, f, None)
            # unset flags are None / [] / False; 0 is a value and gets checked
            if v is None or v is False or v == []:
                continue
            setattr(self, f, self._coerce(f, v, "command line"))

    @classmethod
    def from_args(cls, ns: argparse.Namespace) -> Config:
        """defaults -> <root>/.retrylint.yaml -> --config -> flags"""
        cfg = cls()
        root = Path(ns.root) if getattr(ns, "root", None) else Path(cfg.root)
        cfg.load_yaml(root / DEFAULT_CONFIG_NAME)
        if getattr(ns, "config", None):
            if not Path(ns.config).is_file():
                raise ConfigError(f"config file '{ns.config}' does not exist")
            cfg.load_yaml(Path(ns.config))
        cfg.load_ns(ns)
        return cfg

    @property
    def package_names(self) -> Dict[str, str]:
        """Import path -> default local package name (last path segment)."""
        return {
            self.retry_import: self.retry_import.rsplit("/", 1)[-1],
            self.testing_import: self.testing_import.rsplit("/", 1)[-1],
        }
