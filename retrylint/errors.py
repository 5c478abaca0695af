# retrylint/errors.py
from __future__ import annotations


class RetryLintError(Exception):
    """Base class for everything retrylint raises on purpose."""


class OperationalError(RetryLintError):
    """The run cannot continue (cwd missing, tree walk failed, unreadable file)."""


class ConfigError(OperationalError):
    pass


class GoParseError(RetryLintError):
    def __init__(self, path: str, line: int = 0, column: int = 0):
        self.path, self.line, self.column = path, line, column
        where = f"{path}:{line}:{column}" if line else path
        super().__init__(f"failed to parse Go file '{where}'")

    def __reduce__(self):
        return type(self), (self.path, self.line, self.column)
