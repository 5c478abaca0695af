# retrylint/store.py
from __future__ import annotations

import threading
from dataclasses import dataclass
from typing import Dict, Iterable, Iterator, List, Tuple

Position = Tuple[int, int]


@dataclass(frozen=True, order=True)
class Violation:
    path: str
    function: str
    line: int
    column: int
    code: str = ""
    message: str = ""

    @property
    def position(self) -> Position:
        return self.line, self.column

    def render(self, path: str = None) -> str:
        return f"{path or self.path}:{self.line}:{self.column}"


class ViolationStore:
    """file -> function -> (line, column) -> Violation

    Adding the same site twice keeps the first record. Nothing is ever
    removed; enumeration is always sorted.
    """

    def __init__(self) -> None:
        self._broken: Dict[str, Dict[str, Dict[Position, Violation]]] = {}
        self._lock = threading.Lock()

    def add(self, v: Violation) -> bool:
        with self._lock:
            sites = self._broken.setdefault(v.path, {}).setdefault(v.function, {})
            if v.position in sites:
                return False
            sites[v.position] = v
            return True

    def extend(self, violations: Iterable[Violation]) -> int:
        return sum(self.add(v) for v in violations)

    def merge(self, other: ViolationStore) -> int:
        return self.extend(list(other))

    def files(self) -> List[str]:
        return sorted(self._broken)

    def functions(self, path: str) -> List[str]:
        return sorted(self._broken.get(path, {}))

    def positions(self, path: str, function: str) -> List[Violation]:
        sites = self._broken.get(path, {}).get(function, {})
        return [sites[p] for p in sorted(sites)]

    def __iter__(self) -> Iterator[Violation]:
        for path in self.files():
            for fn in self.functions(path):
                yield from self.positions(path, fn)

    def __len__(self) -> int:
        return sum(
            len(sites) for fns in self._broken.values() for sites in fns.values()
        )

    def __bool__(self) -> bool:
        return bool(self._broken)
