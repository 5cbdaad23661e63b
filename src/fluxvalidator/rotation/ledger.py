#!/usr/bin/env python3
"""
FLUX VALIDATOR ROTATION LEDGER
------------------------------
Remembers which files have already been rotated in the current run.

Author: Flux Validator Team
Date: 2026-10-18
"""

import threading
from pathlib import Path
from typing import FrozenSet, Set, Union


class RotationLedger:
    """
    Thread-safe set of rotated paths. `claim` is the only way in, and it is
    an atomic check-and-insert: for any path exactly one caller gets True.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._rotated: Set[Path] = set()

    def claim(self, path: Union[str, Path]) -> bool:
        """Marks `path` as rotated. Returns False if it already was."""
        path = Path(path)
        with self._lock:
            if path in self._rotated:
                return False
            self._rotated.add(path)
            return True

    def __contains__(self, path: object) -> bool:
        if not isinstance(path, (str, Path)):
            return False
        with self._lock:
            return Path(path) in self._rotated

    def __len__(self) -> int:
        with self._lock:
            return len(self._rotated)

    def rotated(self) -> FrozenSet[Path]:
        with self._lock:
            return frozenset(self._rotated)
