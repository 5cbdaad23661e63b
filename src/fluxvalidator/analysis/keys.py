#!/usr/bin/env python3
"""
FLUX VALIDATOR KEY AGGREGATOR
-----------------------------
Builds the map of KMS key -> files that hold at least one document
encrypted with that key.

Author: Flux Validator Team
Date: 2026-10-18
"""

from pathlib import Path
from typing import Dict, Iterable, Set

from fluxvalidator.analysis.base import FilePass


class KeyAggregator(FilePass):
    """Collects key usage across the tree."""

    def aggregate(self, paths: Iterable[Path]) -> Dict[str, Set[Path]]:
        keys_used: Dict[str, Set[Path]] = {}
        for path, docs in self._iter_files(paths):
            for doc in docs:
                if doc.encryption is None:
                    continue
                # Set semantics: several documents under one key list the file once
                keys_used.setdefault(doc.encryption.key_identifier, set()).add(path)
        return keys_used
