#!/usr/bin/env python3
"""
FLUX VALIDATOR DUPLICATE DETECTOR
---------------------------------
Groups documents by identity (kind, metadata, encryption) and records
which files contain each one. Detection returns every group; deciding
which groups count as duplicates is left to filter_duplicates() so the
raw cardinalities stay observable.

Author: Flux Validator Team
Date: 2026-10-18
"""

from pathlib import Path
from typing import Dict, Iterable, Mapping, Set

from fluxvalidator.analysis.base import FilePass
from fluxvalidator.core.models import Document


class DuplicateDetector(FilePass):
    """Collects document identity groups across the tree."""

    def detect(self, paths: Iterable[Path]) -> Dict[Document, Set[Path]]:
        documents: Dict[Document, Set[Path]] = {}
        for path, docs in self._iter_files(paths):
            for doc in docs:
                documents.setdefault(doc, set()).add(path)
        return documents


def filter_duplicates(groups: Mapping[Document, Set[Path]]) -> Dict[Document, Set[Path]]:
    """Keeps only the groups found in two or more distinct files."""
    return {doc: paths for doc, paths in groups.items() if len(paths) > 1}
