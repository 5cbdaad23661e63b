#!/usr/bin/env python3
"""
FLUX VALIDATOR ANALYSIS BASE
----------------------------
Shared file walking for the read-only passes. A file is decoded in full
before any of its documents are folded into a result, so a file that fails
halfway never contributes half of its documents.

Author: Flux Validator Team
Date: 2026-10-18
"""

import logging
from pathlib import Path
from typing import Iterable, Iterator, List, Optional, Tuple

from fluxvalidator.core.errors import ParseError
from fluxvalidator.core.models import Document
from fluxvalidator.parsing.parser import ManifestParser

logger = logging.getLogger("fluxvalidator.analysis")


class FilePass:
    """
    Base for a pass over the whole file list.

    With `skip_invalid` off, the first ParseError propagates and the pass
    aborts. With it on, the bad file is left out and the error is kept in
    `skipped` for the report.
    """

    def __init__(self, parser: Optional[ManifestParser] = None, skip_invalid: bool = False):
        self.parser = parser or ManifestParser()
        self.skip_invalid = skip_invalid
        self.skipped: List[ParseError] = []

    def _iter_files(self, paths: Iterable[Path]) -> Iterator[Tuple[Path, List[Document]]]:
        self.skipped = []
        for path in paths:
            path = Path(path)
            try:
                docs = list(self.parser.iter_documents(path))
            except ParseError as e:
                if not self.skip_invalid:
                    raise
                logger.warning(f"Skipping {path}: {e.cause}")
                self.skipped.append(e)
                continue
            yield path, docs
