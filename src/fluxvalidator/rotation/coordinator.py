#!/usr/bin/env python3
"""
FLUX VALIDATOR ROTATION COORDINATOR
-----------------------------------
Re-encrypts SOPS manifests under a new KMS key.

The decision to rotate is made per document (any encrypted document marks
its file for rotation), but the work is per file: decrypt once, encrypt
once, no matter how many encrypted documents the file holds. The ledger
makes that hold even when files are rotated on several threads.

There is no rollback. If the encrypt step fails after a successful
decrypt, the file stays decrypted on disk and the failure says so.

Author: Flux Validator Team
Date: 2026-10-18
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from pathlib import Path
from typing import FrozenSet, Iterable, Optional, Tuple

from fluxvalidator.core.errors import ConfigurationError, ParseError, RotationError, ToolError
from fluxvalidator.parsing.parser import ManifestParser
from fluxvalidator.rotation.ledger import RotationLedger
from fluxvalidator.rotation.sops import EncryptionTool, SopsTool

logger = logging.getLogger("fluxvalidator.rotation")

# Per-file outcomes
ROTATED = "rotated"
UNTOUCHED = "untouched"
FAILED = "failed"


@dataclass(frozen=True)
class RotationResult:
    """What a rotation pass did. `failures` is sorted by path."""
    key_identifier: str
    rotated: FrozenSet[Path]
    failures: Tuple[RotationError, ...] = ()

    @property
    def ok(self) -> bool:
        return not self.failures


class RotationCoordinator:
    """
    Rotates every encrypted file in a file list to `key_identifier`.
    Failures are collected per file; one bad file never stops the rest.
    """

    def __init__(self, key_identifier: str, tool: Optional[EncryptionTool] = None,
                 parser: Optional[ManifestParser] = None,
                 ledger: Optional[RotationLedger] = None, max_workers: int = 1):
        if not key_identifier:
            raise ConfigurationError("Key rotation requires a target KMS key")
        self.key_identifier = key_identifier
        self.tool = tool or SopsTool()
        self.parser = parser or ManifestParser()
        self.ledger = ledger if ledger is not None else RotationLedger()
        self.max_workers = max(1, int(max_workers))

    def rotate(self, paths: Iterable[Path]) -> RotationResult:
        paths = [Path(p) for p in paths]
        logger.info(f"Rotating {len(paths)} candidate file(s) to {self.key_identifier}")

        if self.max_workers > 1:
            with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
                outcomes = list(executor.map(self.rotate_file, paths))
        else:
            outcomes = [self.rotate_file(p) for p in paths]

        rotated = frozenset(p for p, (status, _) in zip(paths, outcomes) if status == ROTATED)
        failures = sorted((err for _, err in outcomes if err is not None), key=lambda e: str(e.path))

        for err in failures:
            logger.error(f"Rotation failed: {err}")

        return RotationResult(
            key_identifier=self.key_identifier,
            rotated=rotated,
            failures=tuple(failures),
        )

    def rotate_file(self, path: Path) -> Tuple[str, Optional[RotationError]]:
        """
        Rotates one file if any of its documents is encrypted and the ledger
        has not seen it yet. Returns (outcome, error).
        """
        path = Path(path)
        try:
            # Decode everything before touching the file on disk
            docs = list(self.parser.iter_documents(path))
        except ParseError as e:
            return FAILED, RotationError(path, "parse", e)

        outcome: Tuple[str, Optional[RotationError]] = (UNTOUCHED, None)
        for doc in docs:
            if doc.encryption is None:
                continue
            if not self.ledger.claim(path):
                # Another document (or thread) already handled this file
                continue
            outcome = self._reencrypt(path)
        return outcome

    def _reencrypt(self, path: Path) -> Tuple[str, Optional[RotationError]]:
        logger.info(f"Rotating keys for {path}")
        try:
            self.tool.decrypt_in_place(path)
        except ToolError as e:
            return FAILED, RotationError(path, "decrypt", e)

        try:
            self.tool.encrypt_in_place(path, self.key_identifier)
        except ToolError as e:
            return FAILED, RotationError(path, "encrypt", e)

        return ROTATED, None
