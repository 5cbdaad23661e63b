#!/usr/bin/env python3
"""
FLUX VALIDATOR CORE MODELS
--------------------------
Defines the value types shared by every pass of the validator.
A Document is the lowest level of manifest abstraction: the handful of
fields needed to identify a manifest and the key it is encrypted with.

Author: Flux Validator Team
Date: 2026-10-18
"""

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Dict, FrozenSet, Optional, Tuple, TYPE_CHECKING

if TYPE_CHECKING:
    from fluxvalidator.core.errors import ParseError
    from fluxvalidator.rotation.coordinator import RotationResult


@dataclass(frozen=True)
class Metadata:
    """The identifying part of a manifest's `metadata` block."""
    name: str
    namespace: Optional[str] = None


@dataclass(frozen=True)
class Encryption:
    """SOPS encryption metadata. Only the first KMS key is recorded."""
    key_identifier: str


@dataclass(frozen=True)
class Document:
    """
    A single decoded manifest.

    Equality and hashing cover kind, metadata and encryption, and this is the
    one comparison used for duplicate grouping. Two documents that share kind
    and metadata but are encrypted differently (or one of them not at all)
    are NOT equal, so they never land in the same duplicate group. Operators
    may read them as the same manifest; the grouping deliberately does not.
    """
    kind: str
    metadata: Metadata
    encryption: Optional[Encryption] = None

    @property
    def is_encrypted(self) -> bool:
        return self.encryption is not None

    @property
    def key_identifier(self) -> Optional[str]:
        return self.encryption.key_identifier if self.encryption else None

    @property
    def identity(self) -> Tuple[str, str, Optional[str], Optional[str]]:
        """(kind, name, namespace, key identifier), flattened for display."""
        return (self.kind, self.metadata.name, self.metadata.namespace, self.key_identifier)


class ScanMode(str, Enum):
    """What the orchestrator should do with the file set."""
    SCAN = "scan"
    ROTATE = "scan+rotate"


@dataclass(frozen=True)
class Report:
    """
    The merged result of one run. Built once by the ScanEngine and handed to
    the presentation layer; nothing mutates it afterwards.
    """
    key_usage: Dict[str, FrozenSet[Path]]
    duplicates: Dict[Document, FrozenSet[Path]]
    files_scanned: int = 0
    warnings: Tuple["ParseError", ...] = field(default=(), compare=False)
    rotation: Optional["RotationResult"] = field(default=None, compare=False)

    @property
    def ok(self) -> bool:
        return self.rotation is None or not self.rotation.failures
