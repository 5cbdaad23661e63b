#!/usr/bin/env python3
"""
FLUX VALIDATOR PARSER - The Archeologist
----------------------------------------
Decodes a manifest file into Document values, one per YAML document block.
Only identity fields (kind, metadata.name, metadata.namespace) and the
first SOPS KMS key are extracted; the rest of the manifest is ignored.

Author: Flux Validator Team
Date: 2026-10-18
"""

import logging
from pathlib import Path
from typing import Any, Iterator, Optional, Union

from ruamel.yaml import YAML, YAMLError

from fluxvalidator.core.errors import ParseError
from fluxvalidator.core.models import Document, Encryption, Metadata

logger = logging.getLogger("fluxvalidator.parser")

# Plain scalars YAML reads as null
NULL_SCALARS = {"", "~", "null", "Null", "NULL"}


def _scalar(value: Any) -> Optional[str]:
    """Returns the source text of a scalar, or None for nulls and collections."""
    if not isinstance(value, str) or value in NULL_SCALARS:
        return None
    return value


class ManifestParser:
    """
    Turns files into lazy streams of Documents.

    A fresh ruamel loader is built for every file so that passes running on
    different threads never share loader state.
    """

    def iter_documents(self, path: Union[str, Path]) -> Iterator[Document]:
        """
        Yields every Document in `path`. Calling it again re-reads the file.
        Raises ParseError for unreadable files or invalid documents.
        """
        path = Path(path)
        try:
            # BOM-aware, like every other reader in the tool
            text = path.read_text(encoding="utf-8-sig")
        except (OSError, UnicodeDecodeError) as e:
            raise ParseError(path, e) from e

        yield from self.parse_text(text, path)

    def parse_text(self, text: str, path: Union[str, Path] = "<string>") -> Iterator[Document]:
        """Decodes an already-loaded multi-document YAML string."""
        # The base loader keeps every scalar as its source text: '0123', '1.10'
        # and 'true' stay distinct names instead of collapsing to 123, 1.1, True
        yaml = YAML(typ="base")
        index = 0
        try:
            for raw in yaml.load_all(text):
                # Bare separators and trailing '---' produce empty documents
                if raw is None or raw == "":
                    continue
                yield self._build_document(raw, path, index)
                index += 1
        except YAMLError as e:
            raise ParseError(path, f"malformed YAML: {e}") from e

    def _build_document(self, raw: Any, path: Union[str, Path], index: int) -> Document:
        if not isinstance(raw, dict):
            raise ParseError(path, f"document {index} is not a mapping")

        kind = _scalar(raw.get("kind"))
        if kind is None:
            raise ParseError(path, f"document {index} is missing required field 'kind'")

        meta = raw.get("metadata")
        if not isinstance(meta, dict):
            raise ParseError(path, f"document {index} is missing required field 'metadata'")

        name = _scalar(meta.get("name"))
        if name is None:
            raise ParseError(path, f"document {index} is missing required field 'metadata.name'")

        metadata = Metadata(name=name, namespace=_scalar(meta.get("namespace")))

        return Document(
            kind=kind,
            metadata=metadata,
            encryption=self._extract_encryption(raw.get("sops"), path, index),
        )

    def _extract_encryption(self, sops: Any, path: Union[str, Path], index: int) -> Optional[Encryption]:
        """Reads `sops.kms[0].arn`. No `sops` block means the document is plaintext."""
        if sops is None or (isinstance(sops, str) and _scalar(sops) is None):
            return None

        kms = sops.get("kms") if isinstance(sops, dict) else None
        first = kms[0] if isinstance(kms, list) and kms else None
        arn = _scalar(first.get("arn")) if isinstance(first, dict) else None

        if arn is None:
            raise ParseError(path, f"document {index} has a 'sops' block without 'kms[0].arn'")

        logger.debug(f"{path}: document {index} encrypted with {arn}")
        return Encryption(key_identifier=arn)
