#!/usr/bin/env python3
"""
FLUX VALIDATOR ENGINE - The High Orchestrator
---------------------------------------------
The ScanEngine runs the passes of a validation run over one file list:
key aggregation and duplicate detection (read-only, run side by side),
then key rotation when requested. Rotation always waits for the read-only
passes, so the reported key usage is the state of the tree before rotation.

Author: Flux Validator Team
Date: 2026-10-18
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Dict, FrozenSet, Iterable, List, Optional, Union

from fluxvalidator.analysis.duplicates import DuplicateDetector, filter_duplicates
from fluxvalidator.analysis.keys import KeyAggregator
from fluxvalidator.core.errors import ConfigurationError, ParseError
from fluxvalidator.core.models import Report, ScanMode
from fluxvalidator.parsing.discovery import DEFAULT_PATTERN, discover_manifests
from fluxvalidator.parsing.parser import ManifestParser
from fluxvalidator.rotation.coordinator import RotationCoordinator
from fluxvalidator.rotation.sops import EncryptionTool, SopsTool

logger = logging.getLogger("fluxvalidator.engine")


class ScanEngine:
    """
    Principal orchestrator for a validation run.

    Each pass parses every file on its own; nothing is cached between them.
    The parse-error policy is fixed per engine: abort on the first bad file
    (default), or skip bad files and report them as warnings.
    """

    def __init__(self, tool: Optional[EncryptionTool] = None, skip_invalid: bool = False,
                 rotation_workers: int = 1):
        self.parser = ManifestParser()
        self.tool = tool or SopsTool()
        self.skip_invalid = skip_invalid
        self.rotation_workers = rotation_workers

    def run(self, paths: Iterable[Union[str, Path]], mode: ScanMode = ScanMode.SCAN,
            target_key: Optional[str] = None) -> Report:
        """
        Runs the passes selected by `mode` and merges their results.
        Raises ConfigurationError before any file I/O if rotation lacks a key,
        and ParseError on a bad file unless the engine skips invalid files.
        """
        mode = self._resolve_mode(mode)
        if mode is ScanMode.ROTATE and not target_key:
            raise ConfigurationError("Rotation requested but no target KMS key was supplied")

        paths = [Path(p) for p in paths]
        logger.info(f"Scanning {len(paths)} manifest file(s) in mode '{mode.value}'")

        keys = KeyAggregator(self.parser, skip_invalid=self.skip_invalid)
        dups = DuplicateDetector(self.parser, skip_invalid=self.skip_invalid)

        # Phase 1: read-only passes side by side; .result() re-raises worker errors
        with ThreadPoolExecutor(max_workers=2, thread_name_prefix="fluxvalidator") as executor:
            keys_future = executor.submit(keys.aggregate, paths)
            dups_future = executor.submit(dups.detect, paths)
            key_usage = keys_future.result()
            groups = dups_future.result()

        # Phase 2: rotation, only once nothing else is reading the files
        rotation = None
        if mode is ScanMode.ROTATE:
            coordinator = RotationCoordinator(
                target_key,
                tool=self.tool,
                parser=self.parser,
                max_workers=self.rotation_workers,
            )
            rotation = coordinator.rotate(paths)

        warnings = self._merge_warnings(keys.skipped, dups.skipped)
        duplicates = filter_duplicates(groups)
        logger.info(
            f"Found {len(key_usage)} key(s), {len(duplicates)} duplicated document(s), "
            f"{len(warnings)} skipped file(s)"
        )

        return Report(
            key_usage=self._freeze(key_usage),
            duplicates=self._freeze(duplicates),
            files_scanned=len(paths) - len(warnings),
            warnings=tuple(warnings),
            rotation=rotation,
        )

    def scan_directory(self, root: Union[str, Path], pattern: str = DEFAULT_PATTERN,
                       mode: ScanMode = ScanMode.SCAN, target_key: Optional[str] = None) -> Report:
        """Discovers manifests under `root` and runs them through `run`."""
        if self._resolve_mode(mode) is ScanMode.ROTATE and not target_key:
            raise ConfigurationError("Rotation requested but no target KMS key was supplied")
        paths = discover_manifests(root, pattern)
        if not paths:
            logger.warning(f"No files matching '{pattern}' under {root}")
        return self.run(paths, mode=mode, target_key=target_key)

    def _merge_warnings(self, *skipped: List[ParseError]) -> List[ParseError]:
        # Both passes see the same bad files; keep one warning per path
        merged: Dict[Path, ParseError] = {}
        for errors in skipped:
            for err in errors:
                merged.setdefault(err.path, err)
        return [merged[p] for p in sorted(merged)]

    def _freeze(self, mapping: Dict) -> Dict[object, FrozenSet[Path]]:
        return {key: frozenset(paths) for key, paths in mapping.items()}

    def _resolve_mode(self, mode) -> ScanMode:
        try:
            return ScanMode(mode)
        except ValueError as e:
            choices = ", ".join(m.value for m in ScanMode)
            raise ConfigurationError(f"Unknown scan mode {mode!r} (expected one of: {choices})") from e
