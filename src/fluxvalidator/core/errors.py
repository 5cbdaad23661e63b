#!/usr/bin/env python3
"""
FLUX VALIDATOR ERRORS
---------------------
Every failure the validator reports derives from FluxValidatorError so the
CLI can turn any of them into one clear line and a non-zero exit code.

Author: Flux Validator Team
Date: 2026-10-18
"""

from pathlib import Path
from typing import Optional, Sequence, Union


class FluxValidatorError(Exception):
    """Base class for all validator failures."""


class ConfigurationError(FluxValidatorError):
    """The run was asked to do something it was not configured for."""


class DiscoveryError(FluxValidatorError):
    """The manifest directory could not be listed."""

    def __init__(self, root: Union[str, Path], cause: Union[str, Exception]):
        self.root = Path(root)
        self.cause = cause
        super().__init__(f"Unable to discover manifests under {self.root}: {cause}")


class ParseError(FluxValidatorError):
    """A manifest file could not be decoded into Documents."""

    def __init__(self, path: Union[str, Path], cause: Union[str, Exception]):
        self.path = Path(path)
        self.cause = cause
        super().__init__(f"{self.path}: {cause}")


class ToolError(FluxValidatorError):
    """The external encryption tool failed or could not be started."""

    def __init__(self, command: Sequence[str], returncode: Optional[int] = None, stderr: str = ""):
        self.command = list(command)
        self.returncode = returncode
        self.stderr = stderr.strip()
        detail = self.stderr or (f"exit code {returncode}" if returncode is not None else "not executed")
        super().__init__(f"`{' '.join(self.command)}` failed: {detail}")


class RotationError(FluxValidatorError):
    """
    Rotation of a single file failed at `step` ("parse", "decrypt" or "encrypt").

    A failure at the encrypt step means the decrypt already succeeded and the
    file is sitting on disk in plaintext. Nothing is rolled back.
    """

    def __init__(self, path: Union[str, Path], step: str, cause: Exception):
        self.path = Path(path)
        self.step = step
        self.cause = cause
        message = f"{self.path}: {step} failed: {cause}"
        if self.left_decrypted:
            message += " (file left decrypted on disk)"
        super().__init__(message)

    @property
    def left_decrypted(self) -> bool:
        return self.step == "encrypt"
