#!/usr/bin/env python3
"""
FLUX VALIDATOR SOPS BRIDGE
--------------------------
The only place the validator touches the `sops` binary. Both operations
rewrite the file in place and either succeed or raise ToolError.

Author: Flux Validator Team
Date: 2026-10-18
"""

import logging
import subprocess
from pathlib import Path
from typing import List, Optional, Protocol, Union

from fluxvalidator.core.errors import ToolError

logger = logging.getLogger("fluxvalidator.sops")


class EncryptionTool(Protocol):
    """Narrow contract the RotationCoordinator needs from an encryption tool."""

    def decrypt_in_place(self, path: Path) -> None: ...

    def encrypt_in_place(self, path: Path, key_identifier: str) -> None: ...


class SopsTool:
    """Runs `sops` as a blocking subprocess."""

    def __init__(self, binary: str = "sops", timeout: Optional[float] = None):
        self.binary = binary
        self.timeout = timeout

    def decrypt_in_place(self, path: Union[str, Path]) -> None:
        self._run([self.binary, "--decrypt", "--in-place", str(path)])

    def encrypt_in_place(self, path: Union[str, Path], key_identifier: str) -> None:
        self._run([self.binary, "--encrypt", "--in-place", "--kms", key_identifier, str(path)])

    def _run(self, cmd: List[str]) -> None:
        logger.debug(f"Running: {' '.join(cmd)}")
        try:
            subprocess.run(
                cmd,
                check=True,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                timeout=self.timeout,
            )
        except FileNotFoundError as e:
            raise ToolError(cmd, stderr=f"command not found: {cmd[0]}") from e
        except subprocess.CalledProcessError as e:
            err = (e.stderr or b"").decode("utf-8", "replace")
            raise ToolError(cmd, e.returncode, err) from e
        except subprocess.TimeoutExpired as e:
            raise ToolError(cmd, stderr=f"timed out after {self.timeout}s") from e
