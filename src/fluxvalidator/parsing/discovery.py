#!/usr/bin/env python3
"""
FLUX VALIDATOR DISCOVERY
------------------------
Lists the SOPS manifests under a directory. Symlinks are skipped so a
link pointing back up the tree cannot trap the walk.

Author: Flux Validator Team
Date: 2026-10-18
"""

from pathlib import Path
from typing import List, Union

from fluxvalidator.core.errors import DiscoveryError

DEFAULT_PATTERN = "**/*-sops.yml"


def discover_manifests(root: Union[str, Path], pattern: str = DEFAULT_PATTERN) -> List[Path]:
    """Returns the sorted list of regular files under `root` matching `pattern`."""
    root = Path(root)
    if not root.exists():
        raise DiscoveryError(root, "path does not exist")
    if not root.is_dir():
        raise DiscoveryError(root, "path is not a directory")

    try:
        return sorted(
            f for f in root.glob(pattern)
            if f.is_file() and not f.is_symlink()
        )
    except (OSError, ValueError) as e:
        raise DiscoveryError(root, e) from e
