import threading
from pathlib import Path
from typing import Optional

import pytest

from fluxvalidator.core.errors import ToolError


def render_doc(kind: str = "Deployment", name: Optional[str] = "web", namespace: Optional[str] = "prod",
               arn: Optional[str] = None, extra: str = "") -> str:
    """Builds one manifest document; `arn` adds a SOPS block."""
    lines = ["apiVersion: apps/v1", f"kind: {kind}", "metadata:"]
    if name is not None:
        lines.append(f"  name: {name}")
    if namespace is not None:
        lines.append(f"  namespace: {namespace}")
    lines.append("  labels:\n    app: web")
    if extra:
        lines.append(extra)
    if arn is not None:
        lines.extend([
            "sops:",
            "  kms:",
            f"  - arn: {arn}",
            "    created_at: '2022-05-01T10:00:00Z'",
            "    enc: AQICAHh...",
            "  lastmodified: '2022-05-01T10:00:00Z'",
            "  mac: ENC[AES256_GCM,data:abc,type:str]",
            "  version: 3.7.3",
        ])
    return "\n".join(lines) + "\n"


class FakeTool:
    """Records every call; fails on demand for the paths it is told to."""

    def __init__(self, fail_decrypt=(), fail_encrypt=()):
        self.calls = []
        self.fail_decrypt = {Path(p) for p in fail_decrypt}
        self.fail_encrypt = {Path(p) for p in fail_encrypt}
        self._lock = threading.Lock()

    def decrypt_in_place(self, path):
        with self._lock:
            self.calls.append(("decrypt", Path(path)))
        if Path(path) in self.fail_decrypt:
            raise ToolError(["sops", "--decrypt", "--in-place", str(path)], 1, "access denied")

    def encrypt_in_place(self, path, key_identifier):
        with self._lock:
            self.calls.append(("encrypt", Path(path), key_identifier))
        if Path(path) in self.fail_encrypt:
            raise ToolError(["sops", "--encrypt", "--in-place", str(path)], 128, "kms unavailable")

    def count(self, step, path):
        return sum(1 for c in self.calls if c[0] == step and c[1] == Path(path))


@pytest.fixture
def render():
    return render_doc


@pytest.fixture
def write_manifest(tmp_path):
    """Writes a multi-document manifest under tmp_path and returns its path."""
    def _write(rel: str, *docs: str) -> Path:
        path = tmp_path / rel
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text("---\n" + "---\n".join(docs), encoding="utf-8")
        return path
    return _write


@pytest.fixture
def fake_tool():
    return FakeTool()


@pytest.fixture
def tool_factory():
    return FakeTool
