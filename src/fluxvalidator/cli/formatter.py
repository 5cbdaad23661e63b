# src/fluxvalidator/cli/formatter.py
import json
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.tree import Tree

from fluxvalidator.core.models import Report


class ReportFormatter:
    """
    ReportFormatter: the visual side of the CLI.
    Renders a Report as rich trees, or as JSON for machines.
    """

    def __init__(self, console: Optional[Console] = None, base: Optional[Path] = None):
        self.console = console or Console()
        # Paths are shown relative to the scanned directory when possible
        self.base = base

    def _label(self, path: Path) -> str:
        if self.base is not None:
            try:
                return str(path.relative_to(self.base))
            except ValueError:
                pass
        return str(path)

    def _labels(self, paths: Iterable[Path]) -> List[str]:
        return sorted(self._label(p) for p in paths)

    def duplicates_tree(self, report: Report) -> Tree:
        tree = Tree("[bold]duped documents[/bold]")
        for doc in sorted(report.duplicates, key=lambda d: tuple(x or "" for x in d.identity)):
            kind, name, namespace, key = doc.identity
            detail = escape(f"({kind}, ns={namespace or '-'}, key={key or 'plaintext'})")
            label = f"[cyan]{escape(name)}[/cyan] [dim]{detail}[/dim]"
            branch = tree.add(label)
            for f in self._labels(report.duplicates[doc]):
                branch.add(escape(f))
        return tree

    def keys_tree(self, report: Report) -> Tree:
        tree = Tree("[bold]kms_keys[/bold]")
        for key in sorted(report.key_usage):
            branch = tree.add(f"[magenta]{escape(key)}[/magenta]")
            for f in self._labels(report.key_usage[key]):
                branch.add(escape(f))
        return tree

    def render(self, report: Report):
        """Prints the duplicate and key trees, then warnings and rotation status."""
        self.console.print("[bold white]Duped names[/bold white]")
        self.console.print(self.duplicates_tree(report))
        self.console.print("[bold white]kms keys used[/bold white]")
        self.console.print(self.keys_tree(report))

        if report.warnings:
            lines = "\n".join(f"• {escape(str(w))}" for w in report.warnings)
            self.console.print(Panel(lines, title="[bold yellow]Skipped files[/bold yellow]", border_style="yellow"))

        rotation = report.rotation
        if rotation is None:
            return

        self.console.print(
            f"\n[bold cyan]Rotated {len(rotation.rotated)} file(s) to[/bold cyan] {rotation.key_identifier}"
        )
        if rotation.failures:
            lines = "\n".join(f"• {escape(str(err))}" for err in rotation.failures)
            self.console.print(Panel(
                lines,
                title="[bold red]⚠️  ROTATION FAILURES[/bold red]",
                border_style="red",
            ))

    def to_dict(self, report: Report) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "files_scanned": report.files_scanned,
            "kms_keys": {key: self._labels(report.key_usage[key]) for key in sorted(report.key_usage)},
            "duplicates": [
                {
                    "kind": doc.kind,
                    "name": doc.metadata.name,
                    "namespace": doc.metadata.namespace,
                    "key_identifier": doc.key_identifier,
                    "files": self._labels(files),
                }
                for doc, files in sorted(report.duplicates.items(),
                                         key=lambda item: tuple(x or "" for x in item[0].identity))
            ],
            "warnings": [{"file": self._label(w.path), "error": str(w.cause)} for w in report.warnings],
        }
        if report.rotation is not None:
            data["rotation"] = {
                "key_identifier": report.rotation.key_identifier,
                "rotated": self._labels(report.rotation.rotated),
                "failures": [
                    {
                        "file": self._label(err.path),
                        "step": err.step,
                        "error": str(err.cause),
                        "left_decrypted": err.left_decrypted,
                    }
                    for err in report.rotation.failures
                ],
            }
        return data

    def to_json(self, report: Report) -> str:
        return json.dumps(self.to_dict(report), indent=2)
