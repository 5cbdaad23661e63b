#!/usr/bin/env python3
"""
FLUX VALIDATOR CLI
------------------
Validates that a Flux repository will not cause issues when deployed:
1. Duplicate documents (same kind, metadata and encryption in several files)
2. KMS keys in use, and which files use them
3. Optional KMS key rotation through sops

Author: Flux Validator Team
Date: 2026-10-18
"""

import argparse
import logging
import os
import sys
from pathlib import Path
from typing import List, Optional

import shtab
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel

from fluxvalidator.cli.formatter import ReportFormatter
from fluxvalidator.core.engine import ScanEngine
from fluxvalidator.core.errors import FluxValidatorError
from fluxvalidator.core.models import ScanMode
from fluxvalidator.parsing.discovery import DEFAULT_PATTERN
from fluxvalidator.rotation.sops import SopsTool

__version__ = "0.2.0"

KMS_ENV_VAR = "SOPS_KMS_ARN"

# Global console for consistent styling across the application
console = Console(stderr=True)


class FluxValidatorCLI:
    """
    CLI wrapper that translates user flags into a ScanEngine run.
    Owns exit codes: 0 on a clean run, 1 on any validator error, on files
    skipped under --skip-invalid, or on rotation failures.
    """

    def __init__(self):
        self.parser = argparse.ArgumentParser(
            prog="fluxvalidator",
            description="Validates a directory for usage with Flux.",
            formatter_class=argparse.RawDescriptionHelpFormatter,
            epilog=f"The KMS key for --rotate falls back to ${KMS_ENV_VAR}.",
        )
        self._setup_args()

    def _setup_args(self):
        self.parser.add_argument("--version", action="version", version=f"fluxvalidator v{__version__}")
        shtab.add_argument_to(self.parser, ["-g", "--gen"], help="Print a shell completion script and exit")
        self.parser.add_argument("dir", nargs="?", help="The directory to check").complete = shtab.DIRECTORY
        self.parser.add_argument("-r", "--rotate", action="store_true", help="Rotate the KMS key of every encrypted file")
        self.parser.add_argument("--kms", dest="kms_arn", default=os.environ.get(KMS_ENV_VAR),
                                 help=f"The KMS ARN to rotate to (default: ${KMS_ENV_VAR})")
        self.parser.add_argument("--pattern", default=DEFAULT_PATTERN, help=f"Glob for manifests (default: {DEFAULT_PATTERN})")
        self.parser.add_argument("--skip-invalid", action="store_true",
                                 help="Skip files that fail to parse and list them as warnings (still exits 1)")
        self.parser.add_argument("--workers", type=int, default=1, help="Parallel workers for key rotation")
        self.parser.add_argument("--sops", default="sops", help="Path to the sops binary")
        self.parser.add_argument("--json", action="store_true", help="Emit the report as JSON on stdout")
        self.parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")

    def run(self, argv: Optional[List[str]] = None) -> int:
        """Parses `argv`, runs the engine and renders the report. Returns the exit code."""
        args = self.parser.parse_args(argv)

        logging.basicConfig(
            level=logging.DEBUG if args.verbose else logging.WARNING,
            format="%(levelname)s %(name)s: %(message)s",
        )

        if args.dir is None:
            console.print("[bold red]Error:[/bold red] No directory specified (see --help)")
            return 1

        mode = ScanMode.ROTATE if args.rotate else ScanMode.SCAN
        root = Path(args.dir)
        engine = ScanEngine(
            tool=SopsTool(binary=args.sops),
            skip_invalid=args.skip_invalid,
            rotation_workers=args.workers,
        )

        try:
            with console.status(f"[bold cyan]Scanning {escape(str(root))}...[/bold cyan]"):
                report = engine.scan_directory(root, pattern=args.pattern, mode=mode, target_key=args.kms_arn)
        except FluxValidatorError as e:
            console.print(f"[bold red]Error:[/bold red] {escape(str(e))}", soft_wrap=True)
            return 1

        formatter = ReportFormatter(console=Console(), base=root)
        if args.json:
            sys.stdout.write(formatter.to_json(report) + "\n")
        else:
            formatter.render(report)

        if not report.ok:
            console.print(Panel.fit(
                f"[bold red]{len(report.rotation.failures)} file(s) failed to rotate.[/bold red]\n"
                "Files that failed at the encrypt step are decrypted on disk.",
                border_style="red",
            ))
            return 1

        if report.warnings:
            console.print(f"[yellow]{len(report.warnings)} file(s) skipped as invalid.[/yellow]")
            return 1
        return 0


def main():
    """Application entry point with interrupt handling."""
    try:
        sys.exit(FluxValidatorCLI().run())
    except KeyboardInterrupt:
        console.print("\n[bold red]Terminated by user.[/bold red]")
        sys.exit(130)


if __name__ == "__main__":
    main()
