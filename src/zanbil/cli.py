"""
Command-line interface for zanbil.

This module provides the `zanbil` CLI. Its main command runs the native build
step of one unit and is meant to be invoked from a Cargo build script:

    // build.rs
    fn main() {
        let status = std::process::Command::new("zanbil").arg("build").status().unwrap();
        assert!(status.success());
    }

stdout carries `cargo:` directives, so all human-facing output goes to stderr.
"""

import argparse
import logging
import sys
import traceback
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Sequence

from rich.console import Console

from zanbil import __version__
from zanbil.build import BuildOrchestrator, BuildParams, CargoDirectives
from zanbil.errors import ZanbilError
from zanbil.output import init_timer, log, set_verbose

console = Console(stderr=True, highlight=False)


@dataclass
class BuildArgs:
    """Arguments for the build command."""

    manifest_dir: Optional[Path] = None
    out_dir: Optional[Path] = None
    verbose: bool = False


def build_command(args: BuildArgs) -> None:
    """Run the native build step of the current unit.

    Examples:
        zanbil build                            # Inside a Cargo build script
        zanbil build --out-dir target/zanbil    # Outside Cargo
        zanbil build --verbose                  # List every compiled file
    """
    init_timer(sys.stderr)
    set_verbose(args.verbose)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        stream=sys.stderr,
        format="%(levelname)s %(name)s: %(message)s",
    )
    log(f"zanbil v{__version__}")

    try:
        params = BuildParams.from_env(manifest_dir=args.manifest_dir, out_dir=args.out_dir, verbose=args.verbose)
        orchestrator = BuildOrchestrator(directives=CargoDirectives(sys.stdout), verbose=args.verbose)
        result = orchestrator.build(params)

        console.print()
        console.print(f"[bold green]✓ {result.message}[/bold green]")
        console.print(f"Library: {result.archive_path}")
        sys.exit(0)

    except ZanbilError as e:
        console.print()
        console.print(f"[bold red]✗ Build step failed ({type(e).__name__})[/bold red]")
        console.print()
        console.print(str(e), markup=False)
        sys.exit(1)

    except KeyboardInterrupt:
        console.print()
        console.print("[bold yellow]✗ Build interrupted[/bold yellow]")
        sys.exit(130)  # Standard exit code for SIGINT

    except Exception as e:
        console.print()
        console.print("[bold red]✗ Unexpected error[/bold red]")
        console.print()
        console.print(f"{type(e).__name__}: {e}", markup=False)
        if args.verbose:
            console.print()
            console.print(traceback.format_exc(), markup=False)
        sys.exit(1)


def create_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="zanbil",
        description="Native C/C++ build steps with transitive include propagation",
    )
    parser.add_argument("--version", action="version", version=f"zanbil {__version__}")

    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    build_parser = subparsers.add_parser(
        "build",
        help="Compile the unit's native sources and publish its headers",
    )
    build_parser.add_argument(
        "--manifest-dir",
        type=Path,
        default=None,
        help="Directory containing Cargo.toml (default: $CARGO_MANIFEST_DIR or current directory)",
    )
    build_parser.add_argument(
        "--out-dir",
        type=Path,
        default=None,
        help="Output directory (default: $OUT_DIR)",
    )
    build_parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Show verbose build output",
    )
    return parser


def main(argv: Optional[Sequence[str]] = None) -> None:
    parser = create_parser()
    parsed_args = parser.parse_args(argv)

    # If no command specified, show help
    if not parsed_args.command:
        parser.print_help()
        sys.exit(0)

    if parsed_args.manifest_dir is not None and not parsed_args.manifest_dir.is_dir():
        console.print(f"[bold red]✗ Error: Path is not a directory: {parsed_args.manifest_dir}[/bold red]")
        sys.exit(2)

    if parsed_args.command == "build":
        build_command(
            BuildArgs(
                manifest_dir=parsed_args.manifest_dir,
                out_dir=parsed_args.out_dir,
                verbose=parsed_args.verbose,
            )
        )


if __name__ == "__main__":
    main()
