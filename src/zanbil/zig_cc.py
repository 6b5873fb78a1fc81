"""
`cc` / `c++` replacement that forwards to `zig cc` / `zig c++`.

Point CC and CXX at the `zanbil-cc` and `zanbil-c++` scripts to cross-compile
a unit's native sources with Zig. Cargo-driven compilers receive Rust target
triples (`aarch64-unknown-linux-gnu`), which Zig does not understand, so
`--target` values are rewritten to Zig triples (`aarch64-linux-gnu`).
"""

import os
import sys
from pathlib import Path
from typing import List, NoReturn, Optional, Sequence

ZIG = "zig"

# Rust OS (or vendor-less OS slot) -> Zig OS
OS_MAP = {
    "darwin": "macos",
    "windows": "windows",
    "linux": "linux",
    "none": "freestanding",
    "unknown": "freestanding",
}


def rust_to_zig(rust_target: str) -> str:
    """Translate a Rust target triple into a Zig target triple.

    Strings with fewer than three dash-separated parts are not standard
    triples and are returned unchanged.
    """
    parts = rust_target.split("-")
    if len(parts) < 3:
        return rust_target

    arch, _vendor, os_name = parts[0], parts[1], parts[2]
    abi = parts[3] if len(parts) > 3 else ""
    os_name = OS_MAP.get(os_name, os_name)

    if arch.startswith("wasm32"):
        if os_name == "freestanding":
            return "wasm32-freestanding"
        if os_name == "wasi":
            return "wasm32-wasi"

    zig_target = f"{arch}-{os_name}"
    if abi:
        zig_target += f"-{abi}"
    return zig_target


def build_zig_command(program: str, args: Sequence[str]) -> List[str]:
    """Build the `zig cc` / `zig c++` command line for a compiler invocation.

    Args:
        program: Name the shim was invoked as; a `++` selects `zig c++`
        args: Compiler arguments, forwarded with --target rewritten
    """
    mode = "c++" if "++" in Path(program).name else "cc"
    cmd = [ZIG, mode]

    i = 0
    while i < len(args):
        arg = args[i]
        if arg == "--target" and i + 1 < len(args):
            cmd.extend(["--target", rust_to_zig(args[i + 1])])
            i += 2
            continue
        if arg.startswith("--target="):
            cmd.append(f"--target={rust_to_zig(arg[len('--target='):])}")
        else:
            cmd.append(arg)
        i += 1
    return cmd


def main(argv: Optional[Sequence[str]] = None) -> NoReturn:
    """Entry point for `zanbil-cc` / `zanbil-c++`: replace this process with zig."""
    argv = list(sys.argv if argv is None else argv)
    cmd = build_zig_command(argv[0], argv[1:])
    # Echoed to stderr: cargo would parse stdout lines as directives
    print(" ".join(cmd), file=sys.stderr)
    try:
        os.execvp(cmd[0], cmd)
    except OSError as e:
        print(f"zanbil-cc: failed to run {cmd[0]}: {e}", file=sys.stderr)
        sys.exit(1)


def main_cc() -> NoReturn:
    main(["zanbil-cc", *sys.argv[1:]])


def main_cxx() -> NoReturn:
    main(["zanbil-c++", *sys.argv[1:]])
