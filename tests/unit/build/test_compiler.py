"""Tests for the native compiler driver."""

import subprocess
from pathlib import Path
from unittest.mock import patch

import pytest

from zanbil.build.compiler import NativeCompiler, NativeCompilerError, SourceLanguage
from zanbil.config import UnitConfig


@pytest.fixture
def mixed_tree(tmp_path):
    """Source tree holding both C and C++ files."""
    src = tmp_path / "src"
    (src / "nested" / "deeper").mkdir(parents=True)
    (src / "main.c").write_text("int main_c(void) { return 0; }\n")
    (src / "main.cpp").write_text("int main_cpp() { return 0; }\n")
    (src / "nested" / "util.c").write_text("void util(void) {}\n")
    (src / "nested" / "deeper" / "algo.cc").write_text("void algo() {}\n")
    (src / "nested" / "helper.cxx").write_text("void helper() {}\n")
    (src / "lib.h").write_text("#pragma once\n")
    (src / "notes.txt").write_text("not a source\n")
    return src


def _compiler(tmp_path, src, directives, config=None, env=None, include_dirs=None) -> NativeCompiler:
    return NativeCompiler(
        config=config or UnitConfig(),
        source_dir=src,
        out_dir=tmp_path / "out",
        include_dirs=include_dirs or [tmp_path / "out" / "include"],
        env=env or {},
        directives=directives,
    )


class TestLanguageSelection:
    def test_c_mode_by_default(self):
        assert SourceLanguage.for_config(UnitConfig()) is SourceLanguage.C

    def test_cpp_mode_when_language_mode_set(self):
        assert SourceLanguage.for_config(UnitConfig(language_mode=17)) is SourceLanguage.CXX

    def test_c_mode_discovers_only_c_files(self, tmp_path, mixed_tree, directives):
        sources = _compiler(tmp_path, mixed_tree, directives).discover_sources()
        assert [p.relative_to(mixed_tree).as_posix() for p in sources] == ["main.c", "nested/util.c"]

    def test_cpp_mode_discovers_only_cpp_files(self, tmp_path, mixed_tree, directives):
        sources = _compiler(tmp_path, mixed_tree, directives, config=UnitConfig(language_mode=17)).discover_sources()
        assert [p.relative_to(mixed_tree).as_posix() for p in sources] == [
            "main.cpp",
            "nested/deeper/algo.cc",
            "nested/helper.cxx",
        ]

    def test_missing_source_dir_is_fatal(self, tmp_path, directives):
        with pytest.raises(NativeCompilerError, match="not found"):
            _compiler(tmp_path, tmp_path / "nope", directives).discover_sources()


class TestCompilerSelection:
    def test_default_c_compiler(self, tmp_path, mixed_tree, directives):
        assert _compiler(tmp_path, mixed_tree, directives).compiler_command() == ["cc"]

    def test_default_cpp_compiler(self, tmp_path, mixed_tree, directives):
        compiler = _compiler(tmp_path, mixed_tree, directives, config=UnitConfig(language_mode=20))
        assert compiler.compiler_command() == ["c++"]

    def test_cc_override(self, tmp_path, mixed_tree, directives):
        compiler = _compiler(tmp_path, mixed_tree, directives, env={"CC": "clang", "CXX": "clang++"})
        assert compiler.compiler_command() == ["clang"]

    def test_cxx_override(self, tmp_path, mixed_tree, directives):
        compiler = _compiler(tmp_path, mixed_tree, directives, config=UnitConfig(language_mode=17), env={"CC": "clang", "CXX": "clang++"})
        assert compiler.compiler_command() == ["clang++"]

    def test_override_with_wrapper(self, tmp_path, mixed_tree, directives):
        compiler = _compiler(tmp_path, mixed_tree, directives, env={"CC": "ccache gcc"})
        assert compiler.compiler_command() == ["ccache", "gcc"]

    def test_blank_override_uses_default(self, tmp_path, mixed_tree, directives):
        assert _compiler(tmp_path, mixed_tree, directives, env={"CC": "  "}).compiler_command() == ["cc"]


class TestFlags:
    def test_c_has_no_standard_flag(self, tmp_path, mixed_tree, directives):
        assert _compiler(tmp_path, mixed_tree, directives).compile_flags() == []

    def test_cpp_standard_flag(self, tmp_path, mixed_tree, directives):
        compiler = _compiler(tmp_path, mixed_tree, directives, config=UnitConfig(language_mode=23))
        assert compiler.compile_flags() == ["-std=c++23"]

    def test_cargo_profile_and_user_flags(self, tmp_path, mixed_tree, directives):
        env = {"OPT_LEVEL": "2", "DEBUG": "true", "CFLAGS": "-Wall -DNAME='\"x y\"'", "CXXFLAGS": "-fno-rtti"}
        assert _compiler(tmp_path, mixed_tree, directives, env=env).compile_flags() == ["-O2", "-g", "-Wall", '-DNAME="x y"']

    def test_include_flags_keep_given_order(self, tmp_path, mixed_tree, directives):
        dirs = [Path("/a/include"), Path("/b/include")]
        assert _compiler(tmp_path, mixed_tree, directives, include_dirs=dirs).include_flags() == ["-I/a/include", "-I/b/include"]


class TestCompile:
    def test_compiles_all_sources_into_one_archive(self, tmp_path, mixed_tree, directives, directive_stream, fake_toolchain):
        include_dirs = [tmp_path / "out" / "include", Path("/dep/include")]
        compiler = _compiler(tmp_path, mixed_tree, directives, include_dirs=include_dirs)

        archive = compiler.compile()

        assert archive == tmp_path / "out" / "libmain.a"
        assert archive.exists()
        assert len(fake_toolchain.compile_commands) == 2
        for cmd in fake_toolchain.compile_commands:
            assert cmd[0] == "cc"
            assert [a for a in cmd if a.startswith("-I")] == [f"-I{d}" for d in include_dirs]

        [archive_cmd] = fake_toolchain.archive_commands
        assert archive_cmd[:3] == ["ar", "crs", str(archive)]
        assert sorted(Path(p).name for p in archive_cmd[3:]) == ["main.c.o", "util.c.o"]

        lines = directive_stream.getvalue().splitlines()
        assert f"cargo:rerun-if-changed={mixed_tree / 'main.c'}" in lines
        assert f"cargo:rerun-if-changed={mixed_tree / 'nested' / 'util.c'}" in lines
        assert "cargo:rerun-if-env-changed=CC" in lines
        assert "cargo:rerun-if-env-changed=CXX" in lines
        assert f"cargo:rustc-link-search=native={tmp_path / 'out'}" in lines
        assert lines[-1] == "cargo:rustc-link-lib=static=main"

    def test_objects_mirror_source_tree(self, tmp_path, mixed_tree, directives, fake_toolchain):
        _compiler(tmp_path, mixed_tree, directives).compile()
        assert (tmp_path / "out" / "obj" / "main.c.o").exists()
        assert (tmp_path / "out" / "obj" / "nested" / "util.c.o").exists()

    def test_cpp_unit_uses_cxx_and_standard(self, tmp_path, mixed_tree, directives, fake_toolchain):
        _compiler(tmp_path, mixed_tree, directives, config=UnitConfig(language_mode=17), env={"CXX": "g++"}).compile()
        assert len(fake_toolchain.compile_commands) == 3
        for cmd in fake_toolchain.compile_commands:
            assert cmd[:2] == ["g++", "-std=c++17"]

    def test_compile_failure_is_fatal_with_diagnostics(self, tmp_path, mixed_tree, directives, directive_stream, fake_toolchain):
        fake_toolchain.fail_on = "util.c"
        with pytest.raises(NativeCompilerError, match="cannot compile util.c") as exc_info:
            _compiler(tmp_path, mixed_tree, directives).compile()
        assert "Compilation failed for util.c" in str(exc_info.value)
        assert fake_toolchain.archive_commands == []
        assert "rustc-link-lib" not in directive_stream.getvalue()

    def test_archive_failure_is_fatal(self, tmp_path, mixed_tree, directives, fake_toolchain):
        fake_toolchain.fail_on = "crs"
        with pytest.raises(NativeCompilerError, match="Archive creation failed"):
            _compiler(tmp_path, mixed_tree, directives).compile()

    def test_stale_archive_is_replaced(self, tmp_path, mixed_tree, directives, fake_toolchain):
        archive = tmp_path / "out" / "libmain.a"
        archive.parent.mkdir(parents=True)
        archive.write_bytes(b"stale")
        _compiler(tmp_path, mixed_tree, directives).compile()
        assert archive.read_bytes() == b"!<arch>\n"

    def test_no_sources_links_an_empty_library(self, tmp_path, directives, directive_stream, fake_toolchain, _quiet_output):
        src = tmp_path / "src"
        src.mkdir()
        (src / "only.h").write_text("")

        archive = _compiler(tmp_path, src, directives).compile()

        assert archive == tmp_path / "out" / "libmain.a"
        assert archive.read_bytes() == b"!<arch>\n"
        assert fake_toolchain.commands == []
        lines = directive_stream.getvalue().splitlines()
        assert f"cargo:rustc-link-search=native={tmp_path / 'out'}" in lines
        assert "cargo:rustc-link-lib=static=main" in lines
        assert "WARNING: No .c sources found" in _quiet_output.getvalue()

    def test_missing_compiler_is_fatal(self, tmp_path, mixed_tree, directives):
        with patch("zanbil.build.compiler.run_tool", side_effect=FileNotFoundError(2, "No such file or directory")):
            with pytest.raises(NativeCompilerError, match="Failed to run compiler 'cc'"):
                _compiler(tmp_path, mixed_tree, directives).compile()

    def test_compiler_warnings_are_reported(self, tmp_path, mixed_tree, directives, fake_toolchain, _quiet_output):
        fake_toolchain.stderr = "main.c:1: warning: unused variable"
        _compiler(tmp_path, mixed_tree, directives).compile()
        assert "WARNING: main.c:1: warning: unused variable" in _quiet_output.getvalue()


def test_run_tool_result_is_used(tmp_path, mixed_tree, directives):
    """compile_source passes the full command to run_tool."""
    out = tmp_path / "obj.o"
    with patch("zanbil.build.compiler.run_tool", return_value=subprocess.CompletedProcess([], 0, "", "")) as mock_run:
        assert _compiler(tmp_path, mixed_tree, directives).compile_source(mixed_tree / "main.c", out) == out
    cmd = mock_run.call_args[0][0]
    assert cmd[-4:] == ["-c", str(mixed_tree / "main.c"), "-o", str(out)]
