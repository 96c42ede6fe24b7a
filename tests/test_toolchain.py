import os
import shutil
import sys
import tempfile
import unittest
from unittest import mock

from contract import ProbeResult, check_contract
from ctargets import WASM32, host_target
from sysroot import PRINT_EXTERN, PRINT_PROVIDED, emit_sysroot
from toolchain import (CompileError, LinkError, ToolchainError, build_sources,
                       find_compiler, link_objects, parse_undefined_symbols)


GNU_LD_OUTPUT = """\
/usr/bin/ld: /tmp/real_print.o: in function `real_print':
real_print.c:(.text+0x9): undefined reference to `stderr'
/usr/bin/ld: real_print.c:(.text+0x17): undefined reference to `fprintf'
collect2: error: ld returned 1 exit status
"""

LLD_OUTPUT = """\
wasm-ld: error: real_print.o: undefined symbol: fprintf
wasm-ld: error: real_print.o: undefined symbol: stderr
wasm-ld: error: real_print.o: undefined symbol: fprintf
clang: error: linker command failed with exit code 1 (use -v to see invocation)
"""

LD64_OUTPUT = """\
Undefined symbols for architecture arm64:
  "_fprintf", referenced from:
      _real_print in real_print.o
"""


def _have_compiler():
    return any(shutil.which(c) for c in ("clang", "gcc", "cc"))


def _have_wasm_toolchain():
    return bool(shutil.which("clang")) and bool(shutil.which("wasm-ld"))


class TestParseUndefinedSymbols(unittest.TestCase):
    def test_gnu_ld(self):
        self.assertEqual(parse_undefined_symbols(GNU_LD_OUTPUT), ["stderr", "fprintf"])

    def test_lld(self):
        """Repeated symbols are reported once."""
        self.assertEqual(parse_undefined_symbols(LLD_OUTPUT), ["fprintf", "stderr"])

    def test_ld64(self):
        self.assertEqual(parse_undefined_symbols(LD64_OUTPUT), ["fprintf"])

    def test_clean_output(self):
        self.assertEqual(parse_undefined_symbols(""), [])

    def test_link_error(self):
        e = LinkError("Linking a.wasm failed", LLD_OUTPUT)
        self.assertEqual(e.undefined_symbols, ["fprintf", "stderr"])
        self.assertIsInstance(e, ToolchainError)


class TestFindCompiler(unittest.TestCase):
    def test_none_found(self):
        with mock.patch("toolchain.shutil.which", return_value=None):
            with self.assertRaises(ToolchainError):
                find_compiler()

    def test_preferred(self):
        with mock.patch("toolchain.shutil.which", side_effect=lambda n: "/opt/bin/" + n):
            self.assertEqual(find_compiler("clang-18"), "/opt/bin/clang-18")

    def test_preferred_missing(self):
        """A missing preferred compiler does not fall back to another."""
        with mock.patch("toolchain.shutil.which", side_effect=lambda n: "/usr/bin/gcc" if n == "gcc" else None):
            with self.assertRaises(ToolchainError):
                find_compiler("clang")

    def test_wasm_needs_clang(self):
        with self.assertRaises(ToolchainError):
            link_objects(["a.o"], WASM32, compiler="/usr/bin/gcc", output="a.wasm")

    def test_no_sources(self):
        with self.assertRaises(ToolchainError):
            build_sources([], "/tmp", WASM32, compiler="clang", workdir="/tmp")


@unittest.skipUnless(_have_compiler() and sys.platform.startswith("linux"),
                     "needs a C compiler on linux")
class TestHostContract(unittest.TestCase):
    """Header contract checked with the native compiler."""

    def setUp(self):
        self.__tmp = tempfile.TemporaryDirectory()
        self.__target = host_target()

    def tearDown(self):
        self.__tmp.cleanup()

    def __layout(self, print_mode):
        return emit_sysroot(os.path.join(self.__tmp.name, "sysroot"), self.__target, print_mode)

    def __source(self, text):
        path = os.path.join(self.__tmp.name, "client.c")
        with open(path, "w") as f:
            f.write(text)
        return path

    def test_extern_contract(self):
        results = check_contract(self.__layout(PRINT_EXTERN),
                                 workdir=os.path.join(self.__tmp.name, "work"))
        self.assertEqual([r.name for r in results],
                         ["stubs_only", "real_print", "opaque_member"])
        for result in results:
            self.assertIsInstance(result, ProbeResult)
            self.assertTrue(result.passed, str(result))

    def test_provided_contract(self):
        results = check_contract(self.__layout(PRINT_PROVIDED))
        for result in results:
            self.assertTrue(result.passed, str(result))

    def test_fputc_links(self):
        """fputc with arbitrary arguments compiles and links to nothing."""
        layout = self.__layout(PRINT_EXTERN)
        source = self.__source(
            "#include <stdio.h>\n"
            "int f(int c, FILE *s) { return fputc(c, s); }\n"
        )
        out = build_sources([source], layout.include_dir, self.__target,
                            compiler=find_compiler(), workdir=self.__tmp.name)
        self.assertTrue(os.path.isfile(out))

    def test_fprintf_unresolved(self):
        """fprintf compiles but the link names it as undefined."""
        layout = self.__layout(PRINT_EXTERN)
        source = self.__source(
            "#include <stdio.h>\n"
            "int f(FILE *s) { return fprintf(s, \"%d\", 1); }\n"
        )
        with self.assertRaises(LinkError) as cm:
            build_sources([source], layout.include_dir, self.__target,
                          compiler=find_compiler(), workdir=self.__tmp.name)
        self.assertEqual(cm.exception.undefined_symbols, ["fprintf"])

    def test_opaque_member(self):
        layout = self.__layout(PRINT_EXTERN)
        source = self.__source(
            "#include <stdio.h>\n"
            "int f(FILE *s) { return s->fd; }\n"
        )
        with self.assertRaises(CompileError):
            build_sources([source], layout.include_dir, self.__target,
                          compiler=find_compiler(), workdir=self.__tmp.name)


@unittest.skipUnless(_have_wasm_toolchain(), "needs clang and wasm-ld")
class TestWasmContract(unittest.TestCase):
    def test_extern_contract(self):
        with tempfile.TemporaryDirectory() as tmp:
            layout = emit_sysroot(os.path.join(tmp, "sysroot"), WASM32, PRINT_EXTERN)
            results = check_contract(layout, compiler="clang")
        for result in results:
            self.assertTrue(result.passed, str(result))


if __name__ == "__main__":
    unittest.main()
