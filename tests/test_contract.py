import tempfile
import unittest
from unittest import mock

from contract import probe_opaque_member
from ctargets import WASM32
from sysroot import SysrootLayout
from toolchain import CompileError, LinkError


GCC_MEMBER_OUTPUT = """\
opaque_member.c: In function 'opaque_member':
opaque_member.c:4:18: error: 'FILE' has no member named 'fd'
"""

CLANG_MEMBER_OUTPUT = """\
opaque_member.c:4:20: error: no member named 'fd' in 'FILE'
"""

BAD_STD_OUTPUT = """\
error: invalid value 'c42' in '-std=c42'
"""


class TestOpaqueMember(unittest.TestCase):
    def setUp(self):
        self.__tmp = tempfile.TemporaryDirectory()
        self.__layout = SysrootLayout(self.__tmp.name, WASM32)

    def tearDown(self):
        self.__tmp.cleanup()

    def __probe(self, error):
        with mock.patch("contract.build_sources", side_effect=error):
            return probe_opaque_member(self.__tmp.name, self.__layout, compiler="clang")

    def test_member_error(self):
        for output in (GCC_MEMBER_OUTPUT, CLANG_MEMBER_OUTPUT):
            result = self.__probe(CompileError("Compiling opaque_member.c failed", output))
            self.assertTrue(result.passed, str(result))

    def test_unrelated_compile_error(self):
        """A header that does not compile at all is not an opaque FILE."""
        result = self.__probe(CompileError("Compiling opaque_member.c failed", BAD_STD_OUTPUT))
        self.assertFalse(result.passed)
        self.assertIn("not about the member", result.detail)

    def test_link_error(self):
        result = self.__probe(LinkError("Linking failed", ""))
        self.assertFalse(result.passed)

    def test_compiles(self):
        with mock.patch("contract.build_sources", return_value="out.so"):
            result = probe_opaque_member(self.__tmp.name, self.__layout, compiler="clang")
        self.assertFalse(result.passed)


if __name__ == "__main__":
    unittest.main()
