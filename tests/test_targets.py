import unittest
from unittest import mock

import ctargets
from ctargets import (ILP32, LLP64, LP64, WASM32, WASM64, DataModel, Target,
                      TargetError, get_target, host_target)


class TestTargets(unittest.TestCase):
    def test_wasm32(self):
        self.assertEqual(WASM32.arch, "wasm32")
        self.assertEqual(WASM32.pointer_width, 32)
        self.assertTrue(WASM32.is_wasm())
        self.assertTrue(WASM32.freestanding)
        self.assertEqual(WASM32.size_type(), "ulong")

    def test_wasm64(self):
        self.assertEqual(WASM64.pointer_width, 64)
        self.assertEqual(WASM64.size_type(), "ulong")

    def test_llp64_size_type(self):
        """long is too narrow for a pointer on LLP64."""
        target = Target("x86_64-pc-windows-msvc", LLP64, freestanding=False)
        self.assertEqual(target.size_type(), "ulonglong")
        self.assertFalse(target.is_wasm())

    def test_int_sized_pointers(self):
        target = Target("avr-none", DataModel("IP16", 16, 32, 16))
        self.assertEqual(target.size_type(), "uint")

    def test_no_matching_width(self):
        target = Target("odd-none", DataModel("ODD", 32, 32, 48))
        with self.assertRaises(TargetError):
            target.size_type()

    def test_get_target(self):
        self.assertIs(get_target("wasm32-unknown-unknown"), WASM32)
        self.assertIs(get_target("wasm64-unknown-unknown"), WASM64)

    def test_unknown_target(self):
        with self.assertRaises(TargetError):
            get_target("riscv32-unknown-none-elf")
        # Lookups behave like a mapping
        with self.assertRaises(KeyError):
            get_target("nope")

    def test_data_models(self):
        self.assertEqual(ILP32.long_width, 32)
        self.assertEqual(LP64.long_width, 64)
        self.assertEqual(str(LP64), "LP64")


class TestHostTarget(unittest.TestCase):
    def test_linux(self):
        with mock.patch.object(ctargets.platform, "machine", return_value="x86_64"), \
                mock.patch.object(ctargets.sys, "platform", "linux"):
            target = host_target()
        self.assertEqual(target.triple, "x86_64-unknown-linux-gnu")
        self.assertFalse(target.freestanding)
        self.assertEqual(target.size_type(), "ulong")

    def test_darwin_arm(self):
        with mock.patch.object(ctargets.platform, "machine", return_value="arm64"), \
                mock.patch.object(ctargets.sys, "platform", "darwin"):
            target = host_target()
        self.assertEqual(target.triple, "aarch64-apple-darwin")

    def test_host_alias(self):
        with mock.patch.object(ctargets.platform, "machine", return_value="AMD64"), \
                mock.patch.object(ctargets.sys, "platform", "win32"):
            target = get_target("host")
        self.assertEqual(target.data_model, LLP64)

    def test_unsupported_arch(self):
        with mock.patch.object(ctargets.platform, "machine", return_value="sparc"):
            with self.assertRaises(TargetError):
                host_target()


if __name__ == "__main__":
    unittest.main()
