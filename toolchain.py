"""
Thin wrappers around the C compiler and linker used to check that stub
headers behave the way their declarations promise.
"""

import logging
import os
import re
import shutil
import subprocess

logger = logging.getLogger(__name__)

COMPILER_CANDIDATES = ("clang", "gcc", "cc")

DEFAULT_STD = "gnu11"


class ToolchainError(RuntimeError):
    pass


class CompileError(ToolchainError):
    def __init__(self, message, output=""):
        super().__init__(message)
        self.output = output


class LinkError(ToolchainError):
    def __init__(self, message, output=""):
        super().__init__(message)
        self.output = output
        self.undefined_symbols = parse_undefined_symbols(output)


UNDEFINED_SYMBOL_PATTERNS = (
    # lld, wasm-ld
    re.compile(r"undefined symbol: [`']?([A-Za-z_][A-Za-z0-9_]*)"),
    # GNU ld
    re.compile(r"undefined reference to [`']([A-Za-z_][A-Za-z0-9_]*)'"),
    # ld64
    re.compile(r'"_([A-Za-z_][A-Za-z0-9_]*)", referenced from'),
)


def parse_undefined_symbols(output):
    """
    Symbol names reported as undefined in linker output, in order of first
    appearance and without duplicates.
    """
    found = []
    for line in output.splitlines():
        for pattern in UNDEFINED_SYMBOL_PATTERNS:
            for name in pattern.findall(line):
                if name not in found:
                    found.append(name)
    return found


def find_compiler(preferred=None):
    """
    Find a C compiler on PATH. A preferred compiler that cannot be found is an
    error rather than a reason to fall back.
    """
    candidates = [preferred] if preferred else COMPILER_CANDIDATES
    for name in candidates:
        path = shutil.which(name)
        if path:
            return path
    raise ToolchainError("No C compiler found (tried {})".format(", ".join(candidates)))


def is_clang(compiler):
    return "clang" in os.path.basename(compiler)


def _target_flags(compiler, target):
    if target.freestanding:
        if not is_clang(compiler):
            raise ToolchainError("Compiling for {} requires clang, not {}".format(
                target, os.path.basename(compiler)
            ))
        return ["--target=" + target.triple]
    return []


def _run(cmd, error_cls, what):
    logger.debug("Running: %s", " ".join(cmd))
    proc = subprocess.run(
        cmd,
        stdout=subprocess.PIPE,
        stderr=subprocess.STDOUT,
        universal_newlines=True,
    )
    if proc.returncode:
        raise error_cls("{} failed with exit code {}:\n{}".format(
            what, proc.returncode, proc.stdout
        ), proc.stdout)
    return proc.stdout


def compile_object(source, include_dir, target, *, compiler, output=None,
                   std=DEFAULT_STD, optimize=True):
    """
    Compile one C source against the sysroot headers only.

    Returns:
        str: Path of the object file
    """
    if not output:
        output = os.path.splitext(source)[0] + ".o"

    cmd = [compiler] + _target_flags(compiler, target) + [
        "-std=" + std,
        "-ffreestanding",
        "-nostdinc",
        "-I", include_dir,
        "-c", source,
        "-o", output,
    ]
    if not target.is_wasm():
        cmd.append("-fPIC")
    if optimize:
        cmd.append("-O2")

    _run(cmd, CompileError, "Compiling {}".format(source))
    return output


def link_objects(objects, target, *, compiler, output):
    """
    Link objects without any libc. Undefined symbols are always an error.

    Returns:
        str: Path of the linked module or shared object
    """
    if not objects:
        raise ToolchainError("No object files provided")

    cmd = [compiler] + _target_flags(compiler, target) + ["-nostdlib"]
    if target.is_wasm():
        cmd += ["-Wl,--no-entry", "-Wl,--export-all"]
    elif "-apple-" in target.triple:
        # ld64 rejects undefined symbols in dylibs by default
        cmd += ["-dynamiclib"]
    else:
        cmd += ["-shared", "-Wl,--no-undefined"]
    cmd += list(objects) + ["-o", output]

    _run(cmd, LinkError, "Linking {}".format(output))
    return output


def build_sources(sources, include_dir, target, *, compiler, workdir,
                  output=None, **kwargs):
    """
    Compile each source into workdir and link the objects.

    Returns:
        str: Path of the linked output
    """
    if not sources:
        raise ToolchainError("No source files provided")

    objects = []
    for source in sources:
        name = os.path.splitext(os.path.basename(source))[0]
        objects.append(compile_object(
            source, include_dir, target,
            compiler=compiler,
            output=os.path.join(workdir, name + ".o"),
            **kwargs
        ))

    if not output:
        output = os.path.join(workdir, "a.wasm" if target.is_wasm() else "a.so")
    return link_objects(objects, target, compiler=compiler, output=output)
