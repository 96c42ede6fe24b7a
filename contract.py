"""
Probe translation units that pin down the compile and link behavior of the
stub stdio.h: substituted operations cost nothing, the real print declaration
needs a definition, and FILE cannot be looked into.
"""

import logging
import os
import re
import tempfile

from cdecl_utils import SlottedClass
from sysroot import PRINT_PROVIDED
from toolchain import (CompileError, LinkError, build_sources, find_compiler,
                       DEFAULT_STD)

logger = logging.getLogger(__name__)


STUBS_ONLY_SOURCE = """\
#include <stdio.h>

int stubs_only(char *buf, size_t n, FILE *stream) {
    FILE *f = fdopen(1, "w");
    int total = snprintf(buf, n, "%d", 42);
    total += fputs("text", stream);
    total += fputc('x', stream);
    total += fclose(f);
    if (f == NULL && NULL == (FILE *)0) {
        total += 0;
    }
    return total;
}
"""

REAL_PRINT_SOURCE = """\
#include <stdio.h>

int real_print(int value) {
    return fprintf(stderr, "value: %d\\n", value);
}
"""

OPAQUE_MEMBER_SOURCE = """\
#include <stdio.h>

int opaque_member(FILE *stream) {
    return stream->fd;
}
"""

OPAQUE_MEMBER_RE = re.compile(r"\bfd\b")


class ProbeResult(SlottedClass):
    __attrs__ = ("name", "passed", "detail")
    __types__ = {
        "name": str,
        "passed": bool,
        "detail": str,
    }
    __defaults__ = {"detail": ""}

    def __str__(self):
        status = "ok" if self.passed else "FAILED"
        if self.detail:
            return "{}: {} ({})".format(self.name, status, self.detail)
        return "{}: {}".format(self.name, status)


def _write(workdir, name, text):
    path = os.path.join(workdir, name)
    with open(path, "w") as f:
        f.write(text)
    return path


def _build(workdir, name, text, layout, **kwargs):
    probe_dir = os.path.join(workdir, name)
    os.makedirs(probe_dir, exist_ok=True)
    sources = [_write(probe_dir, name + ".c", text)]
    sources.extend(layout.sources.values())
    return build_sources(
        sources, layout.include_dir, layout.target,
        workdir=probe_dir, **kwargs
    )


def probe_stubs_only(workdir, layout, **kwargs):
    """Types and substituted macros compile and link with nothing else."""
    name = "stubs_only"
    try:
        _build(workdir, name, STUBS_ONLY_SOURCE, layout, **kwargs)
    except (CompileError, LinkError) as e:
        return ProbeResult(name, False, str(e))
    return ProbeResult(name, True)


def probe_real_print(workdir, layout, **kwargs):
    """
    fprintf compiles, then fails to link unless the sysroot provides a
    definition for it.
    """
    name = "real_print"
    expect_link = layout.print_mode == PRINT_PROVIDED
    try:
        _build(workdir, name, REAL_PRINT_SOURCE, layout, **kwargs)
    except CompileError as e:
        return ProbeResult(name, False, "compile error: {}".format(e))
    except LinkError as e:
        if expect_link:
            return ProbeResult(name, False, str(e))
        if "fprintf" not in e.undefined_symbols:
            return ProbeResult(name, False, "link failed without naming fprintf")
        return ProbeResult(name, True, "undefined: {}".format(", ".join(e.undefined_symbols)))

    if expect_link:
        return ProbeResult(name, True)
    return ProbeResult(name, False, "linked without a definition of fprintf")


def probe_opaque_member(workdir, layout, **kwargs):
    """
    Reading a member of FILE is a compile error, and the diagnostic names the
    member rather than some unrelated problem with the header.
    """
    name = "opaque_member"
    try:
        _build(workdir, name, OPAQUE_MEMBER_SOURCE, layout, **kwargs)
    except CompileError as e:
        if not OPAQUE_MEMBER_RE.search(e.output):
            return ProbeResult(name, False, "compile error not about the member: {}".format(e))
        return ProbeResult(name, True)
    except LinkError as e:
        return ProbeResult(name, False, "compiled, failed to link: {}".format(e))
    return ProbeResult(name, False, "member access on FILE compiled")


PROBES = (
    probe_stubs_only,
    probe_real_print,
    probe_opaque_member,
)


def check_contract(layout, *, compiler=None, std=DEFAULT_STD, workdir=None):
    """
    Run every probe against an emitted sysroot.

    Args:
        layout (SysrootLayout)
        compiler (optional[str]): Compiler name or path, found on PATH if None
        workdir (optional[str]): Directory for probe builds, temporary if None

    Returns:
        list[ProbeResult]
    """
    compiler = find_compiler(compiler)
    if workdir is None:
        with tempfile.TemporaryDirectory(prefix="stubroot-") as tmp:
            return check_contract(layout, compiler=compiler, std=std, workdir=tmp)

    results = []
    for probe in PROBES:
        result = probe(workdir, layout, compiler=compiler, std=std)
        logger.info("%s", result)
        results.append(result)
    return results
