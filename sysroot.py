import logging
import os

from c_modules import HEADERS, SUPPORT_SOURCES
from cdecl_utils import SlottedClass
from ctargets import DEFAULT_TARGET, Target

logger = logging.getLogger(__name__)


# fprintf and stderr are only declared. Programs using them fail to link
# unless something else defines them.
PRINT_EXTERN = "extern"

# The sysroot also ships definitions for them under src/.
PRINT_PROVIDED = "provided"

PRINT_MODES = (PRINT_EXTERN, PRINT_PROVIDED)

SUPPORT_DIR = "src"


class SysrootLayout(SlottedClass):
    __attrs__ = ("root", "target", "print_mode", "headers", "sources")
    __types__ = {
        "root": str,
        "target": Target,
        "print_mode": str,
        "headers": {str: str},
        "sources": {str: str},
    }
    __defaults__ = {
        "print_mode": PRINT_EXTERN,
        "headers": {},
        "sources": {},
    }

    @property
    def include_dir(self):
        return self.root

    def header_texts(self):
        texts = {}
        for name, path in self.headers.items():
            with open(path, "r") as f:
                texts[name] = f.read()
        return texts


def check_print_mode(print_mode):
    if print_mode not in PRINT_MODES:
        raise ValueError("Unknown print mode '{}'. Expected one of: {}".format(
            print_mode, ", ".join(PRINT_MODES)
        ))
    return print_mode


def header_module(name, target=DEFAULT_TARGET):
    try:
        builder = HEADERS[name]
    except KeyError:
        raise KeyError("No stub header named '{}'".format(name)) from None
    return builder(target)


def render_header(name, target=DEFAULT_TARGET):
    return header_module(name, target).c_code() + "\n"


def render_headers(target=DEFAULT_TARGET):
    return {name: render_header(name, target) for name in HEADERS}


def write_c_file(path, module):
    os.makedirs(os.path.dirname(path) or ".", exist_ok=True)
    with open(path, "w") as f:
        f.write(module.c_code() + "\n")
    logger.info("Wrote %s", path)
    return path


def remove_support_sources(output):
    """
    Delete support sources left in output by an earlier sysroot, and the
    support directory once nothing else is in it.
    """
    support_dir = os.path.join(output, SUPPORT_DIR)
    for name in sorted(SUPPORT_SOURCES):
        path = os.path.join(support_dir, name)
        if os.path.isfile(path):
            os.remove(path)
            logger.info("Removed %s", path)
    if os.path.isdir(support_dir) and not os.listdir(support_dir):
        os.rmdir(support_dir)


def emit_sysroot(output, target=DEFAULT_TARGET, print_mode=PRINT_EXTERN):
    """
    Write the stub headers into output so that "-I output" finds them ahead
    of any system header.

    Args:
        output (str): Sysroot directory, created if missing
        target (Target): Target the headers are specialized for
        print_mode (str): One of PRINT_MODES

    Returns:
        SysrootLayout
    """
    check_print_mode(print_mode)
    output = os.path.abspath(output)
    logger.info("Emitting %s sysroot for %s in %s", print_mode, target, output)

    headers = {}
    for name in sorted(HEADERS):
        headers[name] = write_c_file(
            os.path.join(output, name),
            header_module(name, target)
        )

    sources = {}
    if print_mode == PRINT_PROVIDED:
        for name in sorted(SUPPORT_SOURCES):
            sources[name] = write_c_file(
                os.path.join(output, SUPPORT_DIR, name),
                SUPPORT_SOURCES[name]()
            )
    else:
        remove_support_sources(output)

    return SysrootLayout(output, target, print_mode, headers, sources)
