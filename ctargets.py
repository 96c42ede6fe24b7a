import platform
import sys

from cdecl_utils import SlottedClass


class TargetError(KeyError):
    pass


class DataModel(SlottedClass):
    """Bit widths of the C integer types that vary between targets."""
    __attrs__ = ("name", "int_width", "long_width", "pointer_width")
    __types__ = {
        "name": str,
        "int_width": int,
        "long_width": int,
        "pointer_width": int,
    }

    def __str__(self):
        return self.name


ILP32 = DataModel("ILP32", 32, 32, 32)
LP64 = DataModel("LP64", 32, 64, 64)
LLP64 = DataModel("LLP64", 32, 32, 64)

LONGLONG_WIDTH = 64


class Target(SlottedClass):
    __attrs__ = ("triple", "data_model", "freestanding")
    __types__ = {
        "triple": str,
        "data_model": DataModel,
        "freestanding": bool,
    }
    __defaults__ = {"freestanding": True}

    @property
    def arch(self):
        return self.triple.split("-")[0]

    @property
    def pointer_width(self):
        return self.data_model.pointer_width

    def is_wasm(self):
        return self.arch.startswith("wasm")

    def size_type(self):
        """
        Name of the unsigned base type as wide as a pointer on this target.
        unsigned long is preferred since that is what clang uses for size_t
        on wasm32 and wasm64.
        """
        width = self.pointer_width
        if self.data_model.long_width == width:
            return "ulong"
        if self.data_model.int_width == width:
            return "uint"
        if LONGLONG_WIDTH == width:
            return "ulonglong"
        raise TargetError("No unsigned type is {} bits wide on {}".format(
            width, self.triple
        ))

    def __str__(self):
        return self.triple


WASM32 = Target("wasm32-unknown-unknown", ILP32)
WASM64 = Target("wasm64-unknown-unknown", LP64)

DEFAULT_TARGET = WASM32

TARGETS = {t.triple: t for t in (WASM32, WASM64)}


_HOST_ARCHES = {
    "x86_64": "x86_64",
    "amd64": "x86_64",
    "aarch64": "aarch64",
    "arm64": "aarch64",
}


def host_target():
    """
    The machine running this process, described as a hosted target. Used to
    check header contracts with the native compiler when no wasm linker is
    available.
    """
    machine = platform.machine().lower()
    arch = _HOST_ARCHES.get(machine)
    if arch is None:
        raise TargetError("Unsupported host architecture '{}'".format(machine))

    if sys.platform.startswith("linux"):
        return Target("{}-unknown-linux-gnu".format(arch), LP64, freestanding=False)
    elif sys.platform == "darwin":
        return Target("{}-apple-darwin".format(arch), LP64, freestanding=False)
    elif sys.platform == "win32":
        return Target("{}-pc-windows-msvc".format(arch), LLP64, freestanding=False)
    raise TargetError("Unsupported host platform '{}'".format(sys.platform))


def get_target(triple):
    """
    Look up a target by triple. "host" names the running machine.
    """
    if triple == "host":
        return host_target()
    try:
        return TARGETS[triple]
    except KeyError:
        raise TargetError("Unknown target '{}'. Known targets: {}".format(
            triple, ", ".join(sorted(TARGETS))
        )) from None
