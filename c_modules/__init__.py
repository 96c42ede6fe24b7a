from .stdio_module import (STDIO_VARS, STDIO_TYPES, stdio_module,
                           stdio_support_module)


C_VARS = {}
C_VARS.update(STDIO_VARS)


C_TYPES = {}
C_TYPES.update(STDIO_TYPES)


# Header name -> builder taking a Target
HEADERS = {
    "stdio.h": stdio_module,
}

# Support source name -> builder. Only emitted when the sysroot provides
# definitions for the symbols its headers declare.
SUPPORT_SOURCES = {
    "stdio.c": stdio_support_module,
}


def header_for(name):
    """Name of the header declaring the variable, function, macro or type."""
    if name in C_VARS:
        return C_VARS[name][0]
    if name in C_TYPES:
        return C_TYPES[name][0]
    return None
