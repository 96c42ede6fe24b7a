"""
What a header exposes to the code that includes it, and which of those names
the linker has to resolve somewhere else.
"""

from cdecl import (NodeVisitor, Define, FuncMacro, ExternDecl, FuncDecl,
                   TypeDefStmt, Int, Null, Struct)
from cdecl_utils import SlottedClass
from cpp import Preprocessor


class SurfaceError(ValueError):
    pass


class HeaderSurface(SlottedClass):
    __attrs__ = ("header", "types", "macros", "guards", "extern_vars",
                 "extern_funcs")
    __types__ = {
        "header": str,
        "types": {str: TypeDefStmt},
        "macros": {str: (Define, FuncMacro)},
        "guards": [str],
        "extern_vars": {str: [ExternDecl]},
        "extern_funcs": {str: [FuncDecl]},
    }
    __defaults__ = {
        "header": "",
        "types": {},
        "macros": {},
        "guards": [],
        "extern_vars": {},
        "extern_funcs": {},
    }

    def substituted(self):
        """Names of operations replaced by function-like macros."""
        return {name for name, m in self.macros.items() if isinstance(m, FuncMacro)}

    def opaque_types(self):
        return {
            name for name, t in self.types.items()
            if isinstance(t.type, Struct) and t.type.is_opaque()
        }

    def link_symbols(self):
        """Names declared here whose definitions the linker must find."""
        return set(self.extern_vars) | set(self.extern_funcs)

    def classify(self, name):
        if name in self.types:
            return "type"
        if name in self.macros:
            return "macro"
        if name in self.extern_vars:
            return "variable"
        if name in self.extern_funcs:
            return "function"
        return None

    def names(self):
        return set(self.types) | set(self.macros) | self.link_symbols()


class SurfaceCollector(NodeVisitor):
    def __init__(self):
        super().__init__()
        self.__surface = HeaderSurface()
        self.__pending_guard = None

    def surface(self):
        return self.__surface

    def visit_Module(self, node):
        self.__surface.header = node.filename or ""
        self.visit(node.body)

    def visit_Ifndef(self, node):
        self.__pending_guard = node.guard

    def visit_Define(self, node):
        # "#ifndef X" directly followed by "#define X" is an include guard
        if node.value is None and node.name == self.__pending_guard:
            self.__surface.guards.append(node.name)
        else:
            self.__surface.macros[node.name] = node
        self.__pending_guard = None

    def visit_FuncMacro(self, node):
        self.__surface.macros[node.name] = node

    def visit_TypeDefStmt(self, node):
        self.__surface.types[node.name] = node

    def visit_ExternDecl(self, node):
        self.__surface.extern_vars.setdefault(node.decl.name, []).append(node)

    def visit_FuncDecl(self, node):
        self.__surface.extern_funcs.setdefault(node.name, []).append(node)


def collect_surface(module):
    collector = SurfaceCollector()
    collector.visit(module)
    return collector.surface()


def validate_surface(surface):
    """
    Check the invariants of an inert header. Raises SurfaceError on the first
    violation and returns the surface otherwise.
    """
    for kind, decls in (("variable", surface.extern_vars),
                        ("function", surface.extern_funcs)):
        for name, nodes in decls.items():
            if len(nodes) != 1:
                raise SurfaceError("{} '{}' in {} declared {} times".format(
                    kind, name, surface.header, len(nodes)
                ))

    clashes = sorted(surface.link_symbols() & set(surface.macros))
    if clashes:
        raise SurfaceError("'{}' in {} is both a macro and an external symbol".format(
            clashes[0], surface.header
        ))

    for name, macro in surface.macros.items():
        if isinstance(macro, FuncMacro) and not isinstance(macro.value, (Int, Null)):
            raise SurfaceError("Macro '{}' in {} must expand to a constant".format(
                name, surface.header
            ))

    return surface


def required_symbols(surface, source, headers):
    """
    Link symbols of surface that source still references once the
    preprocessor has run. Member names after "." or "->" are not references.

    Args:
        surface (HeaderSurface)
        source (str): C source text, usually including the header
        headers (dict[str, str]): Header name to text used for #include

    Returns:
        set[str]
    """
    pp = Preprocessor(headers=headers, emit_includes=False)
    names = set()
    prev = None
    for tok in pp.process_tokens(source):
        if tok.type in ("WS", "NEWLINE"):
            continue
        if tok.type == "NAME" and not (prev is not None and prev.type == "PUNCT"
                                       and prev.value in (".", "->")):
            names.add(tok.value)
        prev = tok
    return names & surface.link_symbols()
