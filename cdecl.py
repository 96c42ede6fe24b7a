"""
Declaration trees for C headers and the small translation units that back
them.

Every node renders two ways: lines() gives a short readable summary of the
declaration and c_lines() gives the C text that is written to disk.
"""

from cdecl_utils import SlottedClass, optional

INDENT = "    "


class TypeMixin(SlottedClass):
    """Mixin to indicate this node represents a type."""


class ValueMixin(SlottedClass):
    """Mixin to indicate this node represents a value."""


class StmtMixin(SlottedClass):
    """Mixin to indicate this node represents a top level statement."""


class Node(SlottedClass):
    __extra_attrs__ = {"lineno"}
    __types__ = {"lineno": int}
    __defaults__ = {"lineno": -1}

    def lines(self):
        """
        Yields strings representing each line in the summary representation
        of this node. The trailing newline is excluded.
        """
        raise NotImplementedError("lines() not implemented for node {}".format(type(self)))

    def c_lines(self):
        """
        Same as lines() but each line is the C code equivalent.
        """
        raise NotImplementedError("c_lines() not implemented for node {}".format(type(self)))

    def c_code(self):
        return "\n".join(self.c_lines())

    def __str__(self):
        return "\n".join(self.lines())


def ext_enumerate(iterable):
    """
    Yields:
        Any: the item
        idx: item index
        bool: if the element is last
    """
    items = list(iterable)
    for idx, item in enumerate(items):
        yield item, idx, idx == len(items) - 1


def iter_fields(node):
    for attr in node.__attrs__:
        yield attr, getattr(node, attr)


def iter_indent_seq(seq, c_code=False):
    """Iterate through a sequence of nodes and indent each line in the node."""
    for node in seq:
        lines = node.c_lines() if c_code else node.lines()
        for line in lines:
            yield INDENT + line


def dump_tree(node, indent_size=4):
    indent = " " * indent_size

    def _lines(node, attr=None):
        start = attr + "=" if attr else ""

        if isinstance(node, Node):
            yield start + node.__class__.__name__ + ":"

            for attr, val in iter_fields(node):
                for line in _lines(val, attr=attr):
                    yield indent + line
        elif isinstance(node, (list, tuple)):
            if not node:
                yield start + "[]"
            elif len(node) == 1:
                for line, i, is_last in ext_enumerate(_lines(node[0])):
                    if not i:
                        line = start + "[" + line
                    else:
                        line = indent + line
                    if is_last:
                        line += "]"
                    yield line
            else:
                yield start + "["

                for elem in node:
                    for line in _lines(elem):
                        yield indent + line

                yield "]"
        elif isinstance(node, str):
            yield start + '"{}"'.format(node.replace('"', r'\"').replace("\n", r"\n"))
        else:
            yield start + str(node)

    return "\n".join(_lines(node))


################ Nodes #################


class Module(Node):
    __attrs__ = ("body", "filename")
    __types__ = {
        "body": [StmtMixin],
        "filename": optional(str),
    }
    __defaults__ = {
        "body": [],
        "filename": None,
    }

    def lines(self):
        for node in self.body:
            yield from node.lines()

    def c_lines(self):
        for node in self.body:
            yield from node.c_lines()


class Blank(Node, StmtMixin):
    def lines(self):
        yield ""

    def c_lines(self):
        yield ""


########## Types ##########


class NameType(Node, TypeMixin):
    __attrs__ = ("id", )
    __types__ = {"id": str}

    TYPE_NAME_CONVERSIONS = {
        "longlong": "long long",
        "uchar": "unsigned char",
        "ushort": "unsigned short",
        "uint": "unsigned int",
        "ulong": "unsigned long",
        "ulonglong": "unsigned long long",
    }

    def lines(self):
        yield self.id

    def c_lines(self):
        """Short unsigned names are spelled out in C."""
        yield self.TYPE_NAME_CONVERSIONS.get(self.id, self.id)


class Const(Node, TypeMixin):
    __attrs__ = ("contents", )
    __types__ = {"contents": TypeMixin}

    def lines(self):
        yield "const[{}]".format(self.contents)

    def c_lines(self):
        yield "const {}".format(self.contents.c_code())


class Pointer(Node, TypeMixin):
    __attrs__ = ("contents", )
    __types__ = {"contents": TypeMixin}

    def lines(self):
        yield "pointer[{}]".format(self.contents)

    def c_lines(self):
        yield "{}*".format(self.contents.c_code())


class Ellipsis(Node, TypeMixin):
    def lines(self):
        yield "..."

    def c_lines(self):
        yield "..."


class Struct(Node, TypeMixin):
    """
    A struct type. A struct with no name and no members is the opaque
    marker used for handle types: client code can only hold pointers to it.
    """
    __attrs__ = ("name", "decls")
    __types__ = {
        "name": optional(str),
        "decls": [StmtMixin],
    }
    __defaults__ = {
        "name": None,
        "decls": [],
    }

    def is_opaque(self):
        return not self.decls

    def lines(self):
        yield "struct {}{{{}}}".format(
            self.name + " " if self.name else "",
            ", ".join(map(str, self.decls))
        )

    def c_lines(self):
        head = "struct {} ".format(self.name) if self.name else "struct "
        if not self.decls:
            yield head + "{}"
        else:
            yield head + "{{{}}}".format(
                " ".join(n.c_code() + ";" for n in self.decls)
            )


########## Values ##########


class Name(Node, ValueMixin):
    __attrs__ = ("id", )
    __types__ = {"id": str}

    def lines(self):
        yield self.id

    def c_lines(self):
        yield self.id


class Null(Node, ValueMixin):
    def lines(self):
        yield "NULL"

    def c_lines(self):
        yield "NULL"


class Int(Node, ValueMixin):
    __attrs__ = ("n", )
    __types__ = {"n": int}

    def lines(self):
        yield str(self.n)

    def c_lines(self):
        yield str(self.n)


class Cast(Node, ValueMixin):
    __attrs__ = ("target_type", "expr")
    __types__ = {
        "target_type": TypeMixin,
        "expr": ValueMixin,
    }

    def lines(self):
        yield "(<{}>{})".format(self.target_type, self.expr)

    def c_lines(self):
        yield "(({}){})".format(
            self.target_type.c_code(),
            self.expr.c_code()
        )


########## Declarations ##########


def _format_c_decl(name, t):
    """
    Format a declaration of name with type t as C code.

    Args:
        name (str): Name of the variable, possibly already decorated with '*'
        t (Node): The type of the variable
    """
    assert isinstance(t, TypeMixin)
    assert isinstance(name, str)

    if isinstance(t, Pointer):
        return _format_c_decl("*" + name, t.contents)
    elif isinstance(t, (NameType, Const, Struct)):
        return "{} {}".format(t.c_code(), name)
    else:
        raise NotImplementedError(
            "Logic for _format_c_decl not implemented for TypeMixin '{}'"
            .format(type(t))
        )


class VarDecl(Node, StmtMixin):
    __attrs__ = ("name", "type", "init")
    __types__ = {
        "name": str,
        "type": TypeMixin,
        "init": optional(ValueMixin),
    }
    __defaults__ = {"init": None}

    def lines(self):
        if self.init:
            yield "{}: {} = {}".format(self.name, self.type, self.init)
        else:
            yield "{}: {}".format(self.name, self.type)

    def c_lines(self):
        line = _format_c_decl(self.name, self.type)
        if self.init:
            line += " = {}".format(self.init.c_code())
        yield line


class VarDeclStmt(Node, StmtMixin):
    """A variable definition with storage, as found in a source file."""
    __attrs__ = ("decl", )
    __types__ = {"decl": VarDecl}

    def lines(self):
        yield from self.decl.lines()

    def c_lines(self):
        yield self.decl.c_code() + ";"


class ExternDecl(Node, StmtMixin):
    """A variable declared here and defined in some other translation unit."""
    __attrs__ = ("decl", )
    __types__ = {"decl": VarDecl}

    def lines(self):
        yield "extern " + str(self.decl)

    def c_lines(self):
        assert self.decl.init is None, "extern declarations cannot be initialized"
        yield "extern {};".format(self.decl.c_code())


def _format_params(params):
    return ", ".join(p.c_code() for p in params) or "void"


class FuncDecl(Node, StmtMixin):
    __attrs__ = ("name", "params", "returns")
    __types__ = {
        "name": str,
        "params": [(VarDecl, Ellipsis)],
        "returns": TypeMixin
    }
    __defaults__ = {
        "params": [],
        "returns": NameType("int"),
    }

    def is_variadic(self):
        return bool(self.params) and isinstance(self.params[-1], Ellipsis)

    def lines(self):
        yield "def {}({}) -> {}".format(
            self.name,
            ", ".join(map(str, self.params)),
            self.returns
        )

    def c_lines(self):
        yield "{} {}({});".format(
            self.returns.c_code(),
            self.name,
            _format_params(self.params)
        )


class Return(Node, StmtMixin):
    __attrs__ = ("value", )
    __types__ = {"value": optional(ValueMixin)}
    __defaults__ = {"value": None}

    def lines(self):
        if self.value:
            yield "return {}".format(self.value)
        else:
            yield "return"

    def c_lines(self):
        if self.value:
            yield "return {};".format(self.value.c_code())
        else:
            yield "return;"


class FuncDef(Node, StmtMixin):
    __attrs__ = ("name", "params", "body", "returns")
    __types__ = {
        "name": str,
        "params": [(VarDecl, Ellipsis)],
        "body": [StmtMixin],
        "returns": TypeMixin,
    }
    __defaults__ = {
        "params": [],
        "returns": NameType("int"),
    }

    def lines(self):
        yield "def {}({}) -> {}:".format(
            self.name,
            ", ".join(map(str, self.params)),
            self.returns
        )
        yield from iter_indent_seq(self.body)

    def c_lines(self):
        yield "{} {}({}) {{".format(
            self.returns.c_code(),
            self.name,
            _format_params(self.params)
        )
        yield from iter_indent_seq(self.body, c_code=True)
        yield "}"


class TypeDefStmt(Node, StmtMixin):
    __attrs__ = ("type", "name")
    __types__ = {
        "type": TypeMixin,
        "name": str
    }

    def lines(self):
        yield "typedef {} {}".format(self.type, self.name)

    def c_lines(self):
        yield "typedef {};".format(_format_c_decl(self.name, self.type))


##### Macros ######


class Macro(Node, StmtMixin):
    pass


class Define(Macro):
    """An object-like macro. A Define without a value is a guard flag."""
    __attrs__ = ("name", "value")
    __types__ = {
        "name": str,
        "value": optional(ValueMixin)
    }
    __defaults__ = {"value": None}

    def lines(self):
        if self.value:
            yield "define {} {}".format(self.name, self.value)
        else:
            yield "define {}".format(self.name)

    def c_lines(self):
        if self.value:
            yield "#define {} {}".format(self.name, self.value.c_code())
        else:
            yield "#define {}".format(self.name)


class FuncMacro(Macro):
    """
    A function-like macro. The last parameter may be "..." for a variadic
    macro. A macro with no value expands to nothing.
    """
    __attrs__ = ("name", "params", "value")
    __types__ = {
        "name": str,
        "params": [str],
        "value": optional(ValueMixin),
    }
    __defaults__ = {
        "params": [],
        "value": None,
    }

    def is_variadic(self):
        return bool(self.params) and self.params[-1] == "..."

    def lines(self):
        yield "macro {}({}) -> {}".format(
            self.name,
            ", ".join(self.params),
            self.value if self.value else ""
        )

    def c_lines(self):
        line = "#define {}({})".format(self.name, ", ".join(self.params))
        if self.value:
            line += " " + self.value.c_code()
        yield line


class CInclude(Macro):
    __attrs__ = ("path", )
    __types__ = {"path": str}

    def lines(self):
        yield "include <{}>".format(self.path)

    def c_lines(self):
        yield "#include <{}>".format(self.path)


class Ifndef(Macro):
    __attrs__ = ("guard", )
    __types__ = {"guard": str}

    def lines(self):
        yield "ifndef {}".format(self.guard)

    def c_lines(self):
        yield "#ifndef {}".format(self.guard)


class Endif(Macro):
    def lines(self):
        yield "endif"

    def c_lines(self):
        yield "#endif"


######### Node Manipulators ###########

class NodeVisitor:
    def __init__(self, *, require_all=False):
        """
        Args:
            require_all (bool): If True, a RuntimeError is thrown when there is an
                attempt to visit a node for which there is no proper visit method.
                Otherwise, any child nodes of the node are visited and None is returned.
        """
        self.__require_all = require_all

    def visit(self, node):
        name = node.__class__.__name__
        method_name = "visit_" + name
        if hasattr(self, method_name):
            method = getattr(self, method_name)
            return method(node)
        elif self.__require_all:
            raise RuntimeError("No visit method implemented for type '{}'. Implement {}(self, node) to check this type of node".format(
                name,
                method_name
            ))
        else:
            self.visit_children(node)

    def visit_children(self, node):
        if isinstance(node, Node):
            for attr in node.__attrs__:
                val = getattr(node, attr)
                if isinstance(val, (Node, list)):
                    self.visit(val)

    def visit_list(self, seq):
        return [self.visit(n) for n in seq]
