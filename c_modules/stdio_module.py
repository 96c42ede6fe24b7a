from cdecl import *
from ctargets import DEFAULT_TARGET


def _file_ptr():
    return Pointer(NameType("FILE"))


def _fprintf_params():
    return [
        VarDecl("stream", _file_ptr()),
        VarDecl("format", Pointer(Const(NameType("char")))),
        Ellipsis(),
    ]


def stdio_module(target=DEFAULT_TARGET):
    """
    Inert <stdio.h>: types and one real print declaration, with every other
    stream operation substituted away at preprocessing time.
    """
    return Module([
        Ifndef("_STDIO_H"),
        Define("_STDIO_H"),
        Blank(),

        Define("NULL", Cast(Pointer(NameType("void")), Int(0))),
        Blank(),

        # Types
        TypeDefStmt(NameType(target.size_type()), "size_t"),
        TypeDefStmt(Struct(), "FILE"),
        Blank(),

        # Variables
        ExternDecl(VarDecl("stderr", _file_ptr())),
        Blank(),

        # Functions
        FuncDecl("fprintf", _fprintf_params(), NameType("int")),

        # Substituted away, arguments are dropped unevaluated
        FuncMacro("snprintf", ["str", "size", "format", "..."], Int(0)),
        FuncMacro("vsnprintf", ["str", "size", "format", "ap"], Int(0)),
        FuncMacro("fputs", ["s", "stream"], Int(0)),
        FuncMacro("fputc", ["c", "stream"], Int(0)),
        FuncMacro("fdopen", ["fd", "mode"], Null()),
        FuncMacro("fclose", ["stream"], Int(0)),
        Blank(),

        Endif(),
    ], filename="stdio.h")


def stdio_support_module():
    """
    Definitions for the symbols stdio.h only declares. Linked into the final
    program when the sysroot provides printing; fprintf is a sink.
    """
    return Module([
        CInclude("stdio.h"),
        Blank(),
        VarDeclStmt(VarDecl("stderr", _file_ptr(), Null())),
        Blank(),
        FuncDef("fprintf", _fprintf_params(), [Return(Int(0))], NameType("int")),
    ], filename="stdio.c")


STDIO_MODULE = stdio_module()


STDIO_VARS = dict.fromkeys(
    {
        # Variables
        "stderr",

        # Funcs
        "fprintf",

        # Macros
        "NULL",
        "snprintf",
        "vsnprintf",
        "fputs",
        "fputc",
        "fdopen",
        "fclose",
    },
    ("stdio.h", STDIO_MODULE)
)

STDIO_TYPES = dict.fromkeys(
    {
        "FILE",
        "size_t",
    },
    ("stdio.h", STDIO_MODULE)
)
