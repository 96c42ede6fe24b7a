import unittest

from cdecl import *


class TestTypes(unittest.TestCase):
    def test_name_type_conversion(self):
        """Short unsigned names are spelled out in C."""
        self.assertEqual(NameType("ulong").c_code(), "unsigned long")
        self.assertEqual(NameType("ulonglong").c_code(), "unsigned long long")
        self.assertEqual(NameType("FILE").c_code(), "FILE")

    def test_pointer_decl(self):
        decl = VarDecl("stream", Pointer(NameType("FILE")))
        self.assertEqual(decl.c_code(), "FILE *stream")

    def test_const_pointer_decl(self):
        decl = VarDecl("format", Pointer(Const(NameType("char"))))
        self.assertEqual(decl.c_code(), "const char *format")
        self.assertEqual(str(decl), "format: pointer[const[char]]")

    def test_opaque_struct(self):
        """An anonymous struct with no members renders as an empty struct."""
        s = Struct()
        self.assertTrue(s.is_opaque())
        self.assertEqual(TypeDefStmt(s, "FILE").c_code(), "typedef struct {} FILE;")

    def test_struct_with_members(self):
        s = Struct("pair", [VarDecl("a", NameType("int")), VarDecl("b", NameType("int"))])
        self.assertFalse(s.is_opaque())
        self.assertEqual(s.c_code(), "struct pair {int a; int b;}")

    def test_wrong_node_type(self):
        """Nodes check the types of their attributes."""
        with self.assertRaises(TypeError):
            Pointer("FILE")
        with self.assertRaises(TypeError):
            FuncDecl("f", [NameType("int")])


class TestDeclarations(unittest.TestCase):
    def test_null_cast(self):
        node = Define("NULL", Cast(Pointer(NameType("void")), Int(0)))
        self.assertEqual(node.c_code(), "#define NULL ((void*)0)")

    def test_guard_define(self):
        self.assertEqual(Define("_STDIO_H").c_code(), "#define _STDIO_H")

    def test_variadic_func_decl(self):
        decl = FuncDecl(
            "fprintf",
            [
                VarDecl("stream", Pointer(NameType("FILE"))),
                VarDecl("format", Pointer(Const(NameType("char")))),
                Ellipsis(),
            ],
            NameType("int")
        )
        self.assertTrue(decl.is_variadic())
        self.assertEqual(
            decl.c_code(),
            "int fprintf(FILE *stream, const char *format, ...);"
        )

    def test_default_return(self):
        """Test the default return type of a func decl with no specified
        return type is an int."""
        decl = FuncDecl("func")
        self.assertEqual(decl.returns, NameType("int"))
        self.assertEqual(decl.c_code(), "int func(void);")
        self.assertFalse(decl.is_variadic())

    def test_extern_decl(self):
        decl = ExternDecl(VarDecl("stderr", Pointer(NameType("FILE"))))
        self.assertEqual(decl.c_code(), "extern FILE *stderr;")
        self.assertEqual(str(decl), "extern stderr: pointer[FILE]")

    def test_func_macro(self):
        macro = FuncMacro("snprintf", ["str", "size", "format", "..."], Int(0))
        self.assertTrue(macro.is_variadic())
        self.assertEqual(macro.c_code(), "#define snprintf(str, size, format, ...) 0")

    def test_func_macro_null(self):
        macro = FuncMacro("fdopen", ["fd", "mode"], Null())
        self.assertFalse(macro.is_variadic())
        self.assertEqual(macro.c_code(), "#define fdopen(fd, mode) NULL")

    def test_func_def(self):
        func = FuncDef("zero", [], [Return(Int(0))])
        self.assertEqual(func.c_code(), "int zero(void) {\n    return 0;\n}")

    def test_var_definition(self):
        stmt = VarDeclStmt(VarDecl("stderr", Pointer(NameType("FILE")), Null()))
        self.assertEqual(stmt.c_code(), "FILE *stderr = NULL;")

    def test_module(self):
        module = Module([
            Ifndef("_X_H"),
            Define("_X_H"),
            Blank(),
            Endif(),
        ])
        self.assertEqual(module.c_code(), "#ifndef _X_H\n#define _X_H\n\n#endif")

    def test_equality_ignores_lineno(self):
        self.assertEqual(Int(0, lineno=3), Int(0))
        self.assertNotEqual(Int(0), Int(1))


class TestDumpTree(unittest.TestCase):
    def test_dump_pointer(self):
        self.assertEqual(
            dump_tree(Pointer(NameType("FILE"))),
            'Pointer:\n    contents=NameType:\n        id="FILE"'
        )

    def test_dump_single_item_list(self):
        self.assertEqual(
            dump_tree(Module([Endif()])),
            'Module:\n    body=[Endif:]\n    filename=None'
        )


class NameCollector(NodeVisitor):
    def __init__(self):
        super().__init__()
        self.names = []

    def visit_NameType(self, node):
        self.names.append(node.id)


class TestNodeVisitor(unittest.TestCase):
    def test_visit_children(self):
        """Nodes without a visit method have their children visited."""
        collector = NameCollector()
        collector.visit(Module([
            TypeDefStmt(NameType("ulong"), "size_t"),
            ExternDecl(VarDecl("stderr", Pointer(NameType("FILE")))),
        ]))
        self.assertEqual(collector.names, ["ulong", "FILE"])

    def test_require_all(self):
        visitor = NodeVisitor(require_all=True)
        with self.assertRaises(RuntimeError):
            visitor.visit(Int(0))


if __name__ == "__main__":
    unittest.main()
