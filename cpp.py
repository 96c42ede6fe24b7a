"""
A small C preprocessor, enough to expand the macros declared by stub headers
and to see which identifiers survive substitution.

Supported directives are define, undef, ifdef, ifndef, else, endif, include,
pragma and error. Conditional expressions (#if, #elif), stringizing and token
pasting are not supported and raise MacroError.
"""

import collections
import logging
import os

import ply.lex as lex

logger = logging.getLogger(__name__)


class MacroError(Exception):
    pass


class MacroArityError(MacroError):
    pass


# hide holds the macros a token was produced by, which must not expand it
# again
Token = collections.namedtuple("Token", ("type", "value", "lineno", "hide"),
                               defaults=(frozenset(),))


def _punct_regex():
    multi = ["->", r"\+\+", "--", "<<=", ">>=", "<<", ">>", "&&", r"\|\|",
             r"[<>=!&|^+\-*/%]="]
    single = r"[~!%^&*\-+=|<>/?:;.\[\]{}]"
    return "|".join(multi + [single])


class Lexer:
    tokens = (
        "NAME",
        "NUMBER",
        "STRING",
        "CHAR",
        "ELLIPSIS",
        "HASH",
        "LPAR",
        "RPAR",
        "COMMA",
        "PUNCT",
        "WS",
        "NEWLINE",
    )

    ########## Lexer interface #########

    def __init__(self, **kwargs):
        self.__lexer = lex.lex(module=self, **kwargs)

    def tokenize(self, text):
        """
        Split text into a list of Tokens. Joining the token values gives back
        the text with comments replaced by a space and line continuations
        removed.
        """
        text = text.replace("\\\r\n", "").replace("\\\n", "")
        lexer = self.__lexer.clone()
        lexer.lineno = 1
        lexer.input(text)
        return [Token(t.type, t.value, t.lineno) for t in iter(lexer.token, None)]

    ########### Token handlers ############

    # Function rules are matched in definition order

    def t_comment(self, t):
        r"/\*(.|\n)*?\*/|//[^\n]*"
        t.lexer.lineno += t.value.count("\n")
        t.type = "WS"
        t.value = " "
        return t

    def t_NEWLINE(self, t):
        r"\n"
        t.lexer.lineno += 1
        return t

    def t_WS(self, t):
        r"[ \t\r\f\v]+"
        return t

    def t_STRING(self, t):
        r'"([^"\\\n]|\\.)*"'
        return t

    def t_CHAR(self, t):
        r"'([^'\\\n]|\\.)*'"
        return t

    def t_NAME(self, t):
        r"[A-Za-z_][A-Za-z0-9_]*"
        return t

    def t_NUMBER(self, t):
        r"\.?[0-9]([eEpP][+-]|[A-Za-z0-9_.])*"
        return t

    def t_ELLIPSIS(self, t):
        r"\.\.\."
        return t

    def t_HASH(self, t):
        r"\#\#?"
        return t

    def t_LPAR(self, t):
        r"\("
        return t

    def t_RPAR(self, t):
        r"\)"
        return t

    def t_COMMA(self, t):
        r","
        return t

    @lex.TOKEN(_punct_regex())
    def t_PUNCT(self, t):
        return t

    def t_error(self, t):
        raise MacroError("Unknown character '{}' at line {}".format(
            t.value[0], t.lineno
        ))


def join_tokens(tokens):
    return "".join(t.value for t in tokens)


def _strip_ws(tokens):
    start = 0
    end = len(tokens)
    while start < end and tokens[start].type in ("WS", "NEWLINE"):
        start += 1
    while end > start and tokens[end - 1].type in ("WS", "NEWLINE"):
        end -= 1
    return tokens[start:end]


def _skip_ws(tokens, i):
    while i < len(tokens) and tokens[i].type in ("WS", "NEWLINE"):
        i += 1
    return i


class MacroDef:
    __slots__ = ("name", "params", "body")

    def __init__(self, name, body, params=None):
        """
        Args:
            name (str): Macro name
            body (list[Token]): Replacement tokens
            params (optional[list[str]]): Parameter names for a function-like
                macro, None for an object-like one. A trailing "..." makes
                the macro variadic.
        """
        self.name = name
        self.body = _strip_ws(body)
        self.params = params

        if self.is_function_like():
            for tok in self.body:
                if tok.type == "HASH":
                    raise MacroError("Stringizing and token pasting are not supported (macro '{}')".format(name))

    def is_function_like(self):
        return self.params is not None

    def is_variadic(self):
        return bool(self.params) and self.params[-1] == "..."

    def named_params(self):
        return self.params[:-1] if self.is_variadic() else self.params

    def bind(self, args):
        """
        Map parameter names to argument tokens.

        Args:
            args (list[list[Token]]): Arguments as split at top level commas

        Returns:
            dict[str, list[Token]]
        """
        named = self.named_params()

        # "f()" passes one empty argument, which is no argument at all for a
        # macro declared without parameters.
        if not self.params and len(args) == 1 and not _strip_ws(args[0]):
            args = []

        if self.is_variadic():
            if len(args) < len(named):
                raise MacroArityError("Macro '{}' requires at least {} arguments, but {} given".format(
                    self.name, len(named), len(args)
                ))
        elif len(args) != len(named):
            raise MacroArityError("Macro '{}' requires {} arguments, but {} given".format(
                self.name, len(named), len(args)
            ))

        bound = {name: _strip_ws(arg) for name, arg in zip(named, args)}
        if self.is_variadic():
            rest = []
            for i, arg in enumerate(args[len(named):]):
                if i:
                    rest.append(Token("COMMA", ",", -1))
                rest.extend(arg)
            bound["__VA_ARGS__"] = _strip_ws(rest)
        return bound

    def same_as(self, other):
        return (
            self.params == other.params and
            [t.value for t in self.body if t.type != "WS"] ==
            [t.value for t in other.body if t.type != "WS"]
        )

    def __repr__(self):
        if self.is_function_like():
            return "MacroDef({}({}) {})".format(self.name, ", ".join(self.params), join_tokens(self.body))
        return "MacroDef({} {})".format(self.name, join_tokens(self.body))


class Preprocessor:
    def __init__(self, *, headers=None, include_dirs=None, lexer=None,
                 emit_includes=True):
        """
        Args:
            headers (optional[dict[str, str]]): Header name to text, searched
                before include_dirs
            include_dirs (optional[list[str]]): Directories searched for
                included headers
            emit_includes (bool): If False, included headers still define
                macros but contribute no tokens to the output.
        """
        self.__emit_includes = emit_includes
        self.__lexer = lexer or Lexer()
        self.__headers = dict(headers or {})
        self.__include_dirs = list(include_dirs or [])
        self.macros = {}
        self.included = []

    ########## Macro table ##########

    def define(self, name, body="", params=None):
        body_tokens = self.__lexer.tokenize(body) if isinstance(body, str) else body
        self.__add_macro(MacroDef(name, body_tokens, params))

    def undef(self, name):
        self.macros.pop(name, None)

    def is_defined(self, name):
        return name in self.macros

    def __add_macro(self, macro):
        existing = self.macros.get(macro.name)
        if existing is not None and not existing.same_as(macro):
            logger.warning("Macro '%s' redefined: %r replaces %r", macro.name, macro, existing)
        self.macros[macro.name] = macro

    ########## Entry points ##########

    def expand(self, text):
        """Expand macros in text, which must not contain directives."""
        return join_tokens(self.expand_tokens(self.__lexer.tokenize(text)))

    def process(self, text):
        """Run directives in text and return the expanded remainder."""
        return join_tokens(self.process_tokens(text))

    def process_tokens(self, text):
        return self.__process(self.__lexer.tokenize(text))

    ########## Directives ##########

    def __process(self, tokens):
        out = []
        pending = []

        # Each entry is whether the enclosing branch is active and whether
        # an #else was seen.
        conditions = []

        def active():
            return all(c[0] for c in conditions)

        for line in _split_lines(tokens):
            first = _skip_ws(line, 0)
            if first < len(line) and line[first].type == "HASH" and line[first].value == "#":
                out.extend(self.expand_tokens(pending))
                pending = []
                self.__directive(line[first + 1:], conditions, out)
            elif active():
                pending.extend(line)

        if conditions:
            raise MacroError("Unterminated conditional directive")

        out.extend(self.expand_tokens(pending))
        return out

    def __directive(self, line, conditions, out):
        i = _skip_ws(line, 0)
        if i >= len(line):
            # Null directive
            return
        if line[i].type != "NAME":
            raise MacroError("Invalid preprocessing directive at line {}".format(line[i].lineno))

        name = line[i].value
        rest = line[i + 1:]

        if name in ("ifdef", "ifndef"):
            macro_name = self.__directive_name(name, rest)
            defined = macro_name in self.macros
            conditions.append([defined if name == "ifdef" else not defined, False])
        elif name == "else":
            if not conditions or conditions[-1][1]:
                raise MacroError("#else without #if")
            conditions[-1] = [not conditions[-1][0], True]
        elif name == "endif":
            if not conditions:
                raise MacroError("#endif without #if")
            conditions.pop()
        elif name in ("if", "elif"):
            raise MacroError("#{} is not supported".format(name))
        elif not all(c[0] for c in conditions):
            # Everything below only runs in active branches
            return
        elif name == "define":
            self.__define_directive(rest)
        elif name == "undef":
            self.undef(self.__directive_name(name, rest))
        elif name == "include":
            out.extend(self.__include(rest))
        elif name == "pragma":
            pass
        elif name == "error":
            raise MacroError("#error {}".format(join_tokens(_strip_ws(rest))))
        else:
            raise MacroError("Unknown directive #{}".format(name))

    def __directive_name(self, directive, rest):
        rest = _strip_ws(rest)
        if not rest or rest[0].type != "NAME":
            raise MacroError("#{} expects a macro name".format(directive))
        return rest[0].value

    def __define_directive(self, rest):
        i = _skip_ws(rest, 0)
        if i >= len(rest) or rest[i].type != "NAME":
            raise MacroError("#define expects a macro name")
        name = rest[i].value
        i += 1

        # Function-like only when "(" follows the name without whitespace
        if i < len(rest) and rest[i].type == "LPAR":
            params, i = _parse_params(name, rest, i)
            self.__add_macro(MacroDef(name, rest[i:], params))
        else:
            self.__add_macro(MacroDef(name, rest[i:]))

    def __include(self, rest):
        rest = _strip_ws(rest)
        text = join_tokens(rest)
        if len(text) >= 2 and text[0] == "<" and text[-1] == ">":
            header = text[1:-1].strip()
        elif len(text) >= 2 and text[0] == '"' and text[-1] == '"':
            header = text[1:-1]
        else:
            raise MacroError("#include expects <header> or \"header\"")

        source = self.__find_header(header)
        self.included.append(header)
        tokens = self.__process(self.__lexer.tokenize(source))
        return tokens if self.__emit_includes else []

    def __find_header(self, header):
        if header in self.__headers:
            return self.__headers[header]
        for d in self.__include_dirs:
            path = os.path.join(d, header)
            if os.path.isfile(path):
                with open(path, "r") as f:
                    return f.read()
        raise MacroError("Cannot find include file '{}'".format(header))

    ########## Expansion ##########

    def expand_tokens(self, tokens):
        """
        Expand macros in tokens. A replacement is rescanned together with the
        tokens after it, so a name it produces can still pick up arguments
        from the rest of the input. Each token carries the names of the
        macros it came out of and those are not expanded again.
        """
        tokens = list(tokens)
        out = []
        i = 0
        while i < len(tokens):
            tok = tokens[i]
            macro = self.macros.get(tok.value) if tok.type == "NAME" else None
            if macro is None or tok.value in tok.hide:
                out.append(tok)
                i += 1
                continue

            if not macro.is_function_like():
                hide = tok.hide | {macro.name}
                tokens[i:i + 1] = [_hide(btok, hide) for btok in macro.body]
                continue

            # A function-like macro name without arguments is left alone
            j = _skip_ws(tokens, i + 1)
            if j >= len(tokens) or tokens[j].type != "LPAR":
                out.append(tok)
                i += 1
                continue

            args, end = _collect_args(macro.name, tokens, j)
            bound = macro.bind(args)

            # Names hidden on both the macro name and the closing parenthesis
            # stay hidden in the replacement
            hide = (tok.hide & tokens[end - 1].hide) | {macro.name}
            replaced = []
            for btok in macro.body:
                if btok.type == "NAME" and btok.value in bound:
                    replaced.extend(self.expand_tokens(bound[btok.value]))
                else:
                    replaced.append(btok)
            tokens[i:end] = [_hide(rtok, hide) for rtok in replaced]
        return out


def _hide(tok, names):
    return tok._replace(hide=tok.hide | names)


def _split_lines(tokens):
    line = []
    for tok in tokens:
        line.append(tok)
        if tok.type == "NEWLINE":
            yield line
            line = []
    if line:
        yield line


def _parse_params(name, tokens, i):
    """
    Parse the parameter list of a function-like #define starting at the
    opening parenthesis. Returns the names and the index after ")".
    """
    assert tokens[i].type == "LPAR"
    params = []
    i += 1
    expect_name = True
    while True:
        i = _skip_ws(tokens, i)
        if i >= len(tokens):
            raise MacroError("Unterminated parameter list for macro '{}'".format(name))
        tok = tokens[i]
        if tok.type == "RPAR" and (not expect_name or not params):
            return params, i + 1
        if expect_name and tok.type in ("NAME", "ELLIPSIS"):
            if tok.value in params:
                raise MacroError("Duplicate parameter '{}' in macro '{}'".format(tok.value, name))
            if params and params[-1] == "...":
                raise MacroError("'...' must be the last parameter of macro '{}'".format(name))
            params.append(tok.value)
            expect_name = False
        elif not expect_name and tok.type == "COMMA":
            expect_name = True
        else:
            raise MacroError("Invalid parameter list for macro '{}'".format(name))
        i += 1


def _collect_args(name, tokens, i):
    """
    Split the arguments of a macro invocation starting at the opening
    parenthesis. Commas nested in parentheses do not split. Returns the
    arguments and the index after the closing parenthesis.
    """
    assert tokens[i].type == "LPAR"
    args = [[]]
    depth = 1
    i += 1
    while i < len(tokens):
        tok = tokens[i]
        if tok.type == "LPAR":
            depth += 1
        elif tok.type == "RPAR":
            depth -= 1
            if not depth:
                return args, i + 1
        elif tok.type == "COMMA" and depth == 1:
            args.append([])
            i += 1
            continue
        args[-1].append(tok)
        i += 1
    raise MacroError("Unterminated argument list for macro '{}'".format(name))
