#!/usr/bin/env python
# -*- coding: utf-8 -*-

# This is the program to be run on the command line when writing or checking
# a stub sysroot

import logging
import sys

from cdecl import dump_tree
from contract import check_contract
from cpp import MacroError, Preprocessor
from ctargets import TargetError
from surface import SurfaceError, collect_surface, validate_surface
from sysroot import PRINT_MODES, emit_sysroot, header_module, render_header
from sysroot_config import ConfigError, load_config
from toolchain import ToolchainError

logger = logging.getLogger("stubroot")


def get_args(argv=None):
    from argparse import ArgumentParser
    parser = ArgumentParser(description="Write and check inert C headers for freestanding targets.")

    parser.add_argument("-c", "--config",
                        help="Path to a stubroot.toml config file.")
    parser.add_argument("--target",
                        help="Target triple, or 'host' for the running machine.")
    parser.add_argument("--print-mode", choices=PRINT_MODES,
                        help="Whether the sysroot ships definitions for fprintf and stderr.")
    parser.add_argument("--compiler",
                        help="C compiler used by --check.")
    parser.add_argument("--header", default="stdio.h",
                        help="Header to print, dump or expand against.")

    action = parser.add_mutually_exclusive_group()
    action.add_argument("-p", "--print", default=False, action="store_true",
                        help="Print the C text of the header (default).")
    action.add_argument("-t", "--tree", default=False, action="store_true",
                        help="Dump the declaration tree of the header.")
    action.add_argument("-d", "--dump", default=False, action="store_true",
                        help="Dump the summary form of the header.")
    action.add_argument("-s", "--symbols", default=False, action="store_true",
                        help="List the names the header exposes and what the linker must resolve.")
    action.add_argument("-e", "--expand", metavar="EXPR",
                        help="Expand an expression through the header macros.")
    action.add_argument("-o", "--output", nargs="?", const="",
                        help="Write the sysroot into this directory.")
    action.add_argument("--check", default=False, action="store_true",
                        help="Write the sysroot and check its compile and link contract.")

    parser.add_argument("-v", "--verbose", default=False, action="store_true",
                        help="Log toolchain commands.")

    return parser.parse_args(argv)


def print_symbols(surface):
    for name in sorted(surface.names()):
        print("{:<12} {}".format(surface.classify(name), name))
    print("------- link symbols --------")
    for name in sorted(surface.link_symbols()):
        print(name)


def main(argv=None):
    args = get_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(levelname)s: %(message)s",
    )

    try:
        config = load_config(args.config).override(
            target=args.target,
            print_mode=args.print_mode,
            compiler=args.compiler,
            output=args.output or None,
        )
        target = config.resolve_target()

        if args.tree:
            print(dump_tree(header_module(args.header, target)))
        elif args.dump:
            print(header_module(args.header, target))
        elif args.symbols:
            surface = validate_surface(collect_surface(header_module(args.header, target)))
            print_symbols(surface)
        elif args.expand is not None:
            pp = Preprocessor(headers={args.header: render_header(args.header, target)})
            pp.process("#include <{}>\n".format(args.header))
            print(pp.expand(args.expand))
        elif args.output is not None:
            emit_sysroot(config.output, target, config.print_mode)
        elif args.check:
            layout = emit_sysroot(config.output, target, config.print_mode)
            results = check_contract(layout, compiler=config.compiler, std=config.std)
            for result in results:
                print(result)
            if not all(r.passed for r in results):
                return 1
        else:
            sys.stdout.write(render_header(args.header, target))
    except (ConfigError, TargetError, KeyError, MacroError, SurfaceError,
            ToolchainError) as e:
        logger.error("%s", e.args[0] if isinstance(e, KeyError) else e)
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
