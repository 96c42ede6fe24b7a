"""stubroot.toml loading and validation."""
from __future__ import annotations

import os
import tomllib
from dataclasses import dataclass

from ctargets import DEFAULT_TARGET, TargetError, get_target
from sysroot import PRINT_EXTERN, PRINT_MODES
from toolchain import DEFAULT_STD

CONFIG_NAME = "stubroot.toml"

DEFAULT_OUTPUT = "wasm-sysroot"


class ConfigError(ValueError):
    pass


@dataclass
class SysrootConfig:
    target: str = DEFAULT_TARGET.triple
    print_mode: str = PRINT_EXTERN
    output: str = DEFAULT_OUTPUT
    compiler: str | None = None
    std: str = DEFAULT_STD

    def validate(self) -> None:
        try:
            get_target(self.target)
        except TargetError as e:
            raise ConfigError(e.args[0]) from None
        if self.print_mode not in PRINT_MODES:
            raise ConfigError(
                f"Invalid print mode '{self.print_mode}'. "
                f"Expected one of: {', '.join(PRINT_MODES)}."
            )
        if not self.output:
            raise ConfigError("[sysroot] output must not be empty")

    def resolve_target(self):
        return get_target(self.target)

    def override(self, **values) -> SysrootConfig:
        """Copy with every value that is not None replaced, then validated."""
        fields = dict(self.__dict__)
        fields.update({k: v for k, v in values.items() if v is not None})
        config = SysrootConfig(**fields)
        config.validate()
        return config


def load_config(path: str | None = None) -> SysrootConfig:
    """
    Load and validate a config file. Without an explicit path, stubroot.toml
    in the working directory is used if present, defaults otherwise.
    """
    if path is None:
        if not os.path.isfile(CONFIG_NAME):
            return SysrootConfig()
        path = CONFIG_NAME
    elif not os.path.isfile(path):
        raise ConfigError(f"No config file found at {path}")

    try:
        with open(path, "rb") as f:
            data = tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        raise ConfigError(f"Invalid TOML in {path}: {e}") from None
    return _parse_config(data)


def load_config_from_string(text: str) -> SysrootConfig:
    try:
        data = tomllib.loads(text)
    except tomllib.TOMLDecodeError as e:
        raise ConfigError(f"Invalid TOML: {e}") from None
    return _parse_config(data)


def _parse_config(data: dict) -> SysrootConfig:
    sysroot = data.get("sysroot", {})
    toolchain = data.get("toolchain", {})
    for section, table in (("sysroot", sysroot), ("toolchain", toolchain)):
        if not isinstance(table, dict):
            raise ConfigError(f"[{section}] must be a table")

    defaults = SysrootConfig()
    config = SysrootConfig(
        target=_get_str(sysroot, "sysroot", "target", defaults.target),
        print_mode=_get_str(sysroot, "sysroot", "print", defaults.print_mode),
        output=_get_str(sysroot, "sysroot", "output", defaults.output),
        compiler=_get_str(toolchain, "toolchain", "compiler", defaults.compiler),
        std=_get_str(toolchain, "toolchain", "std", defaults.std),
    )
    config.validate()
    return config


def _get_str(table: dict, section: str, key: str, default):
    val = table.get(key, default)
    if val is not None and not isinstance(val, str):
        raise ConfigError(f"[{section}] {key} must be a string")
    return val
