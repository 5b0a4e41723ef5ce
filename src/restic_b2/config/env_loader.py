"""Defensive loader for the restic credentials file.

The file is parsed as data, never sourced or evaluated. Every binding must
look like ``[export] KEY=VALUE`` with ``KEY`` matching ``[A-Z_][A-Z0-9_]*``;
anything else is a configuration error. Values may be single- or
double-quoted, and ``${VAR}`` references are kept literally.

Precedence (low -> high): env file, explicit overrides
"""

from __future__ import annotations

import re
from pathlib import Path
from typing import Mapping, MutableMapping, Optional

from dotenv.parser import Binding, parse_stream

from restic_b2.exceptions import ConfigError

ENV_KEY_PATTERN = re.compile(r"^[A-Z_][A-Z0-9_]*$")


class EnvLoader:
    """Load key/value pairs from a restic ``.env``-style file."""

    def __init__(self, env_file: Path | str) -> None:
        self.env_file = Path(env_file)

    def load(self, overrides: Optional[Mapping[str, str]] = None) -> MutableMapping[str, str]:
        """Parse the env file and apply overrides.

        Raises:
            ConfigError: If the file cannot be read, a line cannot be parsed,
                a key is not a valid variable name or a key has no value.
        """
        data: MutableMapping[str, str] = {}

        try:
            with open(self.env_file, "r", encoding="utf-8") as stream:
                bindings = list(parse_stream(stream))
        except (OSError, UnicodeDecodeError) as exc:
            raise ConfigError(
                f"Cannot read environment file {self.env_file}: {exc}",
                code="ENV_FILE_UNREADABLE",
                details={"env_file": str(self.env_file)},
                phase="Environment validation",
            ) from exc

        for binding in bindings:
            line = _binding_line(binding)
            if binding.error:
                raise self._invalid_line(line, "line is not of the form KEY=VALUE")
            if binding.key is None:
                # blank line or comment
                continue
            if not ENV_KEY_PATTERN.match(binding.key):
                raise self._invalid_line(line, f"invalid variable name {binding.key!r}")
            if binding.value is None:
                raise self._invalid_line(line, f"variable {binding.key} has no value")
            data[binding.key] = binding.value

        if overrides:
            data.update({k: str(v) for k, v in overrides.items()})

        return data

    def _invalid_line(self, line: int, reason: str) -> ConfigError:
        return ConfigError(
            f"Invalid entry in {self.env_file} at line {line}: {reason}",
            code="INVALID_ENV_ENTRY",
            details={"env_file": str(self.env_file), "line": line},
            phase="Environment validation",
        )


def _binding_line(binding: Binding) -> int:
    """Line of the binding itself; dotenv counts from the blank lines before it."""
    text = binding.original.string
    leading = text[: len(text) - len(text.lstrip())]
    return binding.original.line + leading.count("\n")


__all__ = ["ENV_KEY_PATTERN", "EnvLoader"]
