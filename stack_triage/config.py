"""Configuration for the library-code heuristic.

Frames whose source path starts with one of the known installation roots are
treated as standard library code when ordering buckets.  The defaults cover the
common distro and user installs plus ``$GOROOT`` so a dump captured on another
machine is classified sensibly without extra setup.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Mapping, MutableMapping, Optional, Sequence, Tuple

import yaml

from .exceptions import ConfigError

LOGGER = logging.getLogger(__name__)

__all__ = [
    "BUILTIN_ROOTS",
    "DEFAULT_CONFIG_NAME",
    "TriageConfig",
    "default_roots",
    "load_config",
]

DEFAULT_CONFIG_NAME = "stack_triage.yaml"

# Windows default, distro package and tarball install locations.
BUILTIN_ROOTS: Tuple[str, ...] = ("c:/go", "/usr/lib/go", "/usr/local/go")


def default_roots(environ: Optional[Mapping[str, str]] = None) -> Tuple[str, ...]:
    """Return ``$GOROOT`` (when set) followed by :data:`BUILTIN_ROOTS`."""

    env = os.environ if environ is None else environ
    goroot = env.get("GOROOT", "").strip()
    if goroot and goroot not in BUILTIN_ROOTS:
        return (goroot,) + BUILTIN_ROOTS
    return BUILTIN_ROOTS


@dataclass(frozen=True)
class TriageConfig:
    """Caller supplied heuristics used when classifying frames."""

    known_roots: Tuple[str, ...] = field(default_factory=default_roots)

    def with_extra_roots(self, roots: Sequence[str]) -> "TriageConfig":
        merged = list(self.known_roots)
        for root in roots:
            if root not in merged:
                merged.append(root)
        return TriageConfig(known_roots=tuple(merged))


def _string_list(data: MutableMapping[str, object], key: str, path: Path) -> Optional[Tuple[str, ...]]:
    value = data.get(key)
    if value is None:
        return None
    if not isinstance(value, list) or not all(isinstance(item, str) for item in value):
        raise ConfigError(f"{key} in {path} must be a list of strings", path)
    return tuple(value)


def load_config(path: Optional[Path] = None, *, environ: Optional[Mapping[str, str]] = None) -> TriageConfig:
    """Load a :class:`TriageConfig` from the YAML document at *path*.

    ``known_roots`` replaces the defaults while ``extra_roots`` extends them.
    A missing file (or ``path=None``) yields the defaults.
    """

    base = TriageConfig(known_roots=default_roots(environ))
    if path is None:
        return base
    try:
        text = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        LOGGER.debug("config %s not found; using defaults", path)
        return base
    except OSError as exc:
        raise ConfigError(f"failed to read {path}: {exc}", path) from exc

    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise ConfigError(f"failed to parse {path}: {exc}", path) from exc
    if data is None:
        return base
    if not isinstance(data, MutableMapping):
        raise ConfigError(f"Expected mapping at root of config: {path}", path)

    known = _string_list(data, "known_roots", path)
    extra = _string_list(data, "extra_roots", path)
    config = TriageConfig(known_roots=known) if known is not None else base
    if extra:
        config = config.with_extra_roots(extra)
    LOGGER.debug("loaded %d known roots from %s", len(config.known_roots), path)
    return config
