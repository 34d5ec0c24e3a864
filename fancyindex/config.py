"""Listing configuration: directive parsing, scope merging and settings.

A ``ListingConfig`` is built once per scope by merging the scope's
directives over its parent and is never mutated afterwards, so one instance
can be shared by every request served from that scope.
"""

from __future__ import annotations

import enum
import os
from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from pathlib import Path

from fancyindex.services.errors import ConfigError


class ReadmeMode(enum.Enum):
    """How the readme file is presented inside the listing."""

    PRE = "pre"
    ASIS = "asis"
    DIV = "div"
    IFRAME = "iframe"


class IncludeMode(enum.Enum):
    STATIC = "static"
    CACHED = "cached"


@dataclass(frozen=True)
class ReadmePlacement:
    top: bool = True
    bottom: bool = False
    mode: ReadmeMode = ReadmeMode.PRE


@dataclass(frozen=True)
class ListingConfig:
    enabled: bool = False
    use_local_time: bool = False
    exact_size: bool = True
    readme: str = ""
    readme_placement: ReadmePlacement = field(default_factory=ReadmePlacement)
    include_mode: IncludeMode = IncludeMode.STATIC


DEFAULT_CONFIG = ListingConfig()

_TRUE_WORDS = {"on", "true", "yes", "1"}
_FALSE_WORDS = {"off", "false", "no", "0"}


def parse_flag(value: str) -> bool:
    word = value.strip().lower()
    if word in _TRUE_WORDS:
        return True
    if word in _FALSE_WORDS:
        return False
    raise ConfigError(f"invalid flag value '{value}', it must be \"on\" or \"off\"")


def parse_readme_options(value: str) -> ReadmePlacement:
    """Parse a readme option set such as ``"top bottom iframe"``.

    ``top`` is implied when no position is named. ``iframe`` takes precedence
    over the other presentation words.
    """

    words = value.split()
    if not words:
        raise ConfigError("empty readme options")

    top = bottom = False
    modes: list[ReadmeMode] = []
    for word in words:
        lowered = word.lower()
        if lowered == "top":
            top = True
        elif lowered == "bottom":
            bottom = True
        else:
            try:
                modes.append(ReadmeMode(lowered))
            except ValueError:
                raise ConfigError(f"invalid readme option '{word}'") from None

    if not (top or bottom):
        top = True

    if ReadmeMode.IFRAME in modes:
        mode = ReadmeMode.IFRAME
    elif modes:
        mode = modes[-1]
    else:
        mode = ReadmeMode.PRE
    return ReadmePlacement(top=top, bottom=bottom, mode=mode)


def parse_include_mode(value: str) -> IncludeMode:
    try:
        return IncludeMode(value.strip().lower())
    except ValueError:
        raise ConfigError(f"invalid include mode '{value}'") from None


def _parse_readme_name(value: str) -> str:
    name = value.strip()
    if "/" in name:
        raise ConfigError(f"readme file name '{value}' must not contain '/'")
    return name


# directive name -> (ListingConfig field, parser)
DIRECTIVES = {
    "fancyindex": ("enabled", parse_flag),
    "fancyindex_localtime": ("use_local_time", parse_flag),
    "fancyindex_exact_size": ("exact_size", parse_flag),
    "fancyindex_readme": ("readme", _parse_readme_name),
    "fancyindex_readme_options": ("readme_placement", parse_readme_options),
    "fancyindex_mode": ("include_mode", parse_include_mode),
}


def merge_config(parent: ListingConfig, child: Mapping[str, str]) -> ListingConfig:
    """Return the config of a child scope; directives it leaves unset inherit ``parent``."""

    changes = {}
    for directive, raw in child.items():
        try:
            attr, parser = DIRECTIVES[directive]
        except KeyError:
            raise ConfigError(f"unknown directive '{directive}'") from None
        changes[attr] = parser(raw)
    return replace(parent, **changes)


ROOT_DIR = Path(__file__).resolve().parents[1]
DEFAULT_DOCUMENT_ROOT = ROOT_DIR / "storage" / "files"

ROOT_ENV = "FANCYINDEX_ROOT"
CHARSET_ENV = "FANCYINDEX_CHARSET"
LOG_LEVEL_ENV = "FANCYINDEX_LOG_LEVEL"


@dataclass(frozen=True)
class Settings:
    """Service-wide settings resolved once at startup."""

    document_root: Path
    listing: ListingConfig
    utf8: bool = True
    log_level: str = "INFO"


def load_settings(environ: Mapping[str, str] | None = None) -> Settings:
    """Build ``Settings`` from ``FANCYINDEX*`` environment variables.

    Each directive is read from the variable named after it in upper case,
    e.g. ``fancyindex_exact_size`` from ``FANCYINDEX_EXACT_SIZE``. The service
    scope enables listings unless ``FANCYINDEX`` says otherwise.
    """

    if environ is None:
        environ = os.environ

    directives = {
        name: environ[name.upper()]
        for name in DIRECTIVES
        if environ.get(name.upper(), "").strip()
    }
    service_scope = merge_config(DEFAULT_CONFIG, {"fancyindex": "on"})
    listing = merge_config(service_scope, directives)

    root = environ.get(ROOT_ENV, "").strip()
    charset = environ.get(CHARSET_ENV, "utf-8").strip().lower()
    return Settings(
        document_root=Path(root) if root else DEFAULT_DOCUMENT_ROOT,
        listing=listing,
        utf8=charset in {"utf-8", "utf8"},
        log_level=environ.get(LOG_LEVEL_ENV, "INFO").strip().upper() or "INFO",
    )
