"""Distributor parsers and the registry used by the upload pipeline."""
from __future__ import annotations

from typing import Dict, Type

from .alpine import AlpineParser
from .base import BaseParser, EmptyFileError, MissingColumnsError, ParserContext
from .dot import DotParser
from .kehe import KeheParser
from .mhd import MhdParser
from .petes import PetesParser
from .tonys import TonysParser
from .troia import TroiaParser
from .vistar import VistarParser


PARSERS: Dict[str, Type[BaseParser]] = {
    cls.name: cls
    for cls in (
        AlpineParser,
        DotParser,
        PetesParser,
        KeheParser,
        VistarParser,
        TonysParser,
        TroiaParser,
        MhdParser,
    )
}

SOURCE_LABELS: Dict[str, str] = {name: cls.source_label for name, cls in PARSERS.items()}


def get_parser(name: str, context: ParserContext) -> BaseParser:
    """Instantiate the parser registered under ``name`` (case-insensitive)."""

    key = (name or "").strip().lower()
    if key not in PARSERS:
        raise ValueError(f"Unknown distributor '{name}'. Expected one of: {', '.join(sorted(PARSERS))}")
    return PARSERS[key](context)


__all__ = [
    "PARSERS",
    "SOURCE_LABELS",
    "BaseParser",
    "EmptyFileError",
    "MissingColumnsError",
    "ParserContext",
    "get_parser",
]
