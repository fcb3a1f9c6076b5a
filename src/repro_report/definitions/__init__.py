"""Build definition parsing."""

from repro_report.definitions.aterm import ATermSyntaxError, Constructor, parse_aterm
from repro_report.definitions.resolver import DefinitionResolver, parse_derivation

__all__ = [
    "ATermSyntaxError",
    "Constructor",
    "DefinitionResolver",
    "parse_aterm",
    "parse_derivation",
]
