"""Tree-Sitter Parsing Layer for expression text."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod

from . import constants

logger = logging.getLogger(__name__)


class ParserFactory(ABC):
    """Abstract factory for obtaining a language parser."""

    @abstractmethod
    def get_parser(self, language: str): ...


class TreeSitterParserFactory(ParserFactory):
    """Concrete factory that delegates to tree-sitter-language-pack.

    Parsers are created once per language and reused.
    """

    def __init__(self):
        self._parsers: dict = {}

    def get_parser(self, language: str):
        if language not in self._parsers:
            import tree_sitter_language_pack as tslp

            logger.debug("Loading tree-sitter grammar for %s", language)
            self._parsers[language] = tslp.get_parser(language)
        return self._parsers[language]


class Parser:
    """Thin wrapper around a parser factory, fixed to the Python grammar."""

    def __init__(self, parser_factory: ParserFactory):
        self._factory = parser_factory

    def parse(self, source: str, language: str = constants.SOURCE_LANGUAGE):
        parser = self._factory.get_parser(language)
        tree = parser.parse(source.encode("utf-8"))
        return tree
