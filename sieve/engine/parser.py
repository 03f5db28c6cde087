"""Document selection engines used to extract values from fetched bodies."""

from __future__ import annotations

import json
import re
from typing import Any, Callable, Mapping

from selectolax.parser import HTMLParser

from ..errors import ExtractionError

DEFAULT_ENGINE = "css"
# Key used when a selector is given as a bare string
DEFAULT_KEY = "value"

Extractor = Callable[[str, "str | Mapping[str, str]", "str | None"], Any]


class Parser:
    """Apply selectors to a document with a named engine.

    Every engine returns a mapping of selector name to the list of matches,
    so the result can be fed straight into ``then`` templating.
    """

    def __init__(self) -> None:
        self._engines: dict[str, Callable[[str, str], list[Any]]] = {
            "css": self.select_css,
            "regex": self.select_regex,
            "json": self.select_json,
        }

    def register(self, name: str, engine: Callable[[str, str], list[Any]]) -> None:
        self._engines[name.lower()] = engine

    def extract(
        self,
        document: str,
        selector: str | Mapping[str, str],
        engine: str | None = None,
    ) -> dict[str, list[Any]]:
        engine_name = (engine or DEFAULT_ENGINE).lower()
        select = self._engines.get(engine_name)
        if select is None:
            raise ExtractionError(f"Unknown selection engine: {engine_name}")
        selectors = {DEFAULT_KEY: selector} if isinstance(selector, str) else dict(selector)
        if not selectors:
            raise ExtractionError("Selector mapping is empty")
        return {name: select(document, expression) for name, expression in selectors.items()}

    __call__ = extract

    # ------------------------------------------------------------------
    def select_css(self, document: str, selector: str) -> list[Any]:
        css_selector, mode = self._split_selector(selector)
        if not css_selector:
            raise ExtractionError(f"Empty CSS selector: {selector!r}")
        tree = HTMLParser(document)
        try:
            nodes = tree.css(css_selector)
        except ValueError as exc:
            raise ExtractionError(f"Invalid CSS selector {css_selector!r}: {exc}") from exc
        values: list[Any] = []
        for node in nodes:
            if mode == "html":
                values.append(node.html)
            elif mode.startswith("attr:"):
                attr = mode.split(":", 1)[1]
                value = node.attributes.get(attr)
                if value is not None:
                    values.append(value)
            else:
                values.append(node.text(separator=" ", strip=True))
        return values

    def select_regex(self, document: str, pattern: str) -> list[Any]:
        try:
            compiled = re.compile(pattern)
        except re.error as exc:
            raise ExtractionError(f"Invalid regular expression {pattern!r}: {exc}") from exc
        return compiled.findall(document)

    def select_json(self, document: str, path: str) -> list[Any]:
        try:
            node: Any = json.loads(document)
        except json.JSONDecodeError as exc:
            raise ExtractionError(f"Document is not valid JSON: {exc}") from exc
        return self._walk(node, [p for p in path.split(".") if p])

    def _walk(self, node: Any, parts: list[str]) -> list[Any]:
        for position, part in enumerate(parts):
            if isinstance(node, Mapping):
                if part not in node:
                    return []
                node = node[part]
            elif isinstance(node, list):
                if not part.lstrip("-").isdigit():
                    # Map the remaining path over every element
                    rest = parts[position:]
                    return [item for element in node for item in self._walk(element, rest)]
                index = int(part)
                if not -len(node) <= index < len(node):
                    return []
                node = node[index]
            else:
                return []
        return node if isinstance(node, list) else [node]

    @staticmethod
    def _split_selector(selector: str) -> tuple[str, str]:
        if "::" in selector:
            css, mode = selector.split("::", 1)
            return css.strip(), mode.strip().lower()
        return selector.strip(), "text"


_default_parser = Parser()


def extract(document: str, selector: str | Mapping[str, str], engine: str | None = None) -> dict[str, list[Any]]:
    """Module-level extraction using the default engines."""

    return _default_parser.extract(document, selector, engine)


__all__ = ["DEFAULT_ENGINE", "DEFAULT_KEY", "Extractor", "Parser", "extract"]
