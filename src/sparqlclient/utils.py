"""
Helpers for writing SPARQL query bodies.

Query bodies are opaque text to the client, so these helpers only cover
the small pieces callers commonly splice into them.
"""

import re
from typing import Dict, Iterable

_LITERAL_ESCAPES = {
    "\\": "\\\\",
    '"': '\\"',
    "'": "\\'",
    "\n": "\\n",
    "\r": "\\r",
    "\t": "\\t",
    "\b": "\\b",
    "\f": "\\f",
}

_REGEX_SPECIALS = re.compile(r"([\\^$.|?*+()\[\]{}])")


def escape_literal(text: str) -> str:
    """
    Escape a string for use inside a quoted SPARQL literal.

    Args:
        text: Raw string value

    Returns:
        Escaped string, without surrounding quotes

    Example:
        >>> escape_literal('say "hi"')
        'say \\\\"hi\\\\"'
    """
    return "".join(_LITERAL_ESCAPES.get(ch, ch) for ch in text)


def escape_regex(text: str) -> str:
    """
    Escape regular-expression metacharacters for use in ``REGEX()``.

    The result still has to go through :func:`escape_literal` before it is
    placed in a quoted literal.

    Example:
        >>> escape_regex("a.b")
        'a\\\\.b'
    """
    return _REGEX_SPECIALS.sub(r"\\\1", text)


def iri(uri: str) -> str:
    """Wrap a URI in angle brackets, leaving already-wrapped ones alone."""
    uri = uri.strip()
    if uri.startswith("<") and uri.endswith(">"):
        return uri
    return f"<{uri}>"


def prefix_lines(prefixes: Dict[str, str]) -> str:
    """
    Generate PREFIX declarations, one line per entry, in mapping order.

    Example:
        >>> prefix_lines({"wd": "http://www.wikidata.org/entity/"})
        'PREFIX wd: <http://www.wikidata.org/entity/>'
    """
    return "\n".join(f"PREFIX {name}: {iri(uri)}" for name, uri in prefixes.items())


def graph_lines(default_graphs: Iterable[str], named_graphs: Iterable[str]) -> str:
    """Generate ``FROM`` then ``FROM NAMED`` lines, in the given order."""
    lines = [f"FROM {iri(uri)}" for uri in default_graphs]
    lines.extend(f"FROM NAMED {iri(uri)}" for uri in named_graphs)
    return "\n".join(lines)
