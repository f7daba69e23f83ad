"""
Result transformations for SPARQL JSON results.

Each function takes a parsed SPARQL JSON results document and returns it in
a different shape.  SELECT documents look like::

    {
        "head": {"vars": ["s", "label"]},
        "results": {"bindings": [{"s": {"type": "uri", "value": "..."}}]}
    }

ASK documents carry a top-level ``"boolean"`` member instead of ``results``.

The functions are pure: they never mutate the document they are given.

Usage:
    from sparqlclient import transformations

    names = transformations.select_values(doc)
    rows = transformations.select_value_hashes(doc)
"""

from __future__ import annotations

from typing import Any, Callable

from sparqlclient.errors import InvalidArgumentError, InvalidShapeError

Transformation = Callable[[dict[str, Any]], Any]


def _variables(doc: dict[str, Any]) -> list[str]:
    head = doc.get("head") or {}
    variables = head.get("vars") or []
    if not isinstance(variables, list):
        raise InvalidShapeError("'head.vars' must be a list of variable names")
    return [str(v) for v in variables]


def _bindings(doc: dict[str, Any]) -> list[dict[str, Any]]:
    results = doc.get("results")
    if not isinstance(results, dict):
        raise InvalidShapeError("Result document has no 'results' member; not a SELECT result")
    bindings = results.get("bindings") or []
    if not isinstance(bindings, list):
        raise InvalidShapeError("'results.bindings' must be a list")
    return bindings


def _single_variable(doc: dict[str, Any]) -> str:
    variables = _variables(doc)
    if len(variables) != 1:
        raise InvalidShapeError(
            f"Expected exactly one result variable, got {len(variables)}: {variables}"
        )
    return variables[0]


def query(doc: dict[str, Any]) -> dict[str, Any]:
    """Return the document unchanged."""
    return doc


def ask(doc: dict[str, Any]) -> bool:
    """Return the boolean of an ASK result."""
    if "boolean" not in doc:
        raise InvalidShapeError("Result document has no 'boolean' member; not an ASK result")
    return bool(doc["boolean"])


def select_values(doc: dict[str, Any]) -> list[str]:
    """
    Return the values of the only result variable, in binding order.

    Bindings that leave the variable unbound are skipped.

    Raises:
        InvalidShapeError: If the result does not have exactly one variable
    """
    var = _single_variable(doc)
    return [binding[var]["value"] for binding in _bindings(doc) if var in binding]


def select_single_value(doc: dict[str, Any]) -> str:
    """
    Return the value of a result with exactly one variable and one binding.

    Raises:
        InvalidShapeError: On zero or several variables, or zero or several bindings
    """
    var = _single_variable(doc)
    bindings = _bindings(doc)
    if len(bindings) != 1:
        raise InvalidShapeError(f"Expected exactly one binding, got {len(bindings)}")
    if var not in bindings[0]:
        raise InvalidShapeError(f"Variable '{var}' is unbound in the only binding")
    return bindings[0][var]["value"]


def select_value_arrays(doc: dict[str, Any]) -> dict[str, list[str]]:
    """
    Group values by variable (columnar shape).

    Every variable in ``head.vars`` gets a list, possibly empty.  A variable
    that is unbound in a binding contributes nothing for that row, so lists
    can differ in length.
    """
    arrays: dict[str, list[str]] = {var: [] for var in _variables(doc)}
    for binding in _bindings(doc):
        for var, cell in binding.items():
            arrays.setdefault(var, []).append(cell["value"])
    return arrays


def select_value_hashes(doc: dict[str, Any]) -> list[dict[str, str]]:
    """Return one ``{variable: value}`` dict per binding (row shape)."""
    return [
        {var: cell["value"] for var, cell in binding.items()}
        for binding in _bindings(doc)
    ]


TRANSFORMATIONS: dict[str, Transformation] = {
    "query": query,
    "ask": ask,
    "select_values": select_values,
    "select_single_value": select_single_value,
    "select_value_arrays": select_value_arrays,
    "select_value_hashes": select_value_hashes,
}


def get_transformation(name: str) -> Transformation:
    """Look up a transformation by name.

    Raises:
        InvalidArgumentError: If no transformation has that name
    """
    try:
        return TRANSFORMATIONS[name]
    except KeyError:
        valid = ", ".join(TRANSFORMATIONS)
        raise InvalidArgumentError(f"Unknown transformation '{name}' (expected one of: {valid})") from None
