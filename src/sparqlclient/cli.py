"""Command line interface for :mod:`sparqlclient`."""

import json
import sys
from typing import Dict, Optional, Tuple

import click

from .config import Config
from .errors import SparqlClientError
from .namespaces import NAMESPACE_PREFIXES
from .service import Service
from .transformations import TRANSFORMATIONS

__all__ = [
    "main",
]


def _parse_pairs(pairs: Tuple[str, ...], option: str) -> Dict[str, str]:
    """Split ``NAME=VALUE`` option values into a dict, keeping their order."""
    parsed: Dict[str, str] = {}
    for pair in pairs:
        name, sep, value = pair.partition("=")
        if not sep or not name:
            raise click.BadParameter(f"expected NAME=VALUE, got {pair!r}", param_hint=option)
        parsed[name] = value
    return parsed


@click.group()
@click.version_option()
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose logging")
@click.pass_context
def main(ctx: click.Context, verbose: bool) -> None:
    """sparqlclient - send SPARQL queries and shape their JSON results."""
    import logging

    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose

    if verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            force=True,
        )
        logging.getLogger("sparqlclient").setLevel(logging.DEBUG)
    else:
        logging.basicConfig(level=logging.WARNING, format="%(levelname)s: %(message)s", force=True)


@main.command()
@click.argument("body")
@click.option("--endpoint", default=Config.SPARQL_ENDPOINT, help="SPARQL endpoint URL")
@click.option("--prefix", "prefixes", multiple=True, help="Prefix as NAME=URI (repeatable)")
@click.option(
    "--standard-prefixes", is_flag=True, help="Declare every prefix from the namespace table"
)
@click.option("--default-graph", multiple=True, help="Default graph URI (FROM, repeatable)")
@click.option("--named-graph", multiple=True, help="Named graph URI (FROM NAMED, repeatable)")
@click.option(
    "--method",
    type=click.Choice(["GET", "POST"]),
    default=Config.SPARQL_METHOD,
    show_default=True,
    help="HTTP method",
)
@click.option("--header", "headers", multiple=True, help="Request header as NAME=VALUE")
@click.option(
    "--shape",
    type=click.Choice(list(TRANSFORMATIONS)),
    default="query",
    show_default=True,
    help="Result transformation",
)
@click.option("--print-query", is_flag=True, help="Print the generated query and exit")
def query(
    body: str,
    endpoint: Optional[str],
    prefixes: Tuple[str, ...],
    standard_prefixes: bool,
    default_graph: Tuple[str, ...],
    named_graph: Tuple[str, ...],
    method: str,
    headers: Tuple[str, ...],
    shape: str,
    print_query: bool,
) -> None:
    """Run a SPARQL query BODY and print the shaped result as JSON.

    BODY is the query without PREFIX or FROM lines; use - to read it from
    standard input.


    Example:
      sparqlclient query --endpoint https://query.wikidata.org/sparql \\
        --standard-prefixes --shape select_values \\
        'SELECT ?label WHERE { wd:Q42 rdfs:label ?label }'
    """
    if body == "-":
        body = sys.stdin.read()

    with Service.from_config(Config, endpoint=endpoint) as service:
        service.set_method(method)
        if standard_prefixes:
            service.set_prefixes(NAMESPACE_PREFIXES)
        service.set_prefixes(_parse_pairs(prefixes, "--prefix"))
        for uri in default_graph:
            service.add_default_graph(uri)
        for uri in named_graph:
            service.add_named_graph(uri)
        for name, value in _parse_pairs(headers, "--header").items():
            service.set_request_header(name, value)

        sparql = service.create_query()
        sparql.set_body(body)
        sparql.set_transformation(shape)

        if print_query:
            click.echo(sparql.query_string())
            return

        if not endpoint:
            raise click.UsageError("No endpoint given; use --endpoint or set SPARQL_ENDPOINT")

        try:
            result = sparql.execute().result()
        except SparqlClientError as e:
            raise click.ClickException(str(e)) from e

        click.echo(json.dumps(result, indent=2, ensure_ascii=False))


@main.command()
def prefixes() -> None:
    """List the standard namespace prefixes."""
    width = max(len(name) for name in NAMESPACE_PREFIXES)
    for name, uri in NAMESPACE_PREFIXES.items():
        click.echo(f"{name.ljust(width)}  {uri}")


if __name__ == "__main__":
    main()
