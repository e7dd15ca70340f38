# ================================================================
# FORMSTATE - GRAPH MODEL
# Parsing, canonical serialization and equality of triple documents
# ================================================================

from typing import Iterable, Mapping, Optional, Union

from rdflib import BNode, Graph, Literal, URIRef
from rdflib.namespace import XSD

from .errors import EncodingError, ParseError

TripleSource = Union[Graph, Iterable[tuple]]

_XSD_HEADER = f"@prefix xsd: <{XSD}> ."


def parse_graph(text: Optional[str], format: str = "turtle") -> Graph:
    """
    Parses a serialized triple document into a fresh Graph.

    An empty or missing document yields an empty Graph. Any parser failure is
    reported as ParseError with the original exception chained. rdflib skolem
    IRIs are read back as blank nodes carrying the skolemized identifier.
    """
    g = Graph()
    if not text or not text.strip():
        return g
    try:
        g.parse(data=text, format=format)
    except Exception as exc:
        raise ParseError(f"Malformed {format} document: {exc}") from exc
    # skolem IRIs written by serialize_graph become their blank nodes again
    return g.de_skolemize()


def triple_set(source: TripleSource) -> frozenset:
    return frozenset(source)


def graphs_equal(a: TripleSource, b: TripleSource) -> bool:
    return triple_set(a) == triple_set(b)


def graph_from_triples(triples: Iterable[tuple], namespaces: Optional[Mapping] = None) -> Graph:
    g = Graph()
    for pfx, ns in (namespaces or {}).items():
        g.bind(pfx, ns)
    for t in triples:
        g.add(t)
    return g


# ==========================
# TERM ENCODING
# ==========================

def encode_term(term, position: str = "object") -> str:
    """
    Renders a single term in N-Triples syntax, refusing anything a triple
    document or a SPARQL DATA block cannot carry.
    """
    if isinstance(term, Literal):
        if position != "object":
            raise EncodingError(f"Literal {term!r} cannot appear as {position}")
        try:
            return term.n3()
        except Exception as exc:
            raise EncodingError(f"Cannot encode literal {term!r}: {exc}") from exc

    if isinstance(term, BNode):
        if position == "predicate":
            raise EncodingError(f"Blank node {term!r} cannot appear as predicate")
        return term.n3()

    if isinstance(term, URIRef):
        try:
            return term.n3()
        except Exception as exc:
            raise EncodingError(f"Cannot encode IRI {term!r}: {exc}") from exc

    raise EncodingError(f"Unsupported term {term!r} ({type(term).__name__}) as {position}")


def encode_triple(triple: tuple) -> str:
    s, p, o = triple
    return "%s %s %s ." % (
        encode_term(s, "subject"),
        encode_term(p, "predicate"),
        encode_term(o, "object"),
    )


def encode_triples(triples: Iterable[tuple]) -> list:
    return sorted(encode_triple(t) for t in set(triples))


def serialize_graph(source: TripleSource, prefixes: Optional[Mapping] = None) -> str:
    """
    Serializes a Graph (or a plain triple list) as a Turtle document.

    The header always declares the xsd prefix used by the system's literal
    encodings; extra prefixes are declared after it. Triples follow, one per
    line, in sorted N-Triples form so equal graphs serialize identically.
    Blank nodes are written as skolem IRIs so their identity survives a
    round trip through parse_graph.
    """
    header = [_XSD_HEADER]
    for pfx, ns in sorted((prefixes or {}).items()):
        if pfx == "xsd":
            continue
        header.append(f"@prefix {pfx}: <{ns}> .")

    lines = encode_triples(skolemize_triples(source))
    return "\n".join(header + lines) + "\n"


def skolemize_triples(triples: Iterable[tuple]) -> list:
    # predicates are left alone so a blank-node predicate still fails to encode
    return [(_skolem(s), p, _skolem(o)) for s, p, o in triples]


def _skolem(term):
    return term.skolemize() if isinstance(term, BNode) else term
