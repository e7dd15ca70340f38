import pytest
from rdflib import BNode, Graph, Literal, URIRef

from formstate.errors import EncodingError, ParseError
from formstate.graph_model import (
    encode_term,
    encode_triple,
    graph_from_triples,
    graphs_equal,
    parse_graph,
    serialize_graph,
)
from formstate.namespaces import DEFAULT_PREFIXES, XSD

from conftest import SCHEMA

ADA = URIRef("http://example.org/people/ada")


def test_empty_document_parses_to_empty_graph():
    assert len(parse_graph("")) == 0
    assert len(parse_graph("   \n")) == 0
    assert len(parse_graph(None)) == 0


def test_malformed_document_raises_parse_error():
    with pytest.raises(ParseError):
        parse_graph("<http://example.org/a> <http://example.org/b> .")


def test_parse_then_serialize_keeps_triples():
    g = graph_from_triples([
        (ADA, SCHEMA.name, Literal("Ada")),
        (ADA, SCHEMA.birthDate, Literal("1815-12-10", datatype=XSD.date)),
        (ADA, SCHEMA.description, Literal("Mathematician", lang="en")),
        (ADA, SCHEMA.knows, URIRef("http://example.org/people/charles")),
    ])

    again = parse_graph(serialize_graph(g, DEFAULT_PREFIXES))

    assert graphs_equal(g, again)


def test_serialization_header_declares_xsd_first():
    text = serialize_graph([(ADA, SCHEMA.name, Literal("Ada"))], {"schema": SCHEMA})
    lines = text.splitlines()

    assert lines[0] == "@prefix xsd: <http://www.w3.org/2001/XMLSchema#> ."
    assert lines[1] == "@prefix schema: <http://schema.org/> ."
    assert lines[2] == '<http://example.org/people/ada> <http://schema.org/name> "Ada" .'


def test_equal_graphs_serialize_identically():
    triples = [
        (ADA, SCHEMA.name, Literal("Ada")),
        (ADA, SCHEMA.email, Literal("ada@example.org")),
    ]
    a = graph_from_triples(triples)
    b = graph_from_triples(list(reversed(triples)))

    assert serialize_graph(a) == serialize_graph(b)


def test_graph_equality_is_set_equality():
    t = (ADA, SCHEMA.name, Literal("Ada"))
    assert graphs_equal([t, t], [t])
    assert not graphs_equal([t], [])
    assert graphs_equal(Graph(), [])


def test_literals_keep_datatype_and_language():
    assert encode_term(Literal("1", datatype=XSD.integer)) == '"1"^^<http://www.w3.org/2001/XMLSchema#integer>'
    assert encode_term(Literal("hi", lang="en")) == '"hi"@en'


def test_literal_outside_object_position_is_rejected():
    with pytest.raises(EncodingError):
        encode_term(Literal("x"), "subject")


def test_blank_node_predicate_is_rejected():
    with pytest.raises(EncodingError):
        encode_triple((ADA, BNode(), Literal("x")))


def test_invalid_iri_is_rejected():
    with pytest.raises(EncodingError):
        encode_term(URIRef("http://example.org/has space"))


def test_unsupported_term_is_rejected():
    with pytest.raises(EncodingError):
        encode_term("plain string")


def test_blank_nodes_survive_a_round_trip():
    address = BNode()
    g = graph_from_triples([
        (ADA, SCHEMA.address, address),
        (address, SCHEMA.streetAddress, Literal("Main street 1")),
    ])

    text = serialize_graph(g, DEFAULT_PREFIXES)
    again = parse_graph(text)

    assert "/.well-known/genid/" in text
    assert graphs_equal(g, again)
    assert isinstance(again.value(ADA, SCHEMA.address), BNode)
