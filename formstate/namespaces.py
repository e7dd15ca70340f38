# ================================================================
# FORMSTATE
# Namespaces, Constants, IRI Factories
# ================================================================

from datetime import datetime, timezone
from uuid import uuid4

from rdflib import Literal, Namespace, URIRef
from rdflib.namespace import DCTERMS, RDF, SH, SKOS, XSD


# ==========================
# VOCABULARIES
# ==========================

FORM = Namespace("http://lblod.data.gift/vocabularies/forms/")
FIELD_OPTION = Namespace("http://lblod.data.gift/vocabularies/form-field-options/")
EXT = Namespace("http://mu.semte.ch/vocabularies/ext/")
MU = Namespace("http://mu.semte.ch/vocabularies/core/")
AS = Namespace("http://www.w3.org/ns/activitystreams#")

__all__ = [
    "FORM", "FIELD_OPTION", "EXT", "MU", "AS",
    "RDF", "SH", "SKOS", "XSD", "DCTERMS",
    "DEFAULT_PREFIXES",
    "APPLICATION_GRAPH", "HISTORY_GRAPH",
    "now_literal", "make_instance_iri", "make_version_graph_iri", "new_id",
]

DEFAULT_PREFIXES = {
    "form": FORM,
    "ext": EXT,
    "mu": MU,
    "sh": SH,
    "skos": SKOS,
    "dct": DCTERMS,
    "as": AS,
}

# ==========================
# GRAPHS
# ==========================

APPLICATION_GRAPH = "http://mu.semte.ch/graphs/application"
HISTORY_GRAPH = "http://mu.semte.ch/graphs/formHistory"


# ==========================
# TIMESTAMPS
# ==========================

def now_literal() -> Literal:
    # microseconds kept so versions issued within one second still order
    return Literal(datetime.now(timezone.utc), datatype=XSD.dateTime)


# ==========================
# IRI FACTORIES
# ==========================

def new_id() -> str:
    return str(uuid4())


def make_instance_iri(prefix: str, instance_id: str) -> URIRef:
    return URIRef(f"{prefix}{instance_id}")


def make_version_graph_iri(history_graph: str = HISTORY_GRAPH) -> URIRef:
    return URIRef(f"{history_graph}/{uuid4()}")
