from __future__ import annotations

import pytest
from rdflib import Literal, Namespace, URIRef

from formstate.graph_model import encode_triples, parse_graph
from formstate.manager import FormStateManager
from formstate.namespaces import APPLICATION_GRAPH, EXT, MU, RDF
from formstate.settings import FormStateSettings
from formstate.store import TripleStore

SCHEMA = Namespace("http://schema.org/")

PREFIXES = """
@prefix form: <http://lblod.data.gift/vocabularies/forms/> .
@prefix ext: <http://mu.semte.ch/vocabularies/ext/> .
@prefix mu: <http://mu.semte.ch/vocabularies/core/> .
@prefix sh: <http://www.w3.org/ns/shacl#> .
@prefix schema: <http://schema.org/> .
"""

BASE_TTL = PREFIXES + """
ext:baseForm a form:Form ;
  mu:uuid "base-form" ;
  form:targetType schema:Person ;
  form:targetLabel schema:name ;
  ext:prefix "http://example.org/people/" ;
  form:includes ext:nameField , ext:emailField , ext:roleField .

ext:mainGroup a form:PropertyGroup ;
  sh:name "Main" ;
  sh:order 1 .

ext:nameField a form:Field ;
  sh:name "Name" ;
  sh:path schema:name ;
  sh:group ext:mainGroup .

ext:emailField a form:Field ;
  sh:name "Email" ;
  sh:path schema:email ;
  sh:group ext:mainGroup .

ext:roleField a form:Field ;
  sh:name "Role" ;
  sh:path schema:jobTitle ;
  sh:group ext:mainGroup ;
  form:options \"\"\"{"conceptScheme":"http://example.org/schemes/roles"}\"\"\" .
"""

EXTENSION_TTL = PREFIXES + """
ext:extForm a form:Form , ext:Extension ;
  mu:uuid "ext-form" ;
  ext:extendsForm ext:baseForm ;
  form:targetType ext:Employee ;
  form:targetLabel schema:name ;
  ext:prefix "http://example.org/employees/" ;
  form:includes ext:badgeField .

ext:extGroup ext:extendsGroup ext:mainGroup .

ext:badgeField a form:Field ;
  sh:name "Badge" ;
  sh:path ext:badgeNumber ;
  sh:group ext:extGroup .
"""

FAMILY_FORM_TTL = PREFIXES + """
ext:familyForm a form:Form ;
  mu:uuid "family" ;
  form:targetType schema:Person ;
  form:targetLabel schema:name ;
  form:includes ext:nameField , ext:streetField , ext:postalField , ext:parentField , ext:itemsField .

ext:nameField a form:Field ;
  sh:path schema:name .

ext:streetField a form:Field ;
  sh:path ( schema:address schema:streetAddress ) .

ext:postalField a form:Field ;
  sh:path ( schema:address schema:postalCode ) .

ext:parentField a form:Field ;
  sh:path [ sh:inversePath schema:children ] .

ext:itemsField a form:Listing ;
  sh:path schema:item ;
  form:each ext:itemForm .

ext:itemForm a form:SubForm ;
  form:includes ext:itemNameField .

ext:itemNameField a form:Field ;
  sh:path schema:itemName .
"""

FAMILY_DATA_PREFIXES = """
@prefix schema: <http://schema.org/> .
@prefix mu: <http://mu.semte.ch/vocabularies/core/> .
"""

# ada with a named address, a typed listing item, a parent, and out-of-shape triples
FAMILY_DATA_TTL = FAMILY_DATA_PREFIXES + """
<http://example.org/ada> a schema:Person ;
  mu:uuid "p-ada" ;
  schema:name "Ada" ;
  schema:other "not in the form" ;
  schema:address <http://example.org/ada/address> ;
  schema:item <http://example.org/ada/item1> .

<http://example.org/ada/address>
  schema:streetAddress "Main street 1" ;
  schema:postalCode "1000" ;
  schema:addressCountry "BE" .

<http://example.org/ada/item1> a schema:Product ;
  schema:itemName "Notebook" ;
  schema:price "12" .

<http://example.org/byron> schema:children <http://example.org/ada> .
"""

# same person, address as a blank node
FAMILY_BLANK_DATA_TTL = FAMILY_DATA_PREFIXES + """
<http://example.org/ada> a schema:Person ;
  mu:uuid "p-ada" ;
  schema:name "Ada" ;
  schema:address [
    schema:streetAddress "Main street 1" ;
    schema:postalCode "1000"
  ] .
"""


class DictLoader:
    """Template loader double serving ttl by id and by root URI, recording every call."""

    def __init__(self, forms=None):
        # id -> (uri, ttl)
        self.forms = dict(forms or {})
        self.calls = []

    def add(self, form_id, uri, ttl):
        self.forms[form_id] = (str(uri), ttl)

    def load_by_id(self, form_id):
        self.calls.append(("id", form_id))
        entry = self.forms.get(form_id)
        return entry[1] if entry else None

    def load_by_uri(self, uri):
        self.calls.append(("uri", str(uri)))
        for form_uri, ttl in self.forms.values():
            if form_uri == str(uri):
                return ttl
        return None


class DenyAll:
    def has_access_to_instance(self, instance_uri):
        return False

    def has_access_to_instance_id(self, instance_id):
        return False


def insert_live(store, triples, graph=APPLICATION_GRAPH):
    store.update("INSERT DATA { GRAPH <%s> {\n%s\n} }" % (graph, "\n".join(encode_triples(triples))))


def person_triples(uri, uuid, name, email=None, types=(SCHEMA.Person,)):
    uri = URIRef(uri)
    triples = [(uri, RDF.type, t) for t in types]
    triples += [(uri, MU.uuid, Literal(uuid)), (uri, SCHEMA.name, Literal(name))]
    if email:
        triples.append((uri, SCHEMA.email, Literal(email)))
    return triples


@pytest.fixture
def store():
    return TripleStore()


@pytest.fixture
def base_graph():
    return parse_graph(BASE_TTL)


@pytest.fixture
def extension_graph():
    return parse_graph(EXTENSION_TTL)


@pytest.fixture
def loader():
    return DictLoader({
        "base-form": (str(EXT.baseForm), BASE_TTL),
        "ext-form": (str(EXT.extForm), EXTENSION_TTL),
        "family": (str(EXT.familyForm), FAMILY_FORM_TTL),
    })


@pytest.fixture
def settings():
    return FormStateSettings(query_endpoint=None, update_endpoint=None, form_directory=None)


@pytest.fixture
def manager(store, loader, settings):
    return FormStateManager(store=store, settings=settings, loader=loader)


@pytest.fixture
def ada(store):
    """One person in the live graph, plus one triple outside the form's shape."""
    uri = URIRef("http://example.org/people/ada")
    triples = person_triples(uri, "p-ada", "Ada", "ada@example.org")
    triples.append((uri, EXT.internalNote, Literal("not part of the form")))
    insert_live(store, triples)
    return uri


def load_live(store, ttl, graph=APPLICATION_GRAPH):
    insert_live(store, list(parse_graph(ttl)), graph)
