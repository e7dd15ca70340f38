# ================================================================
# FORMSTATE - INSTANCE DIFF ENGINE
# Minimal insert/delete patch between two instance graphs
# ================================================================

from dataclasses import dataclass
from typing import Optional

from rdflib import BNode

from .errors import EncodingError
from .graph_model import TripleSource, encode_term, encode_triples, triple_set


@dataclass(frozen=True)
class Patch:
    inserts: frozenset = frozenset()
    deletes: frozenset = frozenset()

    @property
    def is_empty(self) -> bool:
        return not self.inserts and not self.deletes

    def __len__(self):
        return len(self.inserts) + len(self.deletes)


def compute_patch(current: TripleSource, desired: TripleSource) -> Patch:
    """
    Computes the patch turning `current` into `desired`.

    Triples are compared structurally. Blank nodes match only when their
    identifiers are equal, so both graphs must come from the same
    shape-scoped extraction; no isomorphism matching is attempted.
    """
    cur = triple_set(current)
    want = triple_set(desired)
    return Patch(inserts=frozenset(want - cur), deletes=frozenset(cur - want))


def patch_update(patch: Patch, graph_iri: Optional[str] = None, current: Optional[TripleSource] = None) -> Optional[str]:
    """
    Renders a patch as one SPARQL update request. Returns None for an empty
    patch.

    Ground triples go through DELETE DATA and INSERT DATA. Blank nodes
    cannot be named in a DATA block, so every triple touching a blank node
    of `current` is rewritten in one DELETE/INSERT/WHERE whose WHERE clause
    is every blank-node triple of `current`, blank nodes replaced by
    variables. New blank nodes in the inserts join that operation so they
    stay connected to the existing ones.
    """
    if patch.is_empty:
        return None

    current_set = triple_set(current) if current is not None else frozenset()
    existing = _blank_nodes(current_set)

    anchored_deletes = {t for t in patch.deletes if _blank_nodes([t])}
    missing = _blank_nodes(anchored_deletes) - existing
    if missing:
        raise EncodingError(f"Cannot address blank nodes outside the current graph: {sorted(missing)}")

    anchored_inserts = set()
    if anchored_deletes or any(_blank_nodes([t]) & existing for t in patch.inserts):
        anchored_inserts = {t for t in patch.inserts if _blank_nodes([t])}

    ground_deletes = patch.deletes - anchored_deletes
    plain_inserts = patch.inserts - anchored_inserts

    ops = []
    if anchored_deletes or anchored_inserts:
        ops.append(_anchored_update(anchored_deletes, anchored_inserts, current_set, existing, graph_iri))
    if ground_deletes:
        ops.append("DELETE DATA {\n%s\n}" % _data_block(ground_deletes, graph_iri))
    if plain_inserts:
        ops.append("INSERT DATA {\n%s\n}" % _data_block(plain_inserts, graph_iri))
    return " ;\n".join(ops)


def insert_data(triples, graph_iri: Optional[str] = None) -> str:
    return "INSERT DATA {\n%s\n}" % _data_block(triples, graph_iri)


def _data_block(triples, graph_iri: Optional[str]) -> str:
    return _in_graph("\n".join(encode_triples(triples)), graph_iri)


def _in_graph(body: str, graph_iri: Optional[str]) -> str:
    if graph_iri is None:
        return body
    return "GRAPH <%s> {\n%s\n}" % (graph_iri, body)


# ==========================
# BLANK-NODE ADDRESSING
# ==========================

def _blank_nodes(triples) -> set:
    return {term for t in triples for term in (t[0], t[2]) if isinstance(term, BNode)}


def _anchored_update(deletes, inserts, current, existing, graph_iri: Optional[str]) -> str:
    variables = {b: f"?b{i}" for i, b in enumerate(sorted(existing))}
    anchor = [t for t in current if _blank_nodes([t])]

    parts = []
    if deletes:
        parts.append("DELETE {\n%s\n}" % _in_graph(_patterns(deletes, variables), graph_iri))
    if inserts:
        parts.append("INSERT {\n%s\n}" % _in_graph(_patterns(inserts, variables), graph_iri))
    parts.append("WHERE {\n%s\n}" % _in_graph(_patterns(anchor, variables), graph_iri))
    return "\n".join(parts)


def _patterns(triples, variables) -> str:
    def term(value, position):
        if value in variables:
            return variables[value]
        return encode_term(value, position)

    return "\n".join(sorted(
        "%s %s %s ." % (term(s, "subject"), term(p, "predicate"), term(o, "object"))
        for s, p, o in triples
    ))
