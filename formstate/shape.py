# ================================================================
# FORMSTATE - FORM SHAPE
# Shape-scoped extraction and deletion of an instance
# ================================================================

import logging
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from rdflib import BNode, Graph, URIRef
from rdflib.collection import Collection

from .namespaces import FORM, MU, RDF, SH

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PathStep:
    predicate: URIRef
    inverse: bool = False


Path = Tuple[PathStep, ...]

# Every scope carries its resources' identity triples.
IDENTITY_PATHS: List[Path] = [
    (PathStep(RDF.type),),
    (PathStep(MU.uuid),),
]


def parse_path(graph: Graph, node) -> Optional[Path]:
    """
    Reads a SHACL property path as a tuple of steps.

    Supported: predicate IRIs, sh:inversePath of an IRI, and sequence paths
    (RDF lists) built from those two. Anything else yields None.
    """
    if isinstance(node, URIRef):
        return (PathStep(node),)

    if not isinstance(node, BNode):
        return None

    inverse = graph.value(node, SH.inversePath)
    if inverse is not None:
        if isinstance(inverse, URIRef):
            return (PathStep(inverse, inverse=True),)
        return None

    if graph.value(node, RDF.first) is not None:
        steps = []
        for member in Collection(graph, node):
            sub = parse_path(graph, member)
            if sub is None or len(sub) != 1:
                return None
            steps.append(sub[0])
        return tuple(steps)

    return None


@dataclass
class FormShape:
    """
    The part of the store a form instance owns: the paths of the form's
    fields, plus the listings whose items are described by a sub-form.
    """

    paths: List[Path] = field(default_factory=list)
    listings: List[Tuple[Path, "FormShape"]] = field(default_factory=list)

    # ================================================================
    # CONSTRUCTION
    # ================================================================

    @classmethod
    def from_template(cls, graph: Graph, form_node=None) -> "FormShape":
        if form_node is None:
            form_node = next(iter(graph.subjects(RDF.type, FORM.Form)), None)
        return cls._from_node(graph, form_node, seen=set())

    @classmethod
    def _from_node(cls, graph: Graph, form_node, seen: set) -> "FormShape":
        shape = cls(paths=list(IDENTITY_PATHS))
        if form_node is None or form_node in seen:
            return shape
        seen = seen | {form_node}

        fields = list(graph.objects(form_node, FORM.includes))
        if not fields:
            included = set(graph.objects(None, FORM.includes))
            fields = [s for s in set(graph.subjects(SH.path, None)) if s not in included]

        for fld in sorted(fields):
            path_node = graph.value(fld, SH.path)
            if path_node is None:
                continue
            path = parse_path(graph, path_node)
            if path is None:
                logger.warning("Unsupported sh:path on field %s, skipped", fld)
                continue

            if (fld, RDF.type, FORM.Listing) in graph:
                subform = graph.value(fld, FORM.each)
                shape.listings.append((path, cls._from_node(graph, subform, seen)))
            elif path not in shape.paths:
                shape.paths.append(path)

        return shape

    # ================================================================
    # QUERY BLOCKS
    # ================================================================

    def blocks(self, start: str) -> List[List[str]]:
        """
        One conjunctive block of triple patterns per reachable path, each
        block with its own variables so CONSTRUCT templates never mix
        bindings of different blocks.
        """
        counter = [0]

        def fresh():
            counter[0] += 1
            return f"?v{counter[0]}"

        return self._blocks(start, [], fresh)

    def _blocks(self, start: str, prefix: List[str], fresh) -> List[List[str]]:
        out = []
        for path in self.paths:
            patterns, _ = _walk(start, path, fresh)
            out.append(prefix + patterns)

        for path, subshape in self.listings:
            patterns, end = _walk(start, path, fresh)
            out.append(prefix + patterns)
            out.extend(subshape._blocks(end, prefix + patterns, fresh))

        return out

    def _template_and_where(self, instance_uri, graph_iri: Optional[str]):
        subject = URIRef(str(instance_uri)).n3()
        blocks = self.blocks(subject)

        template = []
        for block in blocks:
            for pattern in block:
                if pattern not in template:
                    template.append(pattern)

        unions = "\n  UNION\n".join(
            "  { %s }" % _in_graph(" ".join(block), graph_iri) for block in blocks
        )
        return template, unions

    def construct_query(self, instance_uri, graph_iri: Optional[str] = None) -> str:
        template, unions = self._template_and_where(instance_uri, graph_iri)
        return "CONSTRUCT {\n  %s\n}\nWHERE {\n%s\n}" % ("\n  ".join(template), unions)

    def delete_query(self, instance_uri, graph_iri: Optional[str] = None) -> str:
        """
        A single DELETE/WHERE over the same blocks as construct_query. All
        bindings are resolved before anything is removed, so blocks sharing
        a prefix (listing items, sequence paths with a common first hop) are
        deleted completely.
        """
        template, unions = self._template_and_where(instance_uri, graph_iri)
        body = _in_graph("\n  ".join(template), graph_iri)
        return "DELETE {\n  %s\n}\nWHERE {\n%s\n}" % (body, unions)

    def scope(self, graph: Graph, instance_uri) -> Graph:
        """Restricts an in-memory graph to the triples this shape attributes to instance_uri."""
        result = graph.query(self.construct_query(instance_uri))
        scoped = Graph()
        for t in result.graph:
            scoped.add(t)
        return scoped


def _walk(start: str, path: Path, fresh):
    patterns = []
    current = start
    for step in path:
        nxt = fresh()
        if step.inverse:
            patterns.append(f"{nxt} {step.predicate.n3()} {current} .")
        else:
            patterns.append(f"{current} {step.predicate.n3()} {nxt} .")
        current = nxt
    return patterns, current


def _in_graph(body: str, graph_iri: Optional[str]) -> str:
    if graph_iri is None:
        return body
    return "GRAPH <%s> { %s }" % (graph_iri, body)
