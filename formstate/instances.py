# ================================================================
# FORMSTATE - INSTANCES
# Shape-scoped reads, creation, and updates through the diff engine
# ================================================================

import logging
from dataclasses import dataclass
from typing import Optional

from rdflib import Graph, Literal, URIRef

from .diff import compute_patch, insert_data, patch_update
from .errors import InstanceNotFound
from .graph_model import serialize_graph
from .namespaces import DEFAULT_PREFIXES, MU, make_instance_iri, new_id

logger = logging.getLogger(__name__)


@dataclass
class Instance:
    uri: URIRef
    id: Optional[str]
    graph: Graph

    @property
    def ttl(self) -> str:
        return serialize_graph(self.graph, DEFAULT_PREFIXES)


@dataclass
class InstanceSummary:
    uri: str
    id: str
    label: Optional[str] = None


class InstanceRepository:

    def __init__(self, store, graph_iri: str, default_page_size: int = 20):
        self.store = store
        self.graph_iri = graph_iri
        self.default_page_size = default_page_size

    # ================================================================
    # LOOKUPS
    # ================================================================

    def uri_for_id(self, instance_id: str) -> Optional[URIRef]:
        rows = self.store.select(f"""
            SELECT ?instance
            WHERE {{
              GRAPH <{self.graph_iri}> {{ ?instance {MU.uuid.n3()} {Literal(instance_id).n3()} . }}
            }} LIMIT 1
        """)
        return rows[0]["instance"] if rows else None

    def id_for_uri(self, instance_uri) -> Optional[str]:
        rows = self.store.select(f"""
            SELECT ?id
            WHERE {{
              GRAPH <{self.graph_iri}> {{ {URIRef(str(instance_uri)).n3()} {MU.uuid.n3()} ?id . }}
            }} LIMIT 1
        """)
        return str(rows[0]["id"]) if rows else None

    # ================================================================
    # READ
    # ================================================================

    def fetch(self, template, instance_uri) -> Optional[Instance]:
        uri = URIRef(str(instance_uri))
        graph = self.store.construct(template.shape.construct_query(uri, self.graph_iri))
        if len(graph) == 0:
            return None
        uuid = graph.value(uri, MU.uuid)
        return Instance(uri=uri, id=str(uuid) if uuid is not None else None, graph=graph)

    def fetch_by_id(self, template, instance_id: str) -> Instance:
        uri = self.uri_for_id(instance_id)
        if uri is None:
            raise InstanceNotFound(instance_id)
        instance = self.fetch(template, uri)
        if instance is None:
            raise InstanceNotFound(instance_id)
        return instance

    # ================================================================
    # CREATE / UPDATE
    # ================================================================

    def mint(self, template):
        """A fresh (uri, id) pair under the template's instance prefix."""
        instance_id = new_id()
        prefix = template.prefix or "http://data.lblod.info/form-data/instances/"
        return make_instance_iri(prefix, instance_id), instance_id

    def add(self, graph: Graph) -> None:
        self.store.update(insert_data(graph, self.graph_iri))
        logger.info("Inserted %d triples of new form content", len(graph))

    def update(self, template, instance: Instance, desired: Graph) -> Instance:
        """
        Brings the stored instance in line with `desired`.

        An empty patch returns `instance` untouched without any write.
        Otherwise deletes and inserts go to the store as one request and the
        instance is read back. There is no compare-and-swap: a concurrent
        writer between the read and this write is overwritten.
        """
        patch = compute_patch(instance.graph, desired)
        if patch.is_empty:
            logger.debug("No changes for %s", instance.uri)
            return instance

        self.store.update(patch_update(patch, self.graph_iri, current=instance.graph))
        logger.info(
            "Patched %s: -%d +%d triples",
            instance.uri, len(patch.deletes), len(patch.inserts),
        )
        return self.fetch(template, instance.uri) or Instance(uri=instance.uri, id=instance.id, graph=Graph())

    # ================================================================
    # LISTING
    # ================================================================

    def list_instances(self, template, limit: Optional[int] = None, offset: int = 0) -> list:
        if template.target_type is None:
            return []
        limit = limit or self.default_page_size
        label = template.target_label
        label_join = ""
        if label is not None:
            label_join = f"OPTIONAL {{ ?uri {label.n3()} ?label . }}"

        rows = self.store.select(f"""
            SELECT DISTINCT ?uri ?id ?label
            WHERE {{
              GRAPH <{self.graph_iri}> {{
                ?uri a {template.target_type.n3()} ;
                  {MU.uuid.n3()} ?id .
                {label_join}
              }}
            }}
            ORDER BY ?uri LIMIT {int(limit)} OFFSET {int(offset)}
        """)

        return [
            InstanceSummary(
                uri=str(row["uri"]),
                id=str(row["id"]),
                label=str(row["label"]) if row.get("label") is not None else None,
            )
            for row in rows
        ]

    def count(self, template) -> int:
        if template.target_type is None:
            return 0
        rows = self.store.select(f"""
            SELECT (COUNT(DISTINCT ?uri) AS ?total)
            WHERE {{
              GRAPH <{self.graph_iri}> {{
                ?uri a {template.target_type.n3()} ;
                  {MU.uuid.n3()} ?id .
              }}
            }}
        """)
        if not rows or rows[0].get("total") is None:
            return 0
        return int(rows[0]["total"])
