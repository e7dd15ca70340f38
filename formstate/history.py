# ================================================================
# FORMSTATE - HISTORY ENGINE
# Immutable instance snapshots in their own named graphs
# ================================================================

import logging
from dataclasses import dataclass
from typing import Optional

from rdflib import Graph, Literal, URIRef

from .graph_model import encode_triples
from .namespaces import DCTERMS, EXT, HISTORY_GRAPH, MU, RDF, make_version_graph_iri, now_literal

logger = logging.getLogger(__name__)


@dataclass
class HistoryItem:
    """
    Metadata of one version. `creator` is the creator's URI; `creator_id` is
    its mu:uuid, or None when the creator resource carries none.
    """

    uri: str
    issued: str
    creator: str
    creator_id: Optional[str] = None
    description: Optional[str] = None


class HistoryEngine:
    """
    Snapshots are written once and never touched again. Metadata of every
    snapshot lives in the shared history graph; the payload lives in a graph
    of its own.

    Reads are gated on the caller's access to the live instance. Denied reads
    return empty results rather than errors, so they reveal nothing about
    which versions exist.
    """

    def __init__(self, store, access, history_graph: str = HISTORY_GRAPH):
        self.store = store
        self.access = access
        self.history_graph = history_graph

    # ================================================================
    # WRITE
    # ================================================================

    def save_version(self, instance_uri, instance_graph: Graph, creator_uri, description: Optional[str] = None) -> URIRef:
        version = make_version_graph_iri(self.history_graph)
        instance_uri = URIRef(str(instance_uri))

        metadata = [
            (version, RDF.type, EXT.FormHistory),
            (version, DCTERMS.isVersionOf, instance_uri),
            (version, DCTERMS.issued, now_literal()),
            (version, DCTERMS.creator, URIRef(str(creator_uri))),
        ]
        if description:
            metadata.append((version, DCTERMS.description, Literal(description)))

        blocks = ["  GRAPH <%s> {\n%s\n  }" % (self.history_graph, "\n".join(encode_triples(metadata)))]
        payload = encode_triples(instance_graph)
        if payload:
            blocks.append("  GRAPH <%s> {\n%s\n  }" % (version, "\n".join(payload)))

        self.store.update("INSERT DATA {\n%s\n}" % "\n".join(blocks))
        logger.info("Saved version %s of %s (%d triples)", version, instance_uri, len(payload))
        return version

    # ================================================================
    # UNSECURED READS
    # ================================================================

    def _versions_where(self, instance_id: str) -> str:
        return f"""
              ?instance {MU.uuid.n3()} {Literal(instance_id).n3()} .
              GRAPH <{self.history_graph}> {{
                ?history {DCTERMS.isVersionOf.n3()} ?instance .
              }}
        """

    def _unsecure_list(self, instance_id: str, limit: int, offset: int) -> list:
        rows = self.store.select(f"""
            SELECT DISTINCT ?history ?issued ?creator ?creatorId ?description
            WHERE {{
              {self._versions_where(instance_id)}
              GRAPH <{self.history_graph}> {{
                ?history {DCTERMS.issued.n3()} ?issued ;
                  {DCTERMS.creator.n3()} ?creator .
                OPTIONAL {{ ?history {DCTERMS.description.n3()} ?description . }}
              }}
              OPTIONAL {{ ?creator {MU.uuid.n3()} ?creatorId . }}
            }}
            ORDER BY DESC(?issued)
            LIMIT {int(limit)}
            OFFSET {int(offset)}
        """)
        return [
            HistoryItem(
                uri=str(row["history"]),
                issued=str(row["issued"]),
                creator=str(row["creator"]),
                creator_id=str(row["creatorId"]) if row.get("creatorId") is not None else None,
                description=str(row["description"]) if row.get("description") is not None else None,
            )
            for row in rows
        ]

    def _unsecure_count(self, instance_id: str) -> int:
        rows = self.store.select(f"""
            SELECT (COUNT(DISTINCT ?history) AS ?total)
            WHERE {{
              {self._versions_where(instance_id)}
            }}
        """)
        if not rows or rows[0].get("total") is None:
            return 0
        return int(rows[0]["total"])

    def _unsecure_get(self, version_uri) -> Graph:
        return self.store.construct(f"""
            CONSTRUCT {{ ?s ?p ?o }}
            WHERE {{
              GRAPH {URIRef(str(version_uri)).n3()} {{ ?s ?p ?o }}
            }}
        """)

    def _version_of(self, version_uri) -> Optional[URIRef]:
        rows = self.store.select(f"""
            SELECT ?instance
            WHERE {{
              GRAPH <{self.history_graph}> {{
                {URIRef(str(version_uri)).n3()} {DCTERMS.isVersionOf.n3()} ?instance .
              }}
            }} LIMIT 1
        """)
        return rows[0]["instance"] if rows else None

    # ================================================================
    # GATED READS
    # ================================================================

    def list_versions(self, instance_id: str, limit: int = 20, offset: int = 0) -> list:
        if not self.access.has_access_to_instance_id(instance_id):
            return []
        return self._unsecure_list(instance_id, limit, offset)

    def count_versions(self, instance_id: str) -> int:
        if not self.access.has_access_to_instance_id(instance_id):
            return 0
        return self._unsecure_count(instance_id)

    def list_versions_with_count(self, instance_id: str, limit: int = 20, offset: int = 0):
        if not self.access.has_access_to_instance_id(instance_id):
            return [], 0
        return self._unsecure_list(instance_id, limit, offset), self._unsecure_count(instance_id)

    def get_version(self, version_uri) -> Optional[Graph]:
        instance_uri = self._version_of(version_uri)
        if instance_uri is None:
            return None
        if not self.access.has_access_to_instance(instance_uri):
            return None
        return self._unsecure_get(version_uri)

    def has_any_version(self, instance_id: str) -> bool:
        """Unsecured: callers that need access control gate on the reads above."""
        return self.store.ask(f"""
            ASK {{
              {self._versions_where(instance_id)}
            }}
        """)
