# ================================================================
# FORMSTATE - STORE WRAPPER
# One SPARQL surface over an in-memory Dataset or a remote endpoint
# ================================================================

import logging

from rdflib import Dataset, Graph, URIRef
from rdflib.plugins.stores.sparqlstore import SPARQLUpdateStore

from .errors import StoreError

logger = logging.getLogger(__name__)


class TripleStore:
    """
    Wrapper compatible with:
    - In-memory RDFLib (Dataset)
    - Any SPARQL 1.1 endpoint via SPARQLUpdateStore

    Every public call is one round trip. Multi-operation updates are sent as a
    single request so the store applies them together.
    """

    def __init__(self, store=None, query_endpoint=None, update_endpoint=None, auth=None):

        if isinstance(store, Dataset):
            self.dataset = store
        elif store is not None:
            self.dataset = Dataset(store=store, default_union=True)
        elif query_endpoint and update_endpoint:
            s = SPARQLUpdateStore(
                query_endpoint=query_endpoint,
                update_endpoint=update_endpoint,
                auth=auth,
            )
            s.open((query_endpoint, update_endpoint))
            self.dataset = Dataset(store=s, default_union=True)
            logger.info("Using SPARQL endpoint %s", query_endpoint)
        else:
            self.dataset = Dataset(default_union=True)

        self.update_count = 0

    @classmethod
    def from_settings(cls, settings):
        auth = None
        if settings.store_user:
            auth = (settings.store_user, settings.store_password or "")
        return cls(
            query_endpoint=settings.query_endpoint,
            update_endpoint=settings.update_endpoint,
            auth=auth,
        )

    @property
    def is_remote(self) -> bool:
        return isinstance(self.dataset.store, SPARQLUpdateStore)

    # ================================================================
    # READS
    # ================================================================

    def _query(self, query: str):
        logger.debug("SPARQL query:\n%s", query)
        try:
            return self.dataset.query(query)
        except Exception as exc:
            logger.error("SPARQL query failed: %s", exc)
            raise StoreError(f"Query failed: {exc}") from exc

    def select(self, query: str) -> list:
        return [row.asdict() for row in self._query(query)]

    def construct(self, query: str) -> Graph:
        result = self._query(query)
        g = Graph()
        if result.graph is not None:
            for t in result.graph:
                g.add(t)
        return g

    def ask(self, query: str) -> bool:
        return bool(self._query(query).askAnswer)

    # ================================================================
    # WRITES
    # ================================================================

    def update(self, update: str) -> None:
        logger.debug("SPARQL update:\n%s", update)
        try:
            self.dataset.update(update)
        except Exception as exc:
            logger.error("SPARQL update failed: %s", exc)
            raise StoreError(f"Update failed: {exc}") from exc
        self.update_count += 1

    # ================================================================
    # NAMED GRAPHS
    # ================================================================

    def get_context(self, iri) -> Graph:
        return self.dataset.graph(URIRef(str(iri)))
