import logging

from rdflib import Literal, URIRef

from .namespaces import MU

logger = logging.getLogger(__name__)


class StoreAccessCheck:
    """
    Visibility of live instances, answered by the store.

    Against an access-controlled endpoint these queries run as the caller, so
    an instance the caller may not see simply does not match. Any object with
    the same two methods can replace this one.
    """

    def __init__(self, store, graph_iri: str):
        self.store = store
        self.graph_iri = graph_iri

    def has_access_to_instance(self, instance_uri) -> bool:
        return self.store.ask(f"""
            ASK {{
              GRAPH <{self.graph_iri}> {{ {URIRef(str(instance_uri)).n3()} a ?thing . }}
            }}
        """)

    def has_access_to_instance_id(self, instance_id: str) -> bool:
        allowed = self.store.ask(f"""
            ASK {{
              GRAPH <{self.graph_iri}> {{ ?thing {MU.uuid.n3()} {Literal(instance_id).n3()} . }}
            }}
        """)
        if not allowed:
            logger.debug("No visible instance with id %s", instance_id)
        return allowed
