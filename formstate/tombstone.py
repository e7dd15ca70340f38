# ================================================================
# FORMSTATE - TOMBSTONE & DELETION ENGINE
# ================================================================

import logging
from typing import Optional

from rdflib import Literal, URIRef

from .diff import insert_data
from .errors import InstanceNotFound
from .namespaces import AS, RDF, now_literal

logger = logging.getLogger(__name__)


def tombstone_triples(instance_uri, former_types, deleted_at: Optional[Literal] = None) -> list:
    """
    The tombstone replacing a deleted instance: the same URI re-typed as
    as:Tombstone, stamped with as:deleted and one as:formerType per type the
    instance held. An instance without types leaves no tombstone.
    """
    types = sorted(set(former_types))
    if not types:
        return []

    uri = URIRef(str(instance_uri))
    deleted_at = deleted_at if deleted_at is not None else now_literal()
    triples = [
        (uri, RDF.type, AS.Tombstone),
        (uri, AS.deleted, deleted_at),
    ]
    for t in types:
        triples.append((uri, AS.formerType, t))
    return triples


class TombstoneEngine:

    def __init__(self, store, instances):
        self.store = store
        self.instances = instances

    def delete(self, template, instance_uri) -> None:
        """
        Logically deletes an instance.

        Every triple the template's shape attributes to the instance is
        removed and the tombstone is inserted, in one update request.
        Relations of other resources that point at the instance are left
        as they are.
        """
        if template is None:
            raise InstanceNotFound(instance_uri)

        instance = self.instances.fetch(template, instance_uri)
        if instance is None:
            raise InstanceNotFound(instance_uri)

        types = [o for o in instance.graph.objects(instance.uri, RDF.type) if isinstance(o, URIRef)]
        graph_iri = self.instances.graph_iri

        ops = [template.shape.delete_query(instance.uri, graph_iri)]
        tombstone = tombstone_triples(instance.uri, types)
        if tombstone:
            ops.append(insert_data(tombstone, graph_iri))

        self.store.update(" ;\n".join(ops))
        logger.info("Deleted %s, tombstone records %d former types", instance.uri, len(types))

    def delete_by_id(self, template, instance_id: str) -> None:
        uri = self.instances.uri_for_id(instance_id)
        if uri is None:
            raise InstanceNotFound(instance_id)
        self.delete(template, uri)
