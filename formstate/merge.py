# ================================================================
# FORMSTATE - TEMPLATE MERGE ENGINE
# Base template + extension template -> derived template
# ================================================================

import logging
from typing import Optional

from rdflib import Graph, URIRef

from .errors import TemplateNotFound
from .namespaces import DEFAULT_PREFIXES, EXT, FORM, MU, RDF

logger = logging.getLogger(__name__)

# Properties of the base root that the extension always replaces.
SUPERSEDED_ROOT_PROPERTIES = (
    FORM.targetType,
    FORM.targetLabel,
    EXT.prefix,
    MU.uuid,
)


# ==========================
# ROOT DISCOVERY
# ==========================

def is_extension(graph: Graph) -> bool:
    return extension_root(graph) is not None


def extension_root(graph: Graph) -> Optional[URIRef]:
    for s in graph.subjects(RDF.type, EXT.Extension):
        return s
    return None


def base_form_uri(graph: Graph) -> Optional[URIRef]:
    root = extension_root(graph)
    if root is None:
        return None
    return graph.value(root, EXT.extendsForm)


def template_root(graph: Graph) -> Optional[URIRef]:
    """
    The root of a plain template: a form:Form that is not an extension. An
    extension graph has no plain root, so its own root is returned instead.
    """
    roots = base_roots(graph)
    if roots:
        return sorted(roots)[0]
    return extension_root(graph)


def base_roots(graph: Graph) -> list:
    return [
        s for s in set(graph.subjects(RDF.type, FORM.Form))
        if (s, RDF.type, EXT.Extension) not in graph
    ]


# ==========================
# MERGE
# ==========================

def merge_extension_into_base(base: Graph, extension: Graph) -> Graph:
    """
    Merges an extension template into its base template.

    The extension's targetType, targetLabel, prefix and uuid replace the
    base's, the extension root collapses onto the base root, and extension
    groups that extend a base group collapse onto that group. The result is a
    plain (non-extension) template graph.
    """
    base_root = template_root(base)
    if base_root is None or (base_root, RDF.type, EXT.Extension) in base:
        raise TemplateNotFound("<base>", "Base graph has no plain form:Form root")

    ext_root = extension_root(extension)
    if ext_root is None:
        raise TemplateNotFound("<extension>", "Extension graph has no ext:Extension root")

    # 1. UNION
    merged = Graph()
    for pfx, ns in DEFAULT_PREFIXES.items():
        merged.bind(pfx, ns)
    for t in base:
        merged.add(t)
    for t in extension:
        merged.add(t)

    # 2. STRIP SUPERSEDED BASE ROOT PROPERTIES
    for root in base_roots(merged):
        for p in SUPERSEDED_ROOT_PROPERTIES:
            merged.remove((root, p, None))

    # 3. EXTENSION ROOT -> BASE ROOT
    merged.remove((ext_root, RDF.type, EXT.Extension))
    merged.remove((ext_root, EXT.extendsForm, None))
    _rename_node(merged, ext_root, base_root)

    # 4. EXTENSION GROUPS -> BASE GROUPS
    for ext_group, base_group in list(extension.subject_objects(EXT.extendsGroup)):
        merged.remove((ext_group, None, None))
        for s, p in list(merged.subject_predicates(ext_group)):
            merged.remove((s, p, ext_group))
            merged.add((s, p, base_group))

    logger.info(
        "Merged extension %s into %s (%d + %d -> %d triples)",
        ext_root, base_root, len(base), len(extension), len(merged),
    )
    return merged


def _rename_node(graph: Graph, old, new) -> None:
    if old == new:
        return
    for _, p, o in list(graph.triples((old, None, None))):
        graph.remove((old, p, o))
        graph.add((new, p, o))
    for s, p, _ in list(graph.triples((None, None, old))):
        graph.remove((s, p, old))
        graph.add((s, p, new))
