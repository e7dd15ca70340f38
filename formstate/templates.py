# ================================================================
# FORMSTATE - TEMPLATES
# Template entity, loaders, cached resolution of extension chains
# ================================================================

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Optional, Tuple

from rdflib import Graph, Literal, URIRef

from .errors import FormStateError, TemplateChainError, TemplateNotFound
from .graph_model import parse_graph, serialize_graph
from .merge import base_form_uri, is_extension, merge_extension_into_base, template_root
from .namespaces import DEFAULT_PREFIXES, EXT, FIELD_OPTION, FORM, MU, SKOS
from .shape import FormShape

logger = logging.getLogger(__name__)


@dataclass
class Template:
    """
    A resolved form definition. For an extension, `graph` is the derived
    template and `uri` stays the extension's own published URI.
    """

    id: str
    uri: URIRef
    graph: Graph
    config_meta_ttl: Optional[str] = None
    meta: Optional[Graph] = None
    meta_loaded: bool = False
    _shape: Optional[FormShape] = field(default=None, repr=False)

    @property
    def root(self) -> Optional[URIRef]:
        return template_root(self.graph)

    @property
    def form_ttl(self) -> str:
        return serialize_graph(self.graph, DEFAULT_PREFIXES)

    @property
    def meta_ttl(self) -> Optional[str]:
        if self.meta is None:
            return None
        return serialize_graph(self.meta, DEFAULT_PREFIXES)

    @property
    def prefix(self) -> Optional[str]:
        value = self.graph.value(self.root, EXT.prefix)
        return str(value) if value is not None else None

    @property
    def target_type(self) -> Optional[URIRef]:
        return self.graph.value(self.root, FORM.targetType)

    @property
    def target_label(self) -> Optional[URIRef]:
        return self.graph.value(self.root, FORM.targetLabel)

    @property
    def shape(self) -> FormShape:
        if self._shape is None:
            self._shape = FormShape.from_template(self.graph, self.root)
        return self._shape


# ==========================
# COMPUTED META
# ==========================

def concept_scheme_uris(graph: Graph) -> list:
    """Concept schemes referenced by a template's field options."""
    found = set()

    for options in graph.objects(None, FORM.options):
        if not isinstance(options, Literal):
            continue
        try:
            parsed = json.loads(str(options))
        except ValueError:
            logger.debug("Ignoring non-JSON form:options %r", str(options))
            continue
        if isinstance(parsed, dict) and parsed.get("conceptScheme"):
            found.add(URIRef(parsed["conceptScheme"]))

    for scheme in graph.objects(None, FIELD_OPTION.conceptScheme):
        if isinstance(scheme, URIRef):
            found.add(scheme)

    return sorted(found)


def concept_scheme_query(scheme_uris) -> str:
    values = " ".join(u.n3() for u in scheme_uris)
    return f"""
    CONSTRUCT {{ ?s ?p ?o }}
    WHERE {{
      ?s {SKOS.inScheme.n3()} ?scheme .
      VALUES ?scheme {{ {values} }}
      ?s ?p ?o .
    }}
    """


# ================================================================
# LOADERS
# ================================================================

class StoreTemplateLoader:
    """Reads the ttl code of ext:GeneratedForm resources from the store."""

    def __init__(self, store):
        self.store = store

    def _first_ttl(self, where: str) -> Optional[str]:
        rows = self.store.select(f"""
            SELECT ?formTtl
            WHERE {{
              {where}
            }} LIMIT 1
        """)
        if not rows:
            return None
        return str(rows[0]["formTtl"])

    def load_by_id(self, template_id: str) -> Optional[str]:
        return self._first_ttl(
            f"?definition a {EXT.GeneratedForm.n3()} ; "
            f"{MU.uuid.n3()} {Literal(template_id).n3()} ; "
            f"{EXT.ttlCode.n3()} ?formTtl ."
        )

    def load_by_uri(self, template_uri) -> Optional[str]:
        return self._first_ttl(
            f"{URIRef(str(template_uri)).n3()} a {EXT.GeneratedForm.n3()} ; "
            f"{EXT.ttlCode.n3()} ?formTtl ."
        )


# ================================================================
# REGISTRY
# ================================================================

class TemplateRegistry:
    """
    Process-wide, append-only caches of resolved templates, keyed by id and
    by published URI. Templates are immutable once loaded, so nothing is ever
    invalidated; reset() exists for tests.
    """

    def __init__(self, loader, store=None):
        self.loader = loader
        self.store = store
        self._by_id: Dict[str, Template] = {}
        self._uri_to_id: Dict[str, str] = {}
        self._config: Dict[str, Tuple[str, Optional[str]]] = {}

    def reset(self) -> None:
        self._by_id.clear()
        self._uri_to_id.clear()
        self._config.clear()

    # ==========================
    # CONFIG SEEDING
    # ==========================

    def register(self, template_id: str, form_ttl: str, meta_ttl: Optional[str] = None) -> None:
        graph = parse_graph(form_ttl)
        root = template_root(graph)
        if root is None:
            raise TemplateNotFound(template_id, f"Config form {template_id} has no form:Form root")
        self._config[template_id] = (form_ttl, meta_ttl)
        self._uri_to_id[str(root)] = template_id

    def load_directory(self, directory) -> int:
        """
        Seeds the registry from <directory>/<name>/form.ttl, with an optional
        meta.ttl beside it. Entries that cannot be read are skipped.
        """
        loaded = 0
        for entry in sorted(Path(directory).iterdir()):
            form_path = entry / "form.ttl"
            if not form_path.is_file():
                continue
            meta_path = entry / "meta.ttl"
            try:
                meta = meta_path.read_text(encoding="utf-8") if meta_path.is_file() else None
                self.register(entry.name, form_path.read_text(encoding="utf-8"), meta)
            except (OSError, FormStateError) as e:
                logger.warning("Failed to load form %s: %s", entry.name, e)
                continue
            loaded += 1
        logger.info("Loaded %d form definitions from %s", loaded, directory)
        return loaded

    # ==========================
    # RESOLUTION
    # ==========================

    def get_by_id(self, template_id: str) -> Template:
        return self._resolve_id(str(template_id), chain=())

    def get_by_uri(self, template_uri) -> Template:
        return self._resolve_uri(str(template_uri), chain=())

    def _resolve_id(self, template_id: str, chain: tuple) -> Template:
        cached = self._by_id.get(template_id)
        if cached is not None:
            return cached

        meta_ttl = None
        if template_id in self._config:
            form_ttl, meta_ttl = self._config[template_id]
        else:
            form_ttl = self.loader.load_by_id(template_id)
        if not form_ttl:
            raise TemplateNotFound(template_id)

        template = self._build(form_ttl, template_id, chain, template_id=template_id)
        template.config_meta_ttl = meta_ttl
        self._cache(template)
        return template

    def _resolve_uri(self, template_uri: str, chain: tuple) -> Template:
        known_id = self._uri_to_id.get(template_uri)
        if known_id is not None:
            return self._resolve_id(known_id, chain)

        form_ttl = self.loader.load_by_uri(template_uri)
        if not form_ttl:
            raise TemplateNotFound(template_uri)

        template = self._build(form_ttl, template_uri, chain)
        self._cache(template)
        self._uri_to_id[template_uri] = template.id
        return template

    def _build(self, form_ttl: str, key: str, chain: tuple, template_id: Optional[str] = None) -> Template:
        graph = parse_graph(form_ttl)
        published = template_root(graph)
        if published is None:
            raise TemplateNotFound(key, f"Form definition {key} has no form:Form root")

        if is_extension(graph):
            base_uri = base_form_uri(graph)
            if base_uri is None:
                raise TemplateChainError(key, "<none>", f"Extension {key} names no base form")
            if str(base_uri) in chain or base_uri == published:
                raise TemplateChainError(key, base_uri, f"Extension chain of {key} loops through {base_uri}")
            try:
                base = self._resolve_uri(str(base_uri), chain + (str(published),))
            except TemplateChainError:
                raise
            except TemplateNotFound as exc:
                raise TemplateChainError(key, base_uri) from exc
            graph = merge_extension_into_base(base.graph, graph)

        if template_id is None:
            uuid = graph.value(template_root(graph), MU.uuid)
            template_id = str(uuid) if uuid is not None else str(published)

        return Template(id=template_id, uri=published, graph=graph)

    def _cache(self, template: Template) -> None:
        self._by_id[template.id] = template
        self._uri_to_id.setdefault(str(template.uri), template.id)
        logger.info("Cached form definition %s (%s)", template.id, template.uri)

    # ==========================
    # META
    # ==========================

    def meta_for(self, template: Template) -> Optional[Graph]:
        """
        Concept-scheme triples for the template's option fields, merged with
        any config-provided meta. Fetched once and kept on the template.
        """
        if template.meta_loaded:
            return template.meta

        meta = parse_graph(template.config_meta_ttl)
        uris = concept_scheme_uris(template.graph)
        if uris and self.store is not None:
            for t in self.store.construct(concept_scheme_query(uris)):
                meta.add(t)

        template.meta = meta if len(meta) else None
        template.meta_loaded = True
        return template.meta
