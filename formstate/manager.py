# ================================================================
# FORMSTATE - MANAGER
# Single entry point wiring templates, instances, deletion and history
# ================================================================

import logging
from typing import Callable, Optional

from rdflib import Graph

from .access import StoreAccessCheck
from .errors import ParseError
from .graph_model import parse_graph
from .history import HistoryEngine
from .instances import Instance, InstanceRepository
from .settings import FormStateSettings
from .store import TripleStore
from .templates import StoreTemplateLoader, Template, TemplateRegistry
from .tombstone import TombstoneEngine

logger = logging.getLogger(__name__)


def default_validator(content_ttl: str, template: Template, instance_uri) -> Graph:
    """Parses submitted content and keeps only what the form's shape covers."""
    return template.shape.scope(parse_graph(content_ttl), instance_uri)


class FormStateManager:
    """
    Form definitions, their instances and the instances' history over one
    triple store.

    The store defaults to an in-memory Dataset unless endpoints are configured
    in `settings` (or the FORMSTATE_* environment). Templates come from the
    store's ext:GeneratedForm resources unless another loader is passed, and
    from `settings.form_directory` when set.
    """

    def __init__(
        self,
        store: Optional[TripleStore] = None,
        settings: Optional[FormStateSettings] = None,
        loader=None,
        access=None,
        validator: Optional[Callable] = None,
    ):
        self.settings = settings or FormStateSettings()
        self.store = store or TripleStore.from_settings(self.settings)

        self.templates = TemplateRegistry(loader or StoreTemplateLoader(self.store), self.store)
        if self.settings.form_directory:
            self.templates.load_directory(self.settings.form_directory)

        self.access = access or StoreAccessCheck(self.store, self.settings.application_graph)
        self.validator = validator or default_validator

        self.instances = InstanceRepository(
            self.store,
            self.settings.application_graph,
            default_page_size=self.settings.default_page_size,
        )
        self.tombstones = TombstoneEngine(self.store, self.instances)
        self.history = HistoryEngine(self.store, self.access, self.settings.history_graph)

    # ================================================================
    # DEFINITIONS
    # ================================================================

    def get_form_definition(self, form_id: str) -> Template:
        template = self.templates.get_by_id(form_id)
        self.templates.meta_for(template)
        return template

    # ================================================================
    # INSTANCES
    # ================================================================

    def get_instance(self, form_id: str, instance_id: str) -> Instance:
        template = self.templates.get_by_id(form_id)
        return self.instances.fetch_by_id(template, instance_id)

    def list_instances(self, form_id: str, limit: Optional[int] = None, offset: int = 0):
        template = self.templates.get_by_id(form_id)
        return (
            self.instances.list_instances(template, limit=limit, offset=offset),
            self.instances.count(template),
        )

    def create_instance(self, form_id: str, content_ttl: str, instance_uri=None) -> Instance:
        """
        Stores validated content as a new instance. Without an explicit URI
        one is minted from the form's prefix. Content that says nothing about
        that URI is refused with ParseError before anything is written.
        """
        template = self.templates.get_by_id(form_id)
        if instance_uri is None:
            instance_uri, _ = self.instances.mint(template)

        content = self.validator(content_ttl, template, instance_uri)
        if len(content) == 0:
            logger.warning("Refusing empty content for new instance %s of form %s", instance_uri, form_id)
            raise ParseError(f"Submitted content does not describe {instance_uri}")
        self.instances.add(content)
        return self.instances.fetch(template, instance_uri) or Instance(uri=instance_uri, id=None, graph=content)

    def update_instance(self, form_id: str, instance_id: str, content_ttl: str) -> Instance:
        template = self.templates.get_by_id(form_id)
        instance = self.instances.fetch_by_id(template, instance_id)
        desired = self.validator(content_ttl, template, instance.uri)
        return self.instances.update(template, instance, desired)

    def delete_instance(self, form_id: str, instance_id: str) -> None:
        template = self.templates.get_by_id(form_id)
        self.tombstones.delete_by_id(template, instance_id)

    # ================================================================
    # HISTORY
    # ================================================================

    def save_version(self, form_id: str, instance_id: str, creator_uri, description: Optional[str] = None):
        instance = self.get_instance(form_id, instance_id)
        return self.history.save_version(instance.uri, instance.graph, creator_uri, description)

    def get_history(self, instance_id: str, limit: Optional[int] = None, offset: int = 0):
        limit = limit or self.settings.default_page_size
        return self.history.list_versions_with_count(instance_id, limit=limit, offset=offset)

    def get_version(self, version_uri) -> Optional[Graph]:
        return self.history.get_version(version_uri)

    def has_history(self, instance_id: str) -> bool:
        return self.history.has_any_version(instance_id)
