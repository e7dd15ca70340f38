from .diff import Patch, compute_patch
from .errors import (
    EncodingError,
    FormStateError,
    InstanceNotFound,
    NotFoundError,
    ParseError,
    StoreError,
    TemplateChainError,
    TemplateNotFound,
)
from .graph_model import graphs_equal, parse_graph, serialize_graph
from .history import HistoryEngine, HistoryItem
from .instances import Instance, InstanceRepository, InstanceSummary
from .manager import FormStateManager
from .merge import merge_extension_into_base
from .settings import FormStateSettings, configure_logging
from .store import TripleStore
from .templates import Template, TemplateRegistry
from .tombstone import TombstoneEngine

__all__ = [
    "EncodingError",
    "FormStateError",
    "FormStateManager",
    "FormStateSettings",
    "HistoryEngine",
    "HistoryItem",
    "Instance",
    "InstanceNotFound",
    "InstanceRepository",
    "InstanceSummary",
    "NotFoundError",
    "ParseError",
    "Patch",
    "StoreError",
    "Template",
    "TemplateChainError",
    "TemplateNotFound",
    "TemplateRegistry",
    "TombstoneEngine",
    "TripleStore",
    "compute_patch",
    "configure_logging",
    "graphs_equal",
    "merge_extension_into_base",
    "parse_graph",
    "serialize_graph",
]
