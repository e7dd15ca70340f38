from __future__ import annotations

import logging
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from .namespaces import APPLICATION_GRAPH, HISTORY_GRAPH


class FormStateSettings(BaseSettings):
    """Runtime configuration.

    Environment variables are prefixed with FORMSTATE_. Leaving both endpoints
    unset selects the in-memory store.
    """

    model_config = SettingsConfigDict(env_prefix="FORMSTATE_", extra="ignore")

    log_level: str = Field(default="INFO", description="Python logging level")

    # --- Triple store ---
    query_endpoint: Optional[str] = Field(default=None)
    update_endpoint: Optional[str] = Field(default=None)
    store_user: Optional[str] = Field(default=None)
    store_password: Optional[str] = Field(default=None)

    # --- Graphs ---
    application_graph: str = Field(default=APPLICATION_GRAPH)
    history_graph: str = Field(default=HISTORY_GRAPH)

    # --- Templates ---
    form_directory: Optional[str] = Field(default=None, description="Directory of <name>/form.ttl")

    default_page_size: int = Field(default=20)


def configure_logging(settings: Optional[FormStateSettings] = None) -> None:
    settings = settings or FormStateSettings()
    level = (settings.log_level or "INFO").upper()
    logging.basicConfig(level=level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
