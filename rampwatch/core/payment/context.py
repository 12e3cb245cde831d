"""Explicit session/config object shared by one page's collaborators."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Optional

from ...auth.store import CredentialStore
from ...config import Settings, settings as default_settings
from ...providers.ramp_api import RampApiProvider
from ...storage import LocalStorage
from .client import OrderStatusClient


@dataclass
class RampContext:
    """Owned by the page controller and injected into every collaborator."""

    settings: Settings
    storage: LocalStorage
    provider: RampApiProvider
    credentials: CredentialStore
    client: OrderStatusClient
    logger: logging.Logger = field(default_factory=lambda: logging.getLogger("rampwatch"))

    @classmethod
    def create(
        cls,
        config: Optional[Settings] = None,
        *,
        storage: Optional[LocalStorage] = None,
        provider: Optional[RampApiProvider] = None,
        logger: Optional[logging.Logger] = None,
    ) -> "RampContext":
        cfg = config or default_settings
        log = logger or logging.getLogger("rampwatch")
        store = storage if storage is not None else LocalStorage(cfg.storage_path)
        api = provider or RampApiProvider(
            base_url=cfg.api_base_url,
            timeout_s=cfg.request_timeout_seconds,
            logger=log.getChild("api"),
        )
        return cls(
            settings=cfg,
            storage=store,
            provider=api,
            credentials=CredentialStore(store, api, logger=log.getChild("auth")),
            client=OrderStatusClient(
                api,
                default_source_currency=cfg.default_source_currency,
                default_target_currency=cfg.default_target_currency,
                logger=log.getChild("client"),
            ),
            logger=log,
        )
