"""Configuration helpers shared by the client and the CLI."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Mapping

from .core.adapters.projector import DEFAULT_ID_PREFIX, DEFAULT_MODEL_LABEL, ProjectionDefaults

ENV_PREFIX = "AGENTBRIDGE_"
DEFAULT_ADDRESS = "localhost:50051"
DEFAULT_LOG_LEVEL = "WARNING"

_LOG_LEVELS = ("CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG")


@dataclass(slots=True)
class ClientConfig:
    """Settings describing how to reach and present the agent service.

    Attributes
    ----------
    address:
        ``host:port`` of the agent service transport.
    default_provider:
        Provider name of the default model, e.g. ``anthropic``.
    default_model_id:
        Model identifier within :attr:`default_provider`.
    base_url:
        Optional endpoint override forwarded to the provider by the service.
    id_prefix:
        Prefix used for synthesized chat completion identifiers.
    log_level:
        Level name applied by the command line interface.
    """

    address: str = DEFAULT_ADDRESS
    default_provider: str | None = None
    default_model_id: str | None = None
    base_url: str | None = None
    id_prefix: str = DEFAULT_ID_PREFIX
    log_level: str = DEFAULT_LOG_LEVEL

    def __post_init__(self) -> None:
        self.address = self.address.strip()
        if not self.address:
            raise ValueError("address must not be empty")

        level = self.log_level.strip().upper()
        if level not in _LOG_LEVELS:
            raise ValueError(f"unknown log level {self.log_level!r}")
        self.log_level = level

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "ClientConfig":
        """Build a :class:`ClientConfig` from ``AGENTBRIDGE_*`` variables.

        Parameters
        ----------
        environ:
            Mapping to read instead of :data:`os.environ`. Empty values are
            treated as unset.
        """

        source = os.environ if environ is None else environ

        def _get(name: str) -> str | None:
            value = source.get(f"{ENV_PREFIX}{name}", "").strip()
            return value or None

        return cls(
            address=_get("ADDRESS") or DEFAULT_ADDRESS,
            default_provider=_get("DEFAULT_PROVIDER"),
            default_model_id=_get("DEFAULT_MODEL"),
            base_url=_get("BASE_URL"),
            id_prefix=_get("ID_PREFIX") or DEFAULT_ID_PREFIX,
            log_level=_get("LOG_LEVEL") or DEFAULT_LOG_LEVEL,
        )

    @property
    def default_model(self) -> str | None:
        """``provider/model`` when both parts are configured, otherwise ``None``."""

        if not self.default_provider or not self.default_model_id:
            return None
        return f"{self.default_provider}/{self.default_model_id}"

    @property
    def log_level_number(self) -> int:
        return logging.getLevelName(self.log_level)

    def projection_defaults(self) -> ProjectionDefaults:
        """Return projection defaults labelled with :attr:`default_model`."""

        return ProjectionDefaults(
            model=self.default_model or DEFAULT_MODEL_LABEL,
            id_prefix=self.id_prefix,
        )

    def describe(self) -> Mapping[str, str]:
        """Return a printable summary of the resolved settings."""

        return {
            "address": self.address,
            "default_provider": self.default_provider or "(not set)",
            "default_model": self.default_model_id or "(not set)",
            "base_url": self.base_url or "(not set)",
            "id_prefix": self.id_prefix,
            "log_level": self.log_level,
        }
