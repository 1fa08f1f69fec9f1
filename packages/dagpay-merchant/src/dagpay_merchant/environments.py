# Copyright 2025 t54 labs
# SPDX-License-Identifier: Apache-2.0
from __future__ import annotations

import json
import logging
import os
import re
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional

from .errors import ConfigurationError, UnknownEnvironment

logger = logging.getLogger(__name__)

_NAME = re.compile(r"^[a-z][a-z0-9_-]*$")

SecretLookup = Callable[[Mapping[str, Any]], str]


@dataclass(frozen=True)
class Environment:
    name: str
    api_base_url: str
    user_id: str
    environment_id: str
    secret: str = field(repr=False)

    def __post_init__(self) -> None:
        if not _NAME.match(self.name):
            raise ConfigurationError(f"invalid environment name: {self.name!r}")
        for attr in ("api_base_url", "user_id", "environment_id", "secret"):
            if not getattr(self, attr):
                raise ConfigurationError(f"environment {self.name!r}: {attr} is required")

    @property
    def invoices_url(self) -> str:
        return f"{self.api_base_url.rstrip('/')}/invoices"


def _require_env(environ: Mapping[str, str], key: str) -> str:
    value = environ.get(key)
    if not value:
        raise ConfigurationError(f"{key} is not set")
    return value


class EnvironmentRegistry:
    """Named Dagpay credential sets, loaded once and never mutated."""

    def __init__(self, environments: Iterable[Environment]):
        self._by_name: Dict[str, Environment] = {}
        for env in environments:
            if env.name in self._by_name:
                raise ConfigurationError(f"duplicate environment name: {env.name!r}")
            self._by_name[env.name] = env
        if not self._by_name:
            raise ConfigurationError("at least one Dagpay environment must be configured")

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "EnvironmentRegistry":
        """Build the registry from ``DAGPAY_*`` variables.

        Multi-environment: ``DAGPAY_ENVIRONMENTS=live,test`` plus
        ``DAGPAY_<NAME>_API_BASE_URL``, ``_USER_ID``, ``_ENVIRONMENT_ID``, ``_SECRET``.
        Otherwise a single environment from ``DAGPAY_API_BASE_URL``,
        ``DAGPAY_USER_ID``, ``DAGPAY_ENVIRONMENT_ID`` and ``DAGPAY_SECRET``, named
        by ``DAGPAY_ENVIRONMENT_NAME`` (default ``live``).
        """
        environ = os.environ if environ is None else environ
        names = [n.strip().lower() for n in (environ.get("DAGPAY_ENVIRONMENTS") or "").split(",") if n.strip()]
        envs: List[Environment] = []
        if names:
            for name in names:
                prefix = "DAGPAY_" + re.sub(r"[^A-Z0-9]", "_", name.upper()) + "_"
                envs.append(
                    Environment(
                        name=name,
                        api_base_url=_require_env(environ, prefix + "API_BASE_URL"),
                        user_id=_require_env(environ, prefix + "USER_ID"),
                        environment_id=_require_env(environ, prefix + "ENVIRONMENT_ID"),
                        secret=_require_env(environ, prefix + "SECRET"),
                    )
                )
        else:
            envs.append(
                Environment(
                    name=(environ.get("DAGPAY_ENVIRONMENT_NAME") or "live").strip().lower(),
                    api_base_url=_require_env(environ, "DAGPAY_API_BASE_URL"),
                    user_id=_require_env(environ, "DAGPAY_USER_ID"),
                    environment_id=_require_env(environ, "DAGPAY_ENVIRONMENT_ID"),
                    secret=_require_env(environ, "DAGPAY_SECRET"),
                )
            )
        registry = cls(envs)
        logger.info("Loaded Dagpay environments: %s", ", ".join(registry.names()))
        return registry

    def __contains__(self, name: object) -> bool:
        return name in self._by_name

    def __len__(self) -> int:
        return len(self._by_name)

    def names(self) -> List[str]:
        return list(self._by_name)

    def get(self, name: str) -> Environment:
        env = self._by_name.get(name.strip().lower()) if isinstance(name, str) else None
        if env is None:
            raise UnknownEnvironment(f"unknown environment: {name!r}")
        return env

    def by_environment_id(self, environment_id: Any) -> Environment:
        for env in self._by_name.values():
            if env.environment_id == environment_id:
                return env
        raise UnknownEnvironment(f"no environment with environmentId {environment_id!r}")

    def lookup_by_environment_id(self, payload: Mapping[str, Any]) -> str:
        """Secret lookup routing on the payload's ``environmentId``.

        The field is unverified at this point; it only selects which key to try.
        """
        return self.by_environment_id(payload.get("environmentId")).secret

    def lookup_by_data_field(self, key: str = "environment") -> SecretLookup:
        """Secret lookup for deployments that embed the environment name in ``data``.

        ``data`` is merchant-opaque JSON; reading routing metadata out of it is
        kept only for wire compatibility with such deployments.
        """

        def lookup(payload: Mapping[str, Any]) -> str:
            raw = payload.get("data")
            try:
                data = json.loads(raw) if isinstance(raw, str) else None
            except ValueError:
                data = None
            name = data.get(key) if isinstance(data, dict) else None
            if not isinstance(name, str):
                raise UnknownEnvironment(f"no {key!r} reference in callback data")
            return self.get(name).secret

        return lookup


def single_secret(secret: str) -> SecretLookup:
    """Secret lookup for single-environment deployments."""
    if not secret:
        raise ConfigurationError("secret is required")

    def lookup(payload: Mapping[str, Any]) -> str:
        return secret

    return lookup
