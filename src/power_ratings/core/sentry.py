"""
Optional Sentry error reporting for the command line.

Nothing happens unless a DSN is configured, so local runs and tests never
talk to Sentry. When enabled, ERROR log records from any ``power_ratings``
module (for example a failed replay logged by ``log_timing``) are sent as
events.

Environment variables:
- SENTRY_DSN or POWER_RATINGS_SENTRY_DSN: enables reporting.
- SENTRY_ENV or ENV: environment tag (default ``development``).
- SENTRY_TRACES_SAMPLE_RATE: float in [0, 1], clamped.
- SENTRY_DEBUG: 1/true/yes/on turns on SDK debug output.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Any, Iterable, Optional, Sequence
from urllib.parse import urlparse

_LOG = logging.getLogger(__name__)

DEFAULT_DSN_ENVS = ("SENTRY_DSN", "POWER_RATINGS_SENTRY_DSN")
_TRUTHY = frozenset({"1", "true", "yes", "on"})


def _parse_float_env(name: str, default: float) -> float:
    """Read a sample rate from the environment, clamped into [0, 1].

    Unset, empty or unparsable values give ``default``.
    """
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        value = float(raw)
    except ValueError:
        _LOG.debug("Ignoring %s=%r; using %s", name, raw, default)
        return default
    return min(1.0, max(0.0, value))


@dataclass(frozen=True)
class SentrySettings:
    """Resolved reporting settings for one process."""

    dsn: str
    environment: str
    traces_sample_rate: float
    debug: bool

    @classmethod
    def from_env(cls, dsn_envs: Iterable[str]) -> Optional[SentrySettings]:
        """Settings from the environment, or None when reporting is off."""
        dsn_envs = list(dsn_envs)
        raw = next((os.environ[n] for n in dsn_envs if os.getenv(n)), None)
        if raw is None:
            _LOG.info("Sentry disabled: no DSN in %s", dsn_envs)
            return None
        dsn = raw.strip().strip("\"'")
        parsed = urlparse(dsn)
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            _LOG.info("Sentry disabled: configured DSN is not a valid URL")
            return None
        return cls(
            dsn=dsn,
            environment=os.getenv("SENTRY_ENV") or os.getenv("ENV") or "development",
            traces_sample_rate=_parse_float_env("SENTRY_TRACES_SAMPLE_RATE", 0.0),
            debug=os.getenv("SENTRY_DEBUG", "").lower() in _TRUTHY,
        )


def init_sentry(
    *,
    context: str,
    release: Optional[str] = None,
    dsn_envs: Optional[Iterable[str]] = None,
    extra_integrations: Optional[Sequence[Any]] = None,
) -> bool:
    """Turn on Sentry if a DSN is configured.

    Args:
        context: Service tag attached to every event (e.g. ``"power_ratings_cli"``).
        release: Release string, usually the package version.
        dsn_envs: Environment variables searched, in order, for the DSN.
        extra_integrations: Integrations added after the logging one.

    Returns:
        True if the SDK was initialized.
    """
    settings = SentrySettings.from_env(
        DEFAULT_DSN_ENVS if dsn_envs is None else dsn_envs
    )
    if settings is None:
        return False

    import sentry_sdk
    from sentry_sdk.integrations.logging import LoggingIntegration

    integrations = [
        LoggingIntegration(level=logging.INFO, event_level=logging.ERROR),
        *(extra_integrations or ()),
    ]
    sentry_sdk.init(
        dsn=settings.dsn,
        environment=settings.environment,
        release=release,
        integrations=integrations,
        traces_sample_rate=settings.traces_sample_rate,
        debug=settings.debug,
    )
    sentry_sdk.set_tag("service", context)
    _LOG.info(
        "Sentry initialized: context=%s env=%s traces=%s",
        context,
        settings.environment,
        settings.traces_sample_rate,
    )
    return True


__all__ = ["SentrySettings", "init_sentry"]
