"""
config.py — Central settings for the progression engine
=======================================================
All configuration is loaded from environment variables / .env file.
Copy .env.example → .env and adjust the values you need; every setting has a
working default, so an empty environment is a valid configuration.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

# Load .env into os.environ (no-op if already set, safe to call multiple times)
load_dotenv(override=False)


REISSUE_APPEND = "append"   # every eligible request appends a new certificate
REISSUE_REUSE  = "reuse"    # return the latest unexpired certificate instead
REISSUE_POLICIES = (REISSUE_APPEND, REISSUE_REUSE)


# ─── Certificates ────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class CertificateConfig:
    title:          str
    validity_days:  int
    reissue_policy: str   # "append" | "reuse"

    @property
    def reuses_existing(self) -> bool:
        return self.reissue_policy == REISSUE_REUSE


# ─── Catalog source ──────────────────────────────────────────────────────────

@dataclass(frozen=True)
class CatalogConfig:
    path: str   # empty → built-in default catalog

    @property
    def is_configured(self) -> bool:
        return bool(self.path)

    @property
    def resolved_path(self) -> Optional[Path]:
        return Path(self.path).expanduser() if self.path else None


# ─── Learner defaults ────────────────────────────────────────────────────────

@dataclass(frozen=True)
class LearnerConfig:
    default_role: str


# ─── App-level settings ──────────────────────────────────────────────────────

@dataclass(frozen=True)
class AppConfig:
    log_level: str


# ─── Master settings object ──────────────────────────────────────────────────

@dataclass(frozen=True)
class Settings:
    certificate: CertificateConfig
    catalog:     CatalogConfig
    learner:     LearnerConfig
    app:         AppConfig

    def status_summary(self) -> dict[str, str]:
        """Return a dict of setting → human-readable value for display."""
        return {
            "Catalog":            str(self.catalog.resolved_path) if self.catalog.is_configured else "built-in",
            "Certificate title":  self.certificate.title,
            "Validity (days)":    str(self.certificate.validity_days),
            "Re-issue policy":    self.certificate.reissue_policy,
            "Default role":       self.learner.default_role,
            "Log level":          self.app.log_level,
        }


def get_settings() -> Settings:
    """Load all configuration from environment variables."""
    _str = lambda k, d="": os.getenv(k, d).strip()
    _int = lambda k, d=0: int(os.getenv(k, str(d)) or d)

    policy = _str("PROGRESSION_CERT_REISSUE", REISSUE_APPEND).lower()
    if policy not in REISSUE_POLICIES:
        raise ValueError(
            f"PROGRESSION_CERT_REISSUE must be one of {REISSUE_POLICIES}, got {policy!r}"
        )
    validity = _int("PROGRESSION_CERT_VALIDITY_DAYS", 365)
    if validity < 1:
        raise ValueError(f"PROGRESSION_CERT_VALIDITY_DAYS must be positive, got {validity}")

    return Settings(
        certificate=CertificateConfig(
            title          = _str("PROGRESSION_CERT_TITLE", "Data Literacy Certificate"),
            validity_days  = validity,
            reissue_policy = policy,
        ),
        catalog=CatalogConfig(
            path = _str("PROGRESSION_CATALOG_PATH"),
        ),
        learner=LearnerConfig(
            default_role = _str("PROGRESSION_DEFAULT_ROLE", "Analyst"),
        ),
        app=AppConfig(
            log_level = _str("PROGRESSION_LOG_LEVEL", "INFO").upper(),
        ),
    )


def configure_logging(level: Optional[str] = None) -> None:
    """Attach a basic stderr handler; for scripts only, never called by the library."""
    logging.basicConfig(
        level=level or get_settings().app.log_level,
        format="%(asctime)s %(levelname)-7s %(name)s: %(message)s",
    )
