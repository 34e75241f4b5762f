"""
kazbooks_config -- YAML-backed configuration.

Responsibility:
    Public entry points for statutory tax settings, the NSFO chart
    template and posting defaults.  Services receive these values as
    arguments; they never read configuration files themselves.

Architecture position:
    Configuration.  Sits above ``kazbooks_kernel`` and ``kazbooks_engines``
    and below ``kazbooks_modules``.

Failure modes:
    - ``FileNotFoundError`` -- the configuration directory lacks a file.
    - ``KeyError`` / ``ValueError`` -- malformed configuration.
"""

from __future__ import annotations

from pathlib import Path

from kazbooks_config.loader import (
    PostingDefaults,
    load_yaml_file,
    parse_chart_template,
    parse_posting_defaults,
    parse_tax_years,
    select_tax_year,
)
from kazbooks_engines.payroll import TaxSettings
from kazbooks_kernel.domain.dtos import AccountSeed

_DEFAULT_CONFIG_DIR = Path(__file__).parent / "sets"

TAX_SETTINGS_FILE = "tax_settings.yaml"
CHART_TEMPLATE_FILE = "chart_nsfo.yaml"
POSTING_DEFAULTS_FILE = "posting_defaults.yaml"


def get_tax_settings(year: int, config_dir: Path | None = None) -> TaxSettings:
    """Tax settings effective for ``year``."""
    data = load_yaml_file((config_dir or _DEFAULT_CONFIG_DIR) / TAX_SETTINGS_FILE)
    return select_tax_year(parse_tax_years(data), year)


def load_chart_template(config_dir: Path | None = None) -> tuple[AccountSeed, ...]:
    """NSFO chart template, parents before children."""
    data = load_yaml_file((config_dir or _DEFAULT_CONFIG_DIR) / CHART_TEMPLATE_FILE)
    return parse_chart_template(data)


def get_posting_defaults(config_dir: Path | None = None) -> PostingDefaults:
    data = load_yaml_file((config_dir or _DEFAULT_CONFIG_DIR) / POSTING_DEFAULTS_FILE)
    return parse_posting_defaults(data)


__all__ = [
    "PostingDefaults",
    "get_posting_defaults",
    "get_tax_settings",
    "load_chart_template",
]
