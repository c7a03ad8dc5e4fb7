"""
erp_config -- single public entrypoint for ERP configuration.

Responsibility:
    Provides the ONLY way to obtain configuration at runtime through
    ``get_active_config()``.  No other component reads configuration files
    or environment variables directly.

Architecture position:
    Configuration -- sits above ``erp_kernel`` and below ``erp_services`` /
    ``erp_modules``.  The kernel MUST NEVER import from ``erp_config``;
    ``erp_config.bridges`` translates config into kernel rows.

Failure modes:
    - ``FileNotFoundError`` -- the configuration file does not exist.
    - ``KeyError`` / ``ValueError`` -- schema validation failures.

Audit relevance:
    Every successful ``get_active_config()`` call emits an
    ``ERP_CONFIG_TRACE`` log entry with the config id, version and checksum.
"""

from __future__ import annotations

from pathlib import Path

from erp_config.loader import load_yaml_file, parse_erp_config
from erp_config.schema import (
    AccountRole,
    BusinessProfile,
    BusinessType,
    ChartOfAccounts,
    ErpConfig,
)
from erp_kernel.logging_config import get_logger

_logger = get_logger("config")

_DEFAULT_CONFIG_PATH = Path(__file__).parent / "defaults" / "erp.yaml"


def get_active_config(config_path: Path | None = None) -> ErpConfig:
    """The ONLY public configuration entrypoint.

    Args:
        config_path: Override path to a YAML configuration file.
            Defaults to erp_config/defaults/erp.yaml.

    Returns:
        A frozen, validated ``ErpConfig``.
    """
    path = config_path or _DEFAULT_CONFIG_PATH
    config = parse_erp_config(load_yaml_file(path))

    _logger.info(
        "ERP_CONFIG_TRACE",
        extra={
            "trace_type": "ERP_CONFIG_TRACE",
            "config_id": config.config_id,
            "config_version": config.version,
            "checksum": config.checksum,
            "business_type": config.business_profile.business_type.value,
            "enabled_modules": sorted(config.business_profile.enabled_modules),
            "account_count": len(config.chart_of_accounts.accounts),
        },
    )
    return config


__all__ = [
    "AccountRole",
    "BusinessProfile",
    "BusinessType",
    "ChartOfAccounts",
    "ErpConfig",
    "get_active_config",
]
