"""
Configuration Loader (``erp_config.loader``).

Responsibility
--------------
Loads a YAML configuration file and parses it into the frozen
``erp_config.schema`` dataclasses.  The single public entry point for
runtime config is ``erp_config.get_active_config()``.

Invariants enforced
-------------------
* Parse errors raise ``ValueError`` or ``KeyError`` with descriptive
  messages; required sections have no silent defaults.
* ``compute_checksum`` produces a deterministic SHA-256 hash of the parsed
  document for configuration identity and change detection.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Missing required keys  -> ``KeyError`` propagates.
"""

from __future__ import annotations

import hashlib
import json
from pathlib import Path
from typing import Any

import yaml

from erp_config.schema import (
    AccountDefinition,
    AccountRole,
    ApprovalSettings,
    BusinessProfile,
    BusinessType,
    ChartOfAccounts,
    ErpConfig,
    InventorySettings,
)
from erp_kernel.models.account import AccountType
from erp_kernel.models.item import ItemClass, ValuationMethod


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
    """
    with open(path) as f:
        return yaml.safe_load(f) or {}


def compute_checksum(data: dict[str, Any]) -> str:
    """SHA-256 of the canonical JSON form of ``data``."""
    canonical = json.dumps(data, sort_keys=True, separators=(",", ":"), default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()


def parse_business_profile(data: dict[str, Any]) -> BusinessProfile:
    return BusinessProfile(
        business_type=BusinessType(data["business_type"]),
        enabled_modules=frozenset(data.get("enabled_modules", ())),
    )


def parse_chart_of_accounts(data: dict[str, Any]) -> ChartOfAccounts:
    """Parse accounts, role bindings and item-class bindings."""
    accounts = tuple(
        AccountDefinition(
            code=str(item["code"]),
            name=item["name"],
            account_type=AccountType(item["type"]),
            description=item.get("description"),
        )
        for item in data["accounts"]
    )
    roles = {AccountRole(k): str(v) for k, v in data["roles"].items()}
    item_class_accounts = {
        ItemClass(k): str(v) for k, v in data.get("item_class_accounts", {}).items()
    }
    return ChartOfAccounts(
        accounts=accounts,
        roles=roles,
        item_class_accounts=item_class_accounts,
        fallback_asset_account=str(data.get("fallback_asset_account", "1310")),
    )


def parse_erp_config(data: dict[str, Any]) -> ErpConfig:
    """
    Parse a full configuration document.

    Raises:
        KeyError: if a required section is missing.
        ValueError: if a value fails schema validation.
    """
    approval_data = data.get("approval", {})
    inventory_data = data.get("inventory", {})
    return ErpConfig(
        config_id=data["config_id"],
        version=int(data.get("version", 1)),
        business_profile=parse_business_profile(data["business_profile"]),
        chart_of_accounts=parse_chart_of_accounts(data["chart_of_accounts"]),
        approval=ApprovalSettings(
            enabled=bool(approval_data.get("enabled", True)),
            threshold=int(approval_data.get("threshold", 1_000_000_000)),
        ),
        inventory=InventorySettings(
            health_tolerance=int(inventory_data.get("health_tolerance", 100_000)),
            default_valuation_method=ValuationMethod(
                inventory_data.get("default_valuation_method", "FIFO")
            ),
        ),
        reset_confirmation_code=data.get("reset", {}).get(
            "confirmation_code", "DELETE-TEST-DATA"
        ),
        checksum=compute_checksum(data),
    )
