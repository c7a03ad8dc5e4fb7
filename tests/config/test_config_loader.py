"""
Tests for configuration loading.

Tests cover:
- The shipped defaults parse into a complete chart of accounts
- Overrides from a YAML file
- Schema validation failures
- Seeding the chart of accounts is idempotent
"""

from pathlib import Path

import pytest
import yaml
from sqlalchemy import func, select

from erp_config import AccountRole, BusinessType, get_active_config
from erp_config.bridges import seed_chart_of_accounts
from erp_config.loader import compute_checksum, load_yaml_file, parse_erp_config
from erp_kernel.db.engine import get_session
from erp_kernel.models.account import Account
from erp_kernel.models.item import ItemClass

DEFAULTS = Path(__file__).resolve().parents[2] / "erp_config" / "defaults" / "erp.yaml"


@pytest.fixture
def default_data():
    return load_yaml_file(DEFAULTS)


def _write(tmp_path, data):
    path = tmp_path / "erp.yaml"
    path.write_text(yaml.safe_dump(data))
    return path


class TestDefaults:

    def test_default_chart_bindings(self):
        config = get_active_config()
        chart = config.chart_of_accounts

        assert config.business_profile.business_type == BusinessType.MANUFACTURING
        assert chart.account_for(AccountRole.ACCOUNTS_RECEIVABLE) == "1200"
        assert chart.account_for(AccountRole.ACCOUNTS_PAYABLE) == "2100"
        assert chart.account_for(AccountRole.COST_OF_GOODS_SOLD) == "5100"
        assert chart.asset_account_for(ItemClass.FINISHED_GOODS) == "1340"
        assert chart.asset_account_for(ItemClass.RAW_MATERIAL, override="1330") == "1330"
        assert config.reset_confirmation_code == "DELETE-TEST-DATA"
        assert config.inventory.health_tolerance == 100_000

    def test_all_modules_enabled(self):
        profile = get_active_config().business_profile
        for module in ("inventory", "purchasing", "sales", "production", "service_desk"):
            assert profile.is_enabled(module)


class TestOverrides:

    def test_file_override(self, tmp_path, default_data):
        default_data["approval"] = {"enabled": False, "threshold": 5}
        default_data["reset"] = {"confirmation_code": "WIPE"}
        default_data["business_profile"]["enabled_modules"] = ["sales"]

        config = get_active_config(_write(tmp_path, default_data))

        assert not config.approval.enabled
        assert config.approval.threshold == 5
        assert config.reset_confirmation_code == "WIPE"
        assert not config.business_profile.is_enabled("production")

    def test_checksum_tracks_content(self, default_data):
        before = compute_checksum(default_data)
        default_data["version"] = 99
        assert compute_checksum(default_data) != before


class TestValidation:

    def test_missing_section(self, default_data):
        del default_data["chart_of_accounts"]
        with pytest.raises(KeyError):
            parse_erp_config(default_data)

    def test_role_bound_to_undefined_account(self, default_data):
        default_data["chart_of_accounts"]["roles"]["ACCOUNTS_PAYABLE"] = "9999"
        with pytest.raises(ValueError):
            parse_erp_config(default_data)

    def test_unknown_module(self, default_data):
        default_data["business_profile"]["enabled_modules"] = ["payroll"]
        with pytest.raises(ValueError):
            parse_erp_config(default_data)

    def test_negative_threshold(self, default_data):
        default_data["approval"] = {"threshold": -1}
        with pytest.raises(ValueError):
            parse_erp_config(default_data)

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            get_active_config(tmp_path / "absent.yaml")


class TestSeedChart:

    def test_seed_is_idempotent(self, session, erp_config):
        created = seed_chart_of_accounts(session, erp_config.chart_of_accounts)
        session.commit()

        assert created == []
        count = session.scalar(select(func.count()).select_from(Account))
        assert count == len(erp_config.chart_of_accounts.accounts)

    def test_seed_logs_counts(self, engine, erp_config, captured_logs):
        session = get_session()
        try:
            created = seed_chart_of_accounts(session, erp_config.chart_of_accounts)
            session.commit()
            seed_chart_of_accounts(session, erp_config.chart_of_accounts)
        finally:
            session.close()

        records = [r for r in captured_logs() if r["message"] == "chart_of_accounts_seeded"]
        assert [r["accounts_created"] for r in records] == [len(created), 0]
        assert records[0]["accounts_created"] == len(erp_config.chart_of_accounts.accounts)
        assert records[1]["already_present"] == len(erp_config.chart_of_accounts.accounts)
