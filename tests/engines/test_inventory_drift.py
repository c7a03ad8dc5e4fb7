"""Tests for cached-aggregate drift comparisons."""

from erp_engines.reconciliation import (
    compare_account_balance,
    compare_item_cache,
    reconcile_inventory_accounts,
    summarize_health,
)


def _status(item_id, cached_qty, cached_avg, layer_qty, layer_value):
    return compare_item_cache(
        item_id=item_id,
        sku=f"SKU-{item_id}",
        cached_quantity=cached_qty,
        cached_average_cost=cached_avg,
        layer_quantity=layer_qty,
        layer_value=layer_value,
        layer_average_cost=layer_value // layer_qty if layer_qty else 0,
    )


class TestItemSyncStatus:

    def test_matching_cache_in_sync(self):
        status = _status(1, 10, 500, 10, 5_000)
        assert status.in_sync
        assert status.cached_value == 5_000

    def test_quantity_drift_detected(self):
        status = _status(1, 8, 500, 10, 5_000)
        assert not status.in_sync
        assert status.quantity_drift == -2
        assert status.value_drift == -1_000


class TestHealthSummary:

    def test_within_tolerance_is_healthy(self):
        summary = summarize_health([_status(1, 10, 500, 10, 5_000), _status(2, 9, 100, 10, 1_000)], 100)
        assert summary.total_items == 2
        assert summary.out_of_sync_count == 1
        assert summary.discrepancy == 100
        assert summary.is_healthy

    def test_beyond_tolerance_is_degraded(self):
        summary = summarize_health([_status(1, 0, 0, 10, 5_000)], 100)
        assert summary.discrepancy == 5_000
        assert not summary.is_healthy

    def test_empty_inventory_is_healthy(self):
        assert summarize_health([], 0).is_healthy


class TestAccountDrift:

    def test_difference_is_cached_minus_derived(self):
        drift = compare_account_balance("1310", 1_200, 1_000)
        assert drift.difference == 200
        assert not drift.in_sync
        assert compare_account_balance("1310", 5, 5).in_sync


class TestInventoryAccountReconciliation:

    def test_layer_values_grouped_by_account(self):
        summary = reconcile_inventory_accounts(
            gl_balances={"1310": 7_000, "1340": 900},
            item_values=[
                ("1310", "RAW_MATERIAL", 5_000),
                ("1310", "RAW_MATERIAL", 2_000),
                ("1340", "FINISHED_GOODS", 900),
            ],
            required_accounts=["1310", "1330", "1340"],
            tolerance=0,
        )
        by_code = {a.account_code: a for a in summary.accounts}

        assert list(by_code) == ["1310", "1330", "1340"]
        assert by_code["1310"].item_count == 2
        assert by_code["1310"].layer_value == 7_000
        assert by_code["1330"].item_classes == ()
        assert summary.gl_total == summary.layer_total == 7_900
        assert summary.is_reconciled

    def test_balance_on_unused_account_is_discrepancy(self):
        summary = reconcile_inventory_accounts(
            gl_balances={"1330": 250},
            item_values=[],
            required_accounts=["1310", "1330"],
            tolerance=100,
        )
        assert summary.discrepancy == 250
        assert not summary.is_reconciled

    def test_offsetting_account_errors_are_not_reconciled(self):
        summary = reconcile_inventory_accounts(
            gl_balances={"1310": 1_500, "1340": 500},
            item_values=[("1310", "RAW_MATERIAL", 1_000), ("1340", "FINISHED_GOODS", 1_000)],
            required_accounts=["1310", "1340"],
            tolerance=0,
        )
        assert summary.discrepancy == 0
        assert not summary.is_reconciled

    def test_override_account_lists_its_classes(self):
        summary = reconcile_inventory_accounts(
            gl_balances={},
            item_values=[("1330", "RAW_MATERIAL", 0), ("1330", "WIP", 0)],
            required_accounts=["1330"],
            tolerance=0,
        )
        assert summary.accounts[0].item_classes == ("RAW_MATERIAL", "WIP")
