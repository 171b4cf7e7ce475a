"""Tests for sanity checks and export."""

import json
import pytest
import sys
import os

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

import pandas as pd

from stablemaker.config.loader import load_config
from stablemaker.engine.coins import Coin, SignedCoin
from stablemaker.reporting.export import accounts_frame, export_csv, export_json, pools_frame
from stablemaker.service.messages import MsgDepositCollateral, MsgMintByCollateral, MsgMintBySwap
from stablemaker.validation.sanity_checks import SanityChecker, validate_maker_state


def run_some_activity(service):
    service.ledger.fund("alice", [Coin("uusdc", 1000), Coin("uatom", 100)])
    service.mint_by_swap(MsgMintBySwap(
        sender="alice",
        backing_in_max=Coin("uusdc", 1000),
        mage_in_max=Coin("amage", 0),
        mint_out_min=Coin("uusw", 0),
    ))
    service.deposit_collateral(MsgDepositCollateral(
        sender="alice", collateral_in=Coin("uatom", 100), mage_in=Coin("amage", 0)
    ))
    service.mint_by_collateral(MsgMintByCollateral(
        sender="alice", collateral_denom="uatom", mint_out=Coin("uusw", 300)
    ))


class TestConfigChecks:
    """Tests for configuration sanity checks."""

    def test_defaults_are_clean(self):
        """The shipped defaults raise no warnings."""
        checker = SanityChecker(load_config())
        assert checker.check_config_inputs() == []

    def test_ratio_above_one_warns(self, make_config):
        """A ratio above 1 is flagged."""
        checker = SanityChecker(make_config(backing_ratio="1.5"))
        warnings = checker.check_config_inputs()
        assert any(w.category == "bounds" and "Backing ratio" in w.message for w in warnings)

    def test_large_liquidation_fee_warns(self, make_config):
        """A liquidation discount past the threshold cushion is flagged."""
        checker = SanityChecker(make_config(collateral={"liquidation_fee": "0.2"}))
        warnings = checker.check_config_inputs()
        assert any("liquidation fee" in w.message for w in warnings)


class TestStateChecks:
    """Tests for record consistency checks."""

    def test_consistent_state(self, make_config, make_service):
        """Handlers keep every record consistent."""
        config = make_config()
        service = make_service(config)
        run_some_activity(service)
        assert validate_maker_state(config, service.store, service.ledger) == []

    def test_total_mismatch_detected(self, make_config, make_service):
        """A total that disagrees with its pools is an error."""
        config = make_config()
        service = make_service(config)
        run_some_activity(service)

        total = service.store.get_total_backing()
        total.war_minted = SignedCoin("uusw", 1)
        service.store.set_total_backing(total)

        warnings = SanityChecker(config).check_state(service.store, service.ledger)
        assert any(w.severity == "error" and w.category == "conservation" for w in warnings)

    def test_missing_module_balance_detected(self, make_config, make_service):
        """Reserves recorded but not held are an error."""
        config = make_config()
        service = make_service(config)
        run_some_activity(service)

        service.ledger.send_from_module_to_account("maker", "thief", [Coin("uusdc", 1)])

        warnings = SanityChecker(config).check_state(service.store, service.ledger)
        assert any("uusdc" in w.message for w in warnings)


class TestExport:
    """Tests for CSV and JSON export."""

    def test_frames(self, service):
        """Pools and accounts become one row each."""
        run_some_activity(service)
        pools = pools_frame(service.store)
        assert list(pools['denom']) == ['uusdc', 'uatom']
        assert pools.loc[pools['denom'] == 'uatom', 'war_debt'].iloc[0] == 300

        accounts = accounts_frame(service.store)
        assert len(accounts) == 1
        assert accounts['collateral'].iloc[0] == 100

    def test_empty_frames_keep_columns(self, make_service, make_config):
        """An account frame with no positions still has its columns."""
        service = make_service(make_config())
        assert 'war_debt' in accounts_frame(service.store).columns

    def test_export_csv(self, service, tmp_path):
        """CSV export round-trips through pandas."""
        run_some_activity(service)
        path = tmp_path / "pools.csv"
        accounts_path = tmp_path / "accounts.csv"
        export_csv(service.store, str(path), str(accounts_path))

        df = pd.read_csv(path)
        assert set(df['kind']) == {'backing', 'collateral'}
        assert len(pd.read_csv(accounts_path)) == 1

    def test_export_json(self, make_config, make_service, tmp_path):
        """JSON export carries config hash, records and events."""
        config = make_config()
        service = make_service(config)
        run_some_activity(service)
        path = tmp_path / "state.json"
        export_json(config, service.store, str(path), events=service.events)

        with open(path) as f:
            data = json.load(f)
        assert data['config_hash'] == config.compute_hash()
        assert data['totals']['backing']['war_minted'] == "1000uusw"
        assert len(data['events']) == 3
        assert data['events'][0]['event_type'] == "mint_by_swap"
