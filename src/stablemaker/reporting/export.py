"""Export functionality for CSV and JSON."""

import json
from dataclasses import asdict
from typing import Any, Dict, List, Optional

import pandas as pd

from ..config.schema import Config
from ..engine.events import EventLog
from ..engine.interfaces import ParamStore


def pools_frame(store: ParamStore) -> pd.DataFrame:
    """One row per backing and collateral pool."""
    data = []
    for pool in store.get_all_pool_backing():
        data.append({
            'kind': 'backing',
            'denom': pool.denom,
            'amount': pool.backing.amount,
            'war_minted': pool.war_minted.amount,
            'mage_burned': pool.mage_burned.amount,
            'war_debt': 0,
            'mage_collateralized': 0,
        })
    for pool in store.get_all_pool_collateral():
        data.append({
            'kind': 'collateral',
            'denom': pool.denom,
            'amount': pool.collateral.amount,
            'war_minted': 0,
            'mage_burned': 0,
            'war_debt': pool.war_debt.amount,
            'mage_collateralized': pool.mage_collateralized.amount,
        })
    columns = ['kind', 'denom', 'amount', 'war_minted', 'mage_burned', 'war_debt', 'mage_collateralized']
    return pd.DataFrame(data, columns=columns)


def accounts_frame(store: ParamStore) -> pd.DataFrame:
    """One row per account collateral position."""
    data = [
        {
            'account': acc.account,
            'denom': acc.denom,
            'collateral': acc.collateral.amount,
            'war_debt': acc.war_debt.amount,
            'last_interest': acc.last_interest.amount,
            'mage_collateralized': acc.mage_collateralized.amount,
            'last_settlement_block': acc.last_settlement_block,
        }
        for acc in store.get_all_account_collateral()
    ]
    columns = ['account', 'denom', 'collateral', 'war_debt', 'last_interest',
               'mage_collateralized', 'last_settlement_block']
    return pd.DataFrame(data, columns=columns)


def export_csv(store: ParamStore, filepath: str, accounts_filepath: Optional[str] = None):
    """Export pool records (and optionally account positions) to CSV."""
    pools_frame(store).to_csv(filepath, index=False)
    if accounts_filepath:
        accounts_frame(store).to_csv(accounts_filepath, index=False)


def _totals(store: ParamStore) -> Dict[str, Any]:
    totals: Dict[str, Any] = {}
    total_backing = store.get_total_backing()
    if total_backing is not None:
        totals['backing'] = {
            'war_minted': str(total_backing.war_minted),
            'mage_burned': str(total_backing.mage_burned),
        }
    total_collateral = store.get_total_collateral()
    if total_collateral is not None:
        totals['collateral'] = {
            'war_debt': str(total_collateral.war_debt),
            'mage_collateralized': str(total_collateral.mage_collateralized),
        }
    return totals


def export_json(config: Config, store: ParamStore, filepath: str, events: Optional[EventLog] = None):
    """Export configuration, current records and committed events to JSON."""
    params = store.get_params()
    event_rows: List[Dict[str, Any]] = []
    if events is not None:
        event_rows = [asdict(e) for e in events.tail(len(events))]

    export_data = {
        'config': config.to_dict(),
        'config_hash': config.compute_hash(),
        'params': params.model_dump(mode="json"),
        'pools': pools_frame(store).to_dict(orient='records'),
        'accounts': accounts_frame(store).to_dict(orient='records'),
        'totals': _totals(store),
        'events': event_rows,
    }

    with open(filepath, 'w') as f:
        json.dump(export_data, f, indent=2, default=str)
