"""Sanity checks on maker configuration and persisted state."""

from dataclasses import dataclass
from decimal import Decimal
from typing import Dict, List, Optional

from ..config.schema import Config
from ..engine.interfaces import Ledger, ParamStore


@dataclass
class ValidationWarning:
    """A validation warning with severity and message."""
    severity: str  # "warning" or "error"
    category: str  # e.g., "input", "conservation", "bounds"
    message: str
    details: Optional[str] = None


class SanityChecker:
    """Run sanity checks on configuration and maker state."""

    def __init__(self, config: Config):
        """Initialize with configuration."""
        self.config = config

    def check_config_inputs(self) -> List[ValidationWarning]:
        """
        Check configuration inputs for implausible values.

        Returns:
            List of validation warnings
        """
        warnings = []
        params = self.config.params

        if params.backing_ratio > 1:
            warnings.append(ValidationWarning(
                severity="warning",
                category="bounds",
                message="Backing ratio above 1 behaves exactly like 1",
                details=f"Current value: {params.backing_ratio}"
            ))

        for backing in self.config.backing:
            for name in ("mint_fee", "burn_fee", "buyback_fee", "reback_fee"):
                rate = getattr(backing, name)
                if rate is not None and rate > Decimal("0.1"):
                    warnings.append(ValidationWarning(
                        severity="warning",
                        category="bounds",
                        message=f"{backing.backing_denom} {name} above 10%",
                        details=f"Current rate: {rate}"
                    ))
            if not backing.enabled:
                warnings.append(ValidationWarning(
                    severity="warning",
                    category="input",
                    message=f"Backing coin {backing.backing_denom} is registered but disabled",
                ))

        for coll in self.config.collateral:
            # discount larger than the threshold cushion leaves bad debt behind
            if coll.liquidation_fee > 1 - coll.liquidation_threshold:
                warnings.append(ValidationWarning(
                    severity="warning",
                    category="bounds",
                    message=f"{coll.collateral_denom} liquidation fee exceeds the threshold cushion",
                    details=f"Fee: {coll.liquidation_fee}, threshold: {coll.liquidation_threshold}"
                ))
            if coll.interest_fee > Decimal("0.5"):
                warnings.append(ValidationWarning(
                    severity="warning",
                    category="bounds",
                    message=f"{coll.collateral_denom} interest rate above 50% APR",
                    details=f"Current rate: {coll.interest_fee}"
                ))
            if coll.catalytic_mage_ratio == 0 and coll.loan_to_value > coll.basic_loan_to_value:
                warnings.append(ValidationWarning(
                    severity="warning",
                    category="input",
                    message=f"{coll.collateral_denom} max LTV is unreachable without a catalytic ratio",
                    details=f"basic={coll.basic_loan_to_value}, max={coll.loan_to_value}"
                ))

        return warnings

    def check_state(self, store: ParamStore, ledger: Ledger) -> List[ValidationWarning]:
        """
        Check persisted records against each other and the ledger.

        Args:
            store: Parameter store holding maker records
            ledger: Ledger holding module balances

        Returns:
            List of validation warnings
        """
        warnings = []
        module = ledger.module_address(self.config.chain.module_name)

        # Backing pools vs total
        pools = store.get_all_pool_backing()
        total = store.get_total_backing()
        if total is None:
            if pools:
                warnings.append(ValidationWarning(
                    severity="error",
                    category="conservation",
                    message="Backing pools exist without a total backing record",
                ))
        else:
            minted = sum(p.war_minted.amount for p in pools)
            burned = sum(p.mage_burned.amount for p in pools)
            if minted != total.war_minted.amount:
                warnings.append(ValidationWarning(
                    severity="error",
                    category="conservation",
                    message="Total minted disagrees with backing pools",
                    details=f"Total: {total.war_minted.amount}, pools: {minted}"
                ))
            if burned != total.mage_burned.amount:
                warnings.append(ValidationWarning(
                    severity="error",
                    category="conservation",
                    message="Total native burned disagrees with backing pools",
                    details=f"Total: {total.mage_burned.amount}, pools: {burned}"
                ))

        # Collateral pools vs accounts and totals
        coll_pools = store.get_all_pool_collateral()
        accounts = store.get_all_account_collateral()
        for pool in coll_pools:
            members = [a for a in accounts if a.denom == pool.denom]
            for field_name in ("collateral", "war_debt", "mage_collateralized"):
                summed = sum(getattr(a, field_name).amount for a in members)
                recorded = getattr(pool, field_name).amount
                if summed != recorded:
                    warnings.append(ValidationWarning(
                        severity="error",
                        category="conservation",
                        message=f"{pool.denom} pool {field_name} disagrees with accounts",
                        details=f"Pool: {recorded}, accounts: {summed}"
                    ))

        total_coll = store.get_total_collateral()
        if total_coll is not None:
            for field_name in ("war_debt", "mage_collateralized"):
                summed = sum(getattr(p, field_name).amount for p in coll_pools)
                recorded = getattr(total_coll, field_name).amount
                if summed != recorded:
                    warnings.append(ValidationWarning(
                        severity="error",
                        category="conservation",
                        message=f"Total {field_name} disagrees with collateral pools",
                        details=f"Total: {recorded}, pools: {summed}"
                    ))

        # Module balance must cover every recorded reserve and collateral
        required: Dict[str, int] = {}
        for pool in pools:
            required[pool.denom] = required.get(pool.denom, 0) + pool.backing.amount
        for pool in coll_pools:
            required[pool.denom] = required.get(pool.denom, 0) + pool.collateral.amount
        for denom in sorted(required):
            held = ledger.get_balance(module, denom).amount
            if held < required[denom]:
                warnings.append(ValidationWarning(
                    severity="error",
                    category="conservation",
                    message=f"Module holds less {denom} than recorded",
                    details=f"Recorded: {required[denom]}, held: {held}"
                ))

        for acc in accounts:
            if acc.last_interest.amount > acc.war_debt.amount:
                warnings.append(ValidationWarning(
                    severity="error",
                    category="bounds",
                    message=f"Unpaid interest exceeds debt for {acc.account}/{acc.denom}",
                    details=f"Interest: {acc.last_interest.amount}, debt: {acc.war_debt.amount}"
                ))

        ratio = store.get_params().backing_ratio
        if ratio < 0 or ratio > 1:
            warnings.append(ValidationWarning(
                severity="warning",
                category="bounds",
                message="Backing ratio outside [0, 1]",
                details=f"Value: {ratio}"
            ))

        return warnings


def validate_maker_state(config: Config, store: ParamStore, ledger: Ledger) -> List[ValidationWarning]:
    """
    Validate configuration and persisted state together.

    Args:
        config: Maker configuration
        store: Parameter store
        ledger: Ledger

    Returns:
        List of all validation warnings
    """
    checker = SanityChecker(config)
    warnings = []
    warnings.extend(checker.check_config_inputs())
    warnings.extend(checker.check_state(store, ledger))
    return warnings
