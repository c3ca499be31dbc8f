"""Export functionality for CSV and JSON."""

import json
from typing import Any, Dict

import pandas as pd

from ..engine.fixed_point import from_fixed
from ..simulation.driver import ScenarioResult


def cycles_to_dataframe(result: ScenarioResult) -> pd.DataFrame:
    """One row per cycle; balances and values in human units, rates as fractions."""
    decimals = result.unit_prices.decimals
    data = []
    for record in result.cycles:
        metric = record.metric
        data.append({
            'cycle': record.cycle_index,
            'primary_share_price_before': float(from_fixed(record.before.primary_share_price)),
            'primary_share_price_after': float(from_fixed(record.after.primary_share_price)),
            'secondary_share_price_after': float(from_fixed(record.after.secondary_share_price)),
            'pool_secondary_shares': float(from_fixed(record.after.secondary_share_balance, decimals)),
            'value_before': float(from_fixed(metric.old_value, decimals)),
            'value_after': float(from_fixed(metric.new_value, decimals)),
            'growth_ratio': float(metric.growth_ratio),
            'apr': float(metric.apr),
            'apy': float(metric.apy),
        })
    return pd.DataFrame(data)


def export_csv(result: ScenarioResult, filepath: str):
    """Export per-cycle metrics to CSV."""
    df = cycles_to_dataframe(result)
    df.to_csv(filepath, index=False)


def _metric_dict(metric) -> Dict[str, Any]:
    return {
        'old_value': str(metric.old_value),
        'new_value': str(metric.new_value),
        'cycles_elapsed': metric.cycles_elapsed,
        'growth_ratio': str(metric.growth_ratio),
        'apr': str(metric.apr),
        'apy': str(metric.apy),
    }


def export_json(result: ScenarioResult, filepath: str):
    """Export the run to JSON. Decimals are written as strings to keep them exact."""
    verification = None
    if result.verification is not None:
        verification = {
            'passed': result.verification.passed,
            'checked': result.verification.checked,
            'violations': [
                {
                    'name': v.name,
                    'expected': v.expected,
                    'actual': str(v.actual),
                    'message': v.message,
                }
                for v in result.verification.violations
            ],
        }

    export_data = {
        'config': result.config.model_dump(mode="json"),
        'config_hash': result.config.compute_hash(),
        'cycles': [
            dict(cycle=record.cycle_index, **_metric_dict(record.metric))
            for record in result.cycles
        ],
        'cumulative': _metric_dict(result.cumulative),
        'verification': verification,
    }

    with open(filepath, 'w') as f:
        json.dump(export_data, f, indent=2)
