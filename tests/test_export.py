"""Tests for CSV and JSON export."""

import json
import sys
import os
from decimal import Decimal

import pandas as pd

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

from vaultsim.reporting.export import cycles_to_dataframe, export_csv, export_json
from vaultsim.simulation.runner import run_scenario


class TestExport:
    """Exports of a verified reference run."""

    def test_dataframe_has_one_row_per_cycle(self, reference_adapter, reference_config):
        result = run_scenario(reference_config, reference_adapter)
        df = cycles_to_dataframe(result)

        assert len(df) == 10
        assert list(df['cycle']) == list(range(10))
        assert df['primary_share_price_after'].iloc[-1] == 1.05
        assert df['pool_secondary_shares'].iloc[-1] == 500.0
        assert (df['apr'] > 0).all()

    def test_csv(self, tmp_path, reference_adapter, reference_config):
        result = run_scenario(reference_config, reference_adapter)
        path = tmp_path / "cycles.csv"
        export_csv(result, str(path))

        df = pd.read_csv(path)
        assert len(df) == 10
        assert 'growth_ratio' in df.columns

    def test_json(self, tmp_path, reference_adapter, reference_config):
        result = run_scenario(reference_config, reference_adapter)
        path = tmp_path / "run.json"
        export_json(result, str(path))

        with open(path) as f:
            data = json.load(f)

        assert data['config_hash'] == reference_config.compute_hash()
        assert len(data['cycles']) == 10
        assert data['cumulative']['cycles_elapsed'] == 10
        assert Decimal(data['cumulative']['old_value']) == Decimal("2850000") * 10 ** 18
        assert data['verification']['passed'] is True
        assert data['verification']['violations'] == []

    def test_json_reports_violations(self, tmp_path, make_adapter, make_config):
        adapter = make_adapter(primary_prices=["0.9"], pool_rewards=["0"])
        result = run_scenario(make_config(cycle_count=1), adapter)
        path = tmp_path / "run.json"
        export_json(result, str(path))

        with open(path) as f:
            data = json.load(f)

        names = [v['name'] for v in data['verification']['violations']]
        assert 'primary_principal_preserved' in names
        assert data['verification']['passed'] is False
