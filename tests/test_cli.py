"""Tests for the phasescope command line interface."""

import numpy as np
import pandas as pd
import pytest
import yaml

from phasescope.cli import main, read_signals

from conftest import logistic_map


TEST_CONFIG = {
    'lag': {'lag_max': 20},
    'lyapunov': {
        'min_dim': 1, 'max_dim': 2, 'radius': 0.02,
        'max_time_steps': 10, 'theiler_window': 5, 'window': [0, 4],
    },
    'topology': {'sample_size': 60, 'seed': 7, 'max_dimension': 1, 'max_scale': 0.3},
}


@pytest.fixture
def config_path(tmp_path):
    path = tmp_path / 'analysis.yaml'
    path.write_text(yaml.safe_dump(TEST_CONFIG))
    return path


@pytest.fixture
def signals_csv(tmp_path):
    path = tmp_path / 'signals.csv'
    pd.DataFrame({
        'a': logistic_map(2000),
        'b': logistic_map(2000, x0=0.3),
        'label': ['x'] * 2000,
    }).to_csv(path, index=False)
    return path


class TestReadSignals:

    def test_numeric_columns_only(self, signals_csv):
        signals = read_signals(signals_csv)
        assert list(signals) == ['a', 'b']
        assert len(signals['a']) == 2000

    def test_selected_columns(self, signals_csv):
        assert list(read_signals(signals_csv, ['b'])) == ['b']

    def test_missing_column(self, signals_csv):
        with pytest.raises(KeyError):
            read_signals(signals_csv, ['zzz'])

    def test_drops_missing_values(self, tmp_path):
        path = tmp_path / 'gaps.csv'
        pd.DataFrame({'a': [1.0, np.nan, 3.0, 4.0]}).to_csv(path, index=False)
        np.testing.assert_array_equal(read_signals(path)['a'], [1.0, 3.0, 4.0])

    def test_parquet(self, tmp_path):
        path = tmp_path / 'signals.parquet'
        pd.DataFrame({'a': logistic_map(100)}).to_parquet(path, index=False)
        assert len(read_signals(path)['a']) == 100


class TestAnalyzeCommand:

    def test_writes_summary(self, signals_csv, config_path, tmp_path):
        output = tmp_path / 'out.csv'
        code = main(['-q', 'analyze', str(signals_csv), '--config', str(config_path), '-o', str(output)])
        assert code == 0
        summary = pd.read_csv(output)
        assert list(summary['signal_id']) == ['a', 'b']
        assert (summary['lyapunov_max'] > 0).all()

    def test_parquet_output_and_diagrams(self, signals_csv, config_path, tmp_path):
        output = tmp_path / 'out.parquet'
        code = main([
            '-q', 'analyze', str(signals_csv), '--config', str(config_path),
            '-c', 'a', '-o', str(output), '--diagrams',
        ])
        assert code == 0
        assert list(pd.read_parquet(output)['signal_id']) == ['a']
        diagrams = pd.read_csv(tmp_path / 'out_diagrams.csv')
        assert set(diagrams['signal_id']) == {'a'}

    def test_failed_signal_exit_code(self, tmp_path, config_path):
        path = tmp_path / 'mixed.csv'
        pd.DataFrame({
            'good': logistic_map(2000),
            'short': [0.1] * 10 + [np.nan] * 1990,
        }).to_csv(path, index=False)
        output = tmp_path / 'out.csv'

        code = main(['-q', 'analyze', str(path), '--config', str(config_path), '-o', str(output)])

        assert code == 2
        summary = pd.read_csv(output).set_index('signal_id')
        assert summary.loc['short', 'failed_stage'] == 'embedding'
        assert np.isfinite(summary.loc['good', 'lyapunov_max'])

    def test_non_finite_column_exit_code(self, tmp_path, config_path):
        bad = logistic_map(2000)
        bad[7] = np.inf
        path = tmp_path / 'inf.csv'
        pd.DataFrame({
            'good': logistic_map(2000),
            'bad': bad,
            'blank': [np.nan] * 2000,
        }).to_csv(path, index=False)
        output = tmp_path / 'out.csv'

        code = main(['-q', 'analyze', str(path), '--config', str(config_path), '-o', str(output)])

        assert code == 2
        summary = pd.read_csv(output).set_index('signal_id')
        assert summary.loc['bad', 'failed_stage'] == 'input'
        assert summary.loc['blank', 'failed_stage'] == 'input'
        assert np.isfinite(summary.loc['good', 'lyapunov_max'])

    def test_seed_override(self, signals_csv, config_path, tmp_path):
        a, b = tmp_path / 'a.csv', tmp_path / 'b.csv'
        base = ['-q', 'analyze', str(signals_csv), '--config', str(config_path), '-c', 'a']
        assert main(base + ['--seed', '1', '-o', str(a)]) == 0
        assert main(base + ['--seed', '2', '-o', str(b)]) == 0
        # subsample changes, the Lyapunov exponent does not
        assert pd.read_csv(a)['lyapunov_max'][0] == pd.read_csv(b)['lyapunov_max'][0]

    def test_missing_input(self, tmp_path, capsys):
        code = main(['analyze', str(tmp_path / 'missing.csv')])
        assert code == 1
        assert 'not found' in capsys.readouterr().err

    def test_missing_column(self, signals_csv, tmp_path):
        code = main(['-q', 'analyze', str(signals_csv), '-c', 'zzz', '-o', str(tmp_path / 'o.csv')])
        assert code == 1

    def test_invalid_override(self, signals_csv, tmp_path):
        code = main(['-q', 'analyze', str(signals_csv), '--dt', '0', '-o', str(tmp_path / 'o.csv')])
        assert code == 1

    def test_output_equals_input(self, signals_csv):
        assert main(['-q', 'analyze', str(signals_csv), '-o', str(signals_csv)]) == 1


class TestConfigCommand:

    def test_prints_defaults(self, capsys):
        assert main(['config']) == 0
        printed = yaml.safe_load(capsys.readouterr().out)
        assert printed['lag']['lag_max'] == 50
        assert printed['lyapunov']['window'] == [0, 5]

    def test_prints_merged(self, config_path, capsys):
        assert main(['config', '--config', str(config_path)]) == 0
        printed = yaml.safe_load(capsys.readouterr().out)
        assert printed['topology']['sample_size'] == 60
        assert printed['embedding']['dim'] == 3

    def test_bad_config(self, tmp_path, capsys):
        path = tmp_path / 'bad.yaml'
        path.write_text(yaml.safe_dump({'lag': {'lag_max': 0}}))
        assert main(['config', '--config', str(path)]) == 1
        assert 'lag_max' in capsys.readouterr().err

    def test_no_command(self, capsys):
        assert main([]) == 0
        assert 'analyze' in capsys.readouterr().out
