# tests/test_config.py
import pytest

from spreadhunter.config import CONFIG_ENV_VAR, DEFAULT_CONFIG, deep_merge, load_config
from spreadhunter.errors import InvalidInputError
from spreadhunter.presets import DEFAULT_PRESETS, resolve_symbols


class TestLoadConfig:
    def test_defaults_when_file_missing(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        monkeypatch.delenv(CONFIG_ENV_VAR, raising=False)
        config = load_config()

        assert config['network']['timeout_ms'] == 30000
        assert config['scanner']['batch_size'] == 3
        assert config['spread_scanner']['batch_delay_ms'] == 300
        assert len(config['exchanges']) == 9

    def test_file_merged_over_defaults(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text(
            "exchanges:\n"
            "  binance: { name: Binance, taker_fee: 0.00075 }\n"
            "  okx: { name: OKX }\n"
            "scanner:\n"
            "  batch_size: 2\n"
        )
        config = load_config(str(path))

        assert list(config['exchanges']) == ['binance', 'okx']
        assert config['scanner']['batch_size'] == 2
        assert config['scanner']['batch_delay_ms'] == 500
        assert config['presets']['largecap'] == DEFAULT_PRESETS['largecap']

    def test_env_var_path(self, tmp_path, monkeypatch):
        path = tmp_path / "custom.yaml"
        path.write_text("system:\n  refresh_seconds: 5\n")
        monkeypatch.setenv(CONFIG_ENV_VAR, str(path))

        assert load_config()['system']['refresh_seconds'] == 5

    def test_explicit_missing_file(self, tmp_path):
        with pytest.raises(InvalidInputError):
            load_config(str(tmp_path / "nope.yaml"))

    @pytest.mark.parametrize("body", [
        "scanner:\n  batch_size: 0\n",
        "network:\n  timeout_ms: -1\n",
        "arbitrage:\n  min_fill_ratio: 1.5\n",
        "spread_scanner:\n  batch_delay_ms: -10\n",
        "- just\n- a list\n",
    ])
    def test_invalid_values(self, tmp_path, body):
        path = tmp_path / "config.yaml"
        path.write_text(body)
        with pytest.raises(InvalidInputError):
            load_config(str(path))

    def test_deep_merge_does_not_mutate_defaults(self):
        merged = deep_merge(DEFAULT_CONFIG, {'ledger': {'max_history': 5}})
        assert merged['ledger']['max_history'] == 5
        assert DEFAULT_CONFIG['ledger']['max_history'] == 1000


class TestResolveSymbols:
    def test_explicit_symbols_win(self):
        symbols, label = resolve_symbols(" btc/usdt, ETH/USDT,,btc/usdt ", preset="memecoins")
        assert symbols == ["BTC/USDT", "ETH/USDT"]
        assert label == "custom"

    def test_list_input(self):
        symbols, _ = resolve_symbols(["sol/usdt", "SOL/USDT"])
        assert symbols == ["SOL/USDT"]

    def test_named_preset(self):
        symbols, label = resolve_symbols(preset="midcap")
        assert symbols == DEFAULT_PRESETS['midcap']
        assert label == "midcap"

    def test_default_is_all(self):
        symbols, label = resolve_symbols()
        assert label == "all"
        assert len(symbols) == 24
        assert all(s.endswith("/USDT") for s in symbols)

    def test_unknown_preset(self):
        with pytest.raises(InvalidInputError):
            resolve_symbols(preset="defi")

    def test_only_separators(self):
        with pytest.raises(InvalidInputError):
            resolve_symbols(" , ,")

    def test_custom_presets(self):
        symbols, label = resolve_symbols(preset="mine", presets={'mine': ['ARB/USDT']})
        assert (symbols, label) == (['ARB/USDT'], 'mine')
