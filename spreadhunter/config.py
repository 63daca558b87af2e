# spreadhunter/config.py
import copy
import os
from typing import Optional

import yaml

from .errors import InvalidInputError
from .presets import DEFAULT_PRESETS

CONFIG_ENV_VAR = 'SPREADHUNTER_CONFIG'
DEFAULT_CONFIG_PATH = 'config.yaml'
# A user-supplied list of exchanges is the full list, not an addition to the defaults
REPLACED_SECTIONS = ('exchanges',)

DEFAULT_CONFIG = {
    'exchanges': {
        'binance': {'name': 'Binance', 'enabled': True},
        'kraken': {'name': 'Kraken', 'enabled': True},
        'coinbase': {'name': 'Coinbase', 'enabled': True},
        'okx': {'name': 'OKX', 'enabled': True},
        'gate': {'name': 'Gate', 'enabled': True},
        'kucoin': {'name': 'KuCoin', 'enabled': True},
        'bitget': {'name': 'Bitget', 'enabled': True},
        'bybit': {'name': 'Bybit', 'enabled': True},
        'mexc': {'name': 'MEXC', 'enabled': True},
    },
    'network': {
        'timeout_ms': 30000,
    },
    'arbitrage': {
        'order_book_depth': 50,
        'min_fill_ratio': 0.9,
        'min_profit_percentage': 0.01,
        'default_trade_amount': 1.0,
    },
    'scanner': {
        'batch_size': 3,
        'batch_delay_ms': 500,
        'top_n': 10,
        'default_amount_usd': 1000,
    },
    'spread_scanner': {
        'batch_size': 5,
        'batch_delay_ms': 300,
        'top_n': 10,
    },
    'ledger': {
        'max_history': 1000,
    },
    'presets': DEFAULT_PRESETS,
    'audit': {
        'trade_log': 'logs/simulated_trades.csv',
    },
    'system': {
        'log_level': 'INFO',
        'refresh_seconds': 15,
    },
}


def deep_merge(base: dict, override: dict) -> dict:
    """Returns a new dict: `override` on top of `base`, nested dicts merged key by key."""
    merged = copy.deepcopy(base)
    for key, value in (override or {}).items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = deep_merge(merged[key], value)
        else:
            merged[key] = copy.deepcopy(value)
    return merged


def _require_positive(section: dict, key: str, name: str):
    value = section.get(key)
    if not isinstance(value, (int, float)) or isinstance(value, bool) or value <= 0:
        raise InvalidInputError(f"Config {name}.{key} must be a positive number, got {value!r}")


def validate_config(config: dict) -> dict:
    _require_positive(config['network'], 'timeout_ms', 'network')
    _require_positive(config['arbitrage'], 'order_book_depth', 'arbitrage')
    _require_positive(config['arbitrage'], 'default_trade_amount', 'arbitrage')
    _require_positive(config['ledger'], 'max_history', 'ledger')
    _require_positive(config['system'], 'refresh_seconds', 'system')

    ratio = config['arbitrage'].get('min_fill_ratio')
    if not isinstance(ratio, (int, float)) or not 0 < ratio <= 1:
        raise InvalidInputError(f"Config arbitrage.min_fill_ratio must be in (0, 1], got {ratio!r}")

    for name in ('scanner', 'spread_scanner'):
        section = config[name]
        if not isinstance(section.get('batch_size'), int) or section['batch_size'] < 1:
            raise InvalidInputError(f"Config {name}.batch_size must be >= 1, got {section.get('batch_size')!r}")
        delay = section.get('batch_delay_ms')
        if not isinstance(delay, (int, float)) or delay < 0:
            raise InvalidInputError(f"Config {name}.batch_delay_ms must be >= 0, got {delay!r}")
        _require_positive(section, 'top_n', name)
    _require_positive(config['scanner'], 'default_amount_usd', 'scanner')

    if not isinstance(config['exchanges'], dict) or not config['exchanges']:
        raise InvalidInputError("Config exchanges must list at least one exchange")
    return config


def load_config(path: Optional[str] = None) -> dict:
    """
    Reads the YAML config and lays it over DEFAULT_CONFIG.
    A missing file is fine when no path was given explicitly: the defaults apply.
    """
    explicit = path or os.environ.get(CONFIG_ENV_VAR)
    path = explicit or DEFAULT_CONFIG_PATH

    raw = {}
    if os.path.exists(path):
        with open(path, "r") as f:
            raw = yaml.safe_load(f) or {}
    elif explicit:
        raise InvalidInputError(f"Config file not found: {path}")

    if not isinstance(raw, dict):
        raise InvalidInputError(f"Config file {path} must contain a mapping at the top level")

    config = deep_merge(DEFAULT_CONFIG, raw)
    for section in REPLACED_SECTIONS:
        if isinstance(raw.get(section), dict):
            config[section] = copy.deepcopy(raw[section])
    return validate_config(config)
