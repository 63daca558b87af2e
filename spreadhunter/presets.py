# spreadhunter/presets.py
from typing import Dict, Iterable, List, Mapping, Optional, Tuple, Union

from .errors import InvalidInputError

MEMECOINS = ['PEPE/USDT', 'BONK/USDT', 'WIF/USDT', 'FLOKI/USDT', 'SHIB/USDT', 'DOGE/USDT']
MIDCAP = ['SEI/USDT', 'SUI/USDT', 'TIA/USDT', 'INJ/USDT', 'JUP/USDT',
          'STRK/USDT', 'PYTH/USDT', 'JTO/USDT', 'ONDO/USDT', 'RENDER/USDT']
LARGECAP = ['BTC/USDT', 'ETH/USDT', 'SOL/USDT', 'XRP/USDT', 'ADA/USDT', 'AVAX/USDT', 'LINK/USDT', 'DOT/USDT']

DEFAULT_PRESETS: Dict[str, List[str]] = {
    'memecoins': MEMECOINS,
    'midcap': MIDCAP,
    'largecap': LARGECAP,
    'all': MEMECOINS + MIDCAP + LARGECAP,
}
DEFAULT_PRESET = 'all'
CUSTOM_LABEL = 'custom'


def _split(symbols: Union[str, Iterable[str]]) -> List[str]:
    parts = symbols.split(',') if isinstance(symbols, str) else list(symbols)
    seen = set()
    cleaned = []
    for part in parts:
        sym = part.strip().upper()
        if sym and sym not in seen:
            seen.add(sym)
            cleaned.append(sym)
    return cleaned


def resolve_symbols(symbols: Optional[Union[str, Iterable[str]]] = None,
                    preset: Optional[str] = None,
                    presets: Optional[Mapping[str, List[str]]] = None) -> Tuple[List[str], str]:
    """
    Picks the symbol list for a scan.
    Explicit symbols (comma separated string or list) win over a preset.
    Returns (symbols, label) where label is 'custom' or the preset name.
    """
    presets = presets if presets is not None else DEFAULT_PRESETS

    if symbols:
        resolved = _split(symbols)
        if not resolved:
            raise InvalidInputError("Symbol list is empty")
        return resolved, CUSTOM_LABEL

    name = preset or DEFAULT_PRESET
    if name not in presets:
        raise InvalidInputError(f"Unknown preset {name!r}. Available: {', '.join(presets)}")
    resolved = _split(presets[name])
    if not resolved:
        raise InvalidInputError(f"Preset {name!r} is empty")
    return resolved, name
