"""
Plasma client package.

Moves value between a root chain and a UTXO-based plasma child chain:
deposits, child chain transfers and standard exits.
"""

from .config import PlasmaConfig
from .errors import PlasmaError
from .models import ETH_CURRENCY, Utxo
from .plasma_account import PlasmaAccount

__all__ = ["PlasmaConfig", "PlasmaAccount", "PlasmaError", "Utxo", "ETH_CURRENCY"]
__version__ = "0.1.0"
