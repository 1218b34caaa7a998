from .plants import Plant
from .auth import User, SessionToken
from .assets import Asset
from .movements import ScanSession, Scan

__all__ = [
    'Plant',
    'User', 'SessionToken',
    'Asset',
    'ScanSession', 'Scan',
]
