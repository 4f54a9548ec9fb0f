"""Protocol interfaces for WLED Sync.

Defines contracts between the sync engine and its collaborators.
"""

from .api import IDeviceClient, IPushTransport
from .state import IDeviceStore, IDiscoveryService, ISceneStore, IStateObserver

__all__ = [
    "IDeviceClient",
    "IDeviceStore",
    "IDiscoveryService",
    "IPushTransport",
    "ISceneStore",
    "IStateObserver",
]
