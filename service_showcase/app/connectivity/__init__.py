"""
Connectivity package for the Showcase Service.

Online/offline status is an injected capability: controllers read
``current()`` once and then react to ``on_change`` notifications.
"""

from .providers import ConnectivityProvider, ManualConnectivity, ProbeConnectivity

__all__ = ["ConnectivityProvider", "ManualConnectivity", "ProbeConnectivity"]
