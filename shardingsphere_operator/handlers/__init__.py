"""
Handlers for the ShardingSphere Proxy Operator

This package contains the kopf-facing entry points for Proxy and ProxyConfig
custom resources and the objects derived from them.
"""

from .common import on_startup
from .proxy_handler import on_reconcile as on_proxy_reconcile
from .proxy_handler import on_resync as on_proxy_resync
from .proxyconfig_handler import on_reconcile as on_proxy_config_reconcile
from .proxyconfig_handler import on_resync as on_proxy_config_resync
from .children_handler import on_child_event

__all__ = [
    'on_startup',
    'on_proxy_reconcile',
    'on_proxy_resync',
    'on_proxy_config_reconcile',
    'on_proxy_config_resync',
    'on_child_event',
]
