"""
Handler for ProxyConfig custom resources
Keeps the rendered server.yaml ConfigMap and the status in line with the ProxyConfig record
"""
from typing import Any, Dict

from ..reconciler import reconcile_proxy_config
from ..settings import PROXY_CONFIG_KIND
from .common import get_repository, report


def on_reconcile(name: str, namespace: str, logger, **kwargs) -> Dict[str, Any]:
    """Handle creation, update and resume of a ProxyConfig"""
    logger.debug(f"Reconciling {PROXY_CONFIG_KIND}: {name} in namespace {namespace}")
    result = reconcile_proxy_config(get_repository(), namespace, name)
    return report(result, PROXY_CONFIG_KIND, namespace, name, logger)


def on_resync(name: str, namespace: str, logger, **kwargs) -> None:
    """Periodic pass catching drift whose child events were missed or failed"""
    result = reconcile_proxy_config(get_repository(), namespace, name)
    report(result, PROXY_CONFIG_KIND, namespace, name, logger)
