"""
Handler for Proxy custom resources
Keeps the proxy Deployment and Service in line with the Proxy record
"""
from typing import Any, Dict

from ..reconciler import reconcile_proxy
from ..settings import PROXY_KIND
from .common import get_repository, report


def on_reconcile(name: str, namespace: str, logger, **kwargs) -> Dict[str, Any]:
    """Handle creation, update and resume of a Proxy"""
    logger.debug(f"Reconciling {PROXY_KIND}: {name} in namespace {namespace}")
    result = reconcile_proxy(get_repository(), namespace, name)
    return report(result, PROXY_KIND, namespace, name, logger)


def on_resync(name: str, namespace: str, logger, **kwargs) -> None:
    """Periodic pass catching drift whose child events were missed or failed"""
    result = reconcile_proxy(get_repository(), namespace, name)
    report(result, PROXY_KIND, namespace, name, logger)
