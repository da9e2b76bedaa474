"""
Shared handler plumbing: startup, repository access and result reporting
"""
import logging
from datetime import datetime, timezone
from typing import Any, Dict

import kopf
from kubernetes import config

from ..reconciler import FATAL, RETRY, ReconcileResult
from ..repository import KubernetesRepository, ObjectRepository
from ..settings import WATCH_SERVER_TIMEOUT_SECONDS


def on_startup(settings: kopf.OperatorSettings, **kwargs):
    """Configure operator settings and load the Kubernetes client config"""
    settings.watching.server_timeout = WATCH_SERVER_TIMEOUT_SECONDS
    # Only warnings and errors become Kubernetes events
    settings.posting.level = logging.WARNING

    try:
        config.load_incluster_config()
    except config.ConfigException:
        config.load_kube_config()


def get_repository() -> ObjectRepository:
    return KubernetesRepository()


def report(result: ReconcileResult, kind: str, namespace: str, name: str, logger) -> Dict[str, Any]:
    """
    Log a pass outcome once and hand it to kopf.

    Retries become TemporaryError with the fixed backoff; fatal outcomes
    become PermanentError so kopf stops retrying until the record changes.
    """
    for action in result.applied:
        logger.info(f"Applied {action.describe()}")

    if result.outcome == RETRY:
        logger.warning(f"Reconcile of {kind} {namespace}/{name} failed, retrying in {result.delay}s: {result.reason}")
        raise kopf.TemporaryError(result.reason, delay=result.delay)
    if result.outcome == FATAL:
        logger.error(f"Reconcile of {kind} {namespace}/{name} failed: {result.reason}")
        raise kopf.PermanentError(result.reason)

    if result.reason:
        logger.info(result.reason)
    elif not result.applied:
        logger.info(f"{kind} {namespace}/{name} is in sync")
    return {
        'applied': [action.describe() for action in result.applied],
        'lastReconcileTime': datetime.now(timezone.utc).isoformat(),
    }
