"""
Handler for watch events on derived Deployments, Services and ConfigMaps

A change to or deletion of a derived object re-runs the pass of the record
that owns it, so manual edits are reverted and deleted children recreated.
kopf never retries event handlers, so a pass that has to be retried is
handed to the owner's update handler by annotating the owner.
"""
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Tuple

from ..errors import TransientRepositoryError
from ..reconciler import FATAL, RETRY, reconcile_proxy, reconcile_proxy_config
from ..repository import ObjectRepository
from ..settings import CRD_API_VERSION, PROXY_CONFIG_KIND, PROXY_KIND, RESYNC_ANNOTATION
from .common import get_repository

RECONCILERS: Dict[str, Callable] = {
    PROXY_KIND: reconcile_proxy,
    PROXY_CONFIG_KIND: reconcile_proxy_config,
}

TRIGGER_EVENTS = ('MODIFIED', 'DELETED')


def owners(meta: Dict[str, Any]) -> List[Tuple[str, str]]:
    """(kind, name) of every owning record this operator manages"""
    return [
        (ref['kind'], ref['name'])
        for ref in meta.get('ownerReferences') or []
        if ref.get('apiVersion') == CRD_API_VERSION and ref.get('kind') in RECONCILERS
    ]


def request_resync(repository: ObjectRepository, kind: str, namespace: str, name: str, logger) -> bool:
    """
    Annotate the owner so its update handler runs the pass again.

    The update handler retries with the fixed backoff until the pass
    succeeds. Returns False if the owner could not be annotated; the
    periodic resync timer covers that case.
    """
    stamp = datetime.now(timezone.utc).isoformat()
    try:
        repository.annotate(kind, namespace, name, {RESYNC_ANNOTATION: stamp})
    except TransientRepositoryError as e:
        logger.warning(f"Could not request resync of {kind} {namespace}/{name}, "
                       f"leaving it to the periodic resync: {e}")
        return False
    logger.info(f"Requested resync of {kind} {namespace}/{name}")
    return True


def on_child_event(event: Dict[str, Any], meta: Dict[str, Any], namespace: str, logger, **kwargs):
    """Re-reconcile the owner of a derived object that changed or vanished"""
    if event.get('type') not in TRIGGER_EVENTS:
        return

    repository = get_repository()
    for kind, owner_name in owners(meta):
        logger.debug(f"{meta.get('name')} {event['type'].lower()}, reconciling {kind} {namespace}/{owner_name}")
        result = RECONCILERS[kind](repository, namespace, owner_name)
        for action in result.applied:
            logger.info(f"Applied {action.describe()}")
        if result.outcome == RETRY:
            logger.warning(f"Reconcile of {kind} {namespace}/{owner_name} deferred: {result.reason}")
            request_resync(repository, kind, namespace, owner_name, logger)
        elif result.outcome == FATAL:
            logger.error(f"Reconcile of {kind} {namespace}/{owner_name} failed: {result.reason}")
