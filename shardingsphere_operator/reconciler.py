"""
Convergence loop for Proxy and ProxyConfig records

Each entry point runs one pass for one named record: fetch it, fetch its
children, plan, apply. Failures come back as a ReconcileResult rather than
an exception so the caller can log and requeue uniformly.
"""
import logging
from dataclasses import dataclass
from typing import Optional, Sequence, Tuple

from .errors import ConstructionError, TransientRepositoryError
from .models import ProxyConfigSpec, ProxySpec
from .planner import CREATE, UPDATE, UPDATE_STATUS, Action, plan_proxy, plan_proxy_config
from .repository import ObjectRepository
from .settings import PROXY_CONFIG_KIND, PROXY_KIND, RECONCILE_RETRY_INTERVAL_SECONDS

logger = logging.getLogger(__name__)

SUCCESS = 'success'
RETRY = 'retry'
FATAL = 'fatal'


@dataclass(frozen=True)
class ReconcileResult:
    outcome: str
    reason: str = ''
    delay: Optional[int] = None
    applied: Tuple[Action, ...] = ()

    @classmethod
    def success(cls, applied: Sequence[Action] = (), reason: str = '') -> 'ReconcileResult':
        return cls(SUCCESS, reason=reason, applied=tuple(applied))

    @classmethod
    def retry(cls, reason: str, applied: Sequence[Action] = (),
              delay: int = RECONCILE_RETRY_INTERVAL_SECONDS) -> 'ReconcileResult':
        return cls(RETRY, reason=reason, delay=delay, applied=tuple(applied))

    @classmethod
    def fatal(cls, reason: str) -> 'ReconcileResult':
        return cls(FATAL, reason=reason)

    @property
    def ok(self) -> bool:
        return self.outcome == SUCCESS


def apply_actions(repository: ObjectRepository, actions: Sequence[Action],
                  retry_interval: int = RECONCILE_RETRY_INTERVAL_SECONDS) -> ReconcileResult:
    """Apply actions in order, stopping at the first failed write"""
    applied = []
    for action in actions:
        logger.debug("Applying %s", action.describe())
        try:
            if action.verb == CREATE:
                repository.create(action.kind, action.body)
            elif action.verb == UPDATE:
                repository.update(action.kind, action.body)
            elif action.verb == UPDATE_STATUS:
                repository.update_status(action.kind, action.namespace, action.name, action.body)
            else:
                raise ValueError(f"unknown action verb {action.verb!r}")
        except TransientRepositoryError as e:
            return ReconcileResult.retry(str(e), applied=applied, delay=retry_interval)
        applied.append(action)
    return ReconcileResult.success(applied)


def reconcile_proxy_config(repository: ObjectRepository, namespace: str, name: str,
                           retry_interval: int = RECONCILE_RETRY_INTERVAL_SECONDS) -> ReconcileResult:
    """One pass for a ProxyConfig: its ConfigMap, then its status"""
    try:
        record = repository.get(PROXY_CONFIG_KIND, namespace, name)
    except TransientRepositoryError as e:
        return ReconcileResult.retry(str(e), delay=retry_interval)
    if record is None:
        # Deleted; children go with it through their owner references
        return ReconcileResult.success(reason=f"{PROXY_CONFIG_KIND} {namespace}/{name} not found")

    try:
        proxy_config = ProxyConfigSpec.from_resource(record)
    except ConstructionError as e:
        return ReconcileResult.fatal(f"invalid {PROXY_CONFIG_KIND} {namespace}/{name}: {e}")

    try:
        observed = repository.get('ConfigMap', namespace, name)
    except TransientRepositoryError as e:
        return ReconcileResult.retry(str(e), delay=retry_interval)

    try:
        actions = plan_proxy_config(proxy_config, observed)
    except ConstructionError as e:
        return ReconcileResult.fatal(f"invalid {PROXY_CONFIG_KIND} {namespace}/{name}: {e}")
    return apply_actions(repository, actions, retry_interval)


def reconcile_proxy(repository: ObjectRepository, namespace: str, name: str,
                    retry_interval: int = RECONCILE_RETRY_INTERVAL_SECONDS) -> ReconcileResult:
    """One pass for a Proxy: its Deployment and Service"""
    try:
        record = repository.get(PROXY_KIND, namespace, name)
    except TransientRepositoryError as e:
        return ReconcileResult.retry(str(e), delay=retry_interval)
    if record is None:
        return ReconcileResult.success(reason=f"{PROXY_KIND} {namespace}/{name} not found")

    try:
        proxy = ProxySpec.from_resource(record)
    except ConstructionError as e:
        return ReconcileResult.fatal(f"invalid {PROXY_KIND} {namespace}/{name}: {e}")

    try:
        deployment = repository.get('Deployment', namespace, name)
        service = repository.get('Service', namespace, name)
    except TransientRepositoryError as e:
        return ReconcileResult.retry(str(e), delay=retry_interval)

    try:
        actions = plan_proxy(proxy, deployment, service)
    except ConstructionError as e:
        return ReconcileResult.fatal(f"invalid {PROXY_KIND} {namespace}/{name}: {e}")
    return apply_actions(repository, actions, retry_interval)
