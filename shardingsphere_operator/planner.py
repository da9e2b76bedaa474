"""
Pure planning of corrective actions

Given a record and what the store currently holds for it, decide which
creates and updates bring the cluster in line. Nothing here talks to the
store; the reconciler applies the returned actions in order.
"""
import copy
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from .diff import config_data_equal, service_diff, workload_diff
from .injector import PROXY_CONTAINER_NAME
from .models import ProxyConfigSpec, ProxySpec
from .resources import construct_configmap, construct_deployment, construct_service

CREATE = 'create'
UPDATE = 'update'
UPDATE_STATUS = 'update_status'


@dataclass(frozen=True)
class Action:
    verb: str
    kind: str
    namespace: str
    name: str
    body: Dict[str, Any] = field(default_factory=dict, compare=False)
    reason: str = ''

    def describe(self) -> str:
        text = f"{self.verb} {self.kind} {self.namespace}/{self.name}"
        return f"{text} ({self.reason})" if self.reason else text


def _create(body: Dict[str, Any]) -> Action:
    meta = body['metadata']
    return Action(CREATE, body['kind'], meta['namespace'], meta['name'], body, reason='absent')


def _update(body: Dict[str, Any], changed: List[str]) -> Action:
    meta = body['metadata']
    return Action(UPDATE, body['kind'], meta['namespace'], meta['name'], body,
                  reason=f"changed: {', '.join(changed)}")


def status_is_stale(proxy_config: ProxyConfigSpec) -> bool:
    return proxy_config.status_repository != proxy_config.repository_type


def updated_configmap(observed: Dict[str, Any], desired: Dict[str, Any]) -> Dict[str, Any]:
    body = copy.deepcopy(observed)
    body['data'] = copy.deepcopy(desired['data'])
    body.setdefault('apiVersion', desired['apiVersion'])
    body.setdefault('kind', desired['kind'])
    return body


def plan_proxy_config(proxy_config: ProxyConfigSpec,
                      observed_configmap: Optional[Dict[str, Any]]) -> List[Action]:
    """
    Actions converging the ConfigMap and status of one ProxyConfig.

    The status write follows the data write so a retried trigger re-checks
    both. Status is only written when it differs from the declared
    repository type, including right after a create. An undeclared type
    matches an empty status, so neither is ever written.
    """
    desired = construct_configmap(proxy_config)
    actions = []
    if observed_configmap is None:
        actions.append(_create(desired))
    elif not config_data_equal(desired.get('data'), observed_configmap.get('data')):
        actions.append(_update(updated_configmap(observed_configmap, desired), ['data']))

    if status_is_stale(proxy_config):
        actions.append(Action(
            UPDATE_STATUS, proxy_config.kind, proxy_config.namespace, proxy_config.name,
            {'metadataRepository': proxy_config.repository_type},
            reason=f"metadataRepository {proxy_config.status_repository!r} -> "
                   f"{proxy_config.repository_type!r}",
        ))
    return actions


def _container(pod_spec: Dict[str, Any]) -> Dict[str, Any]:
    for container in pod_spec.get('containers') or []:
        if container.get('name') == PROXY_CONTAINER_NAME:
            return container
    return pod_spec['containers'][0]


def updated_deployment(observed: Dict[str, Any], desired: Dict[str, Any]) -> Dict[str, Any]:
    """
    Observed Deployment with every builder-owned field taken from desired.

    Server-populated fields (resourceVersion, status, defaults of fields we
    do not own) are kept so the update is an optimistic-concurrency write.
    """
    body = copy.deepcopy(observed)
    body.setdefault('apiVersion', desired['apiVersion'])
    body.setdefault('kind', desired['kind'])
    spec = body.setdefault('spec', {})
    want = desired['spec']
    spec['strategy'] = copy.deepcopy(want['strategy'])
    spec['replicas'] = want['replicas']

    pod_spec = spec['template']['spec']
    want_pod = want['template']['spec']
    container = _container(pod_spec)
    want_container = _container(want_pod)
    for key in ('image', 'ports', 'env', 'volumeMounts', 'resources',
                'livenessProbe', 'readinessProbe', 'startupProbe'):
        container[key] = copy.deepcopy(want_container[key])

    pod_spec['volumes'] = copy.deepcopy(want_pod['volumes'])
    if want_pod.get('initContainers'):
        pod_spec['initContainers'] = copy.deepcopy(want_pod['initContainers'])
    else:
        pod_spec.pop('initContainers', None)
    return body


def updated_service(observed: Dict[str, Any], desired: Dict[str, Any]) -> Dict[str, Any]:
    """Observed Service with type, selector and ports taken from desired"""
    body = copy.deepcopy(observed)
    body.setdefault('apiVersion', desired['apiVersion'])
    body.setdefault('kind', desired['kind'])
    spec = body.setdefault('spec', {})
    want = desired['spec']
    ports = copy.deepcopy(want['ports'])
    if want['type'] == 'NodePort':
        # Keep an allocated node port unless a fixed one is requested
        for port, have in zip(ports, spec.get('ports') or []):
            if 'nodePort' not in port and have.get('nodePort'):
                port['nodePort'] = have['nodePort']
    spec['type'] = want['type']
    spec['selector'] = copy.deepcopy(want['selector'])
    spec['ports'] = ports
    return body


def plan_proxy(proxy: ProxySpec,
               observed_deployment: Optional[Dict[str, Any]],
               observed_service: Optional[Dict[str, Any]]) -> List[Action]:
    """Actions converging the Deployment and Service of one Proxy"""
    actions = []

    desired_deployment = construct_deployment(proxy)
    if observed_deployment is None:
        actions.append(_create(desired_deployment))
    else:
        changed = workload_diff(desired_deployment, observed_deployment)
        if changed:
            actions.append(_update(updated_deployment(observed_deployment, desired_deployment), changed))

    desired_service = construct_service(proxy)
    if observed_service is None:
        actions.append(_create(desired_service))
    else:
        changed = service_diff(desired_service, observed_service)
        if changed:
            actions.append(_update(updated_service(observed_service, desired_service), changed))
    return actions
