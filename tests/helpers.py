"""
Test doubles and record factories shared by the tests
"""
import copy
import os
from typing import Any, Dict, List, Optional, Tuple

from rich.console import Console

from shardingsphere_operator.errors import TransientRepositoryError
from shardingsphere_operator.repository import ObjectRepository
from shardingsphere_operator.settings import CRD_API_VERSION

console = Console()

TEST_NAMESPACE = 'default'

# Namespace used by tests that talk to a live cluster
TEST_CLUSTER_NAMESPACE = os.getenv('TEST_NAMESPACE', 'shardingsphere-operator-test')


def log_check(criterion: str, expected: str, actual: str, *, source: Optional[str] = None) -> None:
    """Emit a standardized criterion/result line for verbose runs."""
    prefix = "[dim]"
    suffix = "[/dim]"
    console.print(f"{prefix}Criterion:{suffix} {criterion}")
    console.print(f"{prefix}Expected:{suffix} {expected}")
    if source:
        console.print(f"{prefix}Result:{suffix} {actual} (source: {source})")
    else:
        console.print(f"{prefix}Result:{suffix} {actual}")


def proxy_body(name: str = 'proxy-a', namespace: str = TEST_NAMESPACE, **spec: Any) -> Dict[str, Any]:
    body = {
        'apiVersion': CRD_API_VERSION,
        'kind': 'Proxy',
        'metadata': {'name': name, 'namespace': namespace, 'uid': f'uid-{name}'},
        'spec': {
            'version': '5.1.2',
            'replicas': 1,
            'port': 3307,
            'proxyConfigName': 'sharding-proxy',
            'serviceType': {'type': 'ClusterIP'},
        },
    }
    body['spec'].update(spec)
    return body


def proxy_config_body(name: str = 'sharding-proxy', namespace: str = TEST_NAMESPACE,
                      repository_type: str = 'ZooKeeper', status: Optional[Dict[str, Any]] = None,
                      users: Optional[List[Any]] = None) -> Dict[str, Any]:
    body = {
        'apiVersion': CRD_API_VERSION,
        'kind': 'ProxyConfig',
        'metadata': {'name': name, 'namespace': namespace, 'uid': f'uid-{name}'},
        'spec': {
            'mode': {
                'type': 'Cluster',
                'repository': {
                    'type': repository_type,
                    'props': {
                        'namespace': 'governance_ds',
                        'server-lists': 'zookeeper.default:2181',
                        'retryIntervalMilliseconds': 500,
                        'timeToLiveSeconds': 60,
                    },
                },
                'overwrite': True,
            },
            'authority': {
                'users': users if users is not None else [
                    {'user': 'root', 'hostName': '%', 'password': 'root'},
                    {'user': 'sharding', 'hostName': '127.0.0.1', 'password': 'sharding'},
                ],
                'privilege': {'type': 'ALL_PERMITTED'},
            },
            'props': {'proxy-frontend-database-protocol-type': 'MySQL'},
        },
    }
    if status is not None:
        body['status'] = status
    return body


_CANONICAL_QUANTITIES = {
    '0.2': '200m',
    '1.6Gi': '1717986918400m',
    '1': '1',
    '2Gi': '2Gi',
}


def _default_probe(probe: Optional[Dict[str, Any]]) -> None:
    if not probe:
        return
    probe.setdefault('timeoutSeconds', 1)
    probe.setdefault('periodSeconds', 10)
    probe.setdefault('successThreshold', 1)
    probe.setdefault('failureThreshold', 3)
    if 'httpGet' in probe:
        probe['httpGet'].setdefault('scheme', 'HTTP')
    if probe.get('initialDelaySeconds') == 0:
        del probe['initialDelaySeconds']


def _default_container(container: Dict[str, Any]) -> None:
    container.setdefault('terminationMessagePath', '/dev/termination-log')
    container.setdefault('terminationMessagePolicy', 'File')
    container.setdefault('imagePullPolicy', 'IfNotPresent')
    for port in container.get('ports') or []:
        port.setdefault('protocol', 'TCP')
    for key in ('livenessProbe', 'readinessProbe', 'startupProbe'):
        _default_probe(container.get(key))
    for section in (container.get('resources') or {}).values():
        for name, quantity in list(section.items()):
            section[name] = _CANONICAL_QUANTITIES.get(str(quantity), quantity)


def apply_server_defaults(kind: str, body: Dict[str, Any], node_port: int = 30000) -> Dict[str, Any]:
    """Fill in what the API server adds to a stored object"""
    body = copy.deepcopy(body)
    if kind == 'Deployment':
        spec = body['spec']
        spec.setdefault('revisionHistoryLimit', 10)
        spec.setdefault('progressDeadlineSeconds', 600)
        pod_spec = spec['template']['spec']
        pod_spec.setdefault('restartPolicy', 'Always')
        pod_spec.setdefault('dnsPolicy', 'ClusterFirst')
        for container in pod_spec.get('containers', []) + pod_spec.get('initContainers', []):
            _default_container(container)
        for volume in pod_spec.get('volumes') or []:
            if 'configMap' in volume:
                volume['configMap'].setdefault('defaultMode', 420)
        body['status'] = {'observedGeneration': 1}
    elif kind == 'Service':
        spec = body['spec']
        spec.setdefault('clusterIP', '10.96.0.10')
        spec.setdefault('sessionAffinity', 'None')
        for port in spec.get('ports') or []:
            port.setdefault('protocol', 'TCP')
            if spec.get('type') == 'NodePort':
                port.setdefault('nodePort', node_port)
    return body


class FakeRepository(ObjectRepository):
    """
    In-memory ObjectRepository with optimistic concurrency.

    Records every write in ``writes`` as (verb, kind, namespace, name). Calls
    listed in ``failures`` as (verb, kind) raise TransientRepositoryError
    until removed.
    """

    def __init__(self, server_defaults: bool = True):
        self.objects: Dict[Tuple[str, str, str], Dict[str, Any]] = {}
        self.writes: List[Tuple[str, str, str, str]] = []
        self.failures = set()
        self.server_defaults = server_defaults
        self._version = 0

    def _next_version(self) -> str:
        self._version += 1
        return str(self._version)

    def _fail(self, verb: str, kind: str, namespace: str, name: str) -> None:
        if (verb, kind) in self.failures:
            raise TransientRepositoryError(verb, kind, namespace, name, 'injected failure', status=503)

    def put(self, kind: str, body: Dict[str, Any]) -> Dict[str, Any]:
        """Seed an object without recording a write"""
        body = copy.deepcopy(body)
        meta = body.setdefault('metadata', {})
        meta['resourceVersion'] = self._next_version()
        self.objects[(kind, meta['namespace'], meta['name'])] = body
        return copy.deepcopy(body)

    def stored(self, kind: str, namespace: str, name: str) -> Optional[Dict[str, Any]]:
        return copy.deepcopy(self.objects.get((kind, namespace, name)))

    def writes_of(self, verb: str, kind: Optional[str] = None) -> List[Tuple[str, str, str, str]]:
        return [w for w in self.writes if w[0] == verb and (kind is None or w[1] == kind)]

    def get(self, kind, namespace, name):
        self._fail('get', kind, namespace, name)
        return self.stored(kind, namespace, name)

    def create(self, kind, body):
        meta = body['metadata']
        self._fail('create', kind, meta['namespace'], meta['name'])
        key = (kind, meta['namespace'], meta['name'])
        if key in self.objects:
            raise TransientRepositoryError('create', kind, meta['namespace'], meta['name'],
                                           'AlreadyExists', status=409)
        self.writes.append(('create', kind, meta['namespace'], meta['name']))
        if self.server_defaults:
            body = apply_server_defaults(kind, body)
        return self.put(kind, body)

    def update(self, kind, body):
        meta = body['metadata']
        self._fail('update', kind, meta['namespace'], meta['name'])
        key = (kind, meta['namespace'], meta['name'])
        current = self.objects.get(key)
        if current is None:
            raise TransientRepositoryError('update', kind, meta['namespace'], meta['name'],
                                           'NotFound', status=404)
        expected = meta.get('resourceVersion')
        if expected and expected != current['metadata']['resourceVersion']:
            raise TransientRepositoryError('update', kind, meta['namespace'], meta['name'],
                                           'Conflict', status=409)
        self.writes.append(('update', kind, meta['namespace'], meta['name']))
        if self.server_defaults:
            body = apply_server_defaults(kind, body)
        return self.put(kind, body)

    def update_status(self, kind, namespace, name, status):
        self._fail('update_status', kind, namespace, name)
        current = self.objects.get((kind, namespace, name))
        if current is None:
            raise TransientRepositoryError('update_status', kind, namespace, name,
                                           'NotFound', status=404)
        self.writes.append(('update_status', kind, namespace, name))
        current.setdefault('status', {}).update(copy.deepcopy(status))
        current['metadata']['resourceVersion'] = self._next_version()
        return copy.deepcopy(current)

    def annotate(self, kind, namespace, name, annotations):
        self._fail('annotate', kind, namespace, name)
        current = self.objects.get((kind, namespace, name))
        if current is None:
            raise TransientRepositoryError('annotate', kind, namespace, name,
                                           'NotFound', status=404)
        self.writes.append(('annotate', kind, namespace, name))
        current['metadata'].setdefault('annotations', {}).update(annotations)
        current['metadata']['resourceVersion'] = self._next_version()
        return copy.deepcopy(current)
