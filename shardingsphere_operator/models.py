"""
Record types for the Proxy and ProxyConfig custom resources

Bodies arrive as the camelCase dicts kopf and the CustomObjectsApi hand out.
Parsing copies what the builder needs and rejects specs no object can be
derived from.
"""
import copy
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from .errors import ConstructionError
from .settings import CRD_API_VERSION, PROXY_CONFIG_KIND, PROXY_KIND

SERVICE_TYPE_CLUSTER_IP = 'ClusterIP'
SERVICE_TYPE_NODE_PORT = 'NodePort'
SERVICE_TYPES = (SERVICE_TYPE_CLUSTER_IP, SERVICE_TYPE_NODE_PORT)

# Driver versions are substituted into a shell script
_DRIVER_VERSION_RE = re.compile(r'^[0-9A-Za-z][0-9A-Za-z._-]*$')


def _metadata(body: Dict[str, Any]) -> Dict[str, Any]:
    meta = body.get('metadata') or {}
    if not meta.get('name'):
        raise ConstructionError("name is required", field='metadata.name')
    return meta


def _port(value: Any, field_name: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ConstructionError(f"must be an integer, got {value!r}", field=field_name)
    if not 0 < value <= 65535:
        raise ConstructionError(f"must be in 1..65535, got {value}", field=field_name)
    return value


def _optional_mapping(spec: Dict[str, Any], key: str) -> Optional[Dict[str, Any]]:
    value = spec.get(key)
    if value is None:
        return None
    if not isinstance(value, dict):
        raise ConstructionError("must be a mapping", field=f'spec.{key}')
    return copy.deepcopy(value)


@dataclass(frozen=True)
class ServiceType:
    """Exposure mode of the proxy Service"""
    type: str = SERVICE_TYPE_CLUSTER_IP
    node_port: Optional[int] = None

    @property
    def is_node_port(self) -> bool:
        return self.type == SERVICE_TYPE_NODE_PORT


@dataclass(frozen=True)
class MySQLDriver:
    """Presence enables the driver bootstrap init step"""
    version: str


@dataclass
class ProxySpec:
    """Desired state of one ShardingSphere-Proxy workload"""
    name: str
    namespace: str
    uid: str
    version: str
    port: int
    proxy_config_name: str
    replicas: int = 1
    service_type: ServiceType = field(default_factory=ServiceType)
    mysql_driver: Optional[MySQLDriver] = None
    resources: Optional[Dict[str, Any]] = None
    liveness_probe: Optional[Dict[str, Any]] = None
    readiness_probe: Optional[Dict[str, Any]] = None
    startup_probe: Optional[Dict[str, Any]] = None

    api_version = CRD_API_VERSION
    kind = PROXY_KIND

    @classmethod
    def from_resource(cls, body: Dict[str, Any]) -> 'ProxySpec':
        meta = _metadata(body)
        spec = body.get('spec') or {}

        for key in ('version', 'proxyConfigName'):
            if not spec.get(key):
                raise ConstructionError("is required", field=f'spec.{key}')
        if 'port' not in spec:
            raise ConstructionError("is required", field='spec.port')

        replicas = spec.get('replicas', 1)
        if isinstance(replicas, bool) or not isinstance(replicas, int) or replicas < 0:
            raise ConstructionError(f"must be a non-negative integer, got {replicas!r}",
                                    field='spec.replicas')

        service_type = ServiceType()
        raw_service_type = spec.get('serviceType')
        if raw_service_type:
            if not isinstance(raw_service_type, dict):
                raise ConstructionError("must be a mapping", field='spec.serviceType')
            kind = raw_service_type.get('type') or SERVICE_TYPE_CLUSTER_IP
            if kind not in SERVICE_TYPES:
                raise ConstructionError(f"unsupported service type {kind!r}",
                                        field='spec.serviceType.type')
            node_port = raw_service_type.get('nodePort')
            if node_port is not None:
                node_port = _port(node_port, 'spec.serviceType.nodePort')
            service_type = ServiceType(type=kind, node_port=node_port)

        mysql_driver = None
        raw_driver = spec.get('mySQLDriver')
        if raw_driver is not None:
            if not isinstance(raw_driver, dict):
                raise ConstructionError("must be a mapping", field='spec.mySQLDriver')
            version = str(raw_driver.get('version') or '')
            if not _DRIVER_VERSION_RE.match(version):
                raise ConstructionError(f"invalid driver version {version!r}",
                                        field='spec.mySQLDriver.version')
            mysql_driver = MySQLDriver(version=version)

        return cls(
            name=meta['name'],
            namespace=meta.get('namespace', 'default'),
            uid=meta.get('uid', ''),
            version=str(spec['version']),
            port=_port(spec['port'], 'spec.port'),
            proxy_config_name=spec['proxyConfigName'],
            replicas=replicas,
            service_type=service_type,
            mysql_driver=mysql_driver,
            resources=_optional_mapping(spec, 'resources'),
            liveness_probe=_optional_mapping(spec, 'livenessProbe'),
            readiness_probe=_optional_mapping(spec, 'readinessProbe'),
            startup_probe=_optional_mapping(spec, 'startupProbe'),
        )


@dataclass
class ProxyConfigSpec:
    """
    Desired server.yaml content for a proxy.

    ``config`` keeps the spec tree as written; user entries are composed
    into ``user@host:password`` strings only on a serialization copy.
    """
    name: str
    namespace: str
    uid: str
    config: Dict[str, Any]
    status_repository: str = ''

    api_version = CRD_API_VERSION
    kind = PROXY_CONFIG_KIND

    @classmethod
    def from_resource(cls, body: Dict[str, Any]) -> 'ProxyConfigSpec':
        meta = _metadata(body)
        spec = body.get('spec') or {}
        if not isinstance(spec, dict):
            raise ConstructionError("must be a mapping", field='spec')
        mode = _optional_mapping(spec, 'mode') or {}
        if mode.get('repository') is not None and not isinstance(mode['repository'], dict):
            raise ConstructionError("must be a mapping", field='spec.mode.repository')
        authority = _optional_mapping(spec, 'authority') or {}
        users = authority.get('users')
        if users is not None and not isinstance(users, list):
            raise ConstructionError("must be a list", field='spec.authority.users')
        status = body.get('status') or {}
        return cls(
            name=meta['name'],
            namespace=meta.get('namespace', 'default'),
            uid=meta.get('uid', ''),
            config=copy.deepcopy(spec),
            status_repository=status.get('metadataRepository') or '',
        )

    @property
    def repository_type(self) -> str:
        mode = self.config.get('mode') or {}
        repository = mode.get('repository') or {}
        return repository.get('type') or ''

    @property
    def users(self) -> List[Any]:
        authority = self.config.get('authority') or {}
        return list(authority.get('users') or [])
