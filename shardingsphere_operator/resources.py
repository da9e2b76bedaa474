"""
Builders for the objects derived from Proxy and ProxyConfig records

All builders are pure: same record in, identical manifest out. Manifests are
plain camelCase dicts, the shape the Kubernetes API accepts and returns.
"""
import copy
from typing import Any, Dict, List, Union

import yaml

from .errors import ConstructionError
from .injector import PROXY_CONTAINER_NAME, inject_optional_parameters
from .models import ProxyConfigSpec, ProxySpec
from .settings import MANAGED_BY_LABEL, MANAGED_BY_VALUE, PROXY_IMAGE

CONFIG_VOLUME_NAME = 'config'
CONFIG_MOUNT_PATH = '/opt/shardingsphere-proxy/conf'
CONFIG_FILE_NAME = 'server.yaml'
SERVICE_PORT_NAME = 'proxy-port'
SELECTOR_LABEL = 'apps'
DEFAULT_USER_HOST = '%'


def owner_reference(record: Union[ProxySpec, ProxyConfigSpec]) -> Dict[str, Any]:
    return {
        'apiVersion': record.api_version,
        'kind': record.kind,
        'name': record.name,
        'uid': record.uid,
        'controller': True,
        'blockOwnerDeletion': True,
    }


def object_metadata(record: Union[ProxySpec, ProxyConfigSpec]) -> Dict[str, Any]:
    return {
        'name': record.name,
        'namespace': record.namespace,
        'labels': {MANAGED_BY_LABEL: MANAGED_BY_VALUE},
        'ownerReferences': [owner_reference(record)],
    }


def proxy_image(proxy: ProxySpec) -> str:
    return f"{PROXY_IMAGE}:{proxy.version}"


def construct_deployment(proxy: ProxySpec) -> Dict[str, Any]:
    """Deployment running the proxy, with features injected per spec"""
    labels = {SELECTOR_LABEL: proxy.name}
    deployment = {
        'apiVersion': 'apps/v1',
        'kind': 'Deployment',
        'metadata': object_metadata(proxy),
        'spec': {
            # Mixed versions must never share one ConfigMap
            'strategy': {'type': 'Recreate'},
            'replicas': proxy.replicas,
            'selector': {'matchLabels': dict(labels)},
            'template': {
                'metadata': {'labels': dict(labels)},
                'spec': {
                    'containers': [
                        {
                            'name': PROXY_CONTAINER_NAME,
                            'image': proxy_image(proxy),
                            'imagePullPolicy': 'IfNotPresent',
                            'ports': [{'containerPort': proxy.port}],
                            'env': [{'name': 'PORT', 'value': str(proxy.port)}],
                            'volumeMounts': [
                                {'name': CONFIG_VOLUME_NAME, 'mountPath': CONFIG_MOUNT_PATH},
                            ],
                        },
                    ],
                    'volumes': [
                        {
                            'name': CONFIG_VOLUME_NAME,
                            'configMap': {'name': proxy.proxy_config_name},
                        },
                    ],
                },
            },
        },
    }
    return inject_optional_parameters(deployment, proxy)


def construct_service(proxy: ProxySpec) -> Dict[str, Any]:
    """
    Service exposing the proxy port.

    ``nodePort`` is set only in NodePort mode with a fixed port. It is left
    out otherwise, never zeroed, since zero asks the API to allocate one.
    """
    port = {
        'name': SERVICE_PORT_NAME,
        'port': proxy.port,
        'targetPort': proxy.port,
    }
    if proxy.service_type.is_node_port and proxy.service_type.node_port is not None:
        port['nodePort'] = proxy.service_type.node_port
    return {
        'apiVersion': 'v1',
        'kind': 'Service',
        'metadata': object_metadata(proxy),
        'spec': {
            'selector': {SELECTOR_LABEL: proxy.name},
            'type': proxy.service_type.type,
            'ports': [port],
        },
    }


def compose_user(user: Any) -> Any:
    """
    Render one authority user as ``user@host:password``.

    Entries that are already composed strings pass through untouched, so
    composing twice never appends a second host/password suffix.
    """
    if not isinstance(user, dict):
        return user
    if not user.get('user'):
        raise ConstructionError("user entry has no user name", field='spec.authority.users')
    host = user.get('hostName') or DEFAULT_USER_HOST
    return f"{user['user']}@{host}:{user.get('password', '')}"


def compose_users(users: List[Any]) -> List[Any]:
    return [compose_user(u) for u in users]


def serializable_config(proxy_config: ProxyConfigSpec) -> Dict[str, Any]:
    """Copy of the config tree with user entries composed; the record is untouched"""
    config = copy.deepcopy(proxy_config.config)
    authority = config.get('authority')
    if isinstance(authority, dict) and authority.get('users'):
        authority['users'] = compose_users(authority['users'])
    return {key: value for key, value in config.items() if value is not None}


def to_yaml(proxy_config: ProxyConfigSpec) -> str:
    return yaml.safe_dump(serializable_config(proxy_config),
                          default_flow_style=False, sort_keys=False)


def construct_configmap(proxy_config: ProxyConfigSpec) -> Dict[str, Any]:
    """ConfigMap holding the rendered server.yaml"""
    return {
        'apiVersion': 'v1',
        'kind': 'ConfigMap',
        'metadata': object_metadata(proxy_config),
        'data': {CONFIG_FILE_NAME: to_yaml(proxy_config)},
    }
