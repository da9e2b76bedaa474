"""
Optional features injected into a proxy Deployment manifest

Every function here mutates the manifest dict it is given and nothing else.
"""
import copy
from string import Template
from typing import Any, Dict, Optional

from .errors import ConstructionError
from .models import MySQLDriver, ProxySpec
from .settings import DRIVER_INIT_IMAGE, MAVEN_REPOSITORY_URL

PROXY_CONTAINER_NAME = 'proxy'
DRIVER_INIT_CONTAINER_NAME = 'download-mysql-connect'
DRIVER_VOLUME_NAME = 'mysql-connect-jar'
EXT_LIB_PATH = '/opt/shardingsphere-proxy/ext-lib'

DEFAULT_CPU_REQUEST = '0.2'
DEFAULT_MEMORY_REQUEST = '1.6Gi'
PROBE_PERIOD_SECONDS = 10
STARTUP_PROBE_PERIOD_SECONDS = 5
STARTUP_PROBE_FAILURE_THRESHOLD = 12

_DRIVER_SCRIPT = Template(
    'wget ${repository}/mysql/mysql-connector-java/${version}/mysql-connector-java-${version}.jar;\n'
    'wget ${repository}/mysql/mysql-connector-java/${version}/mysql-connector-java-${version}.jar.md5;\n'
    "if [ $$(md5sum /mysql-connector-java-${version}.jar | cut -d ' ' -f1) = "
    '$$(cat /mysql-connector-java-${version}.jar.md5) ];\n'
    'then echo success;\n'
    'else echo failed;exit 1;fi;'
    'mv /mysql-connector-java-${version}.jar ${ext_lib}'
)


def driver_bootstrap_script(driver: MySQLDriver) -> str:
    """
    Shell script that downloads the connector jar and its md5 file, checks
    the digest, and exits 1 on mismatch so the pod never starts.
    """
    try:
        return _DRIVER_SCRIPT.substitute(
            repository=MAVEN_REPOSITORY_URL,
            version=driver.version,
            ext_lib=EXT_LIB_PATH,
        )
    except (KeyError, ValueError) as e:
        raise ConstructionError(f"cannot render driver bootstrap script: {e}",
                                field='spec.mySQLDriver') from e


def driver_init_container(driver: MySQLDriver) -> Dict[str, Any]:
    return {
        'name': DRIVER_INIT_CONTAINER_NAME,
        'image': DRIVER_INIT_IMAGE,
        'command': ['/bin/sh', '-c', driver_bootstrap_script(driver)],
        'volumeMounts': [
            {'name': DRIVER_VOLUME_NAME, 'mountPath': EXT_LIB_PATH},
        ],
    }


def _pod_spec(deployment: Dict[str, Any]) -> Dict[str, Any]:
    return deployment['spec']['template']['spec']


def _proxy_container(deployment: Dict[str, Any]) -> Dict[str, Any]:
    return _pod_spec(deployment)['containers'][0]


def inject_driver_bootstrap(deployment: Dict[str, Any], driver: MySQLDriver) -> None:
    """
    Add the driver download init step, or replace the existing one.

    An existing init step is rebuilt for the current driver version instead
    of appending a second one. The shared emptyDir volume and the proxy
    container's mount of it are added only if missing.
    """
    pod_spec = _pod_spec(deployment)
    pod_spec['initContainers'] = [driver_init_container(driver)]

    container = _proxy_container(deployment)
    mounts = container.setdefault('volumeMounts', [])
    if not any(m.get('name') == DRIVER_VOLUME_NAME for m in mounts):
        mounts.append({'name': DRIVER_VOLUME_NAME, 'mountPath': EXT_LIB_PATH})

    volumes = pod_spec.setdefault('volumes', [])
    if not any(v.get('name') == DRIVER_VOLUME_NAME for v in volumes):
        volumes.append({'name': DRIVER_VOLUME_NAME, 'emptyDir': {}})


def remove_driver_bootstrap(deployment: Dict[str, Any]) -> None:
    """Drop the init step together with its volume and mount"""
    pod_spec = _pod_spec(deployment)
    pod_spec.pop('initContainers', None)
    container = _proxy_container(deployment)
    container['volumeMounts'] = [
        m for m in container.get('volumeMounts', []) if m.get('name') != DRIVER_VOLUME_NAME
    ]
    pod_spec['volumes'] = [
        v for v in pod_spec.get('volumes', []) if v.get('name') != DRIVER_VOLUME_NAME
    ]


def default_resources() -> Dict[str, Any]:
    return {
        'requests': {
            'cpu': DEFAULT_CPU_REQUEST,
            'memory': DEFAULT_MEMORY_REQUEST,
        },
    }


def tcp_probe(port: int, period_seconds: int,
              failure_threshold: Optional[int] = None) -> Dict[str, Any]:
    probe = {
        'tcpSocket': {'port': port},
        'periodSeconds': period_seconds,
    }
    if failure_threshold is not None:
        probe['failureThreshold'] = failure_threshold
    return probe


def inject_optional_parameters(deployment: Dict[str, Any], proxy: ProxySpec) -> Dict[str, Any]:
    """
    Apply the driver step and the resource/probe overrides or their defaults.

    Overrides are copied verbatim; anything unset gets a conservative default.
    """
    if proxy.mysql_driver is not None:
        inject_driver_bootstrap(deployment, proxy.mysql_driver)

    container = _proxy_container(deployment)
    container['resources'] = copy.deepcopy(proxy.resources) \
        if proxy.resources is not None else default_resources()
    container['livenessProbe'] = copy.deepcopy(proxy.liveness_probe) \
        if proxy.liveness_probe is not None else tcp_probe(proxy.port, PROBE_PERIOD_SECONDS)
    container['readinessProbe'] = copy.deepcopy(proxy.readiness_probe) \
        if proxy.readiness_probe is not None else tcp_probe(proxy.port, PROBE_PERIOD_SECONDS)
    container['startupProbe'] = copy.deepcopy(proxy.startup_probe) \
        if proxy.startup_probe is not None else tcp_probe(
            proxy.port, STARTUP_PROBE_PERIOD_SECONDS, STARTUP_PROBE_FAILURE_THRESHOLD)
    return deployment
