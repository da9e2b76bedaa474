"""
Equality policy deciding whether an observed object needs an update

ConfigMap data is compared structurally: each value is decoded as YAML and
the resulting mappings are compared, so formatting and key order in the
stored text never cause an update. Deployments and Services are compared
field by field on what the builder sets, tolerating the defaults the API
server fills in (protocols, allocated node ports). Probes and resources are
compared exactly, after filling the probe defaults the API server applies
and parsing quantities, so "0.2" equals "200m" but a key dropped from an
override is a difference.
"""
import copy
from typing import Any, Dict, List, Optional

import yaml
from kubernetes.utils import parse_quantity

from .injector import PROXY_CONTAINER_NAME

PROBE_KEYS = ('livenessProbe', 'readinessProbe', 'startupProbe')

# Filled in by the API server when a probe leaves them unset
PROBE_DEFAULTS = {
    'timeoutSeconds': 1,
    'periodSeconds': 10,
    'successThreshold': 1,
    'failureThreshold': 3,
}


def config_data_equal(desired: Optional[Dict[str, str]], observed: Optional[Dict[str, str]]) -> bool:
    desired = desired or {}
    observed = observed or {}
    if set(desired) != set(observed):
        return False
    for key, text in desired.items():
        try:
            if yaml.safe_load(text) != yaml.safe_load(observed[key]):
                return False
        except yaml.YAMLError:
            return False
    return True


def contains(desired: Any, observed: Any) -> bool:
    """True when every value set in ``desired`` is present and equal in ``observed``"""
    if isinstance(desired, dict):
        if not isinstance(observed, dict):
            return False
        return all(
            contains(value, observed.get(key)) if value is not None else observed.get(key) is None
            for key, value in desired.items()
        )
    if isinstance(desired, list):
        if not isinstance(observed, list) or len(desired) != len(observed):
            return False
        return all(contains(d, o) for d, o in zip(desired, observed))
    return desired == observed


def _quantity(value: Any) -> Any:
    try:
        return parse_quantity(value)
    except (ValueError, TypeError, ArithmeticError):
        return value


def normalize_resources(resources: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    """Resource sections with parsed quantities; empty sections dropped"""
    normalized = {}
    for section, values in (resources or {}).items():
        if isinstance(values, dict):
            if values:
                normalized[section] = {name: _quantity(q) for name, q in values.items()}
        elif values is not None:
            normalized[section] = values
    return normalized


def normalize_probe(probe: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    """Probe as the API server stores it: defaults filled, zero delay omitted"""
    if probe is None:
        return None
    normalized = dict(PROBE_DEFAULTS)
    normalized.update(copy.deepcopy(probe))
    if not normalized.get('initialDelaySeconds'):
        normalized.pop('initialDelaySeconds', None)
    http_get = normalized.get('httpGet')
    if isinstance(http_get, dict):
        http_get.setdefault('scheme', 'HTTP')
    return normalized


def _proxy_container(deployment: Dict[str, Any]) -> Dict[str, Any]:
    containers = deployment.get('spec', {}).get('template', {}).get('spec', {}).get('containers') or []
    for container in containers:
        if container.get('name') == PROXY_CONTAINER_NAME:
            return container
    return containers[0] if containers else {}


def workload_fields(deployment: Dict[str, Any]) -> Dict[str, Any]:
    """The fields of a Deployment the builder owns, probes and resources aside"""
    spec = deployment.get('spec') or {}
    pod_spec = (spec.get('template') or {}).get('spec') or {}
    container = _proxy_container(deployment)
    return {
        'strategy': (spec.get('strategy') or {}).get('type'),
        'replicas': spec.get('replicas'),
        'image': container.get('image'),
        'ports': [p.get('containerPort') for p in container.get('ports') or []],
        'env': container.get('env') or [],
        'volumeMounts': container.get('volumeMounts') or [],
        'volumes': pod_spec.get('volumes') or [],
        'initContainers': pod_spec.get('initContainers') or [],
    }


def workload_diff(desired: Dict[str, Any], observed: Dict[str, Any]) -> List[str]:
    """Names of the owned Deployment fields that differ, empty when in sync"""
    want = workload_fields(desired)
    have = workload_fields(observed)
    changed = [
        name for name, value in want.items()
        if not (contains(value, have[name]) if value is not None else have[name] is None)
    ]

    want_container = _proxy_container(desired)
    have_container = _proxy_container(observed)
    for key in PROBE_KEYS:
        if normalize_probe(want_container.get(key)) != normalize_probe(have_container.get(key)):
            changed.append(key)
    if normalize_resources(want_container.get('resources')) \
            != normalize_resources(have_container.get('resources')):
        changed.append('resources')
    return changed


def service_diff(desired: Dict[str, Any], observed: Dict[str, Any]) -> List[str]:
    """Names of the owned Service fields that differ, empty when in sync"""
    want = desired.get('spec') or {}
    have = observed.get('spec') or {}
    changed = []
    if want.get('type') != have.get('type'):
        changed.append('type')
    if want.get('selector') != have.get('selector'):
        changed.append('selector')
    if not contains(want.get('ports'), have.get('ports')):
        changed.append('ports')
    return changed
