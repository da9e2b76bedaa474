"""
Object repository the convergence loop reads and writes through

Objects are addressed by (kind, namespace, name) and exchanged as camelCase
dicts. ``get`` returns None when the object does not exist; every other
failure surfaces as TransientRepositoryError.
"""
import abc
import logging
from typing import Any, Callable, Dict, Optional

import urllib3
from kubernetes import client
from kubernetes.client.rest import ApiException

from .errors import TransientRepositoryError
from .settings import (
    CRD_GROUP,
    CRD_VERSION,
    PROXY_CONFIG_KIND,
    PROXY_CONFIG_PLURAL,
    PROXY_KIND,
    PROXY_PLURAL,
)

logger = logging.getLogger(__name__)

CUSTOM_PLURALS = {
    PROXY_KIND: PROXY_PLURAL,
    PROXY_CONFIG_KIND: PROXY_CONFIG_PLURAL,
}

# kind -> (API attribute, method suffix)
BUILTIN_KINDS = {
    'Deployment': ('apps_v1', 'deployment'),
    'Service': ('core_v1', 'service'),
    'ConfigMap': ('core_v1', 'config_map'),
}


class ObjectRepository(abc.ABC):
    """Key-addressed object store with optimistic concurrency"""

    @abc.abstractmethod
    def get(self, kind: str, namespace: str, name: str) -> Optional[Dict[str, Any]]:
        """Return the stored object, or None if it does not exist"""

    @abc.abstractmethod
    def create(self, kind: str, body: Dict[str, Any]) -> Dict[str, Any]:
        """Create an object; fails if one with the same key exists"""

    @abc.abstractmethod
    def update(self, kind: str, body: Dict[str, Any]) -> Dict[str, Any]:
        """Replace an object; fails on a stale resourceVersion"""

    @abc.abstractmethod
    def update_status(self, kind: str, namespace: str, name: str,
                      status: Dict[str, Any]) -> Dict[str, Any]:
        """Merge ``status`` into the status sub-record of a custom resource"""

    @abc.abstractmethod
    def annotate(self, kind: str, namespace: str, name: str,
                 annotations: Dict[str, str]) -> Dict[str, Any]:
        """Merge ``annotations`` into the object's metadata"""


class KubernetesRepository(ObjectRepository):
    """ObjectRepository backed by the Kubernetes API"""

    def __init__(self, api_client: Optional[client.ApiClient] = None):
        self.api_client = api_client or client.ApiClient()
        self.core_v1 = client.CoreV1Api(self.api_client)
        self.apps_v1 = client.AppsV1Api(self.api_client)
        self.custom_objects = client.CustomObjectsApi(self.api_client)

    def _builtin(self, kind: str, verb: str) -> Callable[..., Any]:
        api, suffix = BUILTIN_KINDS[kind]
        return getattr(getattr(self, api), f"{verb}_namespaced_{suffix}")

    def _to_dict(self, obj: Any) -> Dict[str, Any]:
        if isinstance(obj, dict):
            return obj
        return self.api_client.sanitize_for_serialization(obj)

    def _call(self, verb: str, kind: str, namespace: str, name: str,
              fn: Callable[..., Any], /, **kwargs) -> Any:
        logger.debug("%s %s %s/%s", verb, kind, namespace, name)
        try:
            return fn(**kwargs)
        except ApiException as e:
            raise TransientRepositoryError(verb, kind, namespace, name,
                                           e.reason or str(e), status=e.status) from e
        except urllib3.exceptions.HTTPError as e:
            raise TransientRepositoryError(verb, kind, namespace, name, str(e)) from e

    def _custom_kwargs(self, kind: str, namespace: str) -> Dict[str, Any]:
        return {
            'group': CRD_GROUP,
            'version': CRD_VERSION,
            'namespace': namespace,
            'plural': CUSTOM_PLURALS[kind],
        }

    def get(self, kind: str, namespace: str, name: str) -> Optional[Dict[str, Any]]:
        if kind in CUSTOM_PLURALS:
            fn = self.custom_objects.get_namespaced_custom_object
            kwargs = dict(self._custom_kwargs(kind, namespace), name=name)
        else:
            fn = self._builtin(kind, 'read')
            kwargs = {'name': name, 'namespace': namespace}
        try:
            return self._to_dict(self._call('get', kind, namespace, name, fn, **kwargs))
        except TransientRepositoryError as e:
            if e.status == 404:
                return None
            raise

    def create(self, kind: str, body: Dict[str, Any]) -> Dict[str, Any]:
        meta = body['metadata']
        created = self._call('create', kind, meta['namespace'], meta['name'],
                             self._builtin(kind, 'create'), namespace=meta['namespace'], body=body)
        return self._to_dict(created)

    def update(self, kind: str, body: Dict[str, Any]) -> Dict[str, Any]:
        meta = body['metadata']
        replaced = self._call('update', kind, meta['namespace'], meta['name'],
                              self._builtin(kind, 'replace'), name=meta['name'],
                              namespace=meta['namespace'], body=body)
        return self._to_dict(replaced)

    def update_status(self, kind: str, namespace: str, name: str,
                      status: Dict[str, Any]) -> Dict[str, Any]:
        patched = self._call('update_status', kind, namespace, name,
                             self.custom_objects.patch_namespaced_custom_object_status,
                             name=name, body={'status': status},
                             **self._custom_kwargs(kind, namespace))
        return self._to_dict(patched)

    def annotate(self, kind: str, namespace: str, name: str,
                 annotations: Dict[str, str]) -> Dict[str, Any]:
        body = {'metadata': {'annotations': annotations}}
        if kind in CUSTOM_PLURALS:
            patched = self._call('annotate', kind, namespace, name,
                                 self.custom_objects.patch_namespaced_custom_object,
                                 name=name, body=body, **self._custom_kwargs(kind, namespace))
        else:
            patched = self._call('annotate', kind, namespace, name, self._builtin(kind, 'patch'),
                                 name=name, namespace=namespace, body=body)
        return self._to_dict(patched)
