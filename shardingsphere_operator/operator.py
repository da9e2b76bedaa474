#!/usr/bin/env python3
"""
ShardingSphere Proxy Operator - Manages Proxy and ProxyConfig custom resources
Run with: kopf run -m shardingsphere_operator.operator
"""
import logging

import kopf

from .handlers import (
    on_child_event,
    on_proxy_config_reconcile,
    on_proxy_config_resync,
    on_proxy_reconcile,
    on_proxy_resync,
    on_startup,
)
from .settings import (
    CRD_GROUP,
    CRD_VERSION,
    LOG_LEVEL,
    MANAGED_BY_LABEL,
    MANAGED_BY_VALUE,
    PROXY_CONFIG_PLURAL,
    PROXY_PLURAL,
    RESYNC_INTERVAL_SECONDS,
    WATCH_NAMESPACE,
)

# Configure logging
logging.basicConfig(
    level=getattr(logging, LOG_LEVEL, logging.INFO),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

MANAGED = {MANAGED_BY_LABEL: MANAGED_BY_VALUE}


# Register handlers
@kopf.on.startup()
def startup_fn(settings: kopf.OperatorSettings, **kwargs):
    """Configure operator settings on startup"""
    on_startup(settings, **kwargs)


@kopf.on.create(CRD_GROUP, CRD_VERSION, PROXY_CONFIG_PLURAL)
@kopf.on.update(CRD_GROUP, CRD_VERSION, PROXY_CONFIG_PLURAL)
@kopf.on.resume(CRD_GROUP, CRD_VERSION, PROXY_CONFIG_PLURAL)
def proxy_config_fn(name, namespace, logger, **kwargs):
    """Handle ProxyConfig creation, updates and operator restarts"""
    return on_proxy_config_reconcile(name=name, namespace=namespace, logger=logger, **kwargs)


@kopf.on.create(CRD_GROUP, CRD_VERSION, PROXY_PLURAL)
@kopf.on.update(CRD_GROUP, CRD_VERSION, PROXY_PLURAL)
@kopf.on.resume(CRD_GROUP, CRD_VERSION, PROXY_PLURAL)
def proxy_fn(name, namespace, logger, **kwargs):
    """Handle Proxy creation, updates and operator restarts"""
    return on_proxy_reconcile(name=name, namespace=namespace, logger=logger, **kwargs)


@kopf.timer(CRD_GROUP, CRD_VERSION, PROXY_CONFIG_PLURAL, interval=RESYNC_INTERVAL_SECONDS)
def proxy_config_resync_fn(name, namespace, logger, **kwargs):
    """Periodically re-run the ProxyConfig pass"""
    on_proxy_config_resync(name=name, namespace=namespace, logger=logger, **kwargs)


@kopf.timer(CRD_GROUP, CRD_VERSION, PROXY_PLURAL, interval=RESYNC_INTERVAL_SECONDS)
def proxy_resync_fn(name, namespace, logger, **kwargs):
    """Periodically re-run the Proxy pass"""
    on_proxy_resync(name=name, namespace=namespace, logger=logger, **kwargs)


@kopf.on.event('apps', 'v1', 'deployments', labels=MANAGED)
@kopf.on.event('services', labels=MANAGED)
@kopf.on.event('configmaps', labels=MANAGED)
def child_fn(event, meta, namespace, logger, **kwargs):
    """Handle changes to derived objects"""
    on_child_event(event=event, meta=meta, namespace=namespace, logger=logger, **kwargs)


def main():
    logger.info("Starting ShardingSphere Proxy Operator")
    if WATCH_NAMESPACE:
        kopf.run(namespaces=[WATCH_NAMESPACE])
    else:
        kopf.run(clusterwide=True)


if __name__ == '__main__':
    main()
