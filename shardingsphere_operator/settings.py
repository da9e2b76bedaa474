"""
Operator configuration read from the environment
"""
import os

# Custom resource coordinates
CRD_GROUP = 'shardingsphere.sphere-ex.com'
CRD_VERSION = 'v1alpha1'
CRD_API_VERSION = f'{CRD_GROUP}/{CRD_VERSION}'
PROXY_KIND = 'Proxy'
PROXY_PLURAL = 'proxies'
PROXY_CONFIG_KIND = 'ProxyConfig'
PROXY_CONFIG_PLURAL = 'proxyconfigs'

# Images
PROXY_IMAGE = os.getenv('PROXY_IMAGE', 'apache/shardingsphere-proxy')
DRIVER_INIT_IMAGE = os.getenv('DRIVER_INIT_IMAGE', 'busybox:1.35.0')
MAVEN_REPOSITORY_URL = os.getenv('MAVEN_REPOSITORY_URL', 'https://repo1.maven.org/maven2').rstrip('/')

# Fixed backoff before a failed trigger is retried
RECONCILE_RETRY_INTERVAL_SECONDS = int(os.getenv('RECONCILE_RETRY_INTERVAL_SECONDS', '10'))

WATCH_SERVER_TIMEOUT_SECONDS = int(os.getenv('WATCH_SERVER_TIMEOUT_SECONDS', '600'))
WATCH_NAMESPACE = os.getenv('WATCH_NAMESPACE', '')
LOG_LEVEL = os.getenv('OPERATOR_LOG_LEVEL', 'INFO').upper()

# Labels stamped on every derived object
MANAGED_BY_LABEL = 'app.kubernetes.io/managed-by'
MANAGED_BY_VALUE = 'shardingsphere-operator'

# Periodic full pass over every record, and the annotation that requests an
# immediate one when a pass triggered by a child object has to be retried
RESYNC_INTERVAL_SECONDS = int(os.getenv('RESYNC_INTERVAL_SECONDS', '300'))
RESYNC_ANNOTATION = f'{CRD_GROUP}/resync-requested'
