"""
Pytest configuration and shared fixtures for ShardingSphere Proxy Operator tests
"""
import warnings
import pytest
from kubernetes import client, config
from rich.console import Console

from tests.helpers import FakeRepository, proxy_body, proxy_config_body

# Suppress urllib3 warnings about OpenSSL
warnings.filterwarnings('ignore', category=UserWarning, module='urllib3')
try:
    import urllib3
    urllib3.disable_warnings(urllib3.exceptions.NotOpenSSLWarning)
except (ImportError, AttributeError):
    pass

console = Console()


@pytest.fixture
def repository():
    """Empty in-memory object repository"""
    return FakeRepository()


@pytest.fixture
def proxy():
    """Proxy body with no overrides and no driver"""
    return proxy_body()


@pytest.fixture
def proxy_config():
    """ProxyConfig body declaring a ZooKeeper repository"""
    return proxy_config_body()


@pytest.fixture(scope="session")
def k8s_client():
    """Initialize Kubernetes API client, skipping when no cluster is reachable"""
    try:
        config.load_incluster_config()
        console.print("[green]✓[/green] Using in-cluster Kubernetes config")
    except config.ConfigException:
        try:
            config.load_kube_config()
            console.print("[green]✓[/green] Using local Kubernetes config")
        except Exception as e:
            pytest.skip(f"Could not load Kubernetes config: {e}")

    api_client = client.ApiClient()
    try:
        client.VersionApi(api_client).get_code()
    except Exception as e:
        pytest.skip(f"Kubernetes API not reachable: {e}")
    return api_client


@pytest.fixture(scope="session")
def core_v1(k8s_client):
    """Core V1 API client"""
    return client.CoreV1Api(k8s_client)
