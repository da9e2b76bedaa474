"""
Unit tests for parsing Proxy and ProxyConfig bodies into records.
"""
import pytest

from shardingsphere_operator.errors import ConstructionError
from shardingsphere_operator.models import ProxyConfigSpec, ProxySpec
from tests.helpers import log_check, proxy_body, proxy_config_body


@pytest.mark.unit
def test_proxy_spec_defaults():
    """Test that a minimal Proxy body parses with ClusterIP exposure and no driver."""
    body = proxy_body()
    del body['spec']['replicas']
    del body['spec']['serviceType']
    proxy = ProxySpec.from_resource(body)

    log_check("minimal Proxy parses with defaults", "replicas=1, ClusterIP, no driver",
              f"replicas={proxy.replicas}, {proxy.service_type.type}, driver={proxy.mysql_driver}")
    assert proxy.replicas == 1
    assert proxy.service_type.type == 'ClusterIP'
    assert not proxy.service_type.is_node_port
    assert proxy.mysql_driver is None
    assert proxy.resources is None
    assert proxy.liveness_probe is None


@pytest.mark.unit
def test_proxy_spec_node_port_and_driver():
    """Test that NodePort exposure and the driver descriptor are carried over."""
    proxy = ProxySpec.from_resource(proxy_body(
        serviceType={'type': 'NodePort', 'nodePort': 30080},
        mySQLDriver={'version': '8.0.30'},
    ))

    assert proxy.service_type.is_node_port
    assert proxy.service_type.node_port == 30080
    assert proxy.mysql_driver.version == '8.0.30'


@pytest.mark.unit
@pytest.mark.parametrize('port', [0, 65536, -1, '3307', True])
def test_proxy_spec_rejects_invalid_port(port):
    """Test that ports outside the 16-bit range or of the wrong type are rejected."""
    with pytest.raises(ConstructionError) as excinfo:
        ProxySpec.from_resource(proxy_body(port=port))
    assert excinfo.value.field == 'spec.port'


@pytest.mark.unit
@pytest.mark.parametrize('missing', ['version', 'proxyConfigName', 'port'])
def test_proxy_spec_requires_fields(missing):
    """Test that the fields every derived object depends on are required."""
    body = proxy_body()
    del body['spec'][missing]
    with pytest.raises(ConstructionError):
        ProxySpec.from_resource(body)


@pytest.mark.unit
@pytest.mark.parametrize('version', ['', '8.0.30; rm -rf /', '$(id)', '../8.0.30'])
def test_proxy_spec_rejects_unsafe_driver_version(version):
    """Test that driver versions that cannot go into the bootstrap script are rejected."""
    with pytest.raises(ConstructionError) as excinfo:
        ProxySpec.from_resource(proxy_body(mySQLDriver={'version': version}))
    assert excinfo.value.field == 'spec.mySQLDriver.version'


@pytest.mark.unit
def test_proxy_spec_rejects_unknown_service_type():
    """Test that only ClusterIP and NodePort exposure are accepted."""
    with pytest.raises(ConstructionError):
        ProxySpec.from_resource(proxy_body(serviceType={'type': 'ExternalName'}))


@pytest.mark.unit
def test_proxy_config_spec_repository_and_status():
    """Test that the declared repository type and the stored status are read."""
    record = ProxyConfigSpec.from_resource(proxy_config_body(
        repository_type='Etcd', status={'metadataRepository': 'ZooKeeper'}))

    assert record.repository_type == 'Etcd'
    assert record.status_repository == 'ZooKeeper'
    assert len(record.users) == 2


@pytest.mark.unit
def test_proxy_config_spec_copies_body():
    """Test that the record does not alias the body it was parsed from."""
    body = proxy_config_body()
    record = ProxyConfigSpec.from_resource(body)
    record.config['authority']['users'].append('extra@%:pw')

    assert len(body['spec']['authority']['users']) == 2
