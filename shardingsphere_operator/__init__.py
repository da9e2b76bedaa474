"""
ShardingSphere Proxy Operator

Converges ShardingSphere-Proxy Deployments, Services and ConfigMaps toward
the Proxy and ProxyConfig custom resources that describe them.
"""

__version__ = '0.1.0'
