# Licensed to the Apache Software Foundation (ASF) under one or more
# contributor license agreements.  See the NOTICE file distributed with
# this work for additional information regarding copyright ownership.
# The ASF licenses this file to You under the Apache License, Version 2.0
# (the "License"); you may not use this file except in compliance with
# the License.  You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.


"""
Immutable connection settings, resolved once before any request is signed.
"""

from urllib.parse import urlparse

from stackbridge.common.types import Type, ConfigurationError

__all__ = [
    'CSVersion',
    'ProviderContext',
    'DEFAULT_POLL_INTERVAL',
    'DEFAULT_TIMEOUT'
]

# Seconds between two queryAsyncJobResult calls
DEFAULT_POLL_INTERVAL = 5

# Seconds before a single HTTP call is abandoned
DEFAULT_TIMEOUT = 60


class CSVersion(Type):
    CS21 = 'CS21'
    CS22 = 'CS22'
    CS3 = 'CS3'

    def greater_than(self, other):
        members = list(CSVersion)
        return members.index(self) > members.index(other)


class ProviderContext(object):
    """
    Endpoint, credentials and tuning knobs for one CloudStack account.

    Instances are read-only so one context can be shared by every thread
    issuing requests against the same account.
    """

    __slots__ = ('endpoint', 'api_key', 'secret_key', 'account_number',
                 'region_id', 'version', 'proxy_host', 'proxy_port',
                 'poll_interval', 'max_wait', 'timeout')

    def __init__(self, endpoint, api_key, secret_key, account_number=None,
                 region_id=None, version=CSVersion.CS3, proxy_host=None,
                 proxy_port=None, poll_interval=DEFAULT_POLL_INTERVAL,
                 max_wait=None, timeout=DEFAULT_TIMEOUT):
        """
        :param endpoint: Base URL of the API, e.g.
                         ``https://cloud.example/client``.
        :type endpoint: ``str``

        :param api_key: Public API key.
        :type api_key: ``str``

        :param secret_key: Private key used to sign requests.
        :type secret_key: ``str``

        :param account_number: Account owning the keys, reported by
                               :meth:`CloudStackDriver.test_context`.
        :type account_number: ``str``

        :param region_id: Default zone id for region scoped results.
        :type region_id: ``str``

        :param version: CloudStack release family of the endpoint.
        :type version: :class:`CSVersion`

        :param poll_interval: Seconds to sleep between job status polls.
        :type poll_interval: ``float``

        :param max_wait: Maximum seconds to wait for a job, ``None`` waits
                         until the job finishes.
        :type max_wait: ``float``

        :param timeout: Socket timeout of each HTTP call in seconds.
        :type timeout: ``float``
        """
        if endpoint:
            endpoint = endpoint.rstrip('/')

        values = {
            'endpoint': endpoint,
            'api_key': api_key,
            'secret_key': secret_key,
            'account_number': account_number,
            'region_id': region_id,
            'version': version,
            'proxy_host': proxy_host,
            'proxy_port': proxy_port,
            'poll_interval': poll_interval,
            'max_wait': max_wait,
            'timeout': timeout,
        }

        for key, value in values.items():
            object.__setattr__(self, key, value)

    @classmethod
    def from_properties(cls, endpoint, api_key, secret_key, properties=None,
                        **kwargs):
        """
        Build a context from the plugin's string properties (``csVersion``,
        ``proxyHost``, ``proxyPort``).

        :rtype: :class:`ProviderContext`
        """
        properties = properties or {}

        version = CSVersion.fromstring(properties.get('csVersion', 'CS3'))
        if not isinstance(version, CSVersion):
            version = CSVersion.CS3

        proxy_host = properties.get('proxyHost') or None
        proxy_port = properties.get('proxyPort') or None

        if proxy_port is not None:
            try:
                proxy_port = int(proxy_port)
            except ValueError:
                raise ConfigurationError('Invalid proxyPort value: %s' %
                                         (proxy_port))

        kwargs.setdefault('version', version)
        kwargs.setdefault('proxy_host', proxy_host)
        kwargs.setdefault('proxy_port', proxy_port)

        return cls(endpoint, api_key, secret_key, **kwargs)

    def __setattr__(self, name, value):
        raise AttributeError('ProviderContext is read-only')

    def __delattr__(self, name):
        raise AttributeError('ProviderContext is read-only')

    @property
    def secure(self):
        return self.endpoint is not None and self.endpoint.startswith('https')

    @property
    def proxy_url(self):
        """
        Proxy URL handed to the transport, ``None`` when no proxy is set.

        :rtype: ``str``
        """
        if not self.proxy_host:
            return None

        scheme = 'https' if self.secure else 'http'
        port = self.proxy_port

        if not port:
            port = 443 if self.secure else 80

        return '%s://%s:%s' % (scheme, self.proxy_host, port)

    def validate(self):
        """
        Raise :class:`ConfigurationError` unless endpoint and both keys are
        present.
        """
        if not self.endpoint:
            raise ConfigurationError('No endpoint was set for this request')

        if urlparse(self.endpoint).scheme not in ('http', 'https'):
            raise ConfigurationError('Invalid endpoint: %s' % (self.endpoint))

        if not self.api_key or not self.secret_key:
            raise ConfigurationError('No credentials were set for this '
                                     'request')

    def __repr__(self):
        return ('<ProviderContext: endpoint=%s, api_key=%s, version=%s>' %
                (self.endpoint, self.api_key, self.version))
