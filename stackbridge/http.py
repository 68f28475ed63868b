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
Transport used by :class:`stackbridge.common.base.Connection`: a
``requests`` session bound to one API host. Proxy and certificate settings
are resolved once, when the transport is created.
"""

import os
import warnings
from urllib.parse import urljoin, urlparse

import requests

import stackbridge.security

__all__ = [
    'StackBridgeConnection',
    'proxy_from_environment'
]

# Checked in this order when no proxy is passed in
PROXY_ENV_VARIABLE_NAMES = ('http_proxy', 'https_proxy')


def proxy_from_environment():
    """
    Return the proxy URL configured in the environment, ``None`` if there is
    none.

    :rtype: ``str``
    """
    for name in PROXY_ENV_VARIABLE_NAMES:
        value = os.environ.get(name, None)

        if value:
            return value

    return None


class StackBridgeConnection(object):
    """
    Sends requests for one API host and keeps the last
    :class:`requests.Response` around for :meth:`getresponse`.

    One instance must not be shared between threads.
    """

    host = None
    timeout = None
    response = None

    proxy_scheme = None
    proxy_host = None
    proxy_port = None
    proxy_username = None
    proxy_password = None
    http_proxy_used = False

    verify = True
    ca_cert = None

    def __init__(self, host, port, secure=None, proxy_url=None,
                 timeout=None):
        """
        :param host: Hostname of the API server.
        :type host: ``str``

        :param port: Port of the API server, 443 always means https.
        :type port: ``int``

        :param proxy_url: Proxy to use, defaults to ``http_proxy`` or
                          ``https_proxy`` from the environment.
        :type proxy_url: ``str``

        :param timeout: Socket timeout of each request in seconds.
        :type timeout: ``float``
        """
        scheme = 'https' if secure or port == 443 else 'http'

        if port in (80, 443):
            self.host = '%s://%s' % (scheme, host)
        else:
            self.host = '%s://%s:%s' % (scheme, host, port)

        self.timeout = timeout
        self.session = requests.Session()

        self._setup_verify()
        self._setup_ca_cert()

        # The argument has precedence over the environment
        proxy_url = proxy_url or proxy_from_environment()

        if proxy_url:
            self.set_http_proxy(proxy_url=proxy_url)

    def set_http_proxy(self, proxy_url):
        """
        Route every request through a HTTP proxy.

        :param proxy_url: ``<scheme>://<host>:<port>``, optionally with
                          ``<username>:<password>@`` in front of the host
                          for basic authentication.
        :type proxy_url: ``str``
        """
        (self.proxy_scheme, self.proxy_host, self.proxy_port,
         self.proxy_username, self.proxy_password) = \
            self._parse_proxy_url(proxy_url=proxy_url)

        self.http_proxy_used = True
        self.session.proxies = {'http': proxy_url, 'https': proxy_url}

    def _parse_proxy_url(self, proxy_url):
        """
        :rtype: ``tuple`` (``scheme``, ``hostname``, ``port``, ``username``,
                ``password``)
        """
        parsed = urlparse(proxy_url)

        if parsed.scheme not in ('http', 'https'):
            raise ValueError('Only http and https proxies are supported')

        if not parsed.hostname or not parsed.port:
            raise ValueError('proxy_url must be in the following format: '
                             '<scheme>://<proxy host>:<proxy port>')

        username = password = None

        if '@' in parsed.netloc:
            credentials = parsed.netloc.rsplit('@', 1)[0]

            if ':' not in credentials:
                raise ValueError('URL is in an invalid format')

            username, password = credentials.split(':', 1)

        return (parsed.scheme, parsed.hostname, parsed.port, username,
                password)

    def _setup_verify(self):
        self.verify = stackbridge.security.VERIFY_SSL_CERT

        if not self.verify:
            warnings.warn(stackbridge.security.VERIFY_SSL_DISABLED_MSG)

    def _setup_ca_cert(self):
        if self.verify is False:
            return

        self.ca_cert = stackbridge.security.CA_CERTS_PATH

    @property
    def verification(self):
        """
        Value handed to ``requests`` as ``verify``: the CA bundle path, or
        the plain flag when no bundle is known.
        """
        return self.ca_cert if self.ca_cert is not None else self.verify

    def request(self, method, url, body=None, headers=None):
        headers = dict((key, str(value))
                       for key, value in (headers or {}).items())

        self.response = self.session.request(
            method=method.lower(),
            url=urljoin(self.host, url),
            data=body,
            headers=headers,
            allow_redirects=True,
            timeout=self.timeout,
            verify=self.verification
        )

    def getresponse(self):
        return self.response
