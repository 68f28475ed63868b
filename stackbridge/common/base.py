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


import time
import logging
from urllib.parse import urlparse
from xml.etree import ElementTree as ET

import requests

import stackbridge

from stackbridge.http import StackBridgeConnection
from stackbridge.utils.misc import lowercase_keys
from stackbridge.common.types import MalformedResponseError
from stackbridge.common.types import ConfigurationError
from stackbridge.common.types import TransportError
from stackbridge.common.types import JobTimeoutError
from stackbridge.common.types import JobCancelledError
from stackbridge.common.exceptions import exception_from_status

__all__ = [
    'Response',
    'XmlResponse',
    'Connection',
    'PollingConnection',
    'BaseDriver'
]

_logger = logging.getLogger(__name__)


class Response(object):
    """
    A base Response class to derive from.
    """

    # Response status code
    status = 200  # type: int
    # Response headers
    headers = {}  # type: dict

    # Raw response body
    raw_body = b''  # type: bytes
    # Decoded response body
    body = None  # type: str

    # Parsed response body
    object = None

    error = None  # Reason returned by the server.
    connection = None  # Parent connection class
    parse_zero_length_body = False

    def __init__(self, response, connection):
        """
        :param response: HTTP response object.
        :type response: :class:`requests.Response`

        :param connection: Parent connection object.
        :type connection: :class:`.Connection`
        """
        self.connection = connection

        self.status = response.status_code
        self.headers = lowercase_keys(dict(response.headers))
        self.error = response.reason

        self.raw_body = response.content or b''
        self.body = self.raw_body.decode('utf-8', 'replace').strip()

        if not self.success():
            self.object = self.handle_error()
            return

        self.object = self.parse_body()

    def parse_body(self):
        """
        Parse response body.

        Override in a provider's subclass.

        :return: Parsed body.
        :rtype: ``str``
        """
        return self.body if self.body is not None else ''

    def parse_error(self):
        """
        Parse the error messages.

        Override in a provider's subclass.

        :return: Parsed error.
        :rtype: ``str``
        """
        return self.body

    def handle_error(self):
        """
        Called for unsuccessful responses. Either raise or return the value
        which becomes ``self.object``.
        """
        raise exception_from_status(code=self.status,
                                    message=self.parse_error(),
                                    body=self.body,
                                    driver=self._driver)

    def success(self):
        """
        Determine if our request was successful.

        :rtype: ``bool``
        :return: ``True`` or ``False``
        """
        return self.status == requests.codes.ok

    @property
    def _driver(self):
        return getattr(self.connection, 'driver', None)


class XmlResponse(Response):
    """
    A Base XML Response class to derive from.
    """

    def parse_body(self):
        if len(self.raw_body.strip()) == 0 and \
                not self.parse_zero_length_body:
            return self.body

        try:
            body = ET.fromstring(self.raw_body)
        except ET.ParseError:
            raise MalformedResponseError('Failed to parse XML',
                                         body=self.raw_body,
                                         http_code=self.status,
                                         driver=self._driver)
        return body

    parse_error = parse_body


class Connection(object):
    """
    A Base Connection class to derive from.
    """
    conn_class = StackBridgeConnection

    responseCls = Response
    connection = None
    host = '127.0.0.1'
    port = 443
    timeout = None
    secure = 1
    driver = None
    proxy_url = None
    request_path = ''

    def __init__(self, secure=True, host=None, port=None, url=None,
                 timeout=None, proxy_url=None):
        self.secure = secure and 1 or 0

        if host:
            self.host = host

        if port is not None:
            self.port = port
        else:
            if self.secure == 1:
                self.port = 443
            else:
                self.port = 80

        if url:
            (self.host, self.port, self.secure,
             self.request_path) = self._tuple_from_url(url)

        self.timeout = timeout or self.timeout
        self.proxy_url = proxy_url

    def _tuple_from_url(self, url):
        secure = 1
        port = None
        parsed = urlparse(url)

        if parsed.scheme not in ['http', 'https']:
            raise ConfigurationError('Invalid scheme: %s in url %s' %
                                     (parsed.scheme, url))

        if parsed.scheme == 'http':
            secure = 0

        port = parsed.port

        if not port:
            if parsed.scheme == 'http':
                port = 80
            else:
                port = 443

        return (parsed.hostname, port, secure, parsed.path)

    def connect(self, host=None, port=None):
        """
        Establish a connection with the API server.

        :type host: ``str``
        :param host: Optional host to override our default

        :type port: ``int``
        :param port: Optional port to override our default

        :returns: A connection
        """
        host = host or self.host
        port = port or self.port

        kwargs = {'host': host, 'port': int(port), 'secure': self.secure}

        if self.timeout:
            kwargs.update({'timeout': self.timeout})

        if self.proxy_url:
            kwargs.update({'proxy_url': self.proxy_url})

        connection = self.conn_class(**kwargs)
        # Always send the user agent, headers are set per request
        self.connection = connection

    def _user_agent(self):
        if self.driver:
            return 'stackbridge/%s (%s)' % (stackbridge.__version__,
                                            self.driver.name)

        return 'stackbridge/%s' % (stackbridge.__version__)

    def request(self, url, method='GET', data=None, headers=None):
        """
        Issue a request for an already built ``url`` and wrap the answer in
        ``responseCls``.

        :type url: ``str``
        :param url: Absolute URL or a path relative to the connection host.

        :type method: ``str``
        :param method: An HTTP method such as "GET" or "POST".

        :type data: ``str``
        :param data: A body of data to send with the request.

        :type headers: ``dict``
        :param headers: Extra headers to add to the request.

        :return: An :class:`Response` instance.
        :rtype: :class:`Response` instance
        """
        if headers is None:
            headers = {}

        headers = self.add_default_headers(headers)
        # We always send a user-agent header
        headers.update({'User-Agent': self._user_agent()})

        if self.connection is None:
            self.connect()

        try:
            self.connection.request(method=method, url=url, body=data,
                                    headers=headers)
        except requests.exceptions.RequestException as e:
            _logger.error('I/O error from server communications: %s', e)
            raise TransportError('I/O error from server communications: '
                                 '%s' % (e), driver=self.driver)

        response = self.responseCls(response=self.connection.getresponse(),
                                    connection=self)
        _logger.debug('%s %s: HTTP status %s', method, self.action_name(url),
                      response.status)
        return response

    def action_name(self, url):
        return urlparse(url).path

    def add_default_headers(self, headers):
        """
        Adds default headers (such as Content-Type) to the passed `headers`

        Should return a dictionary.
        """
        return headers


class PollingConnection(Connection):
    """
    Connection class which can also work with the async APIs.

    After the initial request, this class periodically polls for the job
    status and waits until the job has finished. If the job doesn't finish in
    ``max_wait`` seconds, :class:`JobTimeoutError` is raised. ``max_wait`` of
    ``None`` waits as long as it takes.
    """
    poll_interval = 0.5
    max_wait = None

    def poll(self, request, job_id, label, cancel_event=None):
        """
        Call ``request`` every ``poll_interval`` seconds until
        :meth:`has_completed` reports completion.

        Keep in mind that this function is *blocking*. The sleep happens
        before every status request, the job was only just submitted when
        this is first called.

        :param request: Callable which returns the job status response.
        :type request: ``callable``

        :param job_id: Identifier of the job, used in error messages.
        :type job_id: ``str``

        :param label: Human readable name of the operation.
        :type label: ``str``

        :param cancel_event: Event which the caller sets to stop waiting.
        :type cancel_event: :class:`threading.Event`

        :return: The last status response.
        """
        end = None

        if self.max_wait is not None:
            end = time.monotonic() + self.max_wait

        while True:
            self._sleep(cancel_event, job_id, label)

            if end is not None and time.monotonic() > end:
                raise JobTimeoutError(job_id=job_id, label=label,
                                      timeout=self.max_wait,
                                      driver=self.driver)

            response = request()

            if self.has_completed(response):
                return response

    def _sleep(self, cancel_event, job_id, label):
        if cancel_event is None:
            time.sleep(self.poll_interval)
            return

        if cancel_event.wait(self.poll_interval):
            raise JobCancelledError(job_id=job_id, label=label,
                                    driver=self.driver)

    def has_completed(self, response):
        """
        Return job completion status.

        :param response: Response object returned by poll request.

        :return ``bool`` True if the job has completed, False otherwise.
        """
        raise NotImplementedError('has_completed not implemented')


class BaseDriver(object):
    """
    Base driver class from which other classes can inherit from.
    """

    name = None
    connectionCls = Connection

    def __init__(self, context):
        """
        :param context: Endpoint, credentials and settings.
        :type context: :class:`stackbridge.context.ProviderContext`
        """
        self.context = context
        self.connection = self.connectionCls(context)
        self.connection.driver = self
