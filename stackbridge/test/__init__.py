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


import unittest
from urllib.parse import urlparse, parse_qsl

import requests
import requests_mock

from stackbridge.common.base import Response
from stackbridge.http import StackBridgeConnection

XML_HEADERS = {'content-type': 'text/xml;charset=utf-8'}


class StackBridgeTestCase(unittest.TestCase):
    def __init__(self, *args, **kwargs):
        self._visited_urls = []
        self._executed_mock_methods = []
        super(StackBridgeTestCase, self).__init__(*args, **kwargs)

    def setUp(self):
        self._visited_urls = []
        self._executed_mock_methods = []

    def _add_visited_url(self, url):
        self._visited_urls.append(url)

    def _add_executed_mock_method(self, method_name):
        self._executed_mock_methods.append(method_name)

    def assertExecutedMethodCount(self, expected):
        actual = len(self._executed_mock_methods)
        self.assertEqual(actual, expected,
                         'expected %d, but %d mock methods were executed'
                         % (expected, actual))

    def assertUrlContainsQueryParams(self, url, expected_params,
                                     strict=False):
        """
        Assert that provided url contains provided query parameters.

        :param url: URL to assert.
        :type url: ``str``

        :param expected_params: Dictionary of expected query parameters.
        :type expected_params: ``dict``

        :param strict: Assert that provided url contains only
                       expected_params. (defaults to ``False``)
        :type strict: ``bool``
        """
        question_mark_index = url.find('?')

        if question_mark_index != -1:
            url = url[question_mark_index + 1:]

        params = dict(parse_qsl(url))

        if strict:
            assert params == expected_params
        else:
            for key, value in expected_params.items():
                assert key in params
                assert params[key] == value


class MockHttp(StackBridgeConnection):
    """
    A mock HTTP client/server suitable for testing purposes. This replaces
    :class:`StackBridgeConnection` by implementing its API and returning a
    mock response.

    Define methods by request path, replacing slashes (/) with underscores
    (_). Each of these mock methods should return a tuple of:

        (int status, str body, dict headers, str reason)
    """
    type = None
    test = None  # TestCase instance which is using this mock

    def _get_request(self, method, url, body=None, headers=None):
        # Find a method we can use for this request
        path = urlparse(url).path

        if path.endswith('/'):
            path = path[:-1]

        meth_name = self._get_method_name(type=self.type, path=path)
        meth = getattr(self, meth_name)

        if self.test and isinstance(self.test, StackBridgeTestCase):
            self.test._add_visited_url(url=url)
            self.test._add_executed_mock_method(method_name=meth_name)

        return meth(method, url, body, headers)

    def request(self, method, url, body=None, headers=None):
        r_status, r_body, r_headers, r_reason = self._get_request(
            method, url, body, headers)

        if r_body is None:
            r_body = ''

        # Signed URLs are already quoted, match on everything but the query
        mock_url = url.split('?', 1)[0]

        with requests_mock.mock() as m:
            m.register_uri(method, mock_url, text=r_body, reason=r_reason,
                           headers=r_headers, status_code=r_status)
            try:
                super(MockHttp, self).request(
                    method=method, url=url, body=body, headers=headers)
            except requests_mock.exceptions.NoMockAddress as nma:
                raise AttributeError('Failed to mock out URL {0} - {1}'.format(
                    url, nma.request.url))

    def _get_method_name(self, type, path):
        meth_name = path.replace('/', '_').replace('.', '_').replace('-', '_')

        if type:
            meth_name = '%s_%s' % (meth_name, type)

        if meth_name == '':
            meth_name = 'root'

        return meth_name


def make_response(status=200, body=b'', headers=None, connection=None,
                  response_cls=Response):
    response = requests.Response()
    response.status_code = status
    response.headers = headers or {}
    response._content = body
    return response_cls(response, connection)
