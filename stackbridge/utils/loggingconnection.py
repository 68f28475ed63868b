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

import os
import re
from shlex import quote as pquote
from xml.dom.minidom import parseString
from xml.parsers.expat import ExpatError

from stackbridge.http import StackBridgeConnection
from stackbridge.utils.misc import lowercase_keys

__all__ = [
    'LoggingConnection',
    'redact_url'
]

# Query parameters whose values never reach the debug log
REDACTED_PARAMS = ('apiKey', 'signature')
REDACTED_VALUE = '***'

_REDACT_RE = re.compile(r'([?&](?:%s)=)[^&]*' % '|'.join(REDACTED_PARAMS))


def redact_url(url):
    """
    Replace the values of the credential query parameters in ``url``.

    :rtype: ``str``
    """
    return _REDACT_RE.sub(r'\g<1>' + REDACTED_VALUE, url)


class LoggingConnection(StackBridgeConnection):
    """
    Debug class to log all HTTP(s) requests as they could be made
    with the curl command.

    :cvar log: file-like object that logs entries are written to.
    """

    log = None

    def _log_response(self, r):
        rv = "# -------- begin %d:%d response ----------\n" % (id(self), id(r))
        ht = "HTTP/1.1 %s %s\r\n" % (r.status_code, r.reason)

        for name, value in r.headers.items():
            ht += "%s: %s\r\n" % (name.title(), value)
        ht += "\r\n"

        headers = lowercase_keys(dict(r.headers))
        content_type = headers.get('content-type', '') or ''
        body = r.text

        pretty_print = os.environ.get(
            'STACKBRIDGE_DEBUG_PRETTY_PRINT_RESPONSE', False)

        if pretty_print and 'xml' in content_type:
            try:
                body = parseString(body).toprettyxml()
            except ExpatError:
                # Invalid XML
                pass

        rv += ht + body
        rv += ("\n# -------- end %d:%d response ----------\n"
               % (id(self), id(r)))

        return rv

    def _log_curl(self, method, url, body, headers):
        cmd = ["curl"]

        if self.http_proxy_used:
            if self.proxy_username and self.proxy_password:
                proxy_url = '%s://%s:%s@%s:%s' % (self.proxy_scheme,
                                                  self.proxy_username,
                                                  self.proxy_password,
                                                  self.proxy_host,
                                                  self.proxy_port)
            else:
                proxy_url = '%s://%s:%s' % (self.proxy_scheme,
                                            self.proxy_host,
                                            self.proxy_port)
            cmd.extend(['--proxy', pquote(proxy_url)])

        cmd.extend(['-i', '-X', pquote(method)])

        for h in headers:
            cmd.extend(["-H", pquote("%s: %s" % (h, headers[h]))])

        if body:
            if isinstance(body, (bytearray, bytes)):
                body = body.decode('utf-8')

            cmd.extend(["--data-binary", pquote(body)])

        cmd.append("--compress")

        if not url.startswith(('http://', 'https://')):
            url = self.host + url

        cmd.append(pquote(redact_url(url)))
        return " ".join(cmd)

    def getresponse(self):
        response = StackBridgeConnection.getresponse(self)
        if self.log is not None:
            self.log.write(self._log_response(response) + "\n")
            self.log.flush()
        return response

    def request(self, method, url, body=None, headers=None):
        headers = headers or {}
        headers.update({'X-SB-Request-ID': str(id(self))})
        if self.log is not None:
            pre = "# -------- begin %d request ----------\n" % id(self)
            self.log.write(pre +
                           self._log_curl(method, url, body, headers) +
                           "\n")
            self.log.flush()
        return StackBridgeConnection.request(self, method, url, body,
                                             headers)
