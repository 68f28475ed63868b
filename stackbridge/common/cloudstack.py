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


import base64
import hashlib
import hmac
import logging
from collections.abc import Mapping
from urllib.parse import quote
from xml.etree import ElementTree as ET

from stackbridge.common.base import XmlResponse, PollingConnection
from stackbridge.common.types import Type
from stackbridge.common.types import ParsedError
from stackbridge.common.types import CloudAPIError
from stackbridge.common.types import InvalidCredsError
from stackbridge.common.types import ConfigurationError
from stackbridge.common.types import MalformedResponseError
from stackbridge.common.types import GENERIC_ERROR_CODE
from stackbridge.common.exceptions import AUTH_CODES
from stackbridge.common.exceptions import NOT_FOUND_CODES
from stackbridge.common.exceptions import NO_ERROR_INFORMATION
from stackbridge.common.exceptions import ErrorCause
from stackbridge.common.exceptions import default_message
from stackbridge.context import DEFAULT_POLL_INTERVAL
from stackbridge.utils.misc import ReprMixin
from stackbridge.utils.xml import find_first, find_first_text

__all__ = [
    'GENERIC_ERROR_CODE',
    'encode_value',
    'canonical_string',
    'make_signature',
    'JobStatus',
    'AsyncJob',
    'ResultStatus',
    'CommandResult',
    'CloudStackResponse',
    'CloudStackConnection',
    'CloudStackDriverMixIn'
]

_logger = logging.getLogger(__name__)


def encode_value(value):
    """
    Percent-encode a query string value the way the API verifies it:
    form encoding, except that a space becomes ``%20`` instead of ``+``.

    :rtype: ``str``
    """
    return quote(value, safe='*').replace('~', '%7E')


def _to_text(value):
    if isinstance(value, bool):
        return 'true' if value else 'false'
    return str(value)


def _param_items(params):
    """
    Normalise request parameters to a list of ``(key, value)`` string pairs.

    ``params`` may be a mapping or a sequence of pairs; the latter allows
    the same key more than once. Pairs with a ``None`` value are dropped.
    """
    if not params:
        return []

    if isinstance(params, Mapping):
        params = params.items()

    return [(key, _to_text(value)) for key, value in params
            if value is not None]


def canonical_string(command, api_key, params=None):
    """
    Return the string which is signed for a request.

    Keys are lower-cased; values are encoded with :func:`encode_value` and
    then lower-cased. The values sent on the wire keep their case, the
    API validates signatures against this lower-cased form.

    :param command: API command, e.g. ``listZones``.
    :type command: ``str``

    :param api_key: Public API key.
    :type api_key: ``str``

    :param params: Request parameters.
    :type params: ``dict`` or ``list`` of ``tuple``

    :rtype: ``str``
    """
    pairs = [
        ('command', encode_value(command).lower()),
        ('apikey', encode_value(api_key).lower()),
    ]

    for key, value in _param_items(params):
        pairs.append((key.lower(), encode_value(value).lower()))

    pairs.sort()
    return '&'.join(['%s=%s' % (key, value) for key, value in pairs])


def make_signature(command, api_key, secret_key, params=None):
    """
    Compute the base64 encoded HMAC-SHA1 request signature.

    :rtype: ``str``
    """
    to_sign = canonical_string(command, api_key, params)
    _logger.debug('String to sign=%s', to_sign)

    digest = hmac.new(secret_key.encode('utf-8'),
                      msg=to_sign.encode('utf-8'),
                      digestmod=hashlib.sha1).digest()
    return base64.b64encode(digest).decode('ascii')


class JobStatus(Type):
    PENDING = 'pending'
    SUCCEEDED = 'succeeded'
    FAILED = 'failed'


class AsyncJob(ReprMixin):
    """
    Server side job started by a state-changing command.

    The handle only lives while its caller waits for it. Each poll result is
    applied with :meth:`update`.
    """

    ASYNC_PENDING = 0
    ASYNC_SUCCESS = 1
    ASYNC_FAILURE = 2

    _repr_attributes = ['job_id', 'label', 'status', 'polls']

    def __init__(self, job_id, label):
        self.job_id = job_id
        self.label = label
        self.status = JobStatus.PENDING
        self.document = None
        self.error = None
        self.polls = 0

    @property
    def is_terminal(self):
        return self.status != JobStatus.PENDING

    def update(self, document):
        """
        Apply one ``queryAsyncJobResult`` answer.

        :param document: Parsed status response, ``None`` when the API
                         answered with a no-result status.
        :type document: :class:`xml.etree.ElementTree.Element`

        :rtype: :class:`JobStatus`
        """
        self.polls += 1

        if document is None:
            return self.status

        value = find_first_text(document, 'jobstatus')

        try:
            status = int(value) if value is not None else self.ASYNC_PENDING
        except ValueError:
            raise MalformedResponseError('Invalid job status: %s' % (value),
                                         body=ET.tostring(document))

        if status == self.ASYNC_SUCCESS:
            self.status = JobStatus.SUCCEEDED
            self.document = document
        elif status == self.ASYNC_FAILURE:
            self.status = JobStatus.FAILED
            self.document = document
            self.error = self._parse_failure(document, status)

        return self.status

    def _parse_failure(self, document, status):
        result = find_first(document, 'jobresult')

        if result is None:
            return CloudAPIError(
                code=GENERIC_ERROR_CODE,
                message='%s failed with an unexplained error' % (self.label))

        text = (result.text or '').strip()

        if text:
            return CloudAPIError(code=GENERIC_ERROR_CODE, message=text)

        code = status
        message = None

        for child in list(result):
            tag = child.tag.lower() if isinstance(child.tag, str) else ''
            value = (child.text or '').strip()

            if tag == 'errorcode':
                try:
                    code = int(value)
                except ValueError:
                    pass
            elif tag == 'errortext':
                message = value

        return CloudAPIError(code=code, message=message or
                             default_message(code))


class ResultStatus(Type):
    OK = 'ok'
    NO_RESULT = 'no_result'
    NOT_MODIFIED = 'not_modified'
    FAILED = 'failed'


class CommandResult(ReprMixin):
    """
    Outcome of :meth:`CloudStackConnection.run_command`.
    """

    _repr_attributes = ['status', 'error']

    def __init__(self, status, document=None, error=None):
        self.status = status
        self.document = document
        self.error = error

    @property
    def ok(self):
        return self.status == ResultStatus.OK

    def unwrap(self):
        """
        Return the document, raising the stored error for failures.
        """
        if self.status == ResultStatus.FAILED:
            raise self.error

        return self.document


class CloudStackResponse(XmlResponse):
    """
    XML response which classifies error statuses.

    ``object`` is ``None`` when the API uses one of its "nothing matched"
    statuses.
    """

    parse_zero_length_body = True

    def handle_error(self):
        driver = self._driver

        if not self.body:
            if self.status in AUTH_CODES:
                raise InvalidCredsError(message=default_message(self.status),
                                        code=self.status, driver=driver)

            raise CloudAPIError(code=self.status,
                                message=NO_ERROR_INFORMATION,
                                driver=driver)

        if '<html>' in self.body.lower():
            if self.status in AUTH_CODES:
                raise InvalidCredsError(message=self.body, code=self.status,
                                        body=self.body, driver=driver)

            if self.status in NOT_FOUND_CODES:
                _logger.debug('No result for status %s', self.status)
                return None

            raise CloudAPIError(code=self.status, message=self.body,
                                body=self.body, driver=driver)

        error = self.parse_error()

        if self.status in AUTH_CODES:
            raise InvalidCredsError(message=error.message, code=error.code,
                                    body=self.body, driver=driver)

        raise CloudAPIError(code=error.code, message=error.message,
                            body=self.body, driver=driver)

    def parse_error(self):
        """
        Extract ``errorcode`` and ``errortext`` from an error body.

        :rtype: :class:`ParsedError`
        """
        code = self.status
        message = None

        try:
            document = ET.fromstring(self.raw_body)

            for node in document.iter('errorcode'):
                if node.text and node.text.strip():
                    code = int(node.text.strip())

            for node in document.iter('errortext'):
                if node.text:
                    message = node.text
        except (ET.ParseError, ValueError) as e:
            _logger.warning('Error was unparsable: %s', e)
            if message is None:
                message = self.body

        if not message:
            message = default_message(self.status)

        return ParsedError(code, message)


class CloudStackConnection(PollingConnection):
    """
    Signs, sends and polls CloudStack API commands for one
    :class:`stackbridge.context.ProviderContext`.
    """

    responseCls = CloudStackResponse
    poll_interval = DEFAULT_POLL_INTERVAL

    api_path = '/api'
    job_status_command = 'queryAsyncJobResult'

    def __init__(self, context):
        """
        :param context: Endpoint and credentials, ``None`` makes every
                        request fail with :class:`ConfigurationError`.
        :type context: :class:`stackbridge.context.ProviderContext`
        """
        self.context = context
        kwargs = {}

        if context is not None and context.endpoint:
            kwargs = {'url': context.endpoint,
                      'timeout': context.timeout,
                      'proxy_url': context.proxy_url}
            self.poll_interval = context.poll_interval
            self.max_wait = context.max_wait

        super(CloudStackConnection, self).__init__(**kwargs)

    def _require_context(self):
        if self.context is None:
            raise ConfigurationError('No context was set for this request')

        self.context.validate()
        return self.context

    def add_default_headers(self, headers):
        headers['Content-Type'] = ('application/x-www-form-urlencoded; '
                                   'charset=utf-8')
        return headers

    def action_name(self, url):
        # Keep keys and signature out of the log
        return url.split('&', 1)[0]

    def build_url(self, command, params=None):
        """
        Return the complete signed URL for ``command``.

        :param command: API command, e.g. ``listZones``.
        :type command: ``str``

        :param params: Request parameters, either a mapping or a sequence
                       of ``(key, value)`` pairs.
        :type params: ``dict`` or ``list`` of ``tuple``

        :rtype: ``str``
        """
        context = self._require_context()

        api_key = context.api_key.replace('\r', '')
        secret_key = context.secret_key.replace('\r', '')
        items = _param_items(params)

        url = [context.endpoint, self.api_path, '?command=', command]

        for key, value in items:
            url.append('&%s=%s' % (key, encode_value(value)))

        signature = make_signature(command, api_key, secret_key, items)

        url.append('&apiKey=%s' % (encode_value(api_key)))
        url.append('&signature=%s' % (encode_value(signature)))
        return ''.join(url)

    def get(self, url):
        """
        Issue a GET for a signed URL.

        :return: Parsed document, or ``None`` when the API reported that
                 nothing matched.
        :rtype: :class:`xml.etree.ElementTree.Element`
        """
        return self.request(url, method='GET').object

    def sync_request(self, command, params=None):
        """
        Build, sign and send ``command``.

        :rtype: :class:`xml.etree.ElementTree.Element`
        """
        return self.get(self.build_url(command, params))

    def async_request(self, command, params=None, label=None,
                      cancel_event=None):
        """
        Send a state-changing ``command`` and wait for the job it started.

        :return: Final job document, or the initial document when the
                 command completed synchronously.
        :rtype: :class:`xml.etree.ElementTree.Element`
        """
        document = self.sync_request(command, params)

        if document is None:
            return None

        result = self.wait_for_job(document, label or command,
                                   cancel_event=cancel_event)
        return result if result is not None else document

    def wait_for_job(self, document, label, cancel_event=None):
        """
        Poll ``queryAsyncJobResult`` until the job reaches a final state.

        :param document: Initial response containing ``jobid`` or the job
                         id itself.
        :type document: :class:`xml.etree.ElementTree.Element` or ``str``

        :param label: Operation name used in error messages.
        :type label: ``str``

        :param cancel_event: Set it from another thread to stop waiting,
                             :class:`JobCancelledError` is then raised.
        :type cancel_event: :class:`threading.Event`

        :return: Final job document, ``None`` if there is no job to wait
                 for.
        :rtype: :class:`xml.etree.ElementTree.Element`
        """
        if document is None:
            return None

        if isinstance(document, str):
            job_id = document
        else:
            job_id = find_first_text(document, 'jobid')

        if not job_id:
            return None

        job = AsyncJob(job_id=job_id, label=label)
        url = self.build_url(self.job_status_command, [('jobId', job_id)])

        def query():
            job.update(self.get(url))
            _logger.debug('Job %s (%s) status after %d polls: %s',
                          job_id, label, job.polls, job.status)
            return job

        self.poll(query, job_id=job_id, label=label,
                  cancel_event=cancel_event)

        if job.status == JobStatus.FAILED:
            raise job.error

        return job.document

    def has_completed(self, response):
        return response.is_terminal

    def run_command(self, command, params=None, label=None, wait=False,
                    cancel_event=None):
        """
        Like :meth:`sync_request` (or :meth:`async_request` with
        ``wait=True``) but API errors are returned instead of raised.

        :rtype: :class:`CommandResult`
        """
        try:
            if wait:
                document = self.async_request(command, params, label=label,
                                              cancel_event=cancel_event)
            else:
                document = self.sync_request(command, params)
        except CloudAPIError as e:
            if e.cause == ErrorCause.NOT_MODIFIED:
                return CommandResult(ResultStatus.NOT_MODIFIED, error=e)

            return CommandResult(ResultStatus.FAILED, error=e)

        if document is None:
            return CommandResult(ResultStatus.NO_RESULT)

        return CommandResult(ResultStatus.OK, document=document)


class CloudStackDriverMixIn(object):
    connectionCls = CloudStackConnection

    def _sync_request(self, command, params=None):
        return self.connection.sync_request(command, params)

    def _async_request(self, command, params=None, label=None):
        return self.connection.async_request(command, params, label=label)
