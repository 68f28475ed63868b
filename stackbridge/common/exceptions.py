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
Mapping tables which turn CloudStack status codes and error messages into
exceptions and stable error causes.

Matching on message text is fragile, so every phrase the API is known to
use lives in ``KNOWN_MESSAGES`` below and nowhere else.
"""

from stackbridge.common.types import Type
from stackbridge.common.types import CloudAPIError
from stackbridge.common.types import InvalidCredsError

__all__ = [
    'ErrorCause',
    'AUTH_CODES',
    'NOT_FOUND_CODES',
    'ACCOUNT_NOT_FOUND_CODE',
    'DEFAULT_MESSAGES',
    'KNOWN_MESSAGES',
    'NO_ERROR_INFORMATION',

    'default_message',
    'error_cause',
    'exception_from_status'
]


class ErrorCause(Type):
    """
    Stable reason behind a failed API call. Callers should branch on this
    instead of on message contents.
    """
    GENERAL = 'general'
    AUTHENTICATION = 'authentication'
    NOT_SUBSCRIBED = 'not_subscribed'
    NOT_FOUND = 'not_found'
    NOT_MODIFIED = 'not_modified'
    SCHEDULING_DEFERRED = 'scheduling_deferred'
    INSUFFICIENT_CAPACITY = 'insufficient_capacity'
    PERMISSION_DENIED = 'permission_denied'


AUTH_CODES = (401, 403)

# The API answers with these codes and an HTML page when nothing matched
NOT_FOUND_CODES = (430, 431, 432, 436)

# Account could not be found for the supplied keys
ACCOUNT_NOT_FOUND_CODE = 531

NO_ERROR_INFORMATION = 'No error information was provided'

DEFAULT_MESSAGES = {
    401: 'Unauthorized user',
    430: 'Malformed parameters',
    530: 'Server error in cloud (530)',
    531: 'Unable to find account',
    547: 'Server error in cloud (547)',
}

KNOWN_MESSAGES = (
    ('no change since last snapshot', ErrorCause.NOT_MODIFIED),
    ('Snapshot could not be scheduled', ErrorCause.SCHEDULING_DEFERRED),
    ('sufficient address capacity', ErrorCause.INSUFFICIENT_CAPACITY),
    ('does not have permission', ErrorCause.PERMISSION_DENIED),
    ('specify a valid template ID', ErrorCause.PERMISSION_DENIED),
    ('does not exist', ErrorCause.NOT_FOUND),
)


def default_message(code):
    """
    Return the message used when an error response carries no text.

    :param code: HTTP status or API error code.
    :type code: ``int``

    :rtype: ``str``
    """
    return DEFAULT_MESSAGES.get(code,
                                'Received error code from server: %s' % code)


def error_cause(code, message):
    """
    Return the :class:`ErrorCause` for an error code and message.

    :rtype: :class:`ErrorCause`
    """
    if code in AUTH_CODES:
        return ErrorCause.AUTHENTICATION

    if code == ACCOUNT_NOT_FOUND_CODE:
        return ErrorCause.NOT_SUBSCRIBED

    if message:
        for phrase, cause in KNOWN_MESSAGES:
            if phrase in message:
                return cause

    return ErrorCause.GENERAL


def exception_from_status(code, message=None, body=None, driver=None):
    """
    Return an instance of :class:`CloudAPIError` or a subclass based on the
    status code.

    Usage::
        raise exception_from_status(code=self.status,
                                    message=error.message,
                                    body=self.body)
    """
    if not message:
        message = default_message(code)

    if code in AUTH_CODES:
        return InvalidCredsError(message=message, code=code, body=body,
                                 driver=driver)

    return CloudAPIError(code=code, message=message, body=body,
                         driver=driver)
