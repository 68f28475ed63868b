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


from typing import Optional
from typing import Union
from typing import cast

from enum import Enum

__all__ = [
    "GENERIC_ERROR_CODE",
    "Type",
    "ParsedError",
    "StackBridgeError",
    "ConfigurationError",
    "MalformedResponseError",
    "TransportError",
    "ProviderError",
    "CloudAPIError",
    "InvalidCredsError",
    "AuthenticationError",
    "JobTimeoutError",
    "JobCancelledError",
]

# Code used for failures which carry a message but no numeric code
GENERIC_ERROR_CODE = 593


class Type(str, Enum):
    @classmethod
    def tostring(cls, value):
        # type: (Union[Enum, str]) -> str
        """Return the string representation of the state object attribute
        :param str value: the state object to turn into string
        :return: the uppercase string that represents the state object
        :rtype: str
        """
        value = cast(Enum, value)
        return str(value._value_).upper()

    @classmethod
    def fromstring(cls, value):
        # type: (str) -> str
        """Return the state object attribute that matches the string
        :param str value: the string to look up
        :return: the state object attribute that matches the string
        :rtype: str
        """
        return getattr(cls, value.upper(), None)

    def __str__(self):
        return str(self.value)


class ParsedError(object):
    """
    Numeric code and human readable message extracted from an error
    response or from a failed job.
    """

    def __init__(self, code, message):
        # type: (int, str) -> None
        self.code = int(code)
        self.message = message

    def __eq__(self, other):
        return (isinstance(other, ParsedError) and
                other.code == self.code and other.message == self.message)

    def __repr__(self):
        return '<ParsedError code=%d message=%r>' % (self.code, self.message)


class StackBridgeError(Exception):
    """The base class for other stackbridge exceptions"""

    code = GENERIC_ERROR_CODE  # type: int

    def __init__(self, value, driver=None):
        # type: (str, object) -> None
        super(StackBridgeError, self).__init__(value)
        self.value = value
        self.message = str(value)
        self.driver = driver

    @property
    def error(self):
        # type: () -> ParsedError
        return ParsedError(self.code, self.message)

    def __str__(self):
        return self.__repr__()

    def __repr__(self):
        return ("<StackBridgeError in " +
                repr(self.driver) +
                " " +
                repr(self.value) + ">")


class ConfigurationError(StackBridgeError):
    """No usable endpoint or credentials were supplied for a request."""

    def __repr__(self):
        return repr(self.value)


class MalformedResponseError(StackBridgeError):
    """Exception for the cases when the API returns a body which is not
    well-formed XML, e.g. a proxy error page."""

    def __init__(self, value, body=None, http_code=None, driver=None):
        # type: (str, Optional[str], Optional[int], object) -> None
        super(MalformedResponseError, self).__init__(value, driver=driver)
        self.body = body
        self.http_code = http_code

    def __repr__(self):
        return ("<MalformedResponseException in " +
                repr(self.driver) +
                " " +
                repr(self.value) +
                " (" + repr(self.http_code) + ")" +
                ">: " +
                repr(self.body))


class TransportError(StackBridgeError):
    """Network level failure such as a refused connection or a timeout."""

    http_code = None

    def __repr__(self):
        return repr(self.value)


class ProviderError(StackBridgeError):
    """
    Exception used when the API gives back an error response for a
    request.
    """

    def __init__(self, value, http_code, driver=None):
        # type: (str, int, object) -> None
        super(ProviderError, self).__init__(value=value, driver=driver)
        self.http_code = http_code
        self.code = int(http_code)

    def __str__(self):
        return self.__repr__()

    def __repr__(self):
        return repr(self.value)


class CloudAPIError(ProviderError):
    """
    Structured API failure carrying the numeric error code and message,
    either from an error response or from a failed asynchronous job.
    """

    def __init__(self, code, message, body=None, cause=None, driver=None):
        # type: (int, str, Optional[str], Optional[Type], object) -> None
        # Late import, exceptions module imports this one
        from stackbridge.common.exceptions import error_cause

        super(CloudAPIError, self).__init__(value=message,
                                            http_code=int(code),
                                            driver=driver)
        self.message = message
        self.body = body
        self.cause = cause or error_cause(self.code, message)

    def __str__(self):
        return '%s (%d)' % (self.message, self.code)

    def __repr__(self):
        return '<%s code=%d message=%r>' % (self.__class__.__name__,
                                            self.code, self.message)


class InvalidCredsError(CloudAPIError):
    """Exception used when invalid credentials are used with the API."""

    def __init__(self, message='Invalid credentials with the provider',
                 code=401, body=None, driver=None):
        # type: (str, int, Optional[str], object) -> None
        super(InvalidCredsError, self).__init__(code=code, message=message,
                                                body=body, driver=driver)


AuthenticationError = InvalidCredsError


class JobTimeoutError(StackBridgeError):
    """An asynchronous job did not finish within the allowed time."""

    def __init__(self, job_id, label, timeout, driver=None):
        # type: (str, str, float, object) -> None
        value = '%s (job %s) did not complete in %s seconds' % (
            label, job_id, timeout)
        super(JobTimeoutError, self).__init__(value, driver=driver)
        self.job_id = job_id
        self.label = label
        self.timeout = timeout

    def __repr__(self):
        return repr(self.value)


class JobCancelledError(StackBridgeError):
    """The caller stopped waiting for an asynchronous job."""

    def __init__(self, job_id, label, driver=None):
        # type: (str, str, object) -> None
        value = 'Stopped waiting for %s (job %s)' % (label, job_id)
        super(JobCancelledError, self).__init__(value, driver=driver)
        self.job_id = job_id
        self.label = label

    def __repr__(self):
        return repr(self.value)
