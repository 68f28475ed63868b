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
Provider neutral objects returned by :class:`CloudStackDriver`.
"""

from typing import Dict
from typing import Optional

__all__ = [
    'Region',
    'DataCenter',
    'KeyPair'
]


class Region(object):
    """
    A CloudStack zone exposed as a region.
    """

    def __init__(self,
                 id,  # type: str
                 name,  # type: str
                 jurisdiction,  # type: str
                 driver,  # type: object
                 active=True,  # type: bool
                 available=True,  # type: bool
                 extra=None  # type: Optional[Dict]
                 ):
        """
        :param id: Zone ID.
        :type id: ``str``

        :param name: Zone name, the ID when the zone has no name.
        :type name: ``str``

        :param jurisdiction: Two letter code of the legal jurisdiction.
        :type jurisdiction: ``str``

        :param extra: Remaining zone attributes, keyed by lower-cased tag.
        :type extra: ``dict``
        """
        self.id = str(id)
        self.name = name
        self.jurisdiction = jurisdiction
        self.driver = driver
        self.active = active
        self.available = available
        self.extra = extra or {}

    def __eq__(self, other):
        return isinstance(other, Region) and other.id == self.id

    def __hash__(self):
        return hash(self.id)

    def __repr__(self):
        return (('<Region: id=%s, name=%s, jurisdiction=%s, driver=%s>')
                % (self.id, self.name, self.jurisdiction, self.driver.name))


class DataCenter(object):
    """
    A data center inside a region. CloudStack zones have exactly one.
    """

    def __init__(self,
                 id,  # type: str
                 name,  # type: str
                 region_id,  # type: str
                 driver,  # type: object
                 active=True,  # type: bool
                 available=True  # type: bool
                 ):
        self.id = str(id)
        self.name = name
        self.region_id = region_id
        self.driver = driver
        self.active = active
        self.available = available

    def __repr__(self):
        return (('<DataCenter: id=%s, name=%s, region_id=%s, driver=%s>')
                % (self.id, self.name, self.region_id, self.driver.name))


class KeyPair(object):
    """
    Represents a SSH key pair.
    """

    def __init__(self,
                 name,  # type: str
                 fingerprint,  # type: str
                 driver,  # type: object
                 private_key=None,  # type: Optional[str]
                 region_id=None,  # type: Optional[str]
                 owner_id=None  # type: Optional[str]
                 ):
        # type: (...) -> None
        """
        Constructor.

        :keyword    name: Name of the key pair, also its ID.
        :type       name: ``str``

        :keyword    fingerprint: Key fingerprint.
        :type       fingerprint: ``str``

        :keyword    private_key: Private key in PEM format. Only returned
                                 when the key pair is created.
        :type       private_key: ``str``

        :keyword    region_id: Region of the context the key was read with.
        :type       region_id: ``str``

        :keyword    owner_id: Account number of the owner.
        :type       owner_id: ``str``
        """
        self.name = name
        self.fingerprint = fingerprint
        self.private_key = private_key
        self.region_id = region_id
        self.owner_id = owner_id
        self.driver = driver

    @property
    def id(self):
        return self.name

    def __repr__(self):
        return ('<KeyPair name=%s fingerprint=%s driver=%s>' %
                (self.name, self.fingerprint, self.driver.name))
