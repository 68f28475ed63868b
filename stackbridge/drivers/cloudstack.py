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
CloudStack driver: zones as regions and data centers, SSH key pairs and
credential checks built on :class:`CloudStackConnection`.
"""

import logging
from datetime import datetime, timezone

from stackbridge.common.base import BaseDriver
from stackbridge.common.types import StackBridgeError
from stackbridge.common.types import CloudAPIError
from stackbridge.common.types import ConfigurationError
from stackbridge.common.types import InvalidCredsError
from stackbridge.common.exceptions import AUTH_CODES
from stackbridge.common.exceptions import ACCOUNT_NOT_FOUND_CODE
from stackbridge.common.cloudstack import GENERIC_ERROR_CODE
from stackbridge.common.cloudstack import CloudStackDriverMixIn
from stackbridge.context import CSVersion
from stackbridge.models import Region, DataCenter, KeyPair
from stackbridge.utils.misc import find
from stackbridge.utils.xml import findall, child_values

__all__ = [
    'CloudStackDriver',
    'parse_time'
]

_logger = logging.getLogger(__name__)

LIST_ZONES = 'listZones'
CREATE_KEYPAIR = 'createSSHKeyPair'
DELETE_KEYPAIR = 'deleteSSHKeyPair'
LIST_KEYPAIRS = 'listSSHKeyPairs'

DEFAULT_JURISDICTION = 'US'

JURISDICTIONS = (
    ('New York', 'US'),
    ('Hong Kong', 'HK'),
    ('India', 'IN'),
    ('London', 'EU'),
)

TIME_FORMATS = (
    '%Y-%m-%dT%H:%M:%S%z',
    '%a %b %d %H:%M:%S %Z %Y',
)


def parse_time(timestamp):
    """
    Convert an API timestamp to milliseconds since the epoch.

    Both ``2009-02-03T05:26:32+0000`` and ``Sun Jul 04 02:18:02 UTC 2010``
    are understood. Anything else gives ``0``.

    :rtype: ``int``
    """
    if not timestamp:
        return 0

    for time_format in TIME_FORMATS:
        try:
            value = datetime.strptime(timestamp.strip(), time_format)
        except ValueError:
            continue

        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)

        return int(value.timestamp() * 1000)

    return 0


class CloudStackDriver(CloudStackDriverMixIn, BaseDriver):
    """
    Driver for a CloudStack account described by a
    :class:`stackbridge.context.ProviderContext`.

    >>> from stackbridge.context import ProviderContext
    >>> context = ProviderContext('https://cloud.example/client', 'AK', 'SK')
    >>> driver = CloudStackDriver(context)
    >>> driver.name
    'CloudStack'
    """

    name = 'CloudStack'
    website = 'https://cloudstack.apache.org/'

    def parse_time(self, timestamp):
        return parse_time(timestamp)

    # Regions and data centers

    def list_regions(self):
        """
        List the available zones.

        :rtype: ``list`` of :class:`Region`
        """
        document = self._sync_request(LIST_ZONES, {'available': 'true'})

        if document is None:
            return []

        regions = []

        for node in findall(document, './/zone'):
            region = self._to_region(node)

            if region is not None:
                regions.append(region)

        return regions

    def get_region(self, region_id):
        """
        :rtype: :class:`Region` or ``None``
        """
        return find(self.list_regions(), lambda r: r.id == region_id)

    def list_data_centers(self, region_id):
        """
        Return the single data center of a region.

        :param region_id: Zone ID.
        :type region_id: ``str``

        :rtype: ``list`` of :class:`DataCenter`
        """
        region = self.get_region(region_id)

        if region is None:
            raise CloudAPIError(code=GENERIC_ERROR_CODE,
                                message='No such region: %s' % (region_id),
                                driver=self)

        return [DataCenter(id=region_id, name='%s (DC)' % (region.name),
                           region_id=region_id, driver=self)]

    def get_data_center(self, data_center_id):
        """
        :rtype: :class:`DataCenter` or ``None``
        """
        for region in self.list_regions():
            for data_center in self.list_data_centers(region.id):
                if data_center.id == data_center_id:
                    return data_center

        return None

    def requires_network(self, zone_id):
        """
        Return ``False`` only for zones with basic networking. Unknown
        zones are assumed to require a network.

        :rtype: ``bool``
        """
        zone = self._get_zone_values(zone_id)

        if zone is None:
            return True

        return (zone.get('networktype') or '').lower() != 'basic'

    def supports_security_groups(self, zone_id, basic_only=False):
        """
        :param basic_only: Only report support for basic networking zones.
        :type basic_only: ``bool``

        :rtype: ``bool``
        """
        zone = self._get_zone_values(zone_id)

        if zone is None:
            return False

        basic = (zone.get('networktype') or '').lower() == 'basic'
        groups = (zone.get('securitygroupsenabled') or '').lower() == 'true'
        return (not basic_only or basic) and groups

    # Credentials

    def is_subscribed(self):
        """
        Check that the credentials may use the API.

        :return: ``False`` when the API rejects the keys or the account is
                 unknown.
        :rtype: ``bool``
        """
        try:
            self._sync_request(LIST_ZONES, {'available': 'true'})
        except InvalidCredsError:
            return False
        except CloudAPIError as e:
            if e.code in AUTH_CODES or e.code == ACCOUNT_NOT_FOUND_CODE:
                return False
            raise

        return True

    def test_context(self):
        """
        Validate the context credentials.

        :return: Account number of the context, ``None`` when the
                 credentials do not work. Errors are logged, not raised.
        :rtype: ``str``
        """
        if self.context is None:
            return None

        _logger.debug('Checking CloudStack credentials for %s',
                      self.context.endpoint)

        try:
            if not self.is_subscribed():
                _logger.warning('Credentials are not subscribed for %s',
                                self.context.endpoint)
                return None
        except StackBridgeError as e:
            _logger.warning('Failed to test CloudStack context: %s', e)
            return None

        _logger.info('Credentials validated')
        return self.context.account_number

    # Key pairs

    @property
    def identity_supported(self):
        version = self.context.version if self.context else None
        return version is not None and version.greater_than(CSVersion.CS21)

    def list_key_pairs(self):
        """
        :rtype: ``list`` of :class:`KeyPair`
        """
        self._require_identity()
        document = self._sync_request(LIST_KEYPAIRS)
        return self._to_key_pairs(document, 'sshkeypair')

    def get_key_pair(self, name):
        """
        :param name: Name of the key pair to retrieve.
        :type name: ``str``

        :rtype: :class:`KeyPair` or ``None``
        """
        self._require_identity()
        document = self._sync_request(LIST_KEYPAIRS, {'name': name})
        key_pairs = self._to_key_pairs(document, 'sshkeypair')
        return key_pairs[0] if key_pairs else None

    def create_key_pair(self, name):
        """
        Create a new key pair. The private key is only available on the
        returned object.

        :param name: Key pair name.
        :type name: ``str``

        :rtype: :class:`KeyPair`
        """
        self._require_identity()
        document = self._sync_request(CREATE_KEYPAIR, {'name': name})
        key_pairs = self._to_key_pairs(document, 'keypair')

        if not key_pairs:
            raise CloudAPIError(code=GENERIC_ERROR_CODE,
                                message='Request did not error, but no '
                                        'keypair was generated',
                                driver=self)

        return key_pairs[0]

    def delete_key_pair(self, name):
        """
        :param name: Name of the key pair to delete.
        :type name: ``str``

        :rtype: ``bool``
        """
        self._require_identity()
        self._sync_request(DELETE_KEYPAIR, {'name': name})
        return True

    def _require_identity(self):
        if not self.identity_supported:
            raise ConfigurationError('SSH key pairs are not supported by '
                                     'this CloudStack version',
                                     driver=self)

    def _get_zone_values(self, zone_id):
        document = self._sync_request(LIST_ZONES, {'available': 'true'})

        if document is None:
            return None

        for node in findall(document, './/zone'):
            values = child_values(node)

            if values.get('id') == zone_id:
                return values

        return None

    def _to_region(self, node):
        values = child_values(node)
        region_id = values.pop('id', None)

        if region_id is None:
            return None

        name = values.pop('name', None) or region_id
        return Region(id=region_id, name=name,
                      jurisdiction=self._get_jurisdiction(name),
                      driver=self, extra=values)

    def _get_jurisdiction(self, name):
        for phrase, jurisdiction in JURISDICTIONS:
            if phrase in name:
                return jurisdiction

        return DEFAULT_JURISDICTION

    def _to_key_pairs(self, document, tag):
        if document is None:
            return []

        key_pairs = []

        for node in findall(document, './/%s' % (tag)):
            key_pair = self._to_key_pair(node)

            if key_pair is not None:
                key_pairs.append(key_pair)

        return key_pairs

    def _to_key_pair(self, node):
        if len(node) == 0:
            return None

        region_id = self.context.region_id

        if region_id is None:
            raise ConfigurationError('No region is part of this request',
                                     driver=self)

        values = child_values(node)
        name = values.get('name')
        fingerprint = values.get('fingerprint')

        if not name or not fingerprint:
            return None

        return KeyPair(name=name, fingerprint=fingerprint,
                       private_key=values.get('privatekey'),
                       region_id=region_id,
                       owner_id=self.context.account_number,
                       driver=self)
