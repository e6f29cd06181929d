#!/usr/bin/env python3
#
# Copyright (C) 2024 VyOS maintainers and contributors
#
# This program is free software; you can redistribute it and/or modify
# it under the terms of the GNU General Public License version 2 or later as
# published by the Free Software Foundation.
#
# This program is distributed in the hope that it will be useful,
# but WITHOUT ANY WARRANTY; without even the implied warranty of
# MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE. See the
# GNU General Public License for more details.
#
# You should have received a copy of the GNU General Public License
# along with this program.  If not, see <http://www.gnu.org/licenses/>.

from unittest import TestCase
from unittest import mock

from tcgen.base import HostError
from tcgen.qos.params import fq_codel_quantum
from tcgen.qos.params import htb_quantum
from tcgen.qos.params import interface_mtu
from tcgen.qos.params import police_burst
from tcgen.qos.params import queue_limit
from tcgen.qos.params import scheduler_params
from tcgen.qos.params import target_latency

class TestQoSParams(TestCase):
    def test_htb_quantum(self):
        for rate in [1, 10, 39]:
            self.assertEqual(htb_quantum(rate), 1514)
        for rate in [40, 100, 10000]:
            self.assertEqual(htb_quantum(rate), 8000)

    def test_target_latency(self):
        # 1250 kbyte/s, 1500 bytes take 1ms - floor applies
        self.assertEqual(target_latency(10, 1500), '5.0ms')
        # 125 kbyte/s, 1500 bytes take 12ms
        self.assertEqual(target_latency(1, 1500), '13.0ms')
        # 250 kbyte/s, 1500 bytes take 6ms
        self.assertEqual(target_latency(2, 1500), '7.0ms')
        # 5ms exactly still uses the floor
        self.assertEqual(target_latency(2, 1250), '5.0ms')
        self.assertEqual(target_latency(1000, 9000), '5.0ms')

    def test_fq_codel_quantum(self):
        self.assertEqual(fq_codel_quantum(1), 300)
        self.assertEqual(fq_codel_quantum(99), 300)
        self.assertIsNone(fq_codel_quantum(100))
        self.assertIsNone(fq_codel_quantum(1000))

    def test_queue_limit(self):
        self.assertEqual(queue_limit(1), 600)
        self.assertEqual(queue_limit(10), 600)
        self.assertEqual(queue_limit(11), 800)
        self.assertEqual(queue_limit(100), 800)
        self.assertEqual(queue_limit(101), 1200)
        self.assertEqual(queue_limit(1000), 1200)
        self.assertEqual(queue_limit(1001), 10000)

    def test_invalid_rate(self):
        for func in [htb_quantum, fq_codel_quantum, queue_limit]:
            with self.assertRaises(ValueError):
                func(0)
        with self.assertRaises(ValueError):
            target_latency(-1, 1500)

    def test_scheduler_params(self):
        tmp = scheduler_params(30, 1500, aqm_rate=70)
        # quantum follows the guaranteed rate
        self.assertEqual(tmp.quantum, 1514)
        # fq_codel knobs follow the ceiling
        self.assertEqual(tmp.limit, 800)
        self.assertEqual(tmp.target, '5.0ms')
        self.assertEqual(tmp.codel_quantum, 300)

        tmp = scheduler_params(1000, 1500)
        self.assertEqual(tmp.quantum, 8000)
        self.assertEqual(tmp.limit, 1200)
        self.assertIsNone(tmp.codel_quantum)

    def test_police_burst(self):
        self.assertEqual(police_burst(1500), 15000)
        self.assertEqual(police_burst(1500, 3000), 3000)

    def test_interface_mtu(self):
        with mock.patch('tcgen.qos.params.get_interface_mtu', return_value=1500):
            self.assertEqual(interface_mtu('eth0'), 1500)

    def test_interface_mtu_missing_interface(self):
        with mock.patch('tcgen.qos.params.get_interface_mtu', return_value=None):
            with self.assertRaises(HostError):
                interface_mtu('eth99')

    def test_interface_mtu_unreadable(self):
        with mock.patch('tcgen.qos.params.get_interface_mtu',
                        side_effect=PermissionError(13, 'Permission denied')):
            with self.assertRaises(HostError):
                interface_mtu('eth0')
