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

import json

from unittest import TestCase
from unittest import mock

from tcgen.base import HostError
from tcgen.qos.classplan import TrafficClassSpec
from tcgen.qos.classplan import build_class_plan
from tcgen.qos.control import ControlPlane
from tcgen.qos.shaper import EgressShaper
from tcgen.qos.shaper import IngressPolicer
from tcgen.qos.shaper import IngressShaper
from tcgen.qos.shaper import clear
from tcgen.qos.shaper import show_config

redirect_filter = [
    {'parent': 'ffff:', 'protocol': 'all', 'pref': 99, 'kind': 'u32', 'chain': 0},
    {'parent': 'ffff:', 'protocol': 'all', 'pref': 99, 'kind': 'u32', 'chain': 0,
     'options': {'fh': '800:', 'ht_divisor': 1}},
    {'parent': 'ffff:', 'protocol': 'all', 'pref': 99, 'kind': 'u32', 'chain': 0,
     'options': {'fh': '800::800', 'order': 2048, 'key_ht': '800', 'bkt': 0,
                 'actions': [{'order': 1, 'kind': 'mirred',
                              'mirred_action': 'redirect', 'direction': 'egress',
                              'to_dev': 'ifb0'}]}},
]

default_qdisc = [
    {'kind': 'fq_codel', 'handle': '0:', 'root': True, 'refcnt': 2,
     'options': {'limit': 10240, 'flows': 1024, 'quantum': 1514, 'target': 4999,
                 'interval': 99999, 'memory_limit': 33554432, 'ecn': True,
                 'drop_batch': 64},
     'stats': {'bytes': 1000, 'packets': 10, 'drops': 0}},
]

class TestQoSShaper(TestCase):
    def setUp(self):
        self.control = ControlPlane()
        patcher = mock.patch('tcgen.qos.control.cmd', return_value='')
        self.cmd = patcher.start()
        self.addCleanup(patcher.stop)

        # nothing to delete, no ingress qdisc to show
        patcher = mock.patch('tcgen.qos.control.rc_cmd',
            return_value=(2, 'Error: Cannot delete qdisc with handle of zero.'))
        self.rc_cmd = patcher.start()
        self.addCleanup(patcher.stop)

        patcher = mock.patch('tcgen.qos.control.interface_exists', return_value=True)
        patcher.start()
        self.addCleanup(patcher.stop)

    def commands(self):
        return [tmp.args[0] for tmp in self.cmd.call_args_list]

    def test_egress_shaping(self):
        classes = [TrafficClassSpec(mark=107, rate=50),
                   TrafficClassSpec(mark=109, rate=30, ceil=70, priority=2)]
        plan = build_class_plan(100, classes)
        EgressShaper(self.control, 'eth0').update(plan, 1500)

        self.assertEqual(self.commands(), [
            'ethtool --offload eth0 tso off gso off',
            'tc qdisc add dev eth0 root handle 1: htb default 99',
            'tc class add dev eth0 parent 1: classid 1:1 htb rate 100mbit',
            'tc class add dev eth0 parent 1:1 classid 1:107 htb rate 50mbit ceil 100mbit prio 4 quantum 8000',
            'tc qdisc replace dev eth0 parent 1:107 handle 107: fq_codel limit 800 target 5.0ms noecn',
            'tc filter add dev eth0 parent 1: protocol all handle 107 fw classid 1:107',
            'tc class add dev eth0 parent 1:1 classid 1:109 htb rate 30mbit ceil 70mbit prio 2 quantum 1514',
            'tc qdisc replace dev eth0 parent 1:109 handle 109: fq_codel limit 800 target 5.0ms quantum 300 noecn',
            'tc filter add dev eth0 parent 1: protocol all handle 109 fw classid 1:109',
            'tc class add dev eth0 parent 1:1 classid 1:99 htb rate 20mbit ceil 100mbit prio 4 quantum 8000',
            'tc qdisc replace dev eth0 parent 1:99 handle 99: fq_codel limit 800 target 5.0ms noecn',
        ])

    def test_egress_shaping_slow_link(self):
        EgressShaper(self.control, 'eth0').update(build_class_plan(1), 1500)

        self.assertEqual(self.commands()[-2:], [
            'tc class add dev eth0 parent 1:1 classid 1:99 htb rate 1mbit ceil 1mbit prio 4 quantum 1514',
            'tc qdisc replace dev eth0 parent 1:99 handle 99: fq_codel limit 600 target 13.0ms quantum 300 noecn',
        ])

    def test_ingress_shaping(self):
        IngressShaper(self.control, 'eth0', 'ifb0').update(10, 1500)

        self.assertEqual(self.commands(), [
            'tc qdisc add dev eth0 handle ffff: ingress',
            'modprobe ifb',
            'ip link set dev ifb0 up',
            'tc qdisc add dev ifb0 root handle 1: htb default 99',
            'tc class add dev ifb0 parent 1: classid 1:1 htb rate 10mbit',
            'tc class add dev ifb0 parent 1:1 classid 1:99 htb rate 10mbit ceil 10mbit prio 0 quantum 1514',
            'tc qdisc replace dev ifb0 parent 1:99 handle 99: fq_codel limit 600 target 5.0ms quantum 300 ecn',
            'tc filter add dev eth0 parent ffff: protocol all prio 99 u32 match u32 0 0 action mirred egress redirect dev ifb0',
        ])

    def test_ingress_policing(self):
        IngressPolicer(self.control, 'eth0').update(20, 1500)

        self.assertEqual(self.commands(), [
            'ethtool --offload eth0 gro off',
            'tc qdisc add dev eth0 handle ffff: ingress',
            'tc filter add dev eth0 parent ffff: protocol all prio 99 u32 match u32 0 0 police rate 20mbit burst 15000 mtu 1500 drop flowid :1',
        ])

    def test_ingress_policing_burst(self):
        IngressPolicer(self.control, 'eth0').update(20, 1500, burst=6250)
        self.assertIn('burst 6250 mtu 1500', self.commands()[-1])

    def test_clear(self):
        clear(self.control, 'eth0')
        # clearing a clean interface again must not raise
        clear(self.control, 'eth0')

        deleted = [tmp.args[0] for tmp in self.rc_cmd.call_args_list
                   if ' del ' in tmp.args[0]]
        self.assertEqual(deleted, [
            'tc qdisc del dev eth0 root',
            'tc qdisc del dev eth0 ingress',
        ] * 2)
        self.assertEqual(self.commands(),
                         ['ethtool --offload eth0 gro on tso on gso on'] * 2)

    def test_clear_discovers_ifb(self):
        self.rc_cmd.return_value = (0, json.dumps(redirect_filter))
        clear(self.control, 'eth0')

        deleted = [tmp.args[0] for tmp in self.rc_cmd.call_args_list
                   if ' del ' in tmp.args[0]]
        self.assertIn('tc qdisc del dev ifb0 root', deleted)

    def test_clear_given_ifb(self):
        clear(self.control, 'eth0', 'ifb1')

        deleted = [tmp.args[0] for tmp in self.rc_cmd.call_args_list]
        self.assertIn('tc qdisc del dev ifb1 root', deleted)
        # the given interface wins, no need to look it up
        self.assertFalse(any('filter show' in tmp for tmp in deleted))

    def test_command_failure(self):
        self.cmd.side_effect = HostError('failed to run command: tc qdisc add')
        with self.assertRaises(HostError):
            EgressShaper(self.control, 'eth0').update(build_class_plan(10), 1500)

    def test_dry_run(self):
        control = ControlPlane(dry_run=True)
        with mock.patch('builtins.print') as printed:
            IngressPolicer(control, 'eth0').update(20, 1500)
            clear(control, 'eth0', 'ifb0')

        self.cmd.assert_not_called()
        printed.assert_any_call('ethtool --offload eth0 gro off')
        printed.assert_any_call('tc qdisc del dev ifb0 root')

    def test_redirect_target(self):
        self.assertIsNone(self.control.query_redirect_target('eth0'))

        self.rc_cmd.return_value = (0, json.dumps(redirect_filter))
        self.assertEqual(self.control.query_redirect_target('eth0'), 'ifb0')

        self.rc_cmd.return_value = (0, json.dumps(redirect_filter[:2]))
        self.assertIsNone(self.control.query_redirect_target('eth0'))

    def test_show_unconfigured_interface(self):
        def tc_output(command, **kwargs):
            if 'qdisc show' in command:
                return json.dumps(default_qdisc)
            return ''
        self.cmd.side_effect = tc_output

        clear(self.control, 'eth0')
        out = show_config(self.control, 'eth0')

        self.assertIn('### INTERFACE: eth0 ###', out)
        self.assertIn('=== Filters ===', out)
        self.assertIn('=== Classes ===', out)
        self.assertIn('fq_codel', out)
        self.assertIn('root', out)

    def test_show_follows_redirect(self):
        def tc_output(command, **kwargs):
            if 'class show' in command:
                return json.dumps([{'class': 'htb', 'handle': '1:99', 'parent': '1:1',
                                    'prio': 0, 'quantum': 1514, 'rate': 1250000,
                                    'ceil': 1250000, 'stats': {'bytes': 0}}])
            return ''
        self.cmd.side_effect = tc_output
        # both interfaces claim to redirect, the second one must not loop back
        self.rc_cmd.return_value = (0, json.dumps(redirect_filter))

        out = show_config(self.control, 'eth0')

        self.assertIn('### INTERFACE: eth0 ###', out)
        self.assertIn('### INTERFACE: ifb0 ###', out)
        self.assertEqual(out.count('### INTERFACE: ifb0 ###'), 1)
        self.assertIn('10mbit', out)

    def test_show_missing_interface(self):
        with mock.patch('tcgen.qos.control.interface_exists', return_value=False):
            with self.assertRaises(HostError):
                show_config(self.control, 'eth99')
