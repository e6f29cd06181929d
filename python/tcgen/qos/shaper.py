# Copyright 2024 VyOS maintainers and contributors <maintainers@vyos.io>
#
# This library is free software; you can redistribute it and/or
# modify it under the terms of the GNU Lesser General Public
# License as published by the Free Software Foundation; either
# version 2.1 of the License, or (at your option) any later version.
#
# This library is distributed in the hope that it will be useful,
# but WITHOUT ANY WARRANTY; without even the implied warranty of
# MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE.  See the GNU
# Lesser General Public License for more details.
#
# You should have received a copy of the GNU Lesser General Public
# License along with this library.  If not, see <http://www.gnu.org/licenses/>.

import jmespath

from tabulate import tabulate

from tcgen.qos.classplan import DEFAULT_CLASS_ID
from tcgen.qos.classplan import ROOT_CLASS_ID
from tcgen.qos.params import police_burst
from tcgen.qos.params import scheduler_params


class EgressShaper:
    """
    HTB root with one class per fwmark and a default class, every leaf
    queued by fq_codel. ECN is disabled, which is recommended for egress.
    """
    _parent = 1

    def __init__(self, control, interface):
        self._control = control
        self._interface = interface

    def _classid(self, minor):
        return f'{self._parent}:{minor}'

    def update(self, plan, mtu):
        ctl = self._control
        ifname = self._interface
        root = self._classid(ROOT_CLASS_ID)

        # tso and gso on the outgoing interface make the shaping inaccurate
        ctl.set_offload(ifname, tso=False, gso=False)

        ctl.add_root_discipline(ifname, DEFAULT_CLASS_ID)
        ctl.add_rate_class(ifname, f'{self._parent}:', root, plan.total_rate)

        for cls in plan.classes:
            classid = self._classid(cls.class_id)
            params = scheduler_params(cls.rate, mtu, aqm_rate=cls.ceil)

            ctl.add_rate_class(ifname, root, classid, cls.rate, ceil=cls.ceil,
                               priority=cls.priority, quantum=params.quantum)
            ctl.replace_aqm_discipline(ifname, classid, cls.class_id,
                                       params.limit, params.target,
                                       quantum=params.codel_quantum)
            ctl.add_mark_filter(ifname, f'{self._parent}:', cls.mark, classid)

        default = plan.default
        classid = self._classid(default.class_id)
        params = scheduler_params(plan.total_rate, mtu)
        ctl.add_rate_class(ifname, root, classid, default.rate,
                           ceil=default.ceil, priority=default.priority,
                           quantum=params.quantum)
        ctl.replace_aqm_discipline(ifname, classid, default.class_id,
                                   params.limit, params.target,
                                   quantum=params.codel_quantum)


class IngressShaper:
    """
    Redirect all ingress traffic to an IFB interface and shape it on the
    IFB egress with a single HTB class and fq_codel with ECN enabled.
    """
    _parent = 1
    _priority = 0

    def __init__(self, control, interface, ifb_interface):
        self._control = control
        self._interface = interface
        self._ifb = ifb_interface

    def update(self, rate, mtu):
        ctl = self._control
        root = f'{self._parent}:{ROOT_CLASS_ID}'
        classid = f'{self._parent}:{DEFAULT_CLASS_ID}'
        # fq_codel target follows the MTU of the physical interface
        params = scheduler_params(rate, mtu)

        ctl.add_ingress_discipline(self._interface)

        ctl.load_module('ifb')
        ctl.bring_interface_up(self._ifb)

        ctl.add_root_discipline(self._ifb, DEFAULT_CLASS_ID)
        ctl.add_rate_class(self._ifb, f'{self._parent}:', root, rate)
        ctl.add_rate_class(self._ifb, root, classid, rate, ceil=rate,
                           priority=self._priority, quantum=params.quantum)
        ctl.replace_aqm_discipline(self._ifb, classid, DEFAULT_CLASS_ID,
                                   params.limit, params.target,
                                   quantum=params.codel_quantum, ecn=True)

        ctl.add_ingress_redirect(self._interface, self._ifb)


class IngressPolicer:
    """
    Drop ingress traffic exceeding the rate. Policing is unreliable with
    generic receive offload, so GRO gets disabled. Bonds and VLAN
    interfaces need GRO disabled on their physical NICs by hand.
    """
    def __init__(self, control, interface):
        self._control = control
        self._interface = interface

    def update(self, rate, mtu, burst=None):
        ctl = self._control
        ctl.set_offload(self._interface, gro=False)
        ctl.add_ingress_discipline(self._interface)
        ctl.add_ingress_police(self._interface, rate, police_burst(mtu, burst), mtu)


def clear(control, interface, ifb_interface=None):
    """
    Remove all traffic control configuration from interface and from the
    IFB interface its ingress is redirected to, then restore the offload
    features shaping and policing switch off. Safe to run repeatedly.
    """
    # must be looked up before the ingress qdisc and its filters are gone
    ifb_interface = ifb_interface or control.query_redirect_target(interface)

    control.clear_discipline(interface, 'root')
    control.clear_discipline(interface, 'ingress')
    if ifb_interface:
        control.clear_discipline(ifb_interface, 'root')

    control.set_offload(interface, gro=True, tso=True, gso=True)


def _format_rate(num):
    """ tc reports rates in bytes per second """
    num = int(num) * 8
    if num < 10**3:
        return f'{num}bit'
    elif num < 10**6:
        return f'{num / 10**3:g}kbit'
    elif num < 10**9:
        return f'{num / 10**6:g}mbit'
    return f'{num / 10**9:g}gbit'


def _table(entries, columns):
    rows = []
    for entry in entries:
        row = []
        for _, path, fmt in columns:
            value = jmespath.search(path, entry)
            if value is not None and fmt:
                value = fmt(value)
            row.append('' if value is None else value)
        rows.append(row)
    return tabulate(rows, headers=[header for header, _, _ in columns])


_filter_columns = [
    ('Parent', 'parent', None),
    ('Prio', 'pref', None),
    ('Kind', 'kind', None),
    ('Handle', 'options.handle', None),
    ('Flow', 'options.classid || options.flowid', None),
    ('Action', "options.actions[0].kind", None),
    ('Target', "options.actions[0].to_dev", None),
]

_class_columns = [
    ('Class', 'handle', None),
    ('Parent', 'parent', None),
    ('Kind', 'class', None),
    ('Rate', 'rate', _format_rate),
    ('Ceil', 'ceil', _format_rate),
    ('Prio', 'prio', None),
    ('Quantum', 'quantum', None),
    ('Bytes', 'stats.bytes', None),
    ('Packets', 'stats.packets', None),
    ('Drops', 'stats.drops', None),
    ('Overlimits', 'stats.overlimits', None),
]

_qdisc_columns = [
    ('Qdisc', 'handle', None),
    ('Parent', 'parent || `"root"`', None),
    ('Kind', 'kind', None),
    ('Limit', 'options.limit', None),
    ('Target', 'options.target', None),
    ('ECN', 'options.ecn', None),
    ('Bytes', 'stats.bytes', None),
    ('Packets', 'stats.packets', None),
    ('Drops', 'stats.drops', None),
]


def show_config(control, interface, _visited=None) -> str:
    """
    Render filters, classes and qdiscs of interface as tables. When ingress
    traffic is redirected to an IFB interface, its configuration follows.
    """
    visited = _visited or []
    visited.append(interface)

    config = control.query_current_config(interface)

    out = f'### INTERFACE: {interface} ###\n\n'
    out += '=== Filters ===\n'
    out += _table(config['filter'] + config['ingress_filter'], _filter_columns)
    out += '\n\n=== Classes ===\n'
    out += _table(config['class'], _class_columns)
    out += '\n\n=== Qdiscs ===\n'
    out += _table(config['qdisc'], _qdisc_columns)
    out += '\n'

    ifb_interface = control.query_redirect_target(interface)
    if ifb_interface and ifb_interface not in visited:
        out += '\n' + show_config(control, ifb_interface, visited)

    return out
