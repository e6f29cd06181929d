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

import os
import logging
import jmespath

from json import loads
from subprocess import PIPE

from tcgen.base import HostError
from tcgen.qos.params import interface_mtu
from tcgen.utils.network import interface_exists
from tcgen.utils.process import cmd
from tcgen.utils.process import rc_cmd
from tcgen.utils.process import which

logger = logging.getLogger(__name__)

REQUIRED_BINARIES = ['tc', 'ip', 'ethtool', 'modprobe']


class ControlPlane:
    """
    Issues the tc, ip, ethtool and modprobe commands that build a traffic
    control tree. Rates are passed in as integer mbit/s.

    With dry_run set every mutating command is printed instead of being
    executed, read only queries still run.
    """
    _debug = False
    _ingress = 'ffff:'

    def __init__(self, dry_run=False):
        if os.path.exists('/tmp/tcgen.qos.debug'):
            self._debug = True
        self._dry_run = dry_run

    def _cmd(self, command):
        if self._dry_run:
            print(command)
            return ''
        if self._debug:
            print(f'DEBUG/QoS: {command}')
        return cmd(command, shell=False, raising=HostError)

    def _query(self, command):
        return cmd(command, shell=False, raising=HostError)

    def missing_binaries(self) -> list:
        return [tmp for tmp in REQUIRED_BINARIES if not which(tmp)]

    def add_root_discipline(self, ifname, default_class_id):
        self._cmd(f'tc qdisc add dev {ifname} root handle 1: htb default {default_class_id}')

    def add_rate_class(self, ifname, parent, classid, rate, ceil=None,
                       priority=None, quantum=None):
        # https://man7.org/linux/man-pages/man8/tc-htb.8.html
        tmp = f'tc class add dev {ifname} parent {parent} classid {classid} htb rate {rate}mbit'
        if ceil is not None:
            tmp += f' ceil {ceil}mbit'
        if priority is not None:
            tmp += f' prio {priority}'
        if quantum is not None:
            tmp += f' quantum {quantum}'
        self._cmd(tmp)

    def replace_aqm_discipline(self, ifname, parent, handle, limit, target,
                               quantum=None, ecn=False):
        # https://man7.org/linux/man-pages/man8/tc-fq_codel.8.html
        tmp = f'tc qdisc replace dev {ifname} parent {parent} handle {handle}: fq_codel'
        tmp += f' limit {limit} target {target}'
        if quantum is not None:
            tmp += f' quantum {quantum}'
        tmp += ' ecn' if ecn else ' noecn'
        self._cmd(tmp)

    def add_mark_filter(self, ifname, parent, mark, classid):
        self._cmd(f'tc filter add dev {ifname} parent {parent} protocol all '
                  f'handle {mark} fw classid {classid}')

    def add_ingress_discipline(self, ifname):
        self._cmd(f'tc qdisc add dev {ifname} handle {self._ingress} ingress')

    def add_ingress_redirect(self, ifname, target):
        # prio 99 leaves room for filters inserted earlier in the chain
        self._cmd(f'tc filter add dev {ifname} parent {self._ingress} protocol all '
                  f'prio 99 u32 match u32 0 0 '
                  f'action mirred egress redirect dev {target}')

    def add_ingress_police(self, ifname, rate, burst, mtu):
        # https://man7.org/linux/man-pages/man8/tc-police.8.html
        self._cmd(f'tc filter add dev {ifname} parent {self._ingress} protocol all '
                  f'prio 99 u32 match u32 0 0 '
                  f'police rate {rate}mbit burst {burst} mtu {mtu} drop flowid :1')

    def clear_discipline(self, ifname, parent='root'):
        """
        Delete the root or ingress qdisc of an interface. Deleting a qdisc
        which does not exist is not an error.
        """
        command = f'tc qdisc del dev {ifname} {parent}'
        if self._dry_run:
            print(command)
            return
        rc, out = rc_cmd(command, shell=False)
        if rc != 0:
            logger.debug(f'Ignoring failed "{command}": {out}')

    def set_offload(self, ifname, **features):
        """
        Toggle ethtool offload features, e.g. set_offload('eth0', gro=False)
        """
        tmp = ' '.join(f'{feature} {"on" if state else "off"}'
                       for feature, state in features.items())
        self._cmd(f'ethtool --offload {ifname} {tmp}')

    def load_module(self, module):
        self._cmd(f'modprobe {module}')

    def bring_interface_up(self, ifname):
        self._cmd(f'ip link set dev {ifname} up')

    def query_mtu(self, ifname) -> int:
        return interface_mtu(ifname)

    def _query_json(self, command, raising=True) -> list:
        if raising:
            out = self._query(command)
        else:
            rc, out = rc_cmd(command, shell=False, stderr=PIPE)
            if rc != 0:
                return []
        return loads(out) if out else []

    def query_current_config(self, ifname) -> dict:
        """
        Return the qdiscs, classes and filters of an interface as decoded
        from the tc JSON output.
        """
        if not interface_exists(ifname):
            raise HostError(f'Interface "{ifname}" does not exist!')

        return {
            'filter': self._query_json(f'tc -j -s -d filter show dev {ifname}'),
            # an interface without ingress qdisc has no ffff: parent to show
            'ingress_filter': self._query_json(
                f'tc -j -s -d filter show dev {ifname} parent {self._ingress}',
                raising=False),
            'class': self._query_json(f'tc -j -s -d class show dev {ifname}'),
            'qdisc': self._query_json(f'tc -j -s -d qdisc show dev {ifname}'),
        }

    def query_redirect_target(self, ifname):
        """ Name of the interface ingress traffic is redirected to, or None """
        if not interface_exists(ifname):
            return None

        filters = self._query_json(
            f'tc -j -s -d filter show dev {ifname} parent {self._ingress}',
            raising=False)
        tmp = jmespath.search(
            "[].options.actions[] | [?kind == 'mirred'].to_dev", filters)
        if tmp:
            return tmp[0]
        return None
