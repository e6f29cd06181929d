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

import sys
import logging

from argparse import ArgumentParser
from argparse import RawDescriptionHelpFormatter
from dataclasses import dataclass
from typing import Optional

from tcgen.base import ConfigError
from tcgen.base import HostError
from tcgen.base import Warning
from tcgen.logger import getLogger
from tcgen.qos.classplan import build_class_plan
from tcgen.qos.classplan import parse_class_config
from tcgen.qos.control import ControlPlane
from tcgen.qos.shaper import EgressShaper
from tcgen.qos.shaper import IngressPolicer
from tcgen.qos.shaper import IngressShaper
from tcgen.qos.shaper import clear
from tcgen.qos.shaper import show_config
from tcgen.qos.topology import Topology
from tcgen.qos.topology import select_topology
from tcgen.utils.convert import rate_to_mbit
from tcgen.utils.network import interface_exists
from tcgen.utils.network import is_interface_name

logger = logging.getLogger(__name__)

EPILOG = """\
examples:
  shape egress to 25 mbit/s
    tc-gen -i eth0 -u 25
  shape egress to 5 mbit/s and ingress to 10 mbit/s using an IFB interface
    tc-gen -i eth0 -u 5 -d 10 -f ifb0
  shape egress to 2 mbit/s and police ingress to 20 mbit/s
    tc-gen -i eth0 -u 2 -d 20
  display the current configuration
    tc-gen -i eth0
  remove the configuration
    tc-gen -i eth0 -x
"""


@dataclass(frozen=True)
class TCGenConfig:
    interface: str
    up_rate: Optional[int] = None
    down_rate: Optional[int] = None
    ifb_interface: Optional[str] = None
    burst_size: Optional[int] = None
    classes: tuple = ()
    clear: bool = False
    dry_run: bool = False


def parse_args(argv=None):
    parser = ArgumentParser(prog='tc-gen', epilog=EPILOG,
                            formatter_class=RawDescriptionHelpFormatter,
                            description='Shape and police interface traffic '
                                        'with HTB and fq_codel')
    parser.add_argument('-i', dest='interface', required=True,
                        help='Interface to configure, shown when no rate is given')
    parser.add_argument('-u', dest='up_rate',
                        help='Egress rate, mbit/s unless suffixed with k or M')
    parser.add_argument('-d', dest='down_rate',
                        help='Ingress rate, mbit/s unless suffixed with k or M')
    parser.add_argument('-f', dest='ifb_interface',
                        help='IFB interface used to shape instead of police ingress')
    parser.add_argument('-b', dest='burst_size', type=int,
                        help='Ingress policing burst in bytes (default: MTU * 10)')
    parser.add_argument('-c', dest='class_config',
                        help='Egress classes "<fwmark>:<rate>:<ceil>:<prio>,..."')
    parser.add_argument('-x', dest='clear', action='store_true',
                        help='Clear all traffic control config on interface')
    parser.add_argument('--dry-run', action='store_true',
                        help='Print commands instead of executing them')
    parser.add_argument('--syslog', action='store_true',
                        help='Log to syslog as well')
    parser.add_argument('-v', '--verbose', action='store_true',
                        help='Log ignored errors and debug messages')
    return parser.parse_args(argv)


def _rate(rate, option):
    if rate is None:
        return None
    try:
        return rate_to_mbit(rate)
    except ValueError as e:
        raise ConfigError(f'Invalid rate for {option}: {e}')


def get_config(args) -> TCGenConfig:
    return TCGenConfig(interface=args.interface,
                       up_rate=_rate(args.up_rate, '-u'),
                       down_rate=_rate(args.down_rate, '-d'),
                       ifb_interface=args.ifb_interface,
                       burst_size=args.burst_size,
                       classes=tuple(parse_class_config(args.class_config)),
                       clear=args.clear,
                       dry_run=args.dry_run)


def verify(config, control):
    for ifname in [config.interface, config.ifb_interface]:
        if ifname is not None and not is_interface_name(ifname):
            raise ConfigError(f'Invalid interface name "{ifname}"!')

    if not interface_exists(config.interface):
        raise HostError(f'Interface "{config.interface}" does not exist!')

    if config.ifb_interface and config.ifb_interface == config.interface:
        raise ConfigError('IFB interface must differ from the shaped interface!')

    if config.burst_size is not None and config.burst_size <= 0:
        raise ConfigError(f'Burst size {config.burst_size} must be positive!')

    if config.classes and not config.up_rate and not config.clear:
        Warning('Classes are only used for egress shaping, they are ignored '
                'without an up rate!')

    if config.burst_size and config.ifb_interface:
        Warning('Burst size is only used for ingress policing, it is ignored '
                'with ingress shaping!')

    if not config.dry_run:
        missing = control.missing_binaries()
        if missing:
            raise HostError(f'Required commands not found: {", ".join(missing)}')

    return None


def generate(config, control) -> dict:
    """
    Resolve everything a run needs before the first command touches the
    interface: the topology, the interface MTU and the egress class plan.
    """
    topology = select_topology(up_rate=config.up_rate,
                               down_rate=config.down_rate,
                               ifb_interface=config.ifb_interface,
                               clear=config.clear)
    generated = {'topology': topology}

    if topology in [Topology.INSPECT, Topology.CLEAR]:
        return generated

    generated['mtu'] = control.query_mtu(config.interface)
    if Topology.EGRESS in topology:
        generated['plan'] = build_class_plan(config.up_rate, config.classes)

    return generated


def apply(config, control, generated):
    topology = generated['topology']
    ifname = config.interface

    if topology == Topology.INSPECT:
        print(show_config(control, ifname))
        return None

    clear(control, ifname, config.ifb_interface)
    if topology == Topology.CLEAR:
        logger.info(f'Config cleared on {ifname}')
        return None

    mtu = generated['mtu']
    if Topology.EGRESS in topology:
        EgressShaper(control, ifname).update(generated['plan'], mtu)
        logger.info(f'Egress on {ifname} shaped to {config.up_rate}mbit')

    if Topology.INGRESS_SHAPING in topology:
        IngressShaper(control, ifname, config.ifb_interface).update(config.down_rate, mtu)
        logger.info(f'Ingress on {ifname} shaped to {config.down_rate}mbit '
                    f'via {config.ifb_interface}')

    if Topology.INGRESS_POLICING in topology:
        IngressPolicer(control, ifname).update(config.down_rate, mtu, config.burst_size)
        logger.info(f'Ingress on {ifname} policed to {config.down_rate}mbit')

    return None


def _get_logger(syslog=False, verbose=False):
    kwargs = {
        'stream': sys.stderr,
        'format': '%(levelname)s: %(message)s',
        'level': 'DEBUG' if verbose else 'INFO',
    }
    if syslog:
        kwargs['syslog'] = True
    try:
        return getLogger('tcgen', **kwargs)
    except ValueError:
        # set up by an earlier run within the same process
        return getLogger('tcgen')


# entry_point for console script
#
def run(argv=None):
    args = parse_args(argv)
    log = _get_logger(syslog=args.syslog, verbose=args.verbose)

    try:
        config = get_config(args)
        control = ControlPlane(dry_run=config.dry_run)
        verify(config, control)
        generated = generate(config, control)
        apply(config, control, generated)
    except (ConfigError, HostError) as e:
        log.error(e)
        sys.exit(1)


if __name__ == '__main__':
    run()
