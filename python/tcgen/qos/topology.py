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

from enum import Flag


class Topology(Flag):
    """ Traffic control layouts a single run can build """

    CLEAR = 0x1             #: Remove any existing configuration
    EGRESS = 0x2            #: HTB and fq_codel on the physical interface
    INGRESS_SHAPING = 0x4   #: Redirect ingress to an IFB and shape it there
    INGRESS_POLICING = 0x8  #: Drop ingress traffic above the rate
    INSPECT = 0x10          #: Read only, display the configuration

    # every build starts from a clean interface
    EGRESS_ONLY = CLEAR | EGRESS
    EGRESS_AND_INGRESS_SHAPING = CLEAR | EGRESS | INGRESS_SHAPING
    EGRESS_AND_INGRESS_POLICING = CLEAR | EGRESS | INGRESS_POLICING


def select_topology(up_rate=None, down_rate=None, ifb_interface=None,
                    clear=False) -> Topology:
    """
    Decide which traffic control layout to build. The presence of an IFB
    interface name is the only thing that picks ingress shaping over
    ingress policing.

    % select_topology(up_rate=25)
    % <Topology.EGRESS_ONLY: 3>
    """
    if clear:
        return Topology.CLEAR

    if not up_rate and not down_rate:
        return Topology.INSPECT

    topology = Topology.CLEAR
    if up_rate:
        topology |= Topology.EGRESS

    if down_rate:
        if ifb_interface:
            topology |= Topology.INGRESS_SHAPING
        else:
            topology |= Topology.INGRESS_POLICING

    return topology
