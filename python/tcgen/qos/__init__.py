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

from tcgen.qos.classplan import ClassPlan
from tcgen.qos.classplan import TrafficClassSpec
from tcgen.qos.classplan import build_class_plan
from tcgen.qos.control import ControlPlane
from tcgen.qos.shaper import EgressShaper
from tcgen.qos.shaper import IngressPolicer
from tcgen.qos.shaper import IngressShaper
from tcgen.qos.topology import Topology
from tcgen.qos.topology import select_topology
