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

def interface_exists(interface) -> bool:
    import os
    return os.path.exists(f'/sys/class/net/{interface}')

def get_interface_mtu(interface) -> int:
    """ Returns the MTU of an interface as reported by the kernel.
    If interface does not exist, None is returned.

       % get_interface_mtu('lo')
       % 65536
    """
    from tcgen.utils.file import read_file
    if not interface_exists(interface):
        return None
    return int(read_file(f'/sys/class/net/{interface}/mtu'))

def is_interface_name(interface) -> bool:
    """ Check interface against the names the kernel accepts, IFNAMSIZ
    leaves room for 15 characters.

       % is_interface_name('eth0.10')
       % True
       % is_interface_name('ifb0;reboot')
       % False
    """
    import re
    if interface in ['.', '..']:
        return False
    return bool(re.fullmatch(r'[A-Za-z0-9_.:-]{1,15}', interface))
