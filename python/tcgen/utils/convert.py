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

import re

_rate_regex = re.compile(r'^(\d+(?:\.\d+)?)([kKmM]?)$')

_rate_scale = {
    ''  : 1000,
    'k' : 1,
    'm' : 1000,
}

def rate_to_mbit(rate) -> int:
    """ Converts a user supplied rate into whole mbit/s

    A plain number is taken as mbit/s, a "k" or "K" suffix means kbit/s
    and "m" or "M" mbit/s. Fractions are allowed, the result is rounded
    down. Anything below 1 mbit/s is rejected.

    % rate_to_mbit('25')
    % 25
    % rate_to_mbit('2.5M')
    % 2
    % rate_to_mbit('1500k')
    % 1
    """
    tmp = _rate_regex.match(str(rate).strip())
    if not tmp:
        raise ValueError(f'"{rate}" is not a valid rate')

    value, suffix = tmp.groups()
    # calculate in kbit/s to avoid float rounding on the scale factor
    kbit = float(value) * _rate_scale[suffix.lower()]
    mbit = int(kbit) // 1000
    if mbit <= 0:
        raise ValueError(f'"{rate}" is below 1 mbit/s')
    return mbit
