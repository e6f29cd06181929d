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

from dataclasses import dataclass
from typing import Optional

from tcgen.base import HostError
from tcgen.utils.network import get_interface_mtu

# HTB quantum for slow links is about one full sized ethernet frame
HTB_QUANTUM_SMALL = 1514
HTB_QUANTUM_LARGE = 8000
HTB_QUANTUM_THRESHOLD = 40

FQ_CODEL_QUANTUM = 300
FQ_CODEL_QUANTUM_THRESHOLD = 100

TARGET_FLOOR = 5

# (upper rate bound in mbit/s, fq_codel packet limit)
LIMIT_STEPS = [
    (10, 600),
    (100, 800),
    (1000, 1200),
]
LIMIT_MAX = 10000

POLICE_BURST_PACKETS = 10


@dataclass(frozen=True)
class SchedulerParams:
    quantum: int
    target: str
    limit: int
    codel_quantum: Optional[int] = None


def _verify_rate(rate):
    if int(rate) <= 0:
        raise ValueError(f'{rate} is not a valid bandwidth <= 0')


def htb_quantum(rate) -> int:
    """ HTB class quantum in bytes for a rate in mbit/s """
    _verify_rate(rate)
    if rate < HTB_QUANTUM_THRESHOLD:
        return HTB_QUANTUM_SMALL
    return HTB_QUANTUM_LARGE


def target_latency(rate, mtu) -> str:
    """
    fq_codel target for a rate in mbit/s: the time needed to serialize one
    MTU sized packet plus a millisecond, but never below 5ms.

    % target_latency(1, 1500)
    % '13.0ms'
    """
    _verify_rate(rate)
    kbytes = rate * 1000 // 8
    ms = int(mtu) // kbytes

    if ms > TARGET_FLOOR:
        target = ms + 1
    else:
        target = TARGET_FLOOR

    return f'{target}.0ms'


def fq_codel_quantum(rate) -> Optional[int]:
    """ A smaller fq_codel quantum below 100 mbit/s, None keeps the default """
    _verify_rate(rate)
    if rate < FQ_CODEL_QUANTUM_THRESHOLD:
        return FQ_CODEL_QUANTUM
    return None


def queue_limit(rate) -> int:
    _verify_rate(rate)
    for bound, limit in LIMIT_STEPS:
        if rate <= bound:
            return limit
    return LIMIT_MAX


def interface_mtu(ifname) -> int:
    try:
        mtu = get_interface_mtu(ifname)
    except (OSError, ValueError) as e:
        raise HostError(f'Can not read MTU of "{ifname}": {e}')
    if mtu is None:
        raise HostError(f'Interface "{ifname}" does not exist!')
    return mtu


def scheduler_params(rate, mtu, aqm_rate=None) -> SchedulerParams:
    """
    All knobs for one HTB class and its fq_codel leaf. The HTB quantum
    follows the guaranteed rate, the fq_codel knobs follow aqm_rate when
    given. User classes pass their ceiling here.
    """
    aqm_rate = aqm_rate or rate
    return SchedulerParams(quantum=htb_quantum(rate),
                           target=target_latency(aqm_rate, mtu),
                           limit=queue_limit(aqm_rate),
                           codel_quantum=fq_codel_quantum(aqm_rate))


def police_burst(mtu, burst=None) -> int:
    if burst:
        return int(burst)
    return int(mtu) * POLICE_BURST_PACKETS
