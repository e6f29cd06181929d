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

from tcgen.base import ConfigError
from tcgen.utils.convert import rate_to_mbit

ROOT_CLASS_ID = 1
DEFAULT_CLASS_ID = 99
DEFAULT_PRIORITY = 4
# https://man7.org/linux/man-pages/man8/tc-htb.8.html - TC_HTB_NUMPRIO
MAX_PRIORITY = 7
# class ids and qdisc handles are 16 bit, tc reads the decimal mark as hex
MAX_CLASS_ID = 0xffff


@dataclass(frozen=True)
class TrafficClassSpec:
    mark: int
    rate: int
    ceil: Optional[int] = None
    priority: Optional[int] = None


@dataclass(frozen=True)
class ResolvedClass:
    class_id: int
    rate: int
    ceil: int
    priority: int
    mark: Optional[int] = None


@dataclass(frozen=True)
class ClassPlan:
    total_rate: int
    classes: tuple
    default: ResolvedClass

    def all_classes(self) -> tuple:
        """ User classes in caller order followed by the default class """
        return self.classes + (self.default,)


def _verify_marks(classes):
    seen = set()
    for spec in classes:
        if spec.mark <= 0 or int(str(spec.mark), 16) > MAX_CLASS_ID:
            raise ConfigError(f'fwmark {spec.mark} can not be used as class id, '
                              f'expected 1-{MAX_CLASS_ID:x}!')
        if spec.mark in (ROOT_CLASS_ID, DEFAULT_CLASS_ID):
            raise ConfigError(f'fwmark {spec.mark} is reserved, class ids '
                              f'{ROOT_CLASS_ID} and {DEFAULT_CLASS_ID} are '
                              'used by the root and default class!')
        if spec.mark in seen:
            raise ConfigError(f'fwmark {spec.mark} is used by more than one class!')
        seen.add(spec.mark)


def build_class_plan(total_rate, classes=()) -> ClassPlan:
    """
    Split total_rate (mbit/s) between the marked classes and the default
    class. Classes keep the order given by the caller. Every class without
    a ceiling may borrow up to total_rate, every class without a priority
    shares the priority of the default class. Whatever is left after the
    guaranteed class rates becomes the rate of the default class.

    Raises ConfigError on the first invalid class, no partial plan is
    returned.
    """
    if total_rate <= 0:
        raise ConfigError(f'Total up rate {total_rate}mbit must be positive!')

    _verify_marks(classes)

    remaining = total_rate
    resolved = []
    for spec in classes:
        ceil = total_rate if spec.ceil is None else spec.ceil
        priority = DEFAULT_PRIORITY if spec.priority is None else spec.priority

        if spec.rate <= 0 or ceil <= 0:
            raise ConfigError(f'Rate and ceiling of class {spec.mark} must be '
                              'positive!')
        if ceil > total_rate:
            raise ConfigError(f'Ceiling {ceil}mbit of class {spec.mark} should '
                              f'not be larger than total up rate {total_rate}mbit!')

        remaining -= spec.rate
        if remaining <= 0:
            raise ConfigError('The aggregated guaranteed rate of the classes '
                              'needs to be less than the total up rate to '
                              'leave some room for the default class!')

        resolved.append(ResolvedClass(class_id=spec.mark, rate=spec.rate,
                                      ceil=ceil, priority=priority,
                                      mark=spec.mark))

    default = ResolvedClass(class_id=DEFAULT_CLASS_ID, rate=remaining,
                            ceil=total_rate, priority=DEFAULT_PRIORITY)

    return ClassPlan(total_rate=total_rate, classes=tuple(resolved),
                     default=default)


def _optional(value):
    value = value.strip()
    return value if value else None


def parse_class_config(config) -> list:
    """
    Parse a class list of the form "<fwmark>:<rate>[:<ceil>[:<prio>]],..."
    into TrafficClassSpec objects. Ceiling and priority may be left empty.

    % parse_class_config('107:50::,109:30:70:2')
    % [TrafficClassSpec(mark=107, rate=50, ceil=None, priority=None),
       TrafficClassSpec(mark=109, rate=30, ceil=70, priority=2)]
    """
    classes = []
    if not config:
        return classes

    for entry in config.split(','):
        if not entry.strip():
            continue

        fields = entry.split(':')
        if len(fields) < 2 or len(fields) > 4:
            raise ConfigError(f'Invalid class definition "{entry}", expected '
                              '"<fwmark>:<rate>:<ceil>:<prio>"!')
        fields += [''] * (4 - len(fields))
        mark, rate, ceil, prio = [_optional(tmp) for tmp in fields]

        if not mark or not mark.isdecimal() or int(mark) <= 0:
            raise ConfigError(f'Invalid fwmark "{mark}" in class "{entry}"!')
        if not rate:
            raise ConfigError(f'Rate missing in class "{entry}"!')

        try:
            rate = rate_to_mbit(rate)
            if ceil:
                ceil = rate_to_mbit(ceil)
        except ValueError as e:
            raise ConfigError(f'Invalid class "{entry}": {e}')

        if prio is not None:
            if not prio.isdecimal() or int(prio) > MAX_PRIORITY:
                raise ConfigError(f'Invalid priority "{prio}" in class "{entry}", '
                                  f'expected 0-{MAX_PRIORITY}!')
            prio = int(prio)

        classes.append(TrafficClassSpec(mark=int(mark), rate=rate,
                                        ceil=ceil, priority=prio))
    return classes
