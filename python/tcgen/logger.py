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
import logging.handlers as handlers

SHORT = '%(name)s: %(message)s'
CLEAR = '%(levelname)s %(asctime)s %(filename)s: %(message)s'

_levels = {
    'CRITICAL': logging.CRITICAL,
    'ERROR': logging.ERROR,
    'WARNING': logging.WARNING,
    'INFO': logging.INFO,
    'DEBUG': logging.DEBUG,
    'NOTSET': logging.NOTSET,
}

_created = {}

def getLogger(name=None, **kwargs):
    """
    Return a logger with the requested handlers attached. Loggers are only
    built once, asking again for an existing name without arguments
    returns the cached instance.

    % getLogger('tc-gen', stream=sys.stderr, syslog=True, level='INFO')
    """
    if name in _created:
        if len(kwargs) == 0:
            return _created[name]
        raise ValueError(f'a logger with the name "{name}" already exists')

    logger = logging.getLogger(name)
    logger.setLevel(_levels[kwargs.get('level', 'DEBUG')])

    if 'address' in kwargs or kwargs.get('syslog', False):
        logger.addHandler(_syslog(**kwargs))
    if 'stream' in kwargs:
        logger.addHandler(_stream(**kwargs))

    _created[name] = logger
    return logger


def _syslog(**kwargs):
    formating = kwargs.get('syslog_format', SHORT)
    handler = handlers.SysLogHandler(
        address=kwargs.get('address', '/dev/log'),
        facility=kwargs.get('facility', 'daemon'),
    )
    handler.setFormatter(logging.Formatter(formating))
    return handler


def _stream(**kwargs):
    formating = kwargs.get('format', CLEAR)
    handler = logging.StreamHandler(
        stream=kwargs.get('stream', sys.stderr),
    )
    handler.setFormatter(logging.Formatter(formating))
    return handler
