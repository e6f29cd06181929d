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
import sys
from datetime import datetime

def message(message, flag='', destination=sys.stdout):
    """
    print a debug message line on stdout if debugging is enabled for the flag
    also log it to a file if the flag 'log' is enabled

    message: the message to print
    flag: which flag must be set for it to print
    destination: which file like object to write to (default: sys.stdout)

    returns if any message was logged or not
    """
    enable = enabled(flag)
    if enable:
        destination.write(_format(flag, message))

    # the log flag is special as it logs all the commands
    # executed to a log
    logfile = _logfile('log', '/tmp/tcgen-debug.log')
    if not logfile:
        return enable

    with open(logfile, 'a') as f:
        f.write(_timed(_format('log', message)))

    return enable


def enabled(flag):
    """
    a flag can be set by touching the file in /tmp or through the environment

    The current flags are:
     - log: the code will log all command to a file
     - command: print command run with result

    The function returns an empty string if the flag was not set otherwise
    the function returns either the file or environment name used to set it up
    """

    if flag not in ['log', 'command']:
        return ''

    return _fromenv(flag) or _fromfile(flag)


def _timed(message):
    now = datetime.now().strftime('%Y-%m-%d %H:%M:%S')
    return f'{now} {message}'


def _remove_invisible(string):
    for char in ('\0', '\a', '\b', '\f', '\v'):
        string = string.replace(char, '')
    return string


def _format(flag, message):
    message = _remove_invisible(message)
    return f'DEBUG/{flag.upper():<7} {message}\n'


def _fromenv(flag):
    """
    For a given debug flag named "test" the presence of the environment
    variable TCGEN_TEST_DEBUG (uppercase) enables it
    """
    flagname = f'TCGEN_{flag.upper()}_DEBUG'
    flagenv = os.environ.get(flagname, None)

    if flagenv is None:
        return ''
    return flagenv


def _fromfile(flag):
    """
    For a given debug flag named "test" the presence of the file
    /tmp/tcgen.test.debug (all lowercase) enables it
    """
    flagfile = f'/tmp/tcgen.{flag}.debug'
    if os.path.isfile(flagfile):
        return flagfile
    return ''


def _logfile(flag, default):
    """
    return the name of the file to use for logging when the flag 'log' is set
    if it could not be established or the location is invalid it returns
    an empty string
    """
    log_location = os.environ.get(f'TCGEN_{flag.upper()}_DEBUG', '').strip()
    if not log_location:
        if not _fromfile(flag):
            return ''
        log_location = default

    # Make sure that the logs can only be in /tmp or /var/log
    if not log_location.startswith('/tmp/') and \
       not log_location.startswith('/var/log/'):
        return default
    # Do not allow to escape the folders
    if '..' in log_location:
        return default

    return log_location
