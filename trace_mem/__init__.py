#
# Copyright (C) 2012 Ezequiel Garcia <elezegarcia@gmail.com>
#
# This program is free software; you can redistribute it and/or modify
# it under the terms of the GNU General Public License version 2
# as published by the Free Software Foundation.
#
# This program is distributed in the hope that it will be useful,
# but WITHOUT ANY WARRANTY; without even the implied warranty of
# MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE.  See the
# GNU General Public License for more details.
#

from trace_mem.errors import TraceError
from trace_mem.events import AllocationEvent, Classifier
from trace_mem.ledger import Ledger
from trace_mem.report import finalize, print_report
from trace_mem.stats import FunctionStats, StatsTable
from trace_mem.tracefile import TraceFile
from trace_mem.tracker import Tracker, analyze

__version__ = '0.1.0'

__all__ = [
    'AllocationEvent',
    'Classifier',
    'FunctionStats',
    'Ledger',
    'StatsTable',
    'TraceError',
    'TraceFile',
    'Tracker',
    'analyze',
    'finalize',
    'print_report',
]
