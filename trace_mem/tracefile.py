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
#
# Reader for text kmem traces, as written by 'trace-cmd report' or
# by reading /sys/kernel/debug/tracing/trace.
#
# A record line looks like:
#
#   bash-1402  [001] d..1  2176.352436: kmalloc: call_site=... ptr=...
#

import heapq
import io
import logging
import re
from collections import namedtuple

from trace_mem.errors import TraceError
from trace_mem.events import kind_table
from trace_mem.symbols import SymbolMap

logger = logging.getLogger(__name__)

DEFAULT_INPUT_FILE = "trace.log"

# First bytes of a binary trace-cmd data file
TRACE_DAT_MAGIC = b"\x17\x08Dtracing"

latency_tracers = ("irqsoff", "preemptoff", "preemptirqsoff",
                   "wakeup", "wakeup_rt", "wakeup_dl")

record_re = re.compile(r"^\s*(?P<task>.+?)-(?P<pid>\d+)\s+"
                       r"(?:\(\s*[-\d]+\)\s+)?"
                       r"\[(?P<cpu>\d+)\]\s+"
                       r"(?:\S+\s+)*?"
                       r"(?P<ts>\d+\.\d+):\s*(?P<rest>.*)$")
event_re = re.compile(r"^(?:(?P<system>\w+):)?(?P<event>\w+):\s*(?P<body>.*)$")
field_re = re.compile(r"(\w+)=(\S*)")
lost_re = re.compile(r"^\s*CPU:?\s*(\d+)\s+\[LOST\s+(\d+)\s+EVENTS\]")
entries_re = re.compile(r"^#\s*entries-in-buffer/entries-written:\s*(\d+)/(\d+)")
tracer_re = re.compile(r"^#\s*tracer:\s*(\S+)")

# seq is the record's position in the file
Record = namedtuple("Record", "cpu timestamp task pid event fields seq",
                    defaults=(0,))


def parse_fields(body):
    return dict(field_re.findall(body))


class TraceFile:
    """A text trace, loaded and merged into one time ordered stream.

    Only records of the kinds in events (every kmem kind by default) are
    kept.  They are kept per cpu, in file order, and merged by timestamp
    on iteration; records sharing a timestamp stay in file order, which
    is the order the kernel merged them in.  missed_events is set when
    the trace says some events were lost or overwritten while tracing.
    """

    def __init__(self, path=DEFAULT_INPUT_FILE, symbols=None, events=None):
        self.path = path
        self.symbols = symbols if symbols is not None else SymbolMap()
        self.events = frozenset(events if events is not None else kind_table())
        self.cpus = {}
        self.nr_records = 0
        self.nr_kept = 0
        self.missed_events = False
        self.lost_events = 0

        self.load()

    def load(self):
        try:
            f = open(self.path, "rb")
        except OSError as e:
            raise TraceError("can't open {}: {}".format(self.path, e.strerror))

        with io.TextIOWrapper(f, encoding="utf-8", errors="replace") as text:
            if f.peek(len(TRACE_DAT_MAGIC)).startswith(TRACE_DAT_MAGIC):
                raise TraceError("{} is a binary trace-cmd file, run "
                                 "'trace-cmd report' on it first".format(self.path))
            for line in text:
                self.parse_line(line)

        if self.nr_records == 0:
            raise TraceError("No records found in file {}".format(self.path))

        logger.debug("Read %d records, kept %d on %d cpus from %s",
                     self.nr_records, self.nr_kept, len(self.cpus), self.path)

    def parse_line(self, line):
        if line.startswith("#"):
            self.parse_header(line)
            return

        m = lost_re.match(line)
        if m:
            self.missed_events = True
            self.lost_events += int(m.group(2))
            return

        m = record_re.match(line)
        if not m:
            return

        e = event_re.match(m.group("rest"))
        if not e:
            # The type is the one thing needed from every record
            if self.nr_records == 0 and not m.group("rest").strip():
                raise TraceError("Can't find a 'type' field? "
                                 "in {}".format(line.strip()))
            logger.debug("Skipping record without event name: %s",
                         line.strip())
            return

        seq = self.nr_records
        self.nr_records += 1

        if e.group("event") not in self.events:
            return

        cpu = int(m.group("cpu"))
        record = Record(cpu,
                        float(m.group("ts")),
                        m.group("task").strip(),
                        int(m.group("pid")),
                        e.group("event"),
                        parse_fields(e.group("body")),
                        seq)

        self.cpus.setdefault(cpu, []).append(record)
        self.nr_kept += 1

    def parse_header(self, line):
        m = tracer_re.match(line)
        if m and m.group(1) in latency_tracers:
            raise TraceError("trace-mem does not work with latency traces "
                             "({})".format(m.group(1)))

        m = entries_re.match(line)
        if m and int(m.group(2)) > int(m.group(1)):
            # The ring buffer wrapped: the oldest events were overwritten
            self.missed_events = True
            self.lost_events += int(m.group(2)) - int(m.group(1))

    def find_function(self, call_site):
        return self.symbols.find_function(call_site)

    def __iter__(self):
        return heapq.merge(*[self.cpus[cpu] for cpu in sorted(self.cpus)],
                           key=lambda record: (record.timestamp, record.seq))
