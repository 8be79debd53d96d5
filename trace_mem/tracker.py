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

import logging

from trace_mem.events import ALLOC, FREE, Classifier
from trace_mem.ledger import Ledger
from trace_mem.report import finalize
from trace_mem.stats import StatsTable
from trace_mem.symbols import find_function

logger = logging.getLogger(__name__)


class Tracker:
    """One analysis run: the live allocation ledger and per function stats.

    Events must come in time order; nothing here reorders them.  Call
    sites are resolved with resolve when given, else with the resolver of
    the trace being run.
    """

    def __init__(self, classifier=None, resolve=None):
        self.classifier = classifier if classifier is not None else Classifier()
        self.resolve = resolve
        self.reset()

    def reset(self):
        self.ledger = Ledger()
        self.stats = StatsTable()
        self.num_allocs = 0
        self.num_frees = 0
        self.num_lost_frees = 0
        self.num_records = 0
        self.missed_events = False
        self.lost_events = 0
        self.classifier.num_malformed = 0

    @property
    def num_malformed(self):
        return self.classifier.num_malformed

    def add_malloc(self, func, ptr, req, alloc):
        self.num_allocs += 1

        stats = self.stats.get_or_create(func)
        self.stats.record_allocate(stats, req, alloc)

        if ptr in self.ledger:
            logger.debug("Duplicate pointer 0x%x from %s", ptr, stats.func)

        self.ledger.put(ptr, stats.func, req, alloc)

    def add_free(self, ptr):
        self.num_frees += 1

        ptr_obj = self.ledger.take_and_remove(ptr)
        if ptr_obj is None:
            # Allocated before tracing started, most likely
            self.num_lost_frees += 1
            return

        stats = self.stats.get(ptr_obj.func)
        self.stats.record_free(stats, ptr_obj.req, ptr_obj.alloc)

    def process(self, event, resolve=None):
        if resolve is None:
            resolve = self.resolve if self.resolve is not None else find_function

        if event.kind == ALLOC:
            self.add_malloc(resolve(event.call_site), event.ptr,
                            event.bytes_req, event.bytes_alloc)
        elif event.kind == FREE:
            self.add_free(event.ptr)

    def process_record(self, record, resolve=None):
        self.num_records += 1
        event = self.classifier.classify(record)
        if event is not None:
            self.process(event, resolve)

    def run(self, trace):
        """Feed every record of trace through the tracker."""
        resolve = self.resolve if self.resolve is not None else trace.find_function

        for record in trace:
            self.process_record(record, resolve)

        if trace.missed_events:
            self.missed_events = True
            self.lost_events += trace.lost_events
            logger.warning("Trace has missed events (%d lost), "
                           "numbers may be off", trace.lost_events)

        logger.info("Processed %d records: %d allocs, %d frees (%d unknown), "
                    "%d malformed, %d callers", self.num_records, self.num_allocs,
                    self.num_frees, self.num_lost_frees, self.num_malformed,
                    len(self.stats))
        return self

    def finalize(self):
        return finalize(self.stats)


def analyze(trace, family="all"):
    return Tracker(Classifier(family)).run(trace)
