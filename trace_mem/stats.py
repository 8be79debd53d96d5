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

import sys


class FunctionStats:
    """Accumulated counters of one call site.

    total_* only ever grow, current_* follow the ledger and max_* are
    watermarks of current_*, each one tracked on its own.  waste and
    max_waste are filled in by finalize().
    """

    def __init__(self, func):
        self.func = func
        self.total_alloc = 0
        self.total_req = 0
        self.current_alloc = 0
        self.current_req = 0
        self.max_alloc = 0
        self.max_req = 0
        self.alloc_count = 0
        self.free_count = 0
        self.waste = 0
        self.max_waste = 0

    def do_alloc(self, req, alloc):
        self.total_alloc += alloc
        self.total_req += req
        self.current_alloc += alloc
        self.current_req += req
        self.alloc_count += 1

        if self.current_alloc > self.max_alloc:
            self.max_alloc = self.current_alloc
        if self.current_req > self.max_req:
            self.max_req = self.current_req

    def do_free(self, req, alloc):
        # No clamping: a malformed trace may drive these below zero.
        self.current_alloc -= alloc
        self.current_req -= req
        self.free_count += 1

    def finalize(self):
        self.waste = self.current_alloc - self.current_req
        self.max_waste = self.max_alloc - self.max_req
        return self

    def __repr__(self):
        return "FunctionStats({}, current={}/{}, total={}/{}, max={}/{})".format(
            self.func, self.current_alloc, self.current_req,
            self.total_alloc, self.total_req, self.max_alloc, self.max_req)


class StatsTable:
    """Per function statistics.  Entries are never removed."""

    def __init__(self):
        self.f = {}

    def __len__(self):
        return len(self.f)

    def __contains__(self, func):
        return func in self.f

    def __iter__(self):
        return iter(self.f.values())

    def get(self, func):
        return self.f.get(func)

    def get_or_create(self, func):
        # Interned names compare by identity first, so the common lookup
        # never falls through to a string compare.
        if isinstance(func, str):
            func = sys.intern(func)

        stats = self.f.get(func)
        if stats is None:
            stats = FunctionStats(func)
            self.f[func] = stats
        return stats

    def record_allocate(self, stats, req, alloc):
        stats.do_alloc(req, alloc)

    def record_free(self, stats, req, alloc):
        stats.do_free(req, alloc)
