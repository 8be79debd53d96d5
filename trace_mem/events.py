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
from collections import namedtuple

logger = logging.getLogger(__name__)

ALLOC = "alloc"
FREE = "free"

# Event kind families, as named by the kmem tracepoints.
kmalloc_events = ("kmalloc", "kmalloc_node")
kfree_events = ("kfree",)
cache_alloc_events = ("kmem_cache_alloc", "kmem_cache_alloc_node")
cache_free_events = ("kmem_cache_free",)

FAMILIES = ("all", "malloc", "cache")

AllocationEvent = namedtuple("AllocationEvent",
                             "kind ptr call_site bytes_req bytes_alloc")


def parse_ptr(value):
    # Some kernels print NULL pointers as "(null)"
    if value == "(null)":
        return 0
    return int(value, 16)


def kind_table(family="all"):
    """Map raw event names to normalized operations for a family."""
    if family not in FAMILIES:
        raise ValueError("unknown event family '{}'".format(family))

    table = {}
    if family in ("all", "malloc"):
        table.update((name, ALLOC) for name in kmalloc_events)
        table.update((name, FREE) for name in kfree_events)
    if family in ("all", "cache"):
        table.update((name, ALLOC) for name in cache_alloc_events)
        table.update((name, FREE) for name in cache_free_events)
    return table


class Classifier:
    """Turn decoded trace records into Allocate/Free events.

    Records of any other kind are not an error, traces are full of them:
    classify() just returns None.
    """

    def __init__(self, family="all"):
        self.family = family
        self.kinds = kind_table(family)
        self.num_malformed = 0

    def handles(self, event):
        return event in self.kinds

    def classify(self, record):
        op = self.kinds.get(record.event)
        if op is None:
            return None

        fields = record.fields
        try:
            if op == ALLOC:
                return AllocationEvent(ALLOC,
                                       parse_ptr(fields["ptr"]),
                                       fields["call_site"],
                                       int(fields["bytes_req"]),
                                       int(fields["bytes_alloc"]))
            return AllocationEvent(FREE, parse_ptr(fields["ptr"]),
                                   None, 0, 0)
        except (KeyError, ValueError) as e:
            self.num_malformed += 1
            logger.debug("Skipping malformed %s record at %s: %r",
                         record.event, record.timestamp, e)
            return None
