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

class Ptr:
    """A live allocation: who owns it and what it was granted."""

    def __init__(self, ptr, func, alloc, req):
        self.ptr = ptr
        self.func = func
        self.alloc = alloc
        self.req = req

    def __repr__(self):
        return "Ptr(0x{:x}, {}, alloc={}, req={})".format(self.ptr, self.func,
                                                          self.alloc, self.req)


class Ledger:
    """Currently outstanding allocations, keyed by pointer value."""

    def __init__(self):
        self.p = {}

    def __len__(self):
        return len(self.p)

    def __contains__(self, ptr):
        return ptr in self.p

    def get(self, ptr):
        return self.p.get(ptr)

    def put(self, ptr, func, req, alloc):
        # A second allocation on a live pointer replaces the entry,
        # the first one is forgotten.
        ptr_obj = Ptr(ptr, func, alloc, req)
        self.p[ptr] = ptr_obj
        return ptr_obj

    def take_and_remove(self, ptr):
        return self.p.pop(ptr, None)
