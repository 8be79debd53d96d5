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
# Call site resolution, based on addr2sym.py.
#

import bisect
import logging
import re
import sys

from trace_mem.errors import TraceError

logger = logging.getLogger(__name__)

hex_re = re.compile(r"^(0x)?[0-9a-fA-F]+$")

# Only code symbols can be call sites
text_types = "tTwW"


def find_function(call_site):
    """Resolve a call site without a symbol map.

    Symbolic call sites, like "__d_alloc+0x22/0x1a0", keep their function
    name; numeric ones are kept as hex text.  Names are interned so that
    equal functions share one key object.
    """
    if isinstance(call_site, int):
        return sys.intern("0x{:x}".format(call_site))

    if hex_re.match(call_site):
        return sys.intern("0x{:x}".format(int(call_site, 16)))

    name = call_site.split("+", 1)[0]
    if name.startswith("."):
        name = name[1:]
    return sys.intern(name)


class SymbolMap:
    def __init__(self, filemap=None):
        self.addrs = []
        self.names = []
        self.cache = {}

        if filemap is not None:
            self.load(filemap)

    def __len__(self):
        return len(self.addrs)

    def load(self, filemap):
        try:
            f = open(filemap)
        except OSError as e:
            raise TraceError("Cannot read map file {}: {}".format(filemap,
                                                                  e.strerror))

        syms = []
        with f:
            for line in f:
                parts = line.split()
                if len(parts) < 3 or parts[1] not in text_types:
                    continue
                try:
                    addr = int(parts[0], 16)
                except ValueError:
                    continue
                name = parts[2]
                if name.startswith("."):
                    name = name[1:]
                syms.append((addr, sys.intern(name)))

        syms.sort()
        self.addrs = [addr for addr, name in syms]
        self.names = [name for addr, name in syms]
        self.cache = {}
        logger.debug("Read %d symbols from %s", len(syms), filemap)

    def lookup(self, addr):
        """Return the function containing addr, or None if out of range."""
        if not self.addrs:
            return None
        if addr < self.addrs[0] or addr > self.addrs[-1]:
            return None

        if addr in self.cache:
            return self.cache[addr]

        # The closest symbol at or below addr
        index = bisect.bisect_right(self.addrs, addr) - 1
        name = self.names[index]
        self.cache[addr] = name
        return name

    def find_function(self, call_site):
        if isinstance(call_site, str):
            if not hex_re.match(call_site):
                return find_function(call_site)
            call_site = int(call_site, 16)

        name = self.lookup(call_site)
        if name is None:
            return find_function(call_site)
        return name
