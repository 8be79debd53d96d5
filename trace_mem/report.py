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

header = ("                Function            \t"
          "Waste\tAlloc\treq\t\tTotAlloc     TotReq\t\tMaxAlloc     MaxReq\t"
          "MaxWaste")
rule = ("                --------            \t"
        "-----\t-----\t---\t\t--------     ------\t\t--------     ------\t"
        "--------")
row_fmt = "%32s\t%d\t%d\t%d\t\t%8d   %8d\t\t%8d   %8d\t%d"


def finalize(stats):
    """Compute waste for every function and sort, most wasteful first.

    Ties are sorted by function name so the output is reproducible.
    """
    funcs = [s.finalize() for s in stats]
    funcs.sort(key=lambda s: (-s.waste, s.func))
    return funcs


def format_row(s):
    return row_fmt % (s.func, s.waste,
                      s.current_alloc, s.current_req,
                      s.total_alloc, s.total_req,
                      s.max_alloc, s.max_req, s.max_waste)


def print_report(funcs, out=None, missed_events=False):
    if out is None:
        out = sys.stdout

    out.write(header + "\n")
    out.write(rule + "\n")
    for s in funcs:
        out.write(format_row(s) + "\n")

    if missed_events:
        out.write("\n[WARNING] events were lost while tracing, "
                  "figures are incomplete\n")


def write_account(filepath, tracker, funcs=None):
    """Write a slab accounting summary, one line per caller."""
    if funcs is None:
        funcs = tracker.finalize()

    current_alloc = sum(s.current_alloc for s in funcs)
    current_req = sum(s.current_req for s in funcs)

    with open(filepath, "w") as f:
        f.write("current bytes allocated: {:>10}\n".format(current_alloc))
        f.write("current bytes requested: {:>10}\n".format(current_req))
        f.write("current wasted bytes:    {:>10}\n".format(current_alloc -
                                                          current_req))
        f.write("number of allocs:        {:>10}\n".format(tracker.num_allocs))
        f.write("number of frees:         {:>10}\n".format(tracker.num_frees))
        f.write("number of lost frees:    {:>10}\n".format(tracker.num_lost_frees))
        f.write("number of malformed:     {:>10}\n".format(tracker.num_malformed))
        f.write("number of callers:       {:>10}\n".format(len(funcs)))
        f.write("\n")
        f.write("   total    waste      net alloc/free  caller\n")
        f.write("---------------------------------------------\n")

        for s in funcs:
            f.write("%8d %8d %8d %5d/%-5d %s\n" % (s.total_alloc,
                                                 s.waste,
                                                 s.current_alloc,
                                                 s.alloc_count,
                                                 s.free_count,
                                                 s.func))
