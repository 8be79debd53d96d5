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
import sys
from optparse import OptionParser

from trace_mem.errors import TraceError
from trace_mem.events import Classifier
from trace_mem.report import print_report, write_account
from trace_mem.symbols import SymbolMap
from trace_mem.tracefile import DEFAULT_INPUT_FILE, TraceFile
from trace_mem.tracker import Tracker
from trace_mem.visualize import ring_attrs, visualize_report

logger = logging.getLogger("trace_mem")


def setup_logging(verbose=False):
    # Diagnostics go to stderr, stdout is kept for the report
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter("[%(levelname)s] %(message)s"))

    logger.handlers[:] = [handler]
    logger.propagate = False
    logger.setLevel(logging.DEBUG if verbose else logging.WARNING)


def make_parser():
    parser = OptionParser(usage="%prog [options] [input-file]",
                          description="Show kernel slab waste per call site "
                                      "from a kmem event trace.")

    parser.add_option("-i", "--input",
                      dest="inputs",
                      action="append",
                      default=[],
                      help="trace file to analyze [default: {}]".format(
                          DEFAULT_INPUT_FILE))

    parser.add_option("-m", "--map",
                      dest="map_file",
                      default="",
                      help="System.map used to resolve numeric call sites")

    parser.add_option("--malloc",
                      dest="do_malloc",
                      action="store_true",
                      help="trace kmalloc/kfree only")

    parser.add_option("--cache",
                      dest="do_cache",
                      action="store_true",
                      help="trace kmem_cache_alloc/kmem_cache_free only")

    parser.add_option("-c", "--account-file",
                      dest="account_file",
                      default="",
                      help="write a slab accounting summary to this file")

    parser.add_option("-r", "--rings-file",
                      dest="rings_file",
                      default="",
                      help="plot ringchart to this file")

    parser.add_option("--rings-show",
                      dest="rings_show",
                      action="store_true",
                      default=False,
                      help="show interactive ringchart")

    parser.add_option("-a", "--rings-attr",
                      dest="rings_attr",
                      default="current_alloc",
                      help="attribute to visualize [{}]".format(
                          ", ".join(sorted(ring_attrs))))

    parser.add_option("-v", "--verbose",
                      dest="verbose",
                      action="store_true",
                      default=False,
                      help="print debugging messages")

    return parser


def parse_args(argv=None):
    parser = make_parser()
    (opts, args) = parser.parse_args(argv)

    if len(opts.inputs) > 1:
        parser.error("Only one input for mem")
    if args and opts.inputs:
        parser.error("Input given both with -i and as an argument")
    if len(args) > 1:
        parser.error("Only one input for mem")

    if opts.inputs:
        opts.input_file = opts.inputs[0]
    elif args:
        opts.input_file = args[0]
    else:
        opts.input_file = DEFAULT_INPUT_FILE

    if opts.do_malloc and opts.do_cache:
        parser.error("--malloc and --cache are mutually exclusive")
    elif opts.do_malloc:
        opts.family = "malloc"
    elif opts.do_cache:
        opts.family = "cache"
    else:
        opts.family = "all"

    if opts.rings_attr not in ring_attrs:
        parser.error("{} is not a valid --rings-attr option".format(
            opts.rings_attr))

    return opts


def main(argv=None):
    opts = parse_args(argv)
    setup_logging(opts.verbose)

    classifier = Classifier(opts.family)

    try:
        symbols = SymbolMap(opts.map_file) if opts.map_file else None
        trace = TraceFile(opts.input_file, symbols, classifier.kinds)
    except TraceError as e:
        sys.stderr.write("trace-mem: {}\n".format(e))
        return 1

    logger.debug("Filtering %s events", opts.family)
    tracker = Tracker(classifier).run(trace)
    funcs = tracker.finalize()

    print_report(funcs, missed_events=tracker.missed_events)

    if opts.account_file:
        logger.info("Creating account file at %s", opts.account_file)
        write_account(opts.account_file, tracker, funcs)

    if opts.rings_file or opts.rings_show:
        visualize_report(funcs, opts.rings_attr, opts.rings_file,
                         opts.rings_show)

    return 0


if __name__ == "__main__":
    sys.exit(main())
