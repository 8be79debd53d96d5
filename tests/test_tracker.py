from trace_mem.events import ALLOC, FREE, AllocationEvent, Classifier
from trace_mem.tracker import Tracker


def alloc(ptr, func, req, granted):
    return AllocationEvent(ALLOC, ptr, func, req, granted)


def free(ptr):
    return AllocationEvent(FREE, ptr, None, 0, 0)


def run(*events):
    tracker = Tracker()
    for event in events:
        tracker.process(event)
    return tracker


def test_frees_only_leave_tables_empty():
    tracker = run(free(0x1000), free(0x2000), free(0x1000))

    assert len(tracker.stats) == 0
    assert len(tracker.ledger) == 0
    assert tracker.num_frees == 3
    assert tracker.num_lost_frees == 3


def test_balanced_pair():
    tracker = run(alloc(0x1000, "alloc_inode", 10, 16), free(0x1000))
    tracker.finalize()
    stats = tracker.stats.get("alloc_inode")

    assert (stats.current_alloc, stats.current_req) == (0, 0)
    assert (stats.total_alloc, stats.total_req) == (16, 10)
    assert (stats.max_alloc, stats.max_req) == (16, 10)
    assert stats.waste == 0
    assert stats.max_waste == 6
    assert len(tracker.ledger) == 0


def test_double_allocate_overwrites_ledger_entry():
    tracker = run(alloc(0x1000, "alloc_inode", 10, 16),
                  alloc(0x1000, "alloc_inode", 10, 16))
    stats = tracker.stats.get("alloc_inode")

    assert len(tracker.ledger) == 1
    assert (stats.total_alloc, stats.total_req) == (32, 20)

    tracker.process(free(0x1000))

    # The first allocation stays accounted as live
    assert (stats.current_alloc, stats.current_req) == (16, 10)
    assert len(tracker.ledger) == 0


def test_overwrite_moves_ownership():
    tracker = run(alloc(0x1000, "alloc_inode", 10, 16),
                  alloc(0x1000, "sysfs_new_dirent", 20, 32),
                  free(0x1000))

    first = tracker.stats.get("alloc_inode")
    second = tracker.stats.get("sysfs_new_dirent")
    assert (first.current_alloc, first.current_req) == (16, 10)
    assert (second.current_alloc, second.current_req) == (0, 0)


def test_unknown_free_is_a_noop():
    tracker = run(alloc(0x1000, "alloc_inode", 10, 16))
    stats = tracker.stats.get("alloc_inode")
    before = vars(stats).copy()

    tracker.process(free(0x2000))

    assert vars(stats) == before
    assert len(tracker.stats) == 1
    assert len(tracker.ledger) == 1
    assert tracker.num_lost_frees == 1


def test_free_uses_recorded_sizes():
    tracker = run(alloc(0x1000, "alloc_inode", 10, 16),
                  alloc(0x2000, "alloc_inode", 100, 128),
                  free(0x1000))
    stats = tracker.stats.get("alloc_inode")

    assert (stats.current_alloc, stats.current_req) == (128, 100)
    assert stats.free_count == 1


def test_waste_from_current():
    tracker = run(alloc(0x1000, "alloc_inode", 10, 16))
    (stats,) = tracker.finalize()
    assert stats.waste == 6


def test_max_waste_from_separate_watermarks():
    tracker = run(alloc(0x1000, "alloc_inode", 10, 10),
                  free(0x1000),
                  alloc(0x2000, "alloc_inode", 2, 16))
    (stats,) = tracker.finalize()

    assert (stats.max_alloc, stats.max_req) == (16, 10)
    assert stats.max_waste == 6
    assert stats.waste == 14


def test_requested_above_granted_goes_negative():
    tracker = run(alloc(0x1000, "alloc_inode", 16, 10))
    (stats,) = tracker.finalize()
    assert stats.waste == -6


def test_report_order():
    tracker = run(alloc(0x1, "func_a", 0, 5),
                  alloc(0x2, "func_b", 0, 20),
                  alloc(0x3, "func_c", 0, 20),
                  alloc(0x4, "func_d", 0, 1))

    assert [s.func for s in tracker.finalize()] == ["func_b", "func_c",
                                                    "func_a", "func_d"]


def test_ties_sorted_by_name():
    tracker = run(alloc(0x1, "zone_alloc", 0, 20),
                  alloc(0x2, "anon_vma_alloc", 0, 20))
    assert [s.func for s in tracker.finalize()] == ["anon_vma_alloc",
                                                    "zone_alloc"]


def test_zero_and_negative_entries_are_kept():
    tracker = run(alloc(0x1, "alloc_inode", 10, 16), free(0x1),
                  alloc(0x2, "__d_alloc", 16, 10))
    funcs = tracker.finalize()
    assert [s.func for s in funcs] == ["alloc_inode", "__d_alloc"]


def test_numeric_call_site_without_map():
    tracker = run(alloc(0x1, "ffffffff811a2c3b", 10, 16))
    assert "0xffffffff811a2c3b" in tracker.stats


def test_symbolic_call_site_keeps_function_name():
    tracker = run(alloc(0x1, "__d_alloc+0x22/0x1a0", 10, 16),
                  alloc(0x2, "__d_alloc+0x40/0x1a0", 10, 16))
    assert len(tracker.stats) == 1
    assert tracker.stats.get("__d_alloc").total_alloc == 32


def test_reset():
    tracker = run(alloc(0x1, "alloc_inode", 10, 16), free(0x2))
    tracker.reset()

    assert len(tracker.stats) == 0
    assert len(tracker.ledger) == 0
    assert tracker.num_allocs == 0
    assert tracker.num_lost_frees == 0


def test_run_over_trace(write_trace):
    from tracelines import kfree_line, kmalloc_line
    from trace_mem.tracefile import TraceFile

    path = write_trace([
        kmalloc_line(0x1000, 10, 16, call_site="alloc_inode+0x4f/0x90", ts=1.0),
        kmalloc_line(0x2000, 30, 32, call_site="alloc_inode+0x4f/0x90", ts=2.0,
                     event="kmem_cache_alloc"),
        kfree_line(0x1000, ts=3.0),
        kfree_line(0x3000, ts=4.0, event="kmem_cache_free"),
        "          <idle>-0     [000] d.s.  5.000000: sched_switch: prev_comm=swapper\n",
    ])
    tracker = Tracker(Classifier()).run(TraceFile(str(path)))
    stats = tracker.stats.get("alloc_inode")

    # sched_switch never leaves the reader
    assert tracker.num_records == 4
    assert tracker.num_malformed == 0
    assert tracker.num_allocs == 2
    assert tracker.num_frees == 2
    assert tracker.num_lost_frees == 1
    assert (stats.current_alloc, stats.current_req) == (32, 30)
    assert (stats.max_alloc, stats.max_req) == (48, 40)
    assert not tracker.missed_events


def test_run_keeps_given_resolver(write_trace):
    from tracelines import kmalloc_line
    from trace_mem.tracefile import TraceFile

    path = write_trace([kmalloc_line(0x1000, 10, 16, call_site="ffffffff811a2c3b")])
    tracker = Tracker(resolve=lambda call_site: "alloc_inode")
    tracker.run(TraceFile(str(path)))

    assert "alloc_inode" in tracker.stats
    assert "0xffffffff811a2c3b" not in tracker.stats


def test_run_uses_trace_resolver_by_default(write_trace, system_map):
    from tracelines import kmalloc_line
    from trace_mem.symbols import SymbolMap
    from trace_mem.tracefile import TraceFile

    path = write_trace([kmalloc_line(0x1000, 10, 16, call_site="ffffffff811a2c3b")])
    tracker = Tracker()
    tracker.run(TraceFile(str(path), SymbolMap(str(system_map))))

    assert "__d_alloc" in tracker.stats
    # The trace's resolver is only used for that run
    assert tracker.resolve is None


def test_malformed_records_are_counted(write_trace, caplog):
    import logging

    from tracelines import kmalloc_line
    from trace_mem.tracefile import TraceFile

    path = write_trace([
        kmalloc_line(0x1000, 10, 16, call_site="alloc_inode+0x4f/0x90", ts=1.0),
        "            bash-1402  [000] ....  2.000000: kmalloc: "
        "call_site=alloc_inode+0x4f/0x90 ptr=ffff88003e0ae000 bytes_req=10\n",
    ])
    tracker = Tracker()
    with caplog.at_level(logging.INFO, logger="trace_mem"):
        tracker.run(TraceFile(str(path)))

    assert tracker.num_malformed == 1
    assert tracker.num_allocs == 1
    assert "1 malformed" in caplog.text

    tracker.reset()
    assert tracker.num_malformed == 0
