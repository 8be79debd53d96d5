import pytest

from test_report import make_tracker
from trace_mem.visualize import (create_rings, create_sections, human_bytes,
                                 ring_color, visualize_report)


def test_human_bytes():
    assert human_bytes(1) == "1 byte"
    assert human_bytes(512) == "512.0 bytes"
    assert human_bytes(1024) == "1.0 kB"
    assert human_bytes(1024*12342, 2) == "12.05 MB"


def test_callers_fill_the_inner_ring():
    sections = create_sections(make_tracker().finalize())
    inner = [s for s in sections if s.level == 2]

    assert [s.name for s in inner] == ["__d_alloc", "alloc_inode",
                                       "sysfs_new_dirent"]
    assert sum(s.angle for s in inner) == pytest.approx(360)
    assert inner[0].angle == pytest.approx(360 * 128 / 148)


def test_waste_ring():
    sections = create_sections(make_tracker().finalize())
    waste = [s for s in sections if s.name == "waste"]

    # sysfs_new_dirent requested more than it got: no split for it
    assert [s.size for s in waste] == [28, 6]
    d_alloc = sections[0]
    assert waste[0].start_angle + waste[0].angle == \
        pytest.approx(d_alloc.start_angle + d_alloc.angle)


def test_waste_attr_has_no_outer_ring():
    sections = create_sections(make_tracker().finalize(), "waste")
    assert [(s.name, s.level) for s in sections] == [("__d_alloc", 2),
                                                     ("alloc_inode", 2)]


def test_nothing_to_draw():
    assert create_sections([]) == []


def test_bad_attr():
    with pytest.raises(ValueError):
        create_sections([], "static")


def test_rings():
    sections = create_sections(make_tracker().finalize())
    rings = create_rings(sections)

    assert len(rings) == len(sections)
    wedge, label = rings[0]
    assert label == "__d_alloc 128.0 bytes"
    assert wedge.r == pytest.approx(0.4)
    assert len(ring_color(359.0, 3)) == 3


def test_visualize_to_file(tmp_path):
    path = tmp_path / "rings.png"
    assert visualize_report(make_tracker().finalize(), "current_alloc",
                            str(path), False)
    assert path.stat().st_size > 0


def test_visualize_nothing(tmp_path):
    path = tmp_path / "rings.png"
    assert not visualize_report([], "current_alloc", str(path), False)
    assert not path.exists()
