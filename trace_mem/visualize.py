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
# Ringchart of the report: one inner ring section per caller and,
# around it, the part of that caller's bytes that was wasted.
#
# Color handling based on gnome's baobab. See baobab-chart.c, Copyright (C) Igalia
#

import logging
import math

logger = logging.getLogger(__name__)

CENTER_X = 1.0
CENTER_Y = 1.0
WIDTH = 0.2
RING_MIN_WIDTH = 1
TEXT_MIN_WIDTH = 5

tango_colors = ['#ef2929',
        '#ad7fa8',
        '#729fcf',
        '#8ae234',
        '#e9b96e',
        '#fcaf3e',]

# attribute -> attributes splitting it into (requested, wasted)
ring_attrs = {
    "current_alloc": ("current_req", "waste"),
    "total_alloc": ("total_req", None),
    "max_alloc": ("max_req", "max_waste"),
    "waste": None,
}


def human_bytes(bytes, precision=1):
    """Return a humanized string representation of a number of bytes.

    >>> human_bytes(1)
    '1 byte'
    >>> human_bytes(1024)
    '1.0 kB'
    >>> human_bytes(1024*123)
    '123.0 kB'
    >>> human_bytes(1024*12342)
    '12.1 MB'
    >>> human_bytes(1024*12342,2)
    '12.05 MB'
    >>> human_bytes(1024*1234*1111,1)
    '1.3 GB'
    """
    abbrevs = (
        (1<<50, 'PB'),
        (1<<40, 'TB'),
        (1<<30, 'GB'),
        (1<<20, 'MB'),
        (1<<10, 'kB'),
        (1, 'bytes')
    )
    if bytes == 1:
        return '1 byte'
    for factor, suffix in abbrevs:
        if bytes >= factor:
            break
    return '{0:.{1}f} {2}'.format(bytes / factor, precision, suffix)


class Section:
    def __init__(self, name, size, total_size, total_angle, start_angle, level):
        self.name = name
        self.size = size
        self.level = level
        self.start_angle = start_angle
        self.angle = size * total_angle / total_size

    def label(self):
        return "{} {}".format(self.name, human_bytes(self.size))


def split_size(stats, size_attr):
    split = ring_attrs[size_attr]
    if split is None:
        return None

    req_attr, waste_attr = split
    req = getattr(stats, req_attr)
    if waste_attr is None:
        waste = getattr(stats, size_attr) - req
    else:
        waste = getattr(stats, waste_attr)

    if req < 0 or waste < 0:
        return None
    return (req, waste)


def create_sections(funcs, size_attr="current_alloc"):
    if size_attr not in ring_attrs:
        raise ValueError("can't draw rings for '{}'".format(size_attr))

    # Negative or empty callers have no place in a ring
    sized = [(s, getattr(s, size_attr)) for s in funcs
             if getattr(s, size_attr) > 0]
    max_size = sum(size for s, size in sized)
    if max_size == 0:
        return []

    sections = []
    s_angle = 0
    for stats, size in sized:
        section = Section(stats.func, size, max_size, 360, s_angle, 2)
        sections.append(section)

        split = split_size(stats, size_attr)
        if split is not None and sum(split) > 0:
            req, waste = split
            req_section = Section("", req, req + waste, section.angle,
                                  s_angle, 3)
            sections.append(req_section)
            if waste > 0:
                sections.append(Section("waste", waste, req + waste,
                                        section.angle,
                                        s_angle + req_section.angle, 3))

        s_angle += section.angle

    return sections


def ring_color(start_angle, level):
    from matplotlib.colors import to_rgb

    # f:      [1 - 0.26]
    # rel:    [0 - 198]
    # icolor: [0 - 5]

    if level == 1:
        return to_rgb('#808080')

    f = 1 - (((level-1) * 0.3) / 8)
    rel = start_angle / 180. * 99
    icolor = int(rel / (100./3)) % 6
    next_icolor = (icolor + 1) % 6

    # Interpolate (?)
    color = to_rgb(tango_colors[icolor])
    next_color = to_rgb(tango_colors[next_icolor])
    p = (rel - icolor * 100./3) / (100./3)

    return [f * (c - p * (c - n)) for c, n in zip(color, next_color)]


def create_rings(sections, radius=WIDTH, center=(CENTER_X, CENTER_Y)):
    from matplotlib.patches import Wedge

    rings = []
    for section in sections:
        # Create tuple: (wedge, name)
        wedge = Wedge(center,
                      section.level * radius,
                      section.start_angle,
                      section.start_angle + section.angle,
                      width=radius,
                      facecolor=ring_color(section.start_angle, section.level))
        rings.append((wedge, section.label() if section.name else ""))

    return rings


def visualize_report(funcs, size_attr, filename, show):
    from matplotlib import pylab

    sections = create_sections(funcs, size_attr)
    if not sections:
        logger.warning("Nothing to plot for '%s'", size_attr)
        return False

    rings = create_rings(sections)

    fig = pylab.figure()
    ax = fig.add_subplot(111)
    annotations = []

    total = sum(s.size for s in sections if s.level == 2)
    text = "{} {}".format(size_attr, human_bytes(total))
    ann = ax.annotate(text,
                      size=12,
                      bbox=dict(boxstyle="round", fc="w", ec="0.5", alpha=0.8),
                      xy=(CENTER_X, CENTER_Y), xycoords='data',
                      xytext=(CENTER_X, CENTER_Y), textcoords='data')
    annotations.append(ann)

    for wedge, text in rings:

        # Skip if too small
        if (wedge.theta2 - wedge.theta1) < RING_MIN_WIDTH:
            continue

        ax.add_patch(wedge)

        # Skip text if too small
        if not text or (wedge.theta2 - wedge.theta1) < TEXT_MIN_WIDTH:
            continue

        theta = math.radians((wedge.theta1 + wedge.theta2) / 2.)
        x0 = wedge.center[0] + (wedge.r - wedge.width / 2.) * math.cos(theta)
        y0 = wedge.center[1] + (wedge.r - wedge.width / 2.) * math.sin(theta)
        x = wedge.center[0] + (0.1 + wedge.r * 1.5 - wedge.width / 2.) * math.cos(theta)
        y = wedge.center[1] + (0.1 + wedge.r * 1.5 - wedge.width / 2.) * math.sin(theta)

        ax.plot(x0, y0, ".", color="black")

        ann = ax.annotate(text,
                    size=12,
                    bbox=dict(boxstyle="round", fc="w", ec="0.5", alpha=0.8),
                    xy=(x0, y0), xycoords='data',
                    xytext=(x, y), textcoords='data',
                    arrowprops=dict(arrowstyle="-", connectionstyle="angle3, angleA=0, angleB=90"),)
        annotations.append(ann)

    pylab.axis('off')

    if filename:
        logger.info("Plotting to file '%s'", filename)
        pylab.savefig(filename,
                      bbox_extra_artists=annotations,
                      bbox_inches='tight', dpi=300)
    if show:
        logger.info("Plotting interactive")
        pylab.show()

    pylab.close(fig)
    return True
