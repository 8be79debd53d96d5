import logging
import os

# No display for the ringchart tests
os.environ.setdefault("MPLBACKEND", "Agg")

import pytest


@pytest.fixture(autouse=True)
def reset_logging():
    yield
    # main() points the package logger at the captured stderr of one test
    logger = logging.getLogger("trace_mem")
    logger.handlers[:] = []
    logger.propagate = True
    logger.setLevel(logging.NOTSET)


@pytest.fixture
def write_trace(tmp_path):
    def write(lines, name="trace.log"):
        path = tmp_path / name
        path.write_text("".join(lines))
        return path
    return write


@pytest.fixture
def system_map(tmp_path):
    path = tmp_path / "System.map"
    path.write_text("ffffffff81000000 T _stext\n"
                    "ffffffff811a2000 T alloc_inode\n"
                    "ffffffff811a2800 t __d_alloc\n"
                    "ffffffff811a2900 D some_table\n"
                    "ffffffff811a3000 T kfree\n"
                    "ffffffff811a4000 T _etext\n")
    return path
