"""Pytest plugin that dumps failing tests.

Enable with ``pytest -p debugdump.pytest_plugin --debugdump DIR``.
"""

from __future__ import annotations

import os
import re
import sys

import pytest

from .config import DumpConfig
from .context import RequestContext
from .creator import DebugDataCreator
from .filters import ServerAllowListSanitizer

_UNSAFE_ID_CHARS = re.compile(r"[^-_.A-Za-z0-9]+")
_CREATOR_KEY = pytest.StashKey[DebugDataCreator]()


def pytest_addoption(parser):
    group = parser.getgroup("debugdump")
    group.addoption(
        "--debugdump",
        action="store",
        dest="debugdump_dir",
        default=None,
        metavar="DIR",
        help="write a debugdump file to DIR for every failing test",
    )


def pytest_configure(config):
    """Register the no_dump marker and set up the creator."""
    config.addinivalue_line(
        "markers",
        "no_dump: disable debugdump capture for this test",
    )
    log_dir = config.getoption("debugdump_dir")
    if log_dir:
        dump_config = DumpConfig(
            server_enabled=True,
            get_enabled=False,
            sanitizers=[ServerAllowListSanitizer(allow_args=True)],
        )
        config.stash[_CREATOR_KEY] = DebugDataCreator.for_directory(log_dir, dump_config)


def nodeid_to_error_id(nodeid: str) -> str:
    return _UNSAFE_ID_CHARS.sub("_", nodeid.replace("::", "_")).strip("_")


@pytest.hookimpl(tryfirst=True, hookwrapper=True)
def pytest_runtest_makereport(item, call):
    """Dump the exception of a failed test call."""
    outcome = yield
    report = outcome.get_result()

    creator = item.config.stash.get(_CREATOR_KEY, None)
    if creator is None:
        return

    # Only call failures, not setup/teardown
    if report.when != "call" or not report.failed:
        return

    if item.get_closest_marker("no_dump"):
        return

    if call.excinfo is None:
        return

    debug = os.getenv("DEBUGDUMP_DEBUG", "").lower() in {"1", "true", "yes", "on"}
    error_id = nodeid_to_error_id(item.nodeid)
    try:
        creator.handle_exception(call.excinfo.value, error_id, RequestContext.for_process(env={}))
    except Exception as e:
        if debug:
            sys.stderr.write(f"debugdump: dump failed for {item.nodeid}: {e!r}\n")
