"""Root conftest.py for the leasekeeper test suite.

Every test declares the responsibility it protects and how slow it is allowed
to be:

    @pytest.mark.tier(1)
    @pytest.mark.tra("Domain.Invariant.SingleValidLeaseHolder")
    def test_something():
        ...

Collection reports tests whose markers are missing or malformed. Set
MARKER_ENFORCE=strict to fail collection instead, or MARKER_ENFORCE=0 to skip
the check. Each tier maps to a pytest-timeout budget; TIER_TIMEOUT_MULTIPLIER
scales it on slow CI runners.
"""

from __future__ import annotations

import os
from collections import Counter
from typing import TYPE_CHECKING

import pytest

if TYPE_CHECKING:
    from _pytest.config import Config
    from _pytest.nodes import Item
    from _pytest.terminal import TerminalReporter


TRA_PREFIXES = (
    "Domain.Invariant.",
    "Domain.Policy.",
    "UseCase.",
    "Port.",
    "Adapter.",
    "Contract.",
)

# Seconds; 0 means no limit
TIER_TIMEOUTS: dict[int, float] = {
    0: 0.1,
    1: 2.0,
    2: 30.0,
    3: 300.0,
    4: 0,
}

TIER_NAMES: dict[int, str] = {
    0: "instant",
    1: "fast",
    2: "standard",
    3: "slow",
    4: "manual",
}


def pytest_configure(config: Config) -> None:
    """Register the suite's markers."""
    config.addinivalue_line(
        "markers",
        "tra(anchor): responsibility this test protects, e.g. "
        "UseCase.ElectionStateMachine or Adapter.ConsulLeaseStore",
    )
    config.addinivalue_line(
        "markers",
        "tier(level): 0=instant, 1=fast, 2=standard, 3=slow, 4=manual; "
        "sets the timeout",
    )
    config.addinivalue_line("markers", "unit: no Consul agent or Raft cluster needed")
    config.addinivalue_line(
        "markers", "integration: needs a live Consul agent or multi-node Raft cluster"
    )
    config.addinivalue_line("markers", "property: property-based tests using Hypothesis")
    config.addinivalue_line("markers", "concurrency: exercises real threads")
    config.addinivalue_line(
        "markers", "no_parallel: must not share a worker with other tests"
    )


def _tier_of(item: Item) -> int | None:
    marker = item.get_closest_marker("tier")
    if marker is None or not marker.args:
        return None
    tier = marker.args[0]
    if isinstance(tier, int) and tier in TIER_TIMEOUTS:
        return tier
    return None


def _anchor_of(item: Item) -> str | None:
    marker = item.get_closest_marker("tra")
    if marker is None or not marker.args:
        return None
    anchor = marker.args[0]
    return anchor if isinstance(anchor, str) and anchor.strip() else None


def _marker_problems(item: Item) -> list[str]:
    problems = []
    tra_markers = list(item.iter_markers(name="tra"))
    if not tra_markers:
        problems.append("missing @pytest.mark.tra")
    elif len(tra_markers) > 1:
        problems.append("more than one @pytest.mark.tra")
    else:
        anchor = _anchor_of(item)
        if anchor is None:
            problems.append("@pytest.mark.tra needs a non-empty anchor")
        elif not anchor.startswith(TRA_PREFIXES):
            problems.append(f"anchor {anchor!r} must start with one of {', '.join(TRA_PREFIXES)}")

    if item.get_closest_marker("tier") is None:
        problems.append("missing @pytest.mark.tier")
    elif _tier_of(item) is None:
        problems.append(f"tier must be one of {sorted(TIER_TIMEOUTS)}")
    return problems


def _apply_tier_timeout(item: Item, multiplier: float) -> None:
    if item.get_closest_marker("timeout") is not None:
        return
    tier = _tier_of(item)
    if tier is None:
        return
    timeout = TIER_TIMEOUTS[tier]
    if timeout > 0:
        item.add_marker(pytest.mark.timeout(timeout * multiplier))


@pytest.hookimpl(tryfirst=True)
def pytest_collection_modifyitems(config: Config, items: list[Item]) -> None:
    """Check markers, then attach tier timeouts."""
    mode = os.environ.get("MARKER_ENFORCE", "warn")
    if mode != "0":
        errors = [
            f"{item.nodeid}: {problem}"
            for item in items
            for problem in _marker_problems(item)
        ]
        if errors and mode == "strict":
            pytest.fail("Marker errors:\n" + "\n".join(f"  {e}" for e in errors), pytrace=False)
        if errors:
            print("\nMarker warnings:")
            for error in errors[:20]:
                print(f"  {error}")
            if len(errors) > 20:
                print(f"  ... and {len(errors) - 20} more")

    multiplier = float(os.environ.get("TIER_TIMEOUT_MULTIPLIER", "1.0"))
    for item in items:
        _apply_tier_timeout(item, multiplier)


def pytest_report_header(config: Config) -> str:
    return f"marker enforcement: {os.environ.get('MARKER_ENFORCE', 'warn')}"


def pytest_terminal_summary(
    terminalreporter: TerminalReporter, exitstatus: int, config: Config
) -> None:
    """Summarise executed tests by tier and TRA namespace."""
    by_tier: Counter[int] = Counter()
    by_namespace: Counter[str] = Counter()
    for outcome in ("passed", "failed"):
        for report in terminalreporter.stats.get(outcome, []):
            if getattr(report, "when", "call") != "call":
                continue
            keywords = getattr(report, "keywords", {})
            for tier, name in TIER_NAMES.items():
                if f"tier_{name}" in keywords:
                    by_tier[tier] += 1
            for key in keywords:
                if key.startswith("tra_"):
                    by_namespace[key[4:]] += 1

    if not by_tier and not by_namespace:
        return
    terminalreporter.write_sep("=", "tier / TRA summary")
    for tier in sorted(by_tier):
        terminalreporter.write_line(f"  tier({tier}) [{TIER_NAMES[tier]}]: {by_tier[tier]}")
    for namespace, count in sorted(by_namespace.items()):
        terminalreporter.write_line(f"  {namespace}: {count}")


@pytest.hookimpl(hookwrapper=True)
def pytest_runtest_makereport(item: Item, call: pytest.CallInfo[None]):
    """Tag reports with tier and TRA namespace keywords for the summary."""
    outcome = yield
    report = outcome.get_result()
    tier = _tier_of(item)
    if tier is not None:
        report.keywords[f"tier_{TIER_NAMES[tier]}"] = 1
    anchor = _anchor_of(item)
    if anchor is not None:
        report.keywords[f"tra_{anchor.split('.')[0]}"] = 1
