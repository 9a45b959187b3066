"""Тести для fuzz_top.display: порядок секцій і умовні секції звіту."""
from __future__ import annotations

import datetime as dt
import unittest
from typing import List

from core.model.campaign import Campaign, CampaignConfig, FeatureFlags
from fuzz_top.collectors import RenderState, collect_snapshot
from fuzz_top.display import LOGS_BANNER, STAT_BANNER, build_report

T0 = 1_700_000_000.0


def _campaign(**cfg_kwargs) -> Campaign:
    cfg_kwargs.setdefault("time_start", T0)
    cfg_kwargs.setdefault("input_file", "/corpus/in")
    cfg_kwargs.setdefault("cmdline_txt", "/bin/target ___FILE___")
    cfg_kwargs.setdefault("threads_max", 4)
    return Campaign(config=CampaignConfig(**cfg_kwargs))


def _plain(camp: Campaign, now: float = T0 + 10, state: RenderState | None = None) -> List[str]:
    snap = collect_snapshot(camp, state or RenderState(), now=now)
    return [line.plain for line in build_report(snap)]


def _has_prefix(lines: List[str], prefix: str) -> bool:
    return any(line.startswith(prefix) for line in lines)


class TestBaseReport(unittest.TestCase):
    def test_no_feedback_only_base_sections(self) -> None:
        camp = _campaign()
        camp.counters.mutations_cnt.store(500)
        camp.counters.crashes_cnt.store(3)
        camp.counters.unique_crashes_cnt.store(2)
        camp.counters.bl_crashes_cnt.store(1)
        camp.counters.timeouted_cnt.store(7)
        lines = _plain(camp)

        start = dt.datetime.fromtimestamp(T0).strftime("%Y-%m-%d %H:%M:%S")
        self.assertEqual(
            lines,
            [
                STAT_BANNER,
                "Iterations: 500",
                f"Start time: {start} (10 seconds elapsed)",
                "Input file/dir: '/corpus/in'",
                "Fuzzed cmd: '/bin/target ___FILE___'",
                "Fuzzing threads: 4",
                "Execs per second: 500 (avg: 50)",
                "Crashes: 3 (unique: 2, blacklist: 1, verified: 0) ",
                "Timeouts: 7",
                LOGS_BANNER,
            ],
        )

    def test_cap_shown_and_count_clamped(self) -> None:
        camp = _campaign(mutations_max=1000)
        camp.counters.mutations_cnt.store(1200)
        lines = _plain(camp)
        self.assertIn("Iterations: 1000 (out of: 1000)", lines)

    def test_cap_absent_without_limit(self) -> None:
        camp = _campaign()
        camp.counters.mutations_cnt.store(1200)
        self.assertIn("Iterations: 1200", _plain(camp))

    def test_zero_elapsed_average_zero(self) -> None:
        camp = _campaign()
        camp.counters.mutations_cnt.store(99)
        lines = _plain(camp, now=T0)
        self.assertIn("Execs per second: 99 (avg: 0)", lines)


class TestAttachedProcess(unittest.TestCase):
    def test_remote_line_with_pid(self) -> None:
        lines = _plain(_campaign(pid=4242, pid_cmd="/usr/sbin/daemon -f"))
        idx = lines.index("Fuzzed cmd: '/bin/target ___FILE___'")
        self.assertEqual(lines[idx + 1], "Remote cmd [4242]: '/usr/sbin/daemon -f'")

    def test_no_remote_line_without_pid(self) -> None:
        for pid in (0, -1):
            self.assertFalse(_has_prefix(_plain(_campaign(pid=pid, pid_cmd="x")), "Remote cmd"))


class TestInputFiles(unittest.TestCase):
    def test_dry_run_shows_file_count(self) -> None:
        lines = _plain(_campaign(flip_rate=0.0, use_verifier=True, file_cnt=17))
        idx = lines.index("Input Files: '17'")
        self.assertTrue(lines[idx - 1].startswith("Execs per second:"))
        self.assertTrue(lines[idx + 1].startswith("Crashes:"))

    def test_hidden_otherwise(self) -> None:
        for flip, verifier in ((0.0, False), (0.001, True), (0.3, False)):
            lines = _plain(_campaign(flip_rate=flip, use_verifier=verifier, file_cnt=17))
            self.assertFalse(_has_prefix(lines, "Input Files"), (flip, verifier))


class TestFeedbackSections(unittest.TestCase):
    def test_branch_and_sancov_coverage_25(self) -> None:
        camp = _campaign(features=FeatureFlags(branch_count=True, sancov=True), max_file_sz=8192)
        c = camp.counters
        c.dynamic_file_best_sz.store(321)
        c.dyn_file_iter_expire.store(12)
        c.hw.cpu_branch_cnt.store(4567)
        c.sancov.hit_bb_cnt.store(50)
        c.sancov.total_bb_cnt.store(200)
        c.sancov.i_dso_cnt.store(3)
        c.sancov.new_bb_cnt.store(8)
        c.sancov.crashes_cnt.store(1)
        lines = _plain(camp)

        tail = lines[lines.index("Timeouts: 0") + 1:]
        self.assertEqual(
            tail,
            [
                "Dynamic file size: 321 (max: 8192)",
                "Dynamic file max iterations keep for chosen seed (12/8192)",
                "Coverage (max):",
                "  - cpu branches:          4567",
                "  - total hit #bb:  50 (coverage 25%)",
                "  - total #dso:     3 (instrumented only)",
                "  - discovered #bb: 8 (new from input seed)",
                "  - crashes:        1",
                LOGS_BANNER,
            ],
        )

    def test_sancov_zero_total_coverage_zero(self) -> None:
        camp = _campaign(features=FeatureFlags(sancov=True))
        camp.counters.sancov.hit_bb_cnt.store(5)
        self.assertIn("  - total hit #bb:  5 (coverage 0%)", _plain(camp))

    def test_each_hw_flag_independent(self) -> None:
        labels = {
            "instr_count": "  - cpu instructions:",
            "branch_count": "  - cpu branches:",
            "bts_block": "  - BTS unique blocks:",
            "bts_edge": "  - BTS unique edges:",
            "ipt_block": "  - PT unique blocks:",
            "custom": "  - custom counter:",
        }
        for flag, label in labels.items():
            lines = _plain(_campaign(features=FeatureFlags(**{flag: True})))
            self.assertTrue(_has_prefix(lines, "Dynamic file size:"), flag)
            self.assertFalse(_has_prefix(lines, "  - total hit #bb:"), flag)
            for other, other_label in labels.items():
                self.assertEqual(_has_prefix(lines, other_label), other == flag, (flag, other))

    def test_all_hw_flags_fixed_order(self) -> None:
        flags = FeatureFlags(
            instr_count=True, branch_count=True, bts_block=True,
            bts_edge=True, ipt_block=True, custom=True,
        )
        lines = _plain(_campaign(features=flags))
        start = lines.index("Coverage (max):") + 1
        self.assertEqual(
            [line.split(":")[0].strip() for line in lines[start:start + 6]],
            ["- cpu instructions", "- cpu branches", "- BTS unique blocks",
             "- BTS unique edges", "- PT unique blocks", "- custom counter"],
        )

    def test_no_feedback_no_dynamic_section(self) -> None:
        lines = _plain(_campaign())
        self.assertFalse(_has_prefix(lines, "Dynamic file"))
        self.assertFalse(_has_prefix(lines, "Coverage"))
        self.assertFalse(_has_prefix(lines, "  - "))


class TestEmphasis(unittest.TestCase):
    def test_values_are_bold_spans_labels_plain(self) -> None:
        camp = _campaign(mutations_max=10)
        camp.counters.mutations_cnt.store(5)
        report = build_report(collect_snapshot(camp, RenderState(), now=T0 + 1))
        iterations = report[1]
        bold = [iterations.plain[s.start:s.end] for s in iterations.spans if s.style == "bold"]
        self.assertEqual(bold, ["5", "10"])
        self.assertEqual(report[0].spans, [])
