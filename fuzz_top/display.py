"""Display: компонування текстового звіту fuzz-top.

Порядок секцій фіксований:
  1. STAT banner
  2. Iterations (+ cap, якщо заданий)
  3. Start time / elapsed
  4. Input / fuzzed cmd / remote cmd (тільки attach-режим)
  5. Threads + execs per second (interval / avg)
  6. Input Files (тільки dry-run)
  7. Crashes / Timeouts
  8. Dynamic file (тільки якщо є feedback)
  9. HW лічильники (кожен за своїм прапорцем)
 10. Sanitizer coverage (тільки sancov)
 11. LOGS banner

Кожне динамічне значення є окремим bold span. Вихід лише для людини.
"""
from __future__ import annotations

from typing import List, Tuple

from rich.text import Text

from fuzz_top.collectors import Snapshot

STAT_BANNER = "============================== STAT =============================="
LOGS_BANNER = "============================== LOGS =============================="

_VALUE_STYLE = "bold"

# (прапорець FeatureFlags, атрибут Snapshot, підпис)
_HW_LINES: Tuple[Tuple[str, str, str], ...] = (
    ("instr_count", "cpu_instr_cnt", "  - cpu instructions:      "),
    ("branch_count", "cpu_branch_cnt", "  - cpu branches:          "),
    ("bts_block", "cpu_bts_block_cnt", "  - BTS unique blocks: "),
    ("bts_edge", "cpu_bts_edge_cnt", "  - BTS unique edges:   "),
    ("ipt_block", "cpu_ipt_block_cnt", "  - PT unique blocks: "),
    ("custom", "custom_cnt", "  - custom counter:        "),
)


def _line(*parts: object) -> Text:
    """Збирає рядок: str → звичайний текст, інше → bold значення.

    Значення-рядки, які треба виділити, передаються як (value,) tuple.
    """
    t = Text()
    for part in parts:
        if isinstance(part, str):
            t.append(part)
        elif isinstance(part, tuple):
            t.append(str(part[0]), style=_VALUE_STYLE)
        else:
            t.append(str(part), style=_VALUE_STYLE)
    return t


# ---------------------------------------------------------------------------
# Sections
# ---------------------------------------------------------------------------
def build_iterations(snap: Snapshot) -> Text:
    line = _line("Iterations: ", snap.exec_cnt)
    if snap.mutations_max:
        line.append_text(_line(" (out of: ", snap.mutations_max, ")"))
    return line


def build_metadata(snap: Snapshot) -> List[Text]:
    lines = [
        _line("Start time: ", (snap.start_time_str,), " (", snap.elapsed_s, " seconds elapsed)"),
        _line("Input file/dir: '", (snap.input_file,), "'"),
        _line("Fuzzed cmd: '", (snap.cmdline_txt,), "'"),
    ]
    if snap.pid > 0:
        lines.append(_line("Remote cmd [", snap.pid, "]: '", (snap.pid_cmd,), "'"))
    return lines


def build_throughput(snap: Snapshot) -> List[Text]:
    return [
        _line("Fuzzing threads: ", snap.threads_max),
        _line("Execs per second: ", snap.exec_per_sec, " (avg: ", snap.exec_avg, ")"),
    ]


def build_crashes(snap: Snapshot) -> List[Text]:
    return [
        _line(
            "Crashes: ", snap.crashes_cnt,
            " (unique: ", snap.unique_crashes_cnt,
            ", blacklist: ", snap.bl_crashes_cnt,
            ", verified: ", snap.verified_crashes_cnt, ") ",
        ),
        _line("Timeouts: ", snap.timeouted_cnt),
    ]


def build_feedback(snap: Snapshot) -> List[Text]:
    """Dynamic file + лічильники механізмів; порожньо без feedback."""
    flags = snap.features
    if not flags.feedback_enabled:
        return []

    lines = [
        _line("Dynamic file size: ", snap.dynamic_file_best_sz, " (max: ", snap.max_file_sz, ")"),
        _line(
            "Dynamic file max iterations keep for chosen seed (",
            snap.dyn_file_iter_expire, "/", snap.max_dynfile_iter, ")",
        ),
        Text("Coverage (max):"),
    ]

    for flag, attr, label in _HW_LINES:
        if getattr(flags, flag):
            lines.append(_line(label, getattr(snap, attr)))

    if flags.sancov:
        lines.append(_line("  - total hit #bb:  ", snap.hit_bb_cnt, f" (coverage {snap.coverage_pct}%)"))
        lines.append(_line("  - total #dso:     ", snap.i_dso_cnt, " (instrumented only)"))
        lines.append(_line("  - discovered #bb: ", snap.new_bb_cnt, " (new from input seed)"))
        lines.append(_line("  - crashes:        ", snap.sancov_crashes_cnt))
    return lines


# ---------------------------------------------------------------------------
# Full report
# ---------------------------------------------------------------------------
def build_report(snap: Snapshot) -> List[Text]:
    """Повний кадр у фіксованому порядку секцій."""
    lines: List[Text] = [Text(STAT_BANNER), build_iterations(snap)]
    lines.extend(build_metadata(snap))
    lines.extend(build_throughput(snap))
    if snap.dry_run:
        lines.append(_line("Input Files: '", snap.file_cnt, "'"))
    lines.extend(build_crashes(snap))
    lines.extend(build_feedback(snap))
    lines.append(Text(LOGS_BANNER))
    return lines
