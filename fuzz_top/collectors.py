"""Collectors: знімок лічильників кампанії для fuzz-top.

Read-only щодо кампанії. Кожен лічильник читається через
AtomicCounter.load() (без lock), тож знімок може містити значення з
трохи різних моментів.
Єдиний стан, який тут змінюється: RenderState (previous count).
"""
from __future__ import annotations

import dataclasses
import datetime as dt
import time
from typing import Optional

import psutil

from core.model.campaign import Campaign, FeatureFlags


UNKNOWN_PID_CMD = "[unknown]"


def _read_pid_cmdline(pid: int) -> str:
    try:
        parts = psutil.Process(pid).cmdline()
    except psutil.Error:
        return UNKNOWN_PID_CMD
    return " ".join(parts) if parts else UNKNOWN_PID_CMD


def describe_pid(pid: int) -> str:
    """Командний рядок attached-процесу (читається один раз при старті)."""
    if pid <= 0:
        return ""
    return _read_pid_cmdline(pid)


# ---------------------------------------------------------------------------
# Арифметика: нульовий знаменник → 0
# ---------------------------------------------------------------------------
def clamp_iterations(raw: int, cap: int) -> int:
    """Воркери інкрементують лічильник безумовно, тож він може перелетіти cap."""
    if cap > 0 and raw > cap:
        return cap
    return raw


def average_rate(count: int, elapsed_s: int) -> int:
    if elapsed_s <= 0:
        return 0
    return count // elapsed_s


def coverage_percent(hit: int, total: int) -> int:
    if total <= 0:
        return 0
    return (hit * 100) // total


class RenderState:
    """Стан між кадрами: кількість ітерацій на попередньому рендері.

    Належить одному викликачу (reporter-потоку); внутрішнього lock немає.
    """

    def __init__(self) -> None:
        self.prev_exec_cnt = 0

    def update(self, curr_exec_cnt: int) -> int:
        """Повертає приріст за інтервал і запам'ятовує curr_exec_cnt.

        Перший виклик повертає curr_exec_cnt (prev=0): cold-start артефакт.
        """
        delta = curr_exec_cnt - self.prev_exec_cnt
        self.prev_exec_cnt = curr_exec_cnt
        return delta if delta > 0 else 0


# ---------------------------------------------------------------------------
# Snapshot
# ---------------------------------------------------------------------------
@dataclasses.dataclass(frozen=True)
class Snapshot:
    # Static metadata
    time_start: float
    input_file: str
    cmdline_txt: str
    pid: int
    pid_cmd: str
    threads_max: int
    mutations_max: int
    dry_run: bool
    file_cnt: int
    max_file_sz: int
    max_dynfile_iter: int
    features: FeatureFlags

    # Counters + derived
    exec_cnt: int
    elapsed_s: int
    exec_per_sec: int
    exec_avg: int
    crashes_cnt: int
    unique_crashes_cnt: int
    bl_crashes_cnt: int
    verified_crashes_cnt: int
    timeouted_cnt: int
    dynamic_file_best_sz: int
    dyn_file_iter_expire: int
    cpu_instr_cnt: int
    cpu_branch_cnt: int
    cpu_bts_block_cnt: int
    cpu_bts_edge_cnt: int
    cpu_ipt_block_cnt: int
    custom_cnt: int
    hit_bb_cnt: int
    total_bb_cnt: int
    i_dso_cnt: int
    new_bb_cnt: int
    sancov_crashes_cnt: int
    coverage_pct: int

    @property
    def start_time_str(self) -> str:
        """Локальний час старту у форматі ``%F %T``."""
        return dt.datetime.fromtimestamp(self.time_start).strftime("%Y-%m-%d %H:%M:%S")


def collect_snapshot(
    campaign: Campaign,
    state: RenderState,
    now: Optional[float] = None,
) -> Snapshot:
    """Знімок лічильників + rate update.

    RenderState оновлюється на кожному виклику, навіть якщо кадр потім
    не буде записаний.
    """
    cfg = campaign.config
    c = campaign.counters
    now_ts = time.time() if now is None else now
    elapsed_s = max(0, int(now_ts - cfg.time_start))

    exec_cnt = clamp_iterations(c.mutations_cnt.load(), cfg.mutations_max)
    exec_per_sec = state.update(exec_cnt)

    hit_bb = c.sancov.hit_bb_cnt.load()
    total_bb = c.sancov.total_bb_cnt.load()

    return Snapshot(
        time_start=cfg.time_start,
        input_file=cfg.input_file,
        cmdline_txt=cfg.cmdline_txt,
        pid=cfg.pid,
        pid_cmd=cfg.pid_cmd,
        threads_max=cfg.threads_max,
        mutations_max=cfg.mutations_max,
        dry_run=cfg.dry_run,
        file_cnt=cfg.file_cnt,
        max_file_sz=cfg.max_file_sz,
        max_dynfile_iter=cfg.max_dynfile_iter,
        features=cfg.features,
        exec_cnt=exec_cnt,
        elapsed_s=elapsed_s,
        exec_per_sec=exec_per_sec,
        exec_avg=average_rate(exec_cnt, elapsed_s),
        crashes_cnt=c.crashes_cnt.load(),
        unique_crashes_cnt=c.unique_crashes_cnt.load(),
        bl_crashes_cnt=c.bl_crashes_cnt.load(),
        verified_crashes_cnt=c.verified_crashes_cnt.load(),
        timeouted_cnt=c.timeouted_cnt.load(),
        dynamic_file_best_sz=c.dynamic_file_best_sz.load(),
        dyn_file_iter_expire=c.dyn_file_iter_expire.load(),
        cpu_instr_cnt=c.hw.cpu_instr_cnt.load(),
        cpu_branch_cnt=c.hw.cpu_branch_cnt.load(),
        cpu_bts_block_cnt=c.hw.cpu_bts_block_cnt.load(),
        cpu_bts_edge_cnt=c.hw.cpu_bts_edge_cnt.load(),
        cpu_ipt_block_cnt=c.hw.cpu_ipt_block_cnt.load(),
        custom_cnt=c.hw.custom_cnt.load(),
        hit_bb_cnt=hit_bb,
        total_bb_cnt=total_bb,
        i_dso_cnt=c.sancov.i_dso_cnt.load(),
        new_bb_cnt=c.sancov.new_bb_cnt.load(),
        sancov_crashes_cnt=c.sancov.crashes_cnt.load(),
        coverage_pct=coverage_percent(hit_bb, total_bb),
    )
