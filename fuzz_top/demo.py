"""Синтетична кампанія для CLI: воркери крутять лічильники як справжній двигун.

Потрібна, щоб подивитися екран end-to-end без реального фазера.
Воркери інкрементують mutations_cnt безумовно (як двигун), тому
лічильник може перелетіти mutations_max, екран це клампить.
"""
from __future__ import annotations

import logging
import random
import threading
import time
from typing import List, Optional

from core.model.campaign import Campaign

_log = logging.getLogger(__name__)

_TOTAL_BB = 50_000


class SyntheticWorker(threading.Thread):
    """Один "фазинг-потік": мутація → виконання → оновлення лічильників."""

    def __init__(
        self,
        campaign: Campaign,
        stop: threading.Event,
        idx: int,
        exec_delay_s: float = 0.0005,
        seed: Optional[int] = None,
    ) -> None:
        super().__init__(name=f"fuzz-worker-{idx}", daemon=True)
        self._campaign = campaign
        self._stop_event = stop
        self._delay = exec_delay_s
        self._rnd = random.Random(seed)

    def _one_iteration(self) -> None:
        cfg = self._campaign.config
        c = self._campaign.counters
        rnd = self._rnd

        if rnd.random() < 0.0005:
            c.crashes_cnt.add()
            if rnd.random() < 0.2:
                c.unique_crashes_cnt.add()
                if cfg.use_verifier:
                    c.verified_crashes_cnt.add()
            elif rnd.random() < 0.1:
                c.bl_crashes_cnt.add()
        if rnd.random() < 0.001:
            c.timeouted_cnt.add()

        flags = cfg.features
        if not flags.feedback_enabled:
            return

        expire = c.dyn_file_iter_expire.add()
        if expire >= cfg.max_dynfile_iter:
            c.dyn_file_iter_expire.store(0)
        if rnd.random() < 0.01:
            c.dynamic_file_best_sz.store(rnd.randint(1, max(1, cfg.max_file_sz)))

        hw = c.hw
        if flags.instr_count:
            hw.cpu_instr_cnt.store(max(hw.cpu_instr_cnt.load(), rnd.randint(10_000, 2_000_000)))
        if flags.branch_count:
            hw.cpu_branch_cnt.store(max(hw.cpu_branch_cnt.load(), rnd.randint(1_000, 400_000)))
        if flags.bts_block and rnd.random() < 0.01:
            hw.cpu_bts_block_cnt.add()
        if flags.bts_edge and rnd.random() < 0.01:
            hw.cpu_bts_edge_cnt.add()
        if flags.ipt_block and rnd.random() < 0.01:
            hw.cpu_ipt_block_cnt.add()
        if flags.custom and rnd.random() < 0.05:
            hw.custom_cnt.add()

        if flags.sancov:
            sc = c.sancov
            if sc.hit_bb_cnt.load() < sc.total_bb_cnt.load() and rnd.random() < 0.02:
                sc.hit_bb_cnt.add()
                sc.new_bb_cnt.add()
            if rnd.random() < 0.0001:
                sc.crashes_cnt.add()

    def run(self) -> None:
        cap = self._campaign.config.mutations_max
        mutations = self._campaign.counters.mutations_cnt
        while not self._stop_event.is_set():
            if mutations.add() > cap > 0:
                break
            self._one_iteration()
            if self._delay:
                time.sleep(self._delay)
        _log.debug("%s: stopped", self.name)


def seed_campaign(campaign: Campaign) -> None:
    """Початкові значення, які двигун виставляє до старту воркерів."""
    c = campaign.counters
    if campaign.config.features.sancov:
        c.sancov.total_bb_cnt.store(_TOTAL_BB)
        c.sancov.i_dso_cnt.store(3)


def start_workers(
    campaign: Campaign,
    stop: threading.Event,
    count: int,
    exec_delay_s: float = 0.0005,
) -> List[SyntheticWorker]:
    seed_campaign(campaign)
    workers = [
        SyntheticWorker(campaign, stop, i, exec_delay_s=exec_delay_s)
        for i in range(max(1, count))
    ]
    for w in workers:
        w.start()
    _log.info("demo: запущено %d воркерів", len(workers))
    return workers
