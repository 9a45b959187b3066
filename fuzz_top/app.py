"""fuzz-top: live status screen для multi-threaded фазинг-кампанії.

render_now(): один кадр, snapshot → rate → compose → write.
StatusReporter: окремий daemon-потік, який викликає render_now з
фіксованим інтервалом (і тим самим гарантує одного викликача).
main(): CLI, конфіг + синтетична кампанія (fuzz_top.demo).
"""
from __future__ import annotations

import argparse
import dataclasses
import json
import logging
import threading
import time
from typing import Any, Dict, Optional

from core.config_loader import (
    campaign_config_from_cfg,
    display_settings_from_cfg,
    load_system_config,
    pick_config_path,
    resolve_config_path,
)
from core.model.campaign import Campaign
from fuzz_top.collectors import RenderState, collect_snapshot, describe_pid
from fuzz_top.demo import start_workers
from fuzz_top.display import build_report
from fuzz_top.screen import ScreenWriter

_log = logging.getLogger(__name__)


def render_now(
    campaign: Campaign,
    state: RenderState,
    writer: Optional[ScreenWriter] = None,
    now: Optional[float] = None,
) -> None:
    """Відрендерити поточний статус кампанії (синхронно, без блокувань)."""
    snap = collect_snapshot(campaign, state, now=now)
    (writer or ScreenWriter()).write(build_report(snap))


class StatusReporter:
    """Періодичний рендер з одного потоку; RenderState належить йому."""

    def __init__(
        self,
        campaign: Campaign,
        writer: ScreenWriter,
        interval_s: float = 1.0,
    ) -> None:
        self._campaign = campaign
        self._writer = writer
        self._interval_s = float(interval_s)
        self._state = RenderState()
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self.frames = 0

    def tick(self) -> None:
        try:
            render_now(self._campaign, self._state, self._writer)
        except Exception:
            # Кадр втрачено, кампанія і reporter живуть далі
            _log.exception("StatusReporter: кадр не відрендерено")
            return
        self.frames += 1

    def _run(self) -> None:
        while not self._stop_event.is_set():
            self.tick()
            self._stop_event.wait(self._interval_s)

    def start(self) -> None:
        if self._thread is not None:
            return
        self._thread = threading.Thread(target=self._run, name="fuzz-top-reporter", daemon=True)
        self._thread.start()

    def stop(self, timeout: Optional[float] = None) -> None:
        self._stop_event.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None


def _load_cfg(path: str) -> Dict[str, Any]:
    try:
        return load_system_config(path)
    except (OSError, json.JSONDecodeError, ValueError) as e:
        _log.warning("config: %s не прочитано (%s), використовую дефолти", path, e)
        return {}


def build_campaign(cfg: Dict[str, Any]) -> Campaign:
    """Campaign з конфігу; pid_cmd для attach-режиму добирається через psutil."""
    config = campaign_config_from_cfg(cfg)
    if config.pid > 0 and not config.pid_cmd:
        config = dataclasses.replace(config, pid_cmd=describe_pid(config.pid))
    return Campaign(config=config)


def _setup_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s | %(levelname)s | %(message)s",
    )


def main(argv: Optional[list] = None) -> int:
    """Entrypoint."""
    ap = argparse.ArgumentParser(description="fuzz-top: fuzzing campaign status screen")
    ap.add_argument("--config", "-c", type=str, default=None,
                    help="Шлях до config.json (дефолт: FUZZ_TOP_CONFIG_PATH або config.json)")
    ap.add_argument("--interval", "-i", type=float, default=None,
                    help="Інтервал оновлення (секунди)")
    ap.add_argument("--once", action="store_true",
                    help="Один кадр і вихід (для діагностики)")
    ap.add_argument("--demo-threads", type=int, default=None,
                    help="Кількість синтетичних воркерів (дефолт: campaign.threads)")
    ap.add_argument("--duration", type=float, default=0.0,
                    help="Зупинитись через N секунд (0 = до Ctrl+C)")
    ap.add_argument("--verbose", action="store_true")
    args = ap.parse_args(argv)

    _setup_logging(args.verbose)

    cfg_path = resolve_config_path(args.config) if args.config else pick_config_path()
    cfg = _load_cfg(cfg_path)
    try:
        settings = display_settings_from_cfg(cfg)
        campaign = build_campaign(cfg)
    except ValueError as e:
        _log.error("config: %s невалідний: %s", cfg_path, e)
        return 2
    interval_s = args.interval if args.interval and args.interval > 0 else settings.interval_s
    _log.info(
        "campaign: threads=%d features=%s",
        campaign.config.threads_max,
        ",".join(campaign.config.features.names()) or "none",
    )
    writer = ScreenWriter(buffer_size=settings.buffer_size, emphasis=settings.emphasis)

    if args.once:
        render_now(campaign, RenderState(), writer)
        return 0

    stop = threading.Event()
    workers = start_workers(campaign, stop, args.demo_threads or campaign.config.threads_max)
    reporter = StatusReporter(campaign, writer, interval_s=interval_s)
    reporter.start()
    deadline = time.time() + args.duration if args.duration > 0 else None
    try:
        while deadline is None or time.time() < deadline:
            if not any(w.is_alive() for w in workers):
                _log.info("demo: усі воркери завершились (mutations_max досягнуто)")
                break
            time.sleep(0.2)
    except KeyboardInterrupt:
        pass
    finally:
        stop.set()
        for w in workers:
            w.join(timeout=2)
        reporter.stop(timeout=2)
        # Фінальний кадр з підсумковими лічильниками
        reporter.tick()
    return 0
