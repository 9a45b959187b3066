"""Screen: вивід кадру fuzz-top на термінал.

Один кадр = ESC_CLEAR + відрендерені рядки, один os.write.
Буфер фіксованого розміру: надлишок обрізається, а не алокується.
Помилка або частковий запис не фатальні, наступний тік дасть новий кадр.
"""
from __future__ import annotations

import io
import logging
import os
import sys
from typing import Iterable, Optional

from rich.console import Console
from rich.text import Text

from core.config_loader import DEFAULT_BUFFER_SIZE

_log = logging.getLogger(__name__)

ESC_CLEAR = "\033[H\033[2J"

# soft_wrap=True → рядки не переносяться, ширина лише формальна
_RENDER_WIDTH = 200


def render_ansi(lines: Iterable[Text], emphasis: bool = True) -> str:
    """Рендерить rich.Text рядки в ANSI-рядок (bold → ESC[1m ... ESC[0m)."""
    buf = io.StringIO()
    console = Console(
        file=buf,
        force_terminal=emphasis,
        color_system="standard" if emphasis else None,
        width=_RENDER_WIDTH,
        soft_wrap=True,
        highlight=False,
        markup=False,
        emoji=False,
        legacy_windows=False,
    )
    for line in lines:
        console.print(line)
    return buf.getvalue()


class ScreenWriter:
    """Пише кадр одним викликом os.write у вказаний fd (за замовчуванням stdout)."""

    def __init__(
        self,
        fd: Optional[int] = None,
        buffer_size: int = DEFAULT_BUFFER_SIZE,
        emphasis: bool = True,
    ) -> None:
        if buffer_size <= 0:
            raise ValueError(f"screen_buffer_size_invalid value={buffer_size}")
        self._fd = fd
        self.buffer_size = int(buffer_size)
        self.emphasis = bool(emphasis)

    def _resolve_fd(self) -> int:
        if self._fd is not None:
            return self._fd
        return sys.stdout.fileno()

    def compose(self, lines: Iterable[Text]) -> bytes:
        """ESC_CLEAR + рядки, обрізані до buffer_size байт."""
        frame = ESC_CLEAR + render_ansi(lines, emphasis=self.emphasis)
        data = frame.encode("utf-8", errors="replace")
        if len(data) > self.buffer_size:
            _log.debug("screen: кадр %d B обрізано до %d B", len(data), self.buffer_size)
            data = data[: self.buffer_size]
        return data

    def write(self, lines: Iterable[Text]) -> int:
        """Повертає кількість записаних байт (0 якщо запис не вдався)."""
        data = self.compose(lines)
        try:
            written = os.write(self._resolve_fd(), data)
        except (OSError, ValueError) as e:
            # UnsupportedOperation (stdout без fileno) є підкласом обох
            _log.debug("screen: кадр відкинуто: %s", e)
            return 0
        if written < len(data):
            _log.debug("screen: частковий запис %d/%d B", written, len(data))
        return written
