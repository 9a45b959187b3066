"""Єдиний завантажувач конфігурації fuzz-top.

Ціль: один модуль для визначення шляху до config.json,
завантаження JSON-конфігу, ENV-оверрайдів і типізованих секцій
(``display`` та ``campaign``).
"""
from __future__ import annotations

import json
import os
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional

from core.model.campaign import MAX_DYNFILE_ITER, CampaignConfig, FeatureFlags

# Корінь репозиторію (батько core/)
_REPO_ROOT = Path(__file__).resolve().parents[1]

DEFAULT_INTERVAL_S: float = 1.0
DEFAULT_BUFFER_SIZE: int = 1024 * 4


def resolve_config_path(raw_path: str | None = None) -> str:
    """Resolves config file path відносно кореня репозиторію.

    Args:
        raw_path: Шлях (абсолютний або відносний). Якщо None, то ``config.json``.

    Returns:
        Абсолютний шлях до config-файлу.
    """
    raw_value = (raw_path or "").strip()
    if not raw_value:
        return str((_REPO_ROOT / "config.json").resolve())
    p = Path(raw_value)
    if p.is_absolute():
        return str(p.resolve())
    return str((_REPO_ROOT / raw_value).resolve())


def pick_config_path() -> str:
    """Визначає шлях до config.json (ENV ``FUZZ_TOP_CONFIG_PATH`` або дефолт)."""
    env_path = (os.environ.get("FUZZ_TOP_CONFIG_PATH") or "").strip()
    if env_path:
        return resolve_config_path(env_path)
    return resolve_config_path("config.json")


def load_system_config(path: str | None = None) -> Dict[str, Any]:
    """Завантажує JSON-конфіг і повертає його як dict.

    Args:
        path: Шлях до файлу. Якщо None, то ``pick_config_path()``.

    Raises:
        OSError: файл недоступний.
        json.JSONDecodeError: невалідний JSON.
        ValueError: корінь JSON не є об'єктом.
    """
    target = path or pick_config_path()
    with open(target, "r", encoding="utf-8") as f:
        data = json.load(f)
    if not isinstance(data, dict):
        raise ValueError(f"config_root_not_object path={target}")
    return data


def env_str(key: str) -> Optional[str]:
    """Зчитує ENV-змінну, очищає пробіли, повертає None якщо порожньо."""
    value = os.environ.get(key)
    if value is None:
        return None
    value = str(value).strip()
    return value or None


def _section(cfg: Dict[str, Any], name: str) -> Dict[str, Any]:
    raw = cfg.get(name)
    return raw if isinstance(raw, dict) else {}


# ── Секція display ────────────────────────────────────────────────


@dataclass(frozen=True)
class DisplaySettings:
    interval_s: float = DEFAULT_INTERVAL_S
    buffer_size: int = DEFAULT_BUFFER_SIZE
    emphasis: bool = True


def display_settings_from_cfg(cfg: Dict[str, Any]) -> DisplaySettings:
    """Повертає DisplaySettings з config.json + ENV.

    Пріоритет: ENV (FUZZ_TOP_INTERVAL_S / FUZZ_TOP_BUFFER_SIZE) → config → DEFAULT.
    """
    sec = _section(cfg, "display")

    interval_raw: Any = env_str("FUZZ_TOP_INTERVAL_S") or sec.get("interval_s", DEFAULT_INTERVAL_S)
    buffer_raw: Any = env_str("FUZZ_TOP_BUFFER_SIZE") or sec.get("buffer_size", DEFAULT_BUFFER_SIZE)
    try:
        interval_s = float(interval_raw)
    except (TypeError, ValueError):
        raise ValueError(f"display_interval_invalid value={interval_raw!r}") from None
    try:
        buffer_size = int(buffer_raw)
    except (TypeError, ValueError):
        raise ValueError(f"display_buffer_size_invalid value={buffer_raw!r}") from None

    if interval_s <= 0:
        raise ValueError(f"display_interval_invalid value={interval_s}")
    if buffer_size <= 0:
        raise ValueError(f"display_buffer_size_invalid value={buffer_size}")

    return DisplaySettings(
        interval_s=interval_s,
        buffer_size=buffer_size,
        emphasis=bool(sec.get("emphasis", True)),
    )


# ── Секція campaign ───────────────────────────────────────────────


def _num(sec: Dict[str, Any], key: str, default: Any, conv, reason: str):
    """conv(sec[key]) або ValueError("<reason> value=...")."""
    raw = sec.get(key, default)
    try:
        return conv(raw)
    except (TypeError, ValueError):
        raise ValueError(f"{reason} value={raw!r}") from None


def campaign_config_from_cfg(
    cfg: Dict[str, Any],
    *,
    time_start: float | None = None,
) -> CampaignConfig:
    """Будує CampaignConfig з секції ``campaign``.

    ``features``: список імен прапорців (див. FeatureFlags.from_names).
    Невідоме ім'я прапорця або нечислове значення → ValueError.
    """
    sec = _section(cfg, "campaign")
    features_raw = sec.get("features") or []
    if not isinstance(features_raw, list):
        raise ValueError("campaign_features_not_list")

    return CampaignConfig(
        input_file=str(sec.get("input_file", "")),
        cmdline_txt=str(sec.get("cmdline", "")),
        pid=_num(sec, "pid", 0, int, "campaign_pid_invalid"),
        pid_cmd=str(sec.get("pid_cmd", "")),
        threads_max=max(1, _num(sec, "threads", 1, int, "campaign_threads_invalid")),
        mutations_max=max(0, _num(sec, "mutations_max", 0, int, "campaign_mutations_max_invalid")),
        flip_rate=_num(sec, "flip_rate", 0.001, float, "campaign_flip_rate_invalid"),
        use_verifier=bool(sec.get("use_verifier", False)),
        file_cnt=max(0, _num(sec, "file_cnt", 0, int, "campaign_file_cnt_invalid")),
        max_file_sz=max(0, _num(sec, "max_file_sz", 1024 * 1024, int, "campaign_max_file_sz_invalid")),
        max_dynfile_iter=max(
            0, _num(sec, "max_dynfile_iter", MAX_DYNFILE_ITER, int, "campaign_max_dynfile_iter_invalid")
        ),
        time_start=time.time() if time_start is None else float(time_start),
        features=FeatureFlags.from_names(features_raw),
    )
