"""Модель кампанії фазингу (спільний стан, який мутують воркери двигуна).

- Лічильники незалежні: між різними лічильниками атомарності немає.
- Запис (add/store) серіалізується приватним lock лічильника.
- Читання (load): одне завантаження атрибута з immutable int, без lock.
- CampaignConfig: read-only, заповнюється двигуном до старту воркерів.
"""
from __future__ import annotations

import dataclasses
import threading
import time
from typing import Any, Dict, Iterable, Tuple

# Скільки ітерацій тримати обраний seed до експірації (0x2000 як у двигуні).
MAX_DYNFILE_ITER = 0x2000


class AtomicCounter:
    """Цілий лічильник: writers під lock, reader без lock."""

    __slots__ = ("_value", "_lock")

    def __init__(self, value: int = 0) -> None:
        self._value = int(value)
        self._lock = threading.Lock()

    def add(self, n: int = 1) -> int:
        with self._lock:
            self._value += n
            return self._value

    def store(self, value: int) -> None:
        with self._lock:
            self._value = int(value)

    def load(self) -> int:
        # Присвоєння/читання посилання на int атомарне, torn read неможливий.
        return self._value

    def __repr__(self) -> str:
        return f"AtomicCounter({self._value})"


def _counter() -> Any:
    return dataclasses.field(default_factory=AtomicCounter)


@dataclasses.dataclass
class HwCounters:
    """Апаратні лічильники (perf / BTS / Intel PT)."""

    cpu_instr_cnt: AtomicCounter = _counter()
    cpu_branch_cnt: AtomicCounter = _counter()
    cpu_bts_block_cnt: AtomicCounter = _counter()
    cpu_bts_edge_cnt: AtomicCounter = _counter()
    cpu_ipt_block_cnt: AtomicCounter = _counter()
    custom_cnt: AtomicCounter = _counter()


@dataclasses.dataclass
class SanCovCounters:
    """Лічильники software coverage (sanitizer coverage)."""

    hit_bb_cnt: AtomicCounter = _counter()
    total_bb_cnt: AtomicCounter = _counter()
    i_dso_cnt: AtomicCounter = _counter()
    new_bb_cnt: AtomicCounter = _counter()
    crashes_cnt: AtomicCounter = _counter()


@dataclasses.dataclass
class CampaignCounters:
    mutations_cnt: AtomicCounter = _counter()
    crashes_cnt: AtomicCounter = _counter()
    unique_crashes_cnt: AtomicCounter = _counter()
    bl_crashes_cnt: AtomicCounter = _counter()
    verified_crashes_cnt: AtomicCounter = _counter()
    timeouted_cnt: AtomicCounter = _counter()
    dynamic_file_best_sz: AtomicCounter = _counter()
    dyn_file_iter_expire: AtomicCounter = _counter()
    hw: HwCounters = dataclasses.field(default_factory=HwCounters)
    sancov: SanCovCounters = dataclasses.field(default_factory=SanCovCounters)


# Порядок має значення: саме так рядки лічильників ідуть у звіті.
HW_FLAG_NAMES: Tuple[str, ...] = (
    "instr_count",
    "branch_count",
    "bts_block",
    "bts_edge",
    "ipt_block",
    "custom",
)


@dataclasses.dataclass(frozen=True)
class FeatureFlags:
    """Які feedback-механізми активні. Кожен прапорець незалежний."""

    instr_count: bool = False
    branch_count: bool = False
    bts_block: bool = False
    bts_edge: bool = False
    ipt_block: bool = False
    custom: bool = False
    sancov: bool = False

    @property
    def hw_feedback(self) -> bool:
        return any(getattr(self, name) for name in HW_FLAG_NAMES)

    @property
    def feedback_enabled(self) -> bool:
        return self.hw_feedback or self.sancov

    @classmethod
    def from_names(cls, names: Iterable[str]) -> "FeatureFlags":
        """['branch_count', 'sancov'] → FeatureFlags(branch_count=True, sancov=True)."""
        known = set(HW_FLAG_NAMES) | {"sancov"}
        kwargs: Dict[str, bool] = {}
        for raw in names:
            name = str(raw).strip().lower()
            if not name:
                continue
            if name not in known:
                raise ValueError(f"feature_flag_unknown name={name}")
            kwargs[name] = True
        return cls(**kwargs)

    def names(self) -> Tuple[str, ...]:
        return tuple(n for n in HW_FLAG_NAMES + ("sancov",) if getattr(self, n))


@dataclasses.dataclass(frozen=True)
class CampaignConfig:
    """Статичні параметри кампанії (не змінюються під час прогону)."""

    input_file: str = ""
    cmdline_txt: str = ""
    pid: int = 0
    pid_cmd: str = ""
    threads_max: int = 1
    mutations_max: int = 0  # 0 → без ліміту
    flip_rate: float = 0.001
    use_verifier: bool = False
    file_cnt: int = 0
    max_file_sz: int = 1024 * 1024
    max_dynfile_iter: int = MAX_DYNFILE_ITER
    time_start: float = dataclasses.field(default_factory=time.time)
    features: FeatureFlags = dataclasses.field(default_factory=FeatureFlags)

    @property
    def dry_run(self) -> bool:
        """Без мутацій + verifier → режим replay/перевірки корпусу."""
        return self.flip_rate == 0.0 and self.use_verifier


@dataclasses.dataclass
class Campaign:
    """Handle кампанії: read-only config + спільні лічильники."""

    config: CampaignConfig
    counters: CampaignCounters = dataclasses.field(default_factory=CampaignCounters)
