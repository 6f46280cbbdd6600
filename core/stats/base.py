"""
core/stats/base.py - 실패 카운터 인터페이스와 기본 구현

Tagger는 원격 호출이 실패할 때마다 이름이 붙은 카운터를 1 증가시킵니다.
(예: "ecr.putimage.my-repo.failure")

주요 구성 요소:
- Stats: inc_count(name)만 요구하는 Protocol
- MemoryStats: 스레드 세이프 인메모리 카운터
- NullStats: 아무것도 기록하지 않는 카운터
"""

from __future__ import annotations

import threading
from collections import Counter
from typing import Protocol, runtime_checkable


@runtime_checkable
class Stats(Protocol):
    """카운터 싱크 Protocol"""

    def inc_count(self, name: str) -> None:
        """이름이 붙은 카운터를 1 증가"""
        ...


class MemoryStats:
    """스레드 세이프 인메모리 카운터

    여러 호출 지점에서 동시에 증가시켜도 값이 유실되지 않습니다.

    Example:
        stats = MemoryStats()
        stats.inc_count("ecr.batchget.my-repo.failure")
        stats.get("ecr.batchget.my-repo.failure")  # 1
    """

    def __init__(self, prefix: str = ""):
        self.prefix = prefix
        self._counts: Counter[str] = Counter()
        self._lock = threading.Lock()

    def inc_count(self, name: str) -> None:
        with self._lock:
            self._counts[f"{self.prefix}{name}"] += 1

    def get(self, name: str) -> int:
        """카운터 값 조회 (없으면 0)"""
        with self._lock:
            return self._counts.get(f"{self.prefix}{name}", 0)

    def snapshot(self) -> dict[str, int]:
        """현재 카운터 전체 복사본"""
        with self._lock:
            return dict(self._counts)

    def reset(self) -> None:
        """카운터 초기화 (테스트용)"""
        with self._lock:
            self._counts.clear()

    @property
    def total(self) -> int:
        with self._lock:
            return sum(self._counts.values())


class NullStats:
    """카운터를 버리는 구현"""

    def inc_count(self, name: str) -> None:
        pass
