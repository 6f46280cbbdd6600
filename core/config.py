"""
core/config.py - 중앙 설정 관리

환경변수 기반 설정과 로깅 설정을 제공합니다.
Tagger는 전역 설정을 직접 읽지 않으며, 호출자가 Settings를 명시적으로 전달합니다.

환경변수:
    AWS_PROFILE / AWS_DEFAULT_PROFILE: 기본 프로파일
    AWS_REGION / AWS_DEFAULT_REGION: 기본 리전
    ECR_TAGGER_CONNECT_TIMEOUT: ECR 연결 타임아웃 (초)
    ECR_TAGGER_READ_TIMEOUT: ECR 읽기 타임아웃 (초)
    ECR_TAGGER_STATS: 카운터 백엔드 (memory, null, datadog)
    ECR_TAGGER_STATS_PREFIX: 카운터 이름 접두사
    LOG_LEVEL / LOG_FORMAT: 로깅 설정

Usage:
    from core.config import settings, get_default_region

    region = get_default_region()
    timeout = settings.API_READ_TIMEOUT
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from functools import lru_cache
from pathlib import Path

# =============================================================================
# 상수
# =============================================================================

VALID_STATS_BACKENDS = ("memory", "null", "datadog")

_TRUE_VALUES = {"true", "1", "yes", "on"}
_FALSE_VALUES = {"false", "0", "no", "off"}


# =============================================================================
# 환경변수 헬퍼
# =============================================================================


def get_env_bool(name: str, default: bool = False) -> bool:
    """환경변수를 bool로 변환

    인식할 수 없는 값이면 기본값을 반환합니다.
    """
    value = os.environ.get(name)
    if value is None:
        return default

    value = value.strip().lower()
    if value in _TRUE_VALUES:
        return True
    if value in _FALSE_VALUES:
        return False
    return default


def get_env_int(name: str, default: int) -> int:
    """환경변수를 int로 변환 (실패 시 기본값)"""
    value = os.environ.get(name)
    if value is None:
        return default

    try:
        return int(value)
    except ValueError:
        return default


def get_env_str(name: str, default: str) -> str:
    """환경변수 문자열 (비어 있으면 기본값)"""
    value = os.environ.get(name, "").strip()
    return value or default


# =============================================================================
# 설정
# =============================================================================


@dataclass(frozen=True)
class Settings:
    """ECR Tagger 설정

    불변 객체입니다. 값을 바꾸려면 from_env() 또는 생성자로 새 인스턴스를 만드세요.
    """

    DEFAULT_REGION: str = "ap-northeast-2"

    # ECR API 호출 (재시도 없음: 모든 원격 실패는 해당 작업을 종료)
    API_CONNECT_TIMEOUT: int = 10
    API_READ_TIMEOUT: int = 30
    API_MAX_ATTEMPTS: int = 1  # 첫 호출 포함 총 시도 횟수

    # 실패 카운터
    STATS_BACKEND: str = "memory"
    STATS_PREFIX: str = ""

    # Datadog (STATS_BACKEND=datadog일 때만 사용)
    DATADOG_API_KEY: str = field(default="", repr=False)
    DATADOG_APP_KEY: str = field(default="", repr=False)
    DATADOG_SITE: str = "datadoghq.com"

    @classmethod
    def from_env(cls) -> Settings:
        """환경변수에서 설정 로드"""
        defaults = cls()
        backend = get_env_str("ECR_TAGGER_STATS", defaults.STATS_BACKEND).lower()
        if backend not in VALID_STATS_BACKENDS:
            logging.getLogger(__name__).warning(
                "알 수 없는 ECR_TAGGER_STATS 값: %s (기본값 %s 사용)", backend, defaults.STATS_BACKEND
            )
            backend = defaults.STATS_BACKEND

        return cls(
            DEFAULT_REGION=get_default_region(defaults.DEFAULT_REGION),
            API_CONNECT_TIMEOUT=get_env_int("ECR_TAGGER_CONNECT_TIMEOUT", defaults.API_CONNECT_TIMEOUT),
            API_READ_TIMEOUT=get_env_int("ECR_TAGGER_READ_TIMEOUT", defaults.API_READ_TIMEOUT),
            STATS_BACKEND=backend,
            STATS_PREFIX=get_env_str("ECR_TAGGER_STATS_PREFIX", defaults.STATS_PREFIX),
            DATADOG_API_KEY=get_env_str("DD_API_KEY", ""),
            DATADOG_APP_KEY=get_env_str("DD_APP_KEY", ""),
            DATADOG_SITE=get_env_str("DD_SITE", defaults.DATADOG_SITE),
        )


# 기본 설정 인스턴스 (환경변수 미적용)
settings = Settings()


def get_default_profile() -> str | None:
    """환경변수에서 기본 프로파일 조회"""
    return os.environ.get("AWS_PROFILE") or os.environ.get("AWS_DEFAULT_PROFILE") or None


def get_default_region(fallback: str | None = None) -> str:
    """환경변수에서 기본 리전 조회 (없으면 settings.DEFAULT_REGION)"""
    return (
        os.environ.get("AWS_REGION")
        or os.environ.get("AWS_DEFAULT_REGION")
        or fallback
        or settings.DEFAULT_REGION
    )


# =============================================================================
# 경로 / 버전
# =============================================================================


def get_project_root() -> Path:
    """프로젝트 루트 경로"""
    return Path(__file__).resolve().parent.parent


@lru_cache(maxsize=1)
def get_version() -> str:
    """version.txt에서 버전 문자열 로드"""
    version_file = get_project_root() / "version.txt"
    try:
        version = version_file.read_text(encoding="utf-8").strip()
    except OSError:
        return "0.0.0"
    return version or "0.0.0"


# =============================================================================
# 로깅
# =============================================================================


@dataclass
class LogConfig:
    """로깅 설정"""

    level: str = "INFO"
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    date_format: str = "%Y-%m-%d %H:%M:%S"

    @classmethod
    def from_env(cls) -> LogConfig:
        """LOG_LEVEL, LOG_FORMAT 환경변수에서 로드"""
        defaults = cls()
        return cls(
            level=get_env_str("LOG_LEVEL", defaults.level).upper(),
            format=get_env_str("LOG_FORMAT", defaults.format),
            date_format=defaults.date_format,
        )


def setup_logging(config: LogConfig | None = None, rich: bool = False) -> None:
    """루트 로거 설정

    Args:
        config: 로깅 설정 (None이면 환경변수에서 로드)
        rich: True이면 rich.logging.RichHandler 사용
    """
    config = config or LogConfig.from_env()
    level = logging.getLevelName(config.level)
    if not isinstance(level, int):
        level = logging.INFO

    handlers: list[logging.Handler] | None = None
    log_format = config.format
    if rich:
        from rich.logging import RichHandler

        handlers = [RichHandler(rich_tracebacks=True, show_path=False)]
        log_format = "%(message)s"

    logging.basicConfig(
        level=level,
        format=log_format,
        datefmt=config.date_format,
        handlers=handlers,
        force=True,
    )

    # botocore 노이즈 로그 제한
    for name in ("botocore.credentials", "botocore.loaders", "botocore.session", "botocore.httpchecksum"):
        logging.getLogger(name).setLevel(logging.WARNING)
