"""
core/ecr/client.py - 리전 단위 ECR client 생성 헬퍼

타임아웃이 설정되고 재시도가 비활성화된 boto3 ECR client를 생성합니다.
모든 원격 실패는 해당 작업을 즉시 종료하므로 기본 시도 횟수는 1입니다.
botocore의 `max_attempts`는 재시도 횟수이므로 총 시도 횟수인 `total_max_attempts`를 사용합니다.

Example:
    from core.ecr.client import get_ecr_client

    ecr = get_ecr_client(session, region_name="ap-northeast-2")

    # 설정 기반
    ecr = get_ecr_client(session, region_name=ref.region, settings=settings)
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Literal, cast

if TYPE_CHECKING:
    from core.config import Settings
    from core.types.aws import ECRClient, SessionProtocol

# Retry mode 타입 (botocore TypedDict와 호환)
RetryMode = Literal["legacy", "standard", "adaptive"]

DEFAULT_MAX_ATTEMPTS = 1
DEFAULT_RETRY_MODE: RetryMode = "standard"
DEFAULT_CONNECT_TIMEOUT = 10  # 초
DEFAULT_READ_TIMEOUT = 30  # 초


def get_ecr_client(
    session: SessionProtocol,
    region_name: str | None = None,
    max_attempts: int = DEFAULT_MAX_ATTEMPTS,
    retry_mode: RetryMode = DEFAULT_RETRY_MODE,
    connect_timeout: int = DEFAULT_CONNECT_TIMEOUT,
    read_timeout: int = DEFAULT_READ_TIMEOUT,
    settings: Settings | None = None,
    **kwargs: Any,
) -> ECRClient:
    """타임아웃이 적용된 ECR client 생성

    Args:
        session: boto3 Session
        region_name: 리전 (None이면 세션 기본값)
        max_attempts: 첫 호출을 포함한 총 시도 횟수 (기본: 1, 재시도 없음)
        retry_mode: 재시도 모드
        connect_timeout: 연결 타임아웃 (초)
        read_timeout: 읽기 타임아웃 (초)
        settings: 주어지면 타임아웃/시도 횟수를 설정값으로 대체
        **kwargs: session.client()에 전달할 추가 인자

    Returns:
        boto3 ECR client
    """
    from botocore.config import Config

    if settings is not None:
        max_attempts = settings.API_MAX_ATTEMPTS
        connect_timeout = settings.API_CONNECT_TIMEOUT
        read_timeout = settings.API_READ_TIMEOUT

    config = Config(
        retries={"total_max_attempts": max_attempts, "mode": retry_mode},  # pyright: ignore[reportArgumentType]
        connect_timeout=connect_timeout,
        read_timeout=read_timeout,
    )

    # 기존 config가 있으면 병합
    if "config" in kwargs:
        existing = kwargs.pop("config")
        config = config.merge(existing)

    return cast(
        "ECRClient",
        session.client("ecr", region_name=region_name, config=config, **kwargs),
    )
