"""
core/exceptions.py - 통합 예외 계층 구조

ECR 태그 작업 전체에서 사용되는 예외 클래스들을 정의합니다.
모든 예외는 작업/리포지토리/태그 컨텍스트를 포함하여
재시도 없이도 원인을 진단할 수 있도록 합니다.

예외 계층 구조:
    TaggerError (베이스)
    ├── ParseError (리포지토리 ARN 파싱 실패)
    ├── RemoteCallError (ECR API 호출 실패)
    ├── InvariantViolation (버전 태그에 이미지가 2개 이상)
    ├── NotFound (버전 태그에 해당하는 이미지 없음)
    └── DeadlineExceeded (작업 제한 시간 초과)

Usage:
    from core.exceptions import RemoteCallError

    try:
        ecr.put_image(...)
    except ClientError as e:
        raise RemoteCallError.from_client_error(
            operation="put_image",
            repository="my-repo",
            client_error=e,
            tag="prod",
        ) from e
"""

from __future__ import annotations

from typing import Any

# =============================================================================
# 베이스 예외
# =============================================================================


class TaggerError(Exception):
    """ECR Tagger 기본 예외 클래스

    모든 커스텀 예외의 베이스 클래스입니다.

    Attributes:
        message: 에러 메시지
        cause: 원인 예외 (체이닝용)
        details: 추가 상세 정보
    """

    def __init__(
        self,
        message: str,
        cause: Exception | None = None,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.cause = cause
        self.details = details or {}

    def __str__(self) -> str:
        if self.cause:
            return f"{self.message}: {self.cause}"
        return self.message

    def to_dict(self) -> dict[str, Any]:
        """예외 정보를 딕셔너리로 반환"""
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "cause": str(self.cause) if self.cause else None,
            "details": self.details,
        }


# =============================================================================
# 입력 검증
# =============================================================================


class ParseError(TaggerError):
    """리포지토리 ARN 파싱 실패

    ARN이 `arn:<partition>:ecr:<region>:<account>:repository/<name>` 형식이
    아닐 때 발생합니다. 부분적으로 파싱된 값은 반환하지 않습니다.
    """

    def __init__(self, value: Any, reason: str):
        super().__init__(f"ECR 리포지토리 ARN 파싱 실패 [{value!r}]: {reason}")
        self.value = value
        self.reason = reason
        self.details.update({"value": str(value), "reason": reason})


# =============================================================================
# 원격 호출
# =============================================================================


class RemoteCallError(TaggerError):
    """ECR API 호출 관련 예외

    boto3/botocore 예외를 래핑하여 작업, 리포지토리, 태그 컨텍스트를 제공합니다.
    `completed`는 실패 이전에 끝까지 처리된 태그 수로,
    호출자가 재개 지점을 판단하는 데 사용합니다.
    """

    def __init__(
        self,
        operation: str,
        repository: str,
        message: str,
        tag: str | None = None,
        digest: str | None = None,
        error_code: str | None = None,
        completed: int = 0,
        cause: Exception | None = None,
    ):
        full_message = f"ecr.{operation} 실패 [{repository}]"
        if error_code:
            full_message = f"{full_message} ({error_code})"
        full_message = f"{full_message}: {message}"

        super().__init__(full_message, cause)
        self.operation = operation
        self.repository = repository
        self.tag = tag
        self.digest = digest
        self.error_code = error_code
        self.completed = completed
        self.details.update(
            {
                "operation": operation,
                "repository": repository,
                "tag": tag,
                "digest": digest,
                "error_code": error_code,
                "completed": completed,
            }
        )

    @classmethod
    def from_client_error(
        cls,
        operation: str,
        repository: str,
        client_error: Exception,
        message: str,
        tag: str | None = None,
        digest: str | None = None,
        completed: int = 0,
    ) -> RemoteCallError:
        """botocore 예외로부터 생성

        Args:
            operation: ECR API 작업 이름 (예: "batch_get_image")
            repository: 리포지토리 이름
            client_error: ClientError 또는 BotoCoreError
            message: 어떤 태그/매니페스트 작업이었는지 설명
            tag: 관련 태그
            digest: 관련 이미지 다이제스트
            completed: 실패 전까지 완료된 태그 수

        Returns:
            RemoteCallError 인스턴스
        """
        return cls(
            operation=operation,
            repository=repository,
            message=message,
            tag=tag,
            digest=digest,
            error_code=get_error_code(client_error) or None,
            completed=completed,
            cause=client_error,
        )


# =============================================================================
# 레지스트리 상태
# =============================================================================


class InvariantViolation(TaggerError):
    """하나의 버전 태그에 여러 이미지가 매칭됨

    올바르게 관리되는 리포지토리에서 버전 태그는 최대 하나의 이미지만 가리킵니다.
    """

    def __init__(self, repository: str, version: str, count: int):
        super().__init__(
            f"more than one image with version tag found [{repository}:{version}]: {count}개 이미지",
        )
        self.repository = repository
        self.version = version
        self.count = count
        self.details.update({"repository": repository, "version": version, "count": count})


class NotFound(TaggerError):
    """버전 태그에 해당하는 이미지가 없음"""

    def __init__(self, repository: str, version: str, cause: Exception | None = None):
        super().__init__(f"버전 태그에 해당하는 이미지 없음 [{repository}:{version}]", cause)
        self.repository = repository
        self.version = version
        self.details.update({"repository": repository, "version": version})


class DeadlineExceeded(TaggerError):
    """작업 제한 시간 초과

    원격 호출 직전에 확인되며, 이미 처리된 태그 수를 함께 보고합니다.
    """

    def __init__(self, operation: str, repository: str, timeout: float, completed: int = 0):
        super().__init__(f"{operation} 제한 시간 초과 [{repository}]: {timeout}초")
        self.operation = operation
        self.repository = repository
        self.timeout = timeout
        self.completed = completed
        self.details.update(
            {
                "operation": operation,
                "repository": repository,
                "timeout": timeout,
                "completed": completed,
            }
        )


# =============================================================================
# 예외 유틸리티 함수
# =============================================================================

NOT_FOUND_CODES = frozenset(
    {
        "ImageNotFoundException",
        "RepositoryNotFoundException",
        "ResourceNotFoundException",
    }
)

# ImageTagAlreadyExistsException(불변 태그가 다른 이미지에 있음)은 포함하지 않음
ALREADY_EXISTS_CODES = frozenset({"ImageAlreadyExistsException"})


def get_error_code(error: Exception) -> str:
    """botocore ClientError에서 에러 코드 추출

    Args:
        error: 확인할 예외

    Returns:
        에러 코드 (없으면 빈 문자열)
    """
    if isinstance(error, RemoteCallError):
        return error.error_code or ""

    response = getattr(error, "response", None)
    if isinstance(response, dict):
        return response.get("Error", {}).get("Code", "") or ""

    return ""


def is_not_found(error: Exception) -> bool:
    """이미지/리포지토리를 찾을 수 없는 오류인지 확인"""
    if isinstance(error, NotFound):
        return True
    return get_error_code(error) in NOT_FOUND_CODES


def is_already_exists(error: Exception) -> bool:
    """같은 매니페스트에 이미 같은 태그가 붙어 있는 오류인지 확인"""
    return get_error_code(error) in ALREADY_EXISTS_CODES


_FRIENDLY_MESSAGES = {
    "AccessDeniedException": "권한이 없습니다. IAM 정책을 확인하세요.",
    "ExpiredTokenException": "인증 토큰이 만료되었습니다. 다시 로그인하세요.",
    "RepositoryNotFoundException": "ECR 리포지토리를 찾을 수 없습니다.",
}


def format_error_for_user(error: Exception) -> str:
    """사용자에게 표시할 에러 메시지 포맷팅

    알려진 에러 코드에는 조치 안내를 덧붙입니다.

    Args:
        error: 예외

    Returns:
        사용자 친화적인 에러 메시지
    """
    hint = _FRIENDLY_MESSAGES.get(get_error_code(error))

    if isinstance(error, TaggerError):
        return f"{error} - {hint}" if hint else str(error)

    response = getattr(error, "response", None)
    if isinstance(response, dict):
        error_info = response.get("Error", {})
        code = error_info.get("Code", "UnknownError")
        message = error_info.get("Message", str(error))
        return hint or f"{code}: {message}"

    return str(error)
