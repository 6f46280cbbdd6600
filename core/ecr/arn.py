"""
core/ecr/arn.py - ECR 리포지토리 ARN 파싱

`arn:<partition>:ecr:<region>:<account-id>:repository/<name>` 형식의 ARN을
RepositoryRef로 변환합니다. 형식이 맞지 않으면 ParseError를 발생시키며,
부분적으로 파싱된 값은 반환하지 않습니다.

Example:
    from core.ecr.arn import parse_repository_arn

    ref = parse_repository_arn("arn:aws:ecr:ap-northeast-2:123456789012:repository/team/api")
    ref.repository_name  # "team/api"
    ref.account_id       # "123456789012"
    ref.region           # "ap-northeast-2"
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from core.exceptions import ParseError

PARTITIONS = ("aws", "aws-cn", "aws-us-gov", "aws-iso", "aws-iso-b")

# ECR 리포지토리 이름 규칙: 소문자/숫자, 구분자(. _ -), 네임스페이스(/)
_REPOSITORY_NAME = r"(?:[a-z0-9]+(?:[._-][a-z0-9]+)*/)*[a-z0-9]+(?:[._-][a-z0-9]+)*"

ARN_PATTERN = re.compile(
    r"^arn:(?P<partition>[a-z-]+):ecr:(?P<region>[a-z]{2}(?:-[a-z]+)+-\d+)"
    r":(?P<account_id>\d{12}):repository/(?P<repository_name>" + _REPOSITORY_NAME + r")$"
)

MAX_REPOSITORY_NAME_LENGTH = 256

_DNS_SUFFIX = {
    "aws-cn": "amazonaws.com.cn",
    "aws-iso": "c2s.ic.gov",
    "aws-iso-b": "sc2s.sgov.gov",
}


@dataclass(frozen=True)
class RepositoryRef:
    """ARN에서 추출한 ECR 리포지토리 참조"""

    partition: str
    region: str
    account_id: str
    repository_name: str

    @property
    def registry_id(self) -> str:
        """ECR API의 registryId (계정 ID)"""
        return self.account_id

    @property
    def arn(self) -> str:
        return f"arn:{self.partition}:ecr:{self.region}:{self.account_id}:repository/{self.repository_name}"

    @property
    def uri(self) -> str:
        """docker push/pull에 쓰는 리포지토리 URI"""
        suffix = _DNS_SUFFIX.get(self.partition, "amazonaws.com")
        return f"{self.account_id}.dkr.ecr.{self.region}.{suffix}/{self.repository_name}"

    def __str__(self) -> str:
        return self.arn


def parse_repository_arn(arn: str) -> RepositoryRef:
    """ECR 리포지토리 ARN 파싱

    Args:
        arn: ECR 리포지토리 ARN

    Returns:
        RepositoryRef

    Raises:
        ParseError: ARN 형식이 올바르지 않은 경우
    """
    if not isinstance(arn, str):
        raise ParseError(arn, "문자열이 아님")

    value = arn.strip()
    if not value:
        raise ParseError(arn, "빈 문자열")

    parts = value.split(":", 5)
    if len(parts) != 6 or parts[0] != "arn":
        raise ParseError(arn, "ARN 형식이 아님")
    if parts[2] != "ecr":
        raise ParseError(arn, f"ECR 서비스 ARN이 아님 ({parts[2] or '빈 서비스'})")
    if not parts[5].startswith("repository/"):
        raise ParseError(arn, "리소스 타입이 repository가 아님")

    match = ARN_PATTERN.match(value)
    if not match:
        raise ParseError(arn, "파티션, 리전, 계정 ID 또는 리포지토리 이름이 올바르지 않음")

    partition = match.group("partition")
    if partition not in PARTITIONS:
        raise ParseError(arn, f"알 수 없는 파티션 ({partition})")

    repository_name = match.group("repository_name")
    if len(repository_name) > MAX_REPOSITORY_NAME_LENGTH:
        raise ParseError(arn, f"리포지토리 이름이 {MAX_REPOSITORY_NAME_LENGTH}자를 초과함")

    return RepositoryRef(
        partition=partition,
        region=match.group("region"),
        account_id=match.group("account_id"),
        repository_name=repository_name,
    )


def name_account_region(arn: str) -> tuple[str, str, str]:
    """(리포지토리 이름, 계정 ID, 리전) 튜플 반환"""
    ref = parse_repository_arn(arn)
    return ref.repository_name, ref.account_id, ref.region
