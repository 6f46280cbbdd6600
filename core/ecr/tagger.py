"""
core/ecr/tagger.py - ECR 이미지 환경 태그 관리

CI/CD 용도로 설계되었습니다. 버전 태그(예: git SHA)는 리포지토리 안에서
이미지를 유일하게 식별하며, 환경 태그(prod, staging 등)는 같은 매니페스트에
추가되거나 제거됩니다.

주요 구성 요소:
- Tagger.add: 버전 태그가 가리키는 이미지에 태그 추가
- Tagger.remove: 리포지토리의 모든 이미지에서 태그 제거
- Tagger.get: 버전 태그가 가리키는 이미지의 태그 목록

부분 실패:
    태그는 입력 순서대로 하나씩 처리되며, 첫 원격 실패에서 남은 태그는
    처리하지 않습니다. 이미 처리된 태그는 롤백되지 않으며,
    예외의 `completed` 값으로 재개 지점을 알 수 있습니다.

Example:
    import boto3
    from core.ecr import Tagger
    from core.stats import MemoryStats

    tagger = Tagger(boto3.Session(), MemoryStats())
    arn = "arn:aws:ecr:ap-northeast-2:123456789012:repository/api"

    tagger.add(arn, "3f2c1ab", "staging", "prod")
    tagger.get(arn, "3f2c1ab")  # ["3f2c1ab", "staging", "prod"]
    tagger.remove(arn, "staging")
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from botocore.exceptions import BotoCoreError, ClientError

from core.config import Settings
from core.exceptions import (
    DeadlineExceeded,
    InvariantViolation,
    NotFound,
    RemoteCallError,
    get_error_code,
    is_already_exists,
)

from .arn import RepositoryRef, parse_repository_arn
from .client import get_ecr_client

if TYPE_CHECKING:
    from core.stats import Stats
    from core.types.aws import ECRClient, Image, SessionProtocol

logger = logging.getLogger(__name__)

# 원격 호출 실패 카운터 이름
STAT_BATCH_GET_FAILURE = "ecr.batchget.{repository}.failure"
STAT_PUT_IMAGE_FAILURE = "ecr.putimage.{repository}.failure"
STAT_BATCH_DELETE_FAILURE = "ecr.batchdelete.{repository}.failure"
STAT_DESCRIBE_FAILURE = "ecr.descimg.{repository}.failure"

_REMOTE_ERRORS = (ClientError, BotoCoreError)


@dataclass
class TagOutcome:
    """태그 하나의 처리 결과

    Attributes:
        tag: 추가/제거한 태그
        digests: 영향을 받은 이미지 다이제스트 (매칭 이미지가 없으면 빈 리스트)
        unchanged: 이미 태그가 붙어 있어 변경하지 않은 다이제스트
    """

    tag: str
    digests: list[str] = field(default_factory=list)
    unchanged: list[str] = field(default_factory=list)

    @property
    def matched(self) -> bool:
        return bool(self.digests or self.unchanged)


@dataclass
class TagResult:
    """add/remove 작업 결과 (입력 순서 유지)"""

    operation: str
    repository: RepositoryRef
    outcomes: list[TagOutcome] = field(default_factory=list)

    @property
    def completed(self) -> int:
        """끝까지 처리된 태그 수"""
        return len(self.outcomes)

    @property
    def tags(self) -> list[str]:
        return [o.tag for o in self.outcomes]

    @property
    def skipped(self) -> list[str]:
        """매칭 이미지가 없어 아무것도 하지 않은 태그"""
        return [o.tag for o in self.outcomes if not o.matched]


class _Deadline:
    """작업 단위 제한 시간 (원격 호출 직전에 확인)"""

    def __init__(self, operation: str, repository: str, timeout: float | None):
        self.operation = operation
        self.repository = repository
        self.timeout = timeout
        self._expires_at = None if timeout is None else time.monotonic() + timeout

    def check(self, completed: int = 0) -> None:
        if self._expires_at is not None and time.monotonic() >= self._expires_at:
            raise DeadlineExceeded(self.operation, self.repository, self.timeout or 0, completed=completed)


class Tagger:
    """ECR 환경 태그 관리자

    세션과 카운터 싱크를 명시적으로 주입받습니다. 호출마다 ARN의 리전으로
    ECR client를 새로 만들며, 호출 사이에 상태를 보관하지 않습니다.

    Attributes:
        session: boto3 Session (리전별 ECR client 생성용)
        stats: 실패 카운터 싱크
        settings: 타임아웃/재시도 설정
    """

    def __init__(self, session: SessionProtocol, stats: Stats, settings: Settings | None = None):
        self.session = session
        self.stats = stats
        self.settings = settings or Settings()

    def _client(self, ref: RepositoryRef) -> ECRClient:
        return get_ecr_client(self.session, region_name=ref.region, settings=self.settings)

    def _count_failure(self, template: str, ref: RepositoryRef) -> None:
        self.stats.inc_count(template.format(repository=ref.repository_name))

    # =========================================================================
    # 조회 헬퍼
    # =========================================================================

    def _batch_get(
        self,
        client: ECRClient,
        ref: RepositoryRef,
        tag: str,
        context_tag: str,
        completed: int,
    ) -> list[Image]:
        """tag가 붙은 이미지 조회 (매니페스트 포함)

        context_tag는 실패 시 예외에 기록할 태그입니다.
        """
        try:
            response: Any = client.batch_get_image(
                registryId=ref.registry_id,
                repositoryName=ref.repository_name,
                imageIds=[{"imageTag": tag}],
            )
        except _REMOTE_ERRORS as e:
            self._count_failure(STAT_BATCH_GET_FAILURE, ref)
            logger.warning("ecr.batch_get_image 실패 [%s:%s]: %s", ref.repository_name, tag, e)
            raise RemoteCallError.from_client_error(
                operation="batch_get_image",
                repository=ref.repository_name,
                client_error=e,
                message=f"failed to get images of tag {context_tag}",
                tag=context_tag,
                completed=completed,
            ) from e

        for failure in response.get("failures", []):
            logger.debug(
                "ecr.batch_get_image 매칭 없음 [%s:%s]: %s",
                ref.repository_name,
                tag,
                failure.get("failureCode"),
            )

        return list(response.get("images", []))

    # =========================================================================
    # Add
    # =========================================================================

    def add(self, ecr_arn: str, version: str, *tags: str, timeout: float | None = None) -> TagResult:
        """version 태그가 가리키는 이미지에 tags 추가

        태그마다 version 이미지를 다시 조회하고, 같은 매니페스트로 put_image하여
        태그를 붙입니다. version 태그는 그대로 유지됩니다.
        version에 매칭되는 이미지가 없으면 해당 태그는 아무것도 하지 않습니다.

        Args:
            ecr_arn: ECR 리포지토리 ARN
            version: 이미지를 식별하는 버전 태그
            *tags: 추가할 태그 (순서 유지, 중복 제거 없음)
            timeout: 작업 전체 제한 시간 (초)

        Returns:
            TagResult

        Raises:
            ParseError: ARN 형식 오류
            RemoteCallError: 조회 또는 put_image 실패 (남은 태그는 처리하지 않음)
            DeadlineExceeded: 제한 시간 초과
        """
        ref = parse_repository_arn(ecr_arn)
        client = self._client(ref)
        deadline = _Deadline("add", ref.repository_name, timeout)
        result = TagResult(operation="add", repository=ref)

        logger.debug("태그 추가 [%s:%s]: %s", ref.repository_name, version, list(tags))

        for tag in tags:
            deadline.check(result.completed)
            images = self._batch_get(client, ref, version, context_tag=tag, completed=result.completed)

            outcome = TagOutcome(tag=tag)
            for image in images:
                deadline.check(result.completed)
                self._put_tag(client, ref, image, tag, outcome, completed=result.completed)

            if not images:
                logger.info("버전 태그에 해당하는 이미지 없음 [%s:%s], %s 건너뜀", ref.repository_name, version, tag)
            result.outcomes.append(outcome)

        return result

    def _put_tag(
        self,
        client: ECRClient,
        ref: RepositoryRef,
        image: Image,
        tag: str,
        outcome: TagOutcome,
        completed: int,
    ) -> None:
        manifest = image.get("imageManifest", "")
        digest = image.get("imageId", {}).get("imageDigest", "")

        params: dict[str, Any] = {
            "registryId": ref.registry_id,
            "repositoryName": ref.repository_name,
            "imageManifest": manifest,
            "imageTag": tag,
        }
        if image.get("imageManifestMediaType"):
            params["imageManifestMediaType"] = image["imageManifestMediaType"]

        try:
            client.put_image(**params)
        except _REMOTE_ERRORS as e:
            if is_already_exists(e):
                logger.debug("이미 태그가 붙어 있음 [%s:%s@%s]", ref.repository_name, tag, digest)
                outcome.unchanged.append(digest)
                return

            self._count_failure(STAT_PUT_IMAGE_FAILURE, ref)
            logger.warning("ecr.put_image 실패 [%s:%s@%s]: %s", ref.repository_name, tag, digest, e)
            raise RemoteCallError.from_client_error(
                operation="put_image",
                repository=ref.repository_name,
                client_error=e,
                message=f"failed to add tag {tag} to image manifest {digest or manifest}",
                tag=tag,
                digest=digest or None,
                completed=completed,
            ) from e

        logger.debug("태그 추가 완료 [%s:%s@%s]", ref.repository_name, tag, digest)
        outcome.digests.append(digest)

    # =========================================================================
    # Remove
    # =========================================================================

    def remove(self, ecr_arn: str, *tags: str, timeout: float | None = None) -> TagResult:
        """리포지토리에서 tags를 제거하여 어떤 이미지에도 남지 않게 함

        태그마다 해당 태그가 붙은 이미지를 조회하고, (태그, 다이제스트) 쌍으로
        batch_delete_image를 호출합니다. 이미지가 여러 개면 하나씩 삭제합니다.

        Args:
            ecr_arn: ECR 리포지토리 ARN
            *tags: 제거할 태그 (순서 유지)
            timeout: 작업 전체 제한 시간 (초)

        Returns:
            TagResult

        Raises:
            ParseError: ARN 형식 오류
            RemoteCallError: 조회 또는 삭제 실패 (남은 태그는 처리하지 않음)
            DeadlineExceeded: 제한 시간 초과
        """
        ref = parse_repository_arn(ecr_arn)
        client = self._client(ref)
        deadline = _Deadline("remove", ref.repository_name, timeout)
        result = TagResult(operation="remove", repository=ref)

        logger.debug("태그 제거 [%s]: %s", ref.repository_name, list(tags))

        for tag in tags:
            deadline.check(result.completed)
            images = self._batch_get(client, ref, tag, context_tag=tag, completed=result.completed)

            outcome = TagOutcome(tag=tag)
            for image in images:
                deadline.check(result.completed)
                digest = image.get("imageId", {}).get("imageDigest", "")
                self._delete_tag(client, ref, tag, digest, completed=result.completed)
                outcome.digests.append(digest)

            result.outcomes.append(outcome)

        return result

    def _delete_tag(self, client: ECRClient, ref: RepositoryRef, tag: str, digest: str, completed: int) -> None:
        message = f"failed to perform batch delete image by tag {tag} and digest {digest}"
        try:
            response: Any = client.batch_delete_image(
                registryId=ref.registry_id,
                repositoryName=ref.repository_name,
                imageIds=[{"imageTag": tag, "imageDigest": digest}],
            )
        except _REMOTE_ERRORS as e:
            self._count_failure(STAT_BATCH_DELETE_FAILURE, ref)
            logger.warning("ecr.batch_delete_image 실패 [%s:%s@%s]: %s", ref.repository_name, tag, digest, e)
            raise RemoteCallError.from_client_error(
                operation="batch_delete_image",
                repository=ref.repository_name,
                client_error=e,
                message=message,
                tag=tag,
                digest=digest or None,
                completed=completed,
            ) from e

        failures = response.get("failures", [])
        if failures:
            failure = failures[0]
            reason = failure.get("failureReason")
            self._count_failure(STAT_BATCH_DELETE_FAILURE, ref)
            logger.warning("ecr.batch_delete_image 부분 실패 [%s:%s@%s]: %s", ref.repository_name, tag, digest, reason)
            raise RemoteCallError(
                operation="batch_delete_image",
                repository=ref.repository_name,
                message=f"{message}: {reason}" if reason else message,
                tag=tag,
                digest=digest or None,
                error_code=failure.get("failureCode"),
                completed=completed,
            )

        logger.debug("태그 제거 완료 [%s:%s@%s]", ref.repository_name, tag, digest)

    # =========================================================================
    # Get
    # =========================================================================

    def get(self, ecr_arn: str, version: str, timeout: float | None = None) -> list[str]:
        """version 태그가 가리키는 이미지의 전체 태그 목록

        Args:
            ecr_arn: ECR 리포지토리 ARN
            version: 버전 태그
            timeout: 작업 제한 시간 (초)

        Returns:
            태그 목록 (레지스트리가 반환한 순서)

        Raises:
            ParseError: ARN 형식 오류
            RemoteCallError: describe_images 실패
            InvariantViolation: version 태그에 이미지가 2개 이상
            NotFound: version 태그에 해당하는 이미지 없음
            DeadlineExceeded: 제한 시간 초과
        """
        ref = parse_repository_arn(ecr_arn)
        client = self._client(ref)
        _Deadline("get", ref.repository_name, timeout).check()

        try:
            response: Any = client.describe_images(
                registryId=ref.registry_id,
                repositoryName=ref.repository_name,
                imageIds=[{"imageTag": version}],
            )
        except _REMOTE_ERRORS as e:
            if get_error_code(e) == "ImageNotFoundException":
                raise NotFound(ref.repository_name, version, cause=e) from e

            self._count_failure(STAT_DESCRIBE_FAILURE, ref)
            logger.warning("ecr.describe_images 실패 [%s:%s]: %s", ref.repository_name, version, e)
            raise RemoteCallError.from_client_error(
                operation="describe_images",
                repository=ref.repository_name,
                client_error=e,
                message=f"failed to get images of tag {version}",
                tag=version,
            ) from e

        details = response.get("imageDetails", [])
        if len(details) > 1:
            raise InvariantViolation(ref.repository_name, version, len(details))
        if not details:
            raise NotFound(ref.repository_name, version)

        return list(details[0].get("imageTags", []))
