"""
core/types/aws.py - AWS 클라이언트 Protocol 정의

boto3 ECR 클라이언트와 응답 타입을 정의합니다.
boto3-stubs가 설치되어 있으면 해당 타입을 사용하고,
그렇지 않으면 Protocol을 사용하여 기본적인 타입 체킹을 지원합니다.

Note:
    boto3-stubs를 설치하면 자동완성과 더 정확한 타입 체킹이 가능합니다:
    pip install "boto3-stubs[ecr]"
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol, TypeAlias, TypedDict

# =============================================================================
# boto3-stubs 타입 (설치된 경우)
# =============================================================================

if TYPE_CHECKING:
    from mypy_boto3_ecr import ECRClient as ECRClient
else:
    ECRClient: TypeAlias = Any


# =============================================================================
# ECR 응답 타입
# =============================================================================


class ImageIdentifier(TypedDict, total=False):
    """ECR imageIds 항목"""

    imageDigest: str
    imageTag: str


class Image(TypedDict, total=False):
    """batch_get_image 응답의 images 항목"""

    registryId: str
    repositoryName: str
    imageId: ImageIdentifier
    imageManifest: str
    imageManifestMediaType: str


# =============================================================================
# 세션 타입
# =============================================================================


class SessionProtocol(Protocol):
    """boto3.Session Protocol"""

    def client(self, service_name: str, **kwargs: Any) -> Any:
        """서비스 클라이언트 생성"""
        ...

