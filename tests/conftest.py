"""
tests/conftest.py - pytest 공통 픽스처

ECR API 모킹과 테스트 헬퍼를 제공합니다.

Usage:
    def test_something(tagger, fake_ecr, repo_arn):
        digest = fake_ecr.seed("v1")
        tagger.add(repo_arn, "v1", "prod")
        assert fake_ecr.tags_of(digest) == ["v1", "prod"]
"""

import hashlib
import json
import os
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

import pytest
from botocore.exceptions import ClientError

# 프로젝트 루트를 sys.path에 추가
project_root = Path(__file__).parent.parent
if str(project_root) not in sys.path:
    sys.path.insert(0, str(project_root))

REGION = "ap-northeast-2"
ACCOUNT_ID = "123456789012"
REPOSITORY = "team/api"
REPO_ARN = f"arn:aws:ecr:{REGION}:{ACCOUNT_ID}:repository/{REPOSITORY}"

MANIFEST_MEDIA_TYPE = "application/vnd.docker.distribution.manifest.v2+json"


# =============================================================================
# 환경 설정
# =============================================================================


@pytest.fixture(autouse=True)
def setup_test_environment():
    """테스트 환경 설정"""
    os.environ.setdefault("AWS_DEFAULT_REGION", REGION)
    os.environ.setdefault("AWS_ACCESS_KEY_ID", "testing")
    os.environ.setdefault("AWS_SECRET_ACCESS_KEY", "testing")

    yield


# =============================================================================
# 유틸리티 함수
# =============================================================================


def create_mock_client_error(
    error_code: str,
    error_message: str = "Test error",
    operation_name: str = "TestOperation",
) -> ClientError:
    """ClientError 생성 헬퍼"""
    return ClientError(
        {
            "Error": {
                "Code": error_code,
                "Message": error_message,
            }
        },
        operation_name,
    )


def make_manifest(name: str) -> str:
    """이미지마다 다른 Docker v2 매니페스트 생성"""
    layer_digest = "sha256:" + hashlib.sha256(name.encode("utf-8")).hexdigest()
    return json.dumps(
        {
            "schemaVersion": 2,
            "mediaType": MANIFEST_MEDIA_TYPE,
            "config": {
                "mediaType": "application/vnd.docker.container.image.v1+json",
                "size": 1024,
                "digest": layer_digest,
            },
            "layers": [
                {
                    "mediaType": "application/vnd.docker.image.rootfs.diff.tar.gzip",
                    "size": 2048,
                    "digest": layer_digest,
                }
            ],
        }
    )


# =============================================================================
# 인메모리 ECR
# =============================================================================


class FakeECR:
    """ECR 이미지 태그 API의 인메모리 구현

    실제 ECR처럼 태그를 제거해 이미지에 태그가 하나도 남지 않으면 이미지를 삭제합니다.
    seed()로는 같은 태그를 여러 이미지에 붙여 잘못된 리포지토리 상태를 만들 수 있습니다.
    fail()로 특정 호출에서 ClientError를 발생시킵니다.
    reject_delete()로 batch_delete_image 응답에 failures 항목을 넣습니다.
    """

    def __init__(self) -> None:
        self.images: List[Dict[str, Any]] = []
        self.calls: List[tuple] = []
        self._failures: List[Dict[str, Any]] = []
        self._rejections: List[Dict[str, Any]] = []

    # -- 테스트 헬퍼 ---------------------------------------------------------

    def seed(self, *tags: str, manifest: Optional[str] = None) -> str:
        """태그가 붙은 이미지를 추가하고 다이제스트 반환"""
        manifest = manifest or make_manifest(f"{len(self.images)}:{','.join(tags)}")
        digest = "sha256:" + hashlib.sha256(manifest.encode("utf-8")).hexdigest()
        self.images.append({"digest": digest, "manifest": manifest, "tags": list(tags)})
        return digest

    def tags_of(self, digest: str) -> List[str]:
        for image in self.images:
            if image["digest"] == digest:
                return list(image["tags"])
        return []

    def digests_with(self, tag: str) -> List[str]:
        return [image["digest"] for image in self.images if tag in image["tags"]]

    def fail(self, operation: str, code: str = "ServerException", tag: Optional[str] = None) -> None:
        """operation 호출 시 (tag가 주어지면 해당 태그일 때만) ClientError 발생"""
        self._failures.append({"operation": operation, "code": code, "tag": tag})

    def reject_delete(self, code: str, reason: str = "", tag: Optional[str] = None) -> None:
        """batch_delete_image가 예외 대신 failures 항목을 반환하도록 설정"""
        self._rejections.append({"code": code, "reason": reason, "tag": tag})

    def calls_to(self, operation: str) -> List[Dict[str, Any]]:
        return [params for op, params in self.calls if op == operation]

    def _record(self, operation: str, params: Dict[str, Any], tag: Optional[str]) -> None:
        self.calls.append((operation, params))
        for failure in self._failures:
            if failure["operation"] == operation and failure["tag"] in (None, tag):
                raise create_mock_client_error(failure["code"], f"{operation} failed", operation)

    # -- ECR API -------------------------------------------------------------

    def batch_get_image(self, **params: Any) -> Dict[str, Any]:
        tag = params["imageIds"][0]["imageTag"]
        self._record("batch_get_image", params, tag)

        images = [
            {
                "registryId": params.get("registryId"),
                "repositoryName": params["repositoryName"],
                "imageId": {"imageDigest": image["digest"], "imageTag": tag},
                "imageManifest": image["manifest"],
                "imageManifestMediaType": MANIFEST_MEDIA_TYPE,
            }
            for image in self.images
            if tag in image["tags"]
        ]
        failures = []
        if not images:
            failures.append(
                {
                    "imageId": {"imageTag": tag},
                    "failureCode": "ImageNotFound",
                    "failureReason": "Requested image not found",
                }
            )
        return {"images": images, "failures": failures}

    def put_image(self, **params: Any) -> Dict[str, Any]:
        tag = params["imageTag"]
        self._record("put_image", params, tag)

        manifest = params["imageManifest"]
        target = next((image for image in self.images if image["manifest"] == manifest), None)
        if target and tag in target["tags"]:
            raise create_mock_client_error(
                "ImageAlreadyExistsException",
                f"Image with digest '{target['digest']}' and tag '{tag}' already exists",
                "PutImage",
            )

        # 태그는 리포지토리 안에서 유일하므로 다른 이미지에서 떼어냄
        for image in self.images:
            if tag in image["tags"]:
                image["tags"].remove(tag)

        if target is None:
            digest = self.seed(tag, manifest=manifest)
        else:
            target["tags"].append(tag)
            digest = target["digest"]

        return {"image": {"imageId": {"imageDigest": digest, "imageTag": tag}, "imageManifest": manifest}}

    def batch_delete_image(self, **params: Any) -> Dict[str, Any]:
        image_id = params["imageIds"][0]
        tag = image_id.get("imageTag")
        self._record("batch_delete_image", params, tag)

        for rejection in self._rejections:
            if rejection["tag"] in (None, tag):
                failure = {"imageId": image_id, "failureCode": rejection["code"], "failureReason": rejection["reason"]}
                return {"imageIds": [], "failures": [failure]}

        for image in list(self.images):
            if image["digest"] == image_id.get("imageDigest") and tag in image["tags"]:
                image["tags"].remove(tag)
                if not image["tags"]:
                    self.images.remove(image)
                return {"imageIds": [image_id], "failures": []}

        return {
            "imageIds": [],
            "failures": [
                {
                    "imageId": image_id,
                    "failureCode": "ImageNotFound",
                    "failureReason": "Requested image not found",
                }
            ],
        }

    def describe_images(self, **params: Any) -> Dict[str, Any]:
        tag = params["imageIds"][0]["imageTag"]
        self._record("describe_images", params, tag)

        details = [
            {
                "registryId": params.get("registryId"),
                "repositoryName": params["repositoryName"],
                "imageDigest": image["digest"],
                "imageTags": list(image["tags"]),
            }
            for image in self.images
            if tag in image["tags"]
        ]
        if not details:
            raise create_mock_client_error(
                "ImageNotFoundException",
                f"The image with imageId {{imageTag:'{tag}'}} does not exist",
                "DescribeImages",
            )
        return {"imageDetails": details}


class FakeSession:
    """boto3.Session 대용 - 항상 같은 FakeECR 반환"""

    def __init__(self, ecr: FakeECR) -> None:
        self.ecr = ecr
        self.client_calls: List[Dict[str, Any]] = []

    def client(self, service_name: str, **kwargs: Any) -> FakeECR:
        self.client_calls.append({"service_name": service_name, **kwargs})
        return self.ecr


# =============================================================================
# 픽스처
# =============================================================================


@pytest.fixture
def repo_arn() -> str:
    return REPO_ARN


@pytest.fixture
def fake_ecr() -> FakeECR:
    return FakeECR()


@pytest.fixture
def fake_session(fake_ecr) -> FakeSession:
    return FakeSession(fake_ecr)


@pytest.fixture
def memory_stats():
    from core.stats import MemoryStats

    return MemoryStats()


@pytest.fixture
def tagger(fake_session, memory_stats):
    from core.ecr import Tagger

    return Tagger(fake_session, memory_stats)


@pytest.fixture
def client_error():
    """ClientError 팩토리"""
    return create_mock_client_error


@pytest.fixture
def manifest_factory():
    """Docker v2 매니페스트 팩토리"""
    return make_manifest


# =============================================================================
# moto 통합 (선택적)
# =============================================================================

try:
    import moto

    @pytest.fixture
    def aws_credentials():
        """moto 사용 시 AWS 자격 증명 설정"""
        os.environ["AWS_ACCESS_KEY_ID"] = "testing"
        os.environ["AWS_SECRET_ACCESS_KEY"] = "testing"
        os.environ["AWS_SECURITY_TOKEN"] = "testing"
        os.environ["AWS_SESSION_TOKEN"] = "testing"
        os.environ["AWS_DEFAULT_REGION"] = REGION

    def _moto_repository(mutability: str):
        with moto.mock_aws():
            import boto3

            session = boto3.Session(region_name=REGION)
            ecr = session.client("ecr", region_name=REGION)
            repository = ecr.create_repository(repositoryName=REPOSITORY, imageTagMutability=mutability)["repository"]

            yield session, ecr, repository["repositoryArn"]

    @pytest.fixture
    def moto_ecr(aws_credentials):
        """moto를 사용한 ECR 모킹 - 리포지토리 생성 후 (session, client, arn) 반환"""
        yield from _moto_repository("MUTABLE")

    @pytest.fixture
    def moto_immutable_ecr(aws_credentials):
        """태그 불변(IMMUTABLE) 리포지토리"""
        yield from _moto_repository("IMMUTABLE")

except ImportError:
    # moto가 설치되지 않은 경우 더미 픽스처
    @pytest.fixture
    def moto_ecr():
        pytest.skip("moto not installed")

    @pytest.fixture
    def moto_immutable_ecr():
        pytest.skip("moto not installed")
