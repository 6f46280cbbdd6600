# core/__init__.py
"""
core - ECR Tagger 인프라

아키텍처:
    core/
    ├── ecr/            # ARN 파싱, ECR client, Tagger
    ├── stats/          # 실패 카운터 싱크 (memory, null, datadog)
    ├── types/          # boto3 타입 정의
    ├── config.py       # 중앙 설정 관리
    └── exceptions.py   # 통합 예외 계층

Usage:
    import boto3
    from core.config import Settings
    from core.ecr import Tagger
    from core.stats import build_stats

    settings = Settings.from_env()
    tagger = Tagger(boto3.Session(), build_stats(settings), settings=settings)
    tags = tagger.get("arn:aws:ecr:ap-northeast-2:123456789012:repository/api", "3f2c1ab")
"""

from core import config, ecr, exceptions, stats

__all__: list[str] = [
    # 서브패키지
    "ecr",
    "stats",
    # 모듈
    "config",
    "exceptions",
]
