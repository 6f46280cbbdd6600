"""
core/ecr - ECR 이미지 태그 관리

Example:
    from core.ecr import Tagger, parse_repository_arn
"""

from .arn import RepositoryRef, name_account_region, parse_repository_arn
from .client import get_ecr_client
from .tagger import TagOutcome, Tagger, TagResult

__all__ = [
    "RepositoryRef",
    "parse_repository_arn",
    "name_account_region",
    "get_ecr_client",
    "Tagger",
    "TagResult",
    "TagOutcome",
]
