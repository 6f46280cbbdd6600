"""
cli/app.py - 메인 CLI 엔트리포인트

Click 기반의 ecr-tag CLI입니다. CI/CD 파이프라인에서 버전 태그(git SHA 등)가
붙은 ECR 이미지에 환경 태그를 추가/제거/조회합니다.

명령어 구조:
    ecr-tag --version
    ecr-tag add ARN VERSION TAG...     # VERSION 이미지에 TAG 추가
    ecr-tag remove ARN TAG...          # 리포지토리에서 TAG 제거
    ecr-tag get ARN VERSION [--json]   # VERSION 이미지의 태그 목록

공통 옵션:
    -p, --profile: AWS 프로파일 (기본: AWS_PROFILE)
    --timeout: 작업 전체 제한 시간 (초)
    --debug: DEBUG 로그 출력

종료 코드:
    0: 성공
    1: 태그 작업 실패 (ARN 오류, API 실패, 이미지 없음, 프로파일 오류 등)
    2: 사용법 오류
"""

from __future__ import annotations

import json
import logging
from typing import NoReturn

import click
from botocore.exceptions import BotoCoreError

from cli.ui import print_error, print_info, print_success, print_tags, print_warning
from core.config import LogConfig, Settings, get_default_profile, get_version, setup_logging
from core.ecr import Tagger, TagResult
from core.exceptions import TaggerError, format_error_for_user
from core.stats import build_stats

logger = logging.getLogger(__name__)

VERSION = get_version()


def build_tagger(profile: str | None, settings: Settings) -> Tagger:
    """프로파일 기반 boto3 Session으로 Tagger 생성"""
    import boto3

    session = boto3.Session(profile_name=profile) if profile else boto3.Session()
    return Tagger(session, build_stats(settings), settings=settings)


def _report(result: TagResult, verb: str) -> None:
    ref = result.repository
    for outcome in result.outcomes:
        if not outcome.matched:
            print_warning(f"{outcome.tag}: 매칭되는 이미지 없음")
            continue
        for digest in outcome.digests:
            print_success(f"{outcome.tag} {verb} ({digest})")
        for digest in outcome.unchanged:
            print_info(f"{outcome.tag} 이미 적용됨 ({digest})")
    print_info(f"{ref.repository_name}: {result.completed}개 태그 처리")


@click.group(context_settings={"help_option_names": ["-h", "--help"]})
@click.version_option(VERSION, prog_name="ecr-tag")
@click.option("-p", "--profile", default=None, help="AWS 프로파일 (기본: AWS_PROFILE)")
@click.option("--timeout", type=click.FloatRange(min=0, min_open=True), default=None, help="작업 제한 시간 (초)")
@click.option("--debug", is_flag=True, help="DEBUG 로그 출력")
@click.pass_context
def cli(ctx: click.Context, profile: str | None, timeout: float | None, debug: bool) -> None:
    """ECR 이미지 환경 태그 관리"""
    log_config = LogConfig.from_env()
    if debug:
        log_config.level = "DEBUG"
    setup_logging(log_config, rich=debug)

    ctx.ensure_object(dict)
    ctx.obj["profile"] = profile or get_default_profile()
    ctx.obj["timeout"] = timeout
    ctx.obj["settings"] = Settings.from_env()


def _tagger(ctx: click.Context) -> Tagger:
    return build_tagger(ctx.obj["profile"], ctx.obj["settings"])


def _fail(ctx: click.Context, error: Exception) -> NoReturn:
    """에러 한 줄 출력 후 종료 코드 1"""
    logger.debug("명령 실패", exc_info=error)
    print_error(format_error_for_user(error))
    ctx.exit(1)


@cli.command()
@click.argument("arn")
@click.argument("version")
@click.argument("tags", nargs=-1, required=True)
@click.pass_context
def add(ctx: click.Context, arn: str, version: str, tags: tuple[str, ...]) -> None:
    """VERSION 이미지에 TAGS 추가"""
    try:
        result = _tagger(ctx).add(arn, version, *tags, timeout=ctx.obj["timeout"])
    except (TaggerError, BotoCoreError) as e:
        _fail(ctx, e)
    _report(result, "추가")


@cli.command()
@click.argument("arn")
@click.argument("tags", nargs=-1, required=True)
@click.pass_context
def remove(ctx: click.Context, arn: str, tags: tuple[str, ...]) -> None:
    """리포지토리의 모든 이미지에서 TAGS 제거"""
    try:
        result = _tagger(ctx).remove(arn, *tags, timeout=ctx.obj["timeout"])
    except (TaggerError, BotoCoreError) as e:
        _fail(ctx, e)
    _report(result, "제거")


@cli.command()
@click.argument("arn")
@click.argument("version")
@click.option("--json", "as_json", is_flag=True, help="JSON 배열로 출력")
@click.pass_context
def get(ctx: click.Context, arn: str, version: str, as_json: bool) -> None:
    """VERSION 이미지의 태그 목록 조회"""
    try:
        tags = _tagger(ctx).get(arn, version, timeout=ctx.obj["timeout"])
    except (TaggerError, BotoCoreError) as e:
        _fail(ctx, e)

    if as_json:
        click.echo(json.dumps(tags))
    else:
        print_tags(f"{version} 태그", tags)


if __name__ == "__main__":
    cli()
