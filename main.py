"""ecr-tag 콘솔 스크립트 진입점"""

try:
    from cli.app import cli
except ModuleNotFoundError:
    # console_script로 실행될 때 프로젝트 루트를 sys.path에 추가
    import os
    import sys

    sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))
    from cli.app import cli


def main():
    """ecr-tag CLI 실행 (cli.app:cli에 위임)"""
    cli(prog_name="ecr-tag", obj={})


if __name__ == "__main__":
    main()
