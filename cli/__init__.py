# cli - ecr-tag 명령줄 인터페이스
