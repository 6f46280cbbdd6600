# core/types - boto3 타입 정의
