import os

from botocore.config import Config

main_boto_region = os.environ.get('AWS_REGION', 'eu-central-1')

# DynamoDB throttling is retried by utils.db with its own backoff, so the client keeps the standard policy.
aws_config_ddb = Config(retries={'max_attempts': 3, 'mode': 'standard'}, region_name=main_boto_region)
