"""DynamoDB access for the tracker's single table.

- boto3 resource/client configuration
- retry/backoff for throttling and transient failures
- typed errors rendered as problem-details responses
- query pagination and transactional writes
"""
