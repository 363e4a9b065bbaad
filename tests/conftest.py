"""Pytest configuration and fixtures."""

import json
import os
import time

import pytest

# Set environment variables before imports
os.environ["TABLE_NAME"] = "acbridge-test"
os.environ["AWS_DEFAULT_REGION"] = "us-east-1"
os.environ["AWS_ACCESS_KEY_ID"] = "testing"
os.environ["AWS_SECRET_ACCESS_KEY"] = "testing"
os.environ.pop("AC_API_URL", None)
os.environ.pop("AC_API_KEY", None)
os.environ.pop("AC_URL_PARAM_NAME", None)
os.environ.pop("AC_DEBUG_MODE", None)


@pytest.fixture
def aws_credentials():
    """Mock AWS credentials for moto."""
    os.environ["AWS_ACCESS_KEY_ID"] = "testing"
    os.environ["AWS_SECRET_ACCESS_KEY"] = "testing"
    os.environ["AWS_SECURITY_TOKEN"] = "testing"
    os.environ["AWS_SESSION_TOKEN"] = "testing"
    os.environ["AWS_DEFAULT_REGION"] = "us-east-1"


@pytest.fixture
def dynamodb_table(aws_credentials):
    """Create mocked DynamoDB table."""
    import boto3
    from moto import mock_aws

    with mock_aws():
        dynamodb = boto3.resource("dynamodb", region_name="us-east-1")

        table = dynamodb.create_table(
            TableName="acbridge-test",
            KeySchema=[
                {"AttributeName": "PK", "KeyType": "HASH"},
                {"AttributeName": "SK", "KeyType": "RANGE"},
            ],
            AttributeDefinitions=[
                {"AttributeName": "PK", "AttributeType": "S"},
                {"AttributeName": "SK", "AttributeType": "S"},
            ],
            BillingMode="PAY_PER_REQUEST",
        )

        table.wait_until_exists()

        yield table


@pytest.fixture
def settings():
    """Configured integration settings."""
    from acbridge.models.settings import IntegrationSettings

    return IntegrationSettings(
        api_url="https://acme.api-us1.com",
        api_key="test-api-key-1234",
        url_param_name="source",
    )


@pytest.fixture
def stored_settings(dynamodb_table, settings):
    """Configured settings saved in the mocked table."""
    from acbridge.repositories.settings import SettingsRepository

    return SettingsRepository().save(settings)


@pytest.fixture
def now():
    """Fixed clock for expiry checks."""
    return float(int(time.time()))


@pytest.fixture
def api_gateway_event():
    """Create a sample API Gateway event."""
    def _create_event(
        method: str = "GET",
        path: str = "/",
        query_params: dict = None,
        body=None,
        headers: dict = None,
        cookies: dict = None,
        user_id: str = "test-user-123",
        is_admin: bool = True,
    ):
        event_headers = {
            "Content-Type": "application/json",
            "Host": "members.example.com",
            "X-Forwarded-Proto": "https",
        }
        event_headers.update(headers or {})
        if cookies:
            event_headers["Cookie"] = "; ".join(f"{k}={v}" for k, v in cookies.items())

        return {
            "httpMethod": method,
            "path": path,
            "pathParameters": {},
            "queryStringParameters": query_params or {},
            "body": body if isinstance(body, str) or body is None else json.dumps(body),
            "headers": event_headers,
            "requestContext": {
                "authorizer": {
                    "userId": user_id,
                    "email": "admin@example.com",
                    "isAdmin": "true" if is_admin else "false",
                },
            },
        }

    return _create_event


class LambdaContext:
    """Mock Lambda context."""

    def __init__(self):
        self.function_name = "test-function"
        self.memory_limit_in_mb = 128
        self.invoked_function_arn = "arn:aws:lambda:us-east-1:123456789:function:test"
        self.aws_request_id = "test-request-id"

    def get_remaining_time_in_millis(self):
        return 30000


@pytest.fixture
def lambda_context():
    """Create a mock Lambda context."""
    return LambdaContext()
