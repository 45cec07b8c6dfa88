import os

import boto3
from botocore.exceptions import ClientError

AWS_DEFAULT_REGION = os.getenv("AWS_DEFAULT_REGION", "us-east-1")


class SecretNotAvailable(Exception):
    pass


def get_secret(secret_name):
    """
    Fetch a secret string from AWS Secrets Manager.

    Raises:
        SecretNotAvailable: If the secret does not exist or cannot be read.
    """
    client = boto3.session.Session().client(
        service_name="secretsmanager",
        region_name=AWS_DEFAULT_REGION,
    )

    try:
        response = client.get_secret_value(SecretId=secret_name)
    except ClientError as e:
        code = e.response["Error"]["Code"]
        raise SecretNotAvailable(f"Could not read secret {secret_name}: {code}") from e

    if "SecretString" in response:
        return response["SecretString"]
    return response["SecretBinary"]
