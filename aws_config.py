# aws_config.py
import os

import boto3
from botocore.config import Config

# -----------------------------
# AWS region & boto3 config
# -----------------------------
AWS_REGION = os.getenv("AWS_REGION", "ap-southeast-1")

# every store call is bounded: connect/read timeouts plus standard retries
boto3_config = Config(
    region_name=AWS_REGION,
    connect_timeout=float(os.getenv("AWS_CONNECT_TIMEOUT", "3")),
    read_timeout=float(os.getenv("AWS_READ_TIMEOUT", "5")),
    retries={"max_attempts": int(os.getenv("AWS_MAX_ATTEMPTS", "3")), "mode": "standard"}
)

# -----------------------------
# DynamoDB tables
# -----------------------------
ORDERS_TABLE = os.getenv("DDB_ORDERS_TABLE", "Orders")
INVENTORY_TABLE = os.getenv("DDB_INVENTORY_TABLE", "Inventory")
MENU_TABLE = os.getenv("DDB_MENU_TABLE", "Menu")
USERS_TABLE = os.getenv("DDB_USERS_TABLE", "Users")
CONSUMPTION_LOG_TABLE = os.getenv("DDB_CONSUMPTION_LOG_TABLE", "ConsumptionLog")

# -----------------------------
# SNS configuration
# -----------------------------
DEFAULT_SNS_TOPIC_NAME = os.getenv("SNS_ALERT_TOPIC_NAME", "cashier-stock-alerts")


# -----------------------------
# AWS clients/resources
# -----------------------------
def dynamodb_resource():
    return boto3.resource("dynamodb", region_name=AWS_REGION, config=boto3_config)


def sns_client():
    return boto3.client("sns", region_name=AWS_REGION, config=boto3_config)


def get_sns_topic_arn(topic_name=DEFAULT_SNS_TOPIC_NAME, sns=None):
    """
    Fetch the SNS topic ARN by name, following list_topics pagination.
    Raises ValueError if the topic is not found.
    """
    sns = sns or sns_client()

    next_token = None
    while True:
        if next_token:
            response = sns.list_topics(NextToken=next_token)
        else:
            response = sns.list_topics()

        for topic in response.get("Topics", []):
            arn = topic["TopicArn"]
            if arn.split(":")[-1] == topic_name:
                return arn

        next_token = response.get("NextToken")
        if not next_token:
            break

    raise ValueError(f"SNS topic '{topic_name}' not found in region {AWS_REGION}")
