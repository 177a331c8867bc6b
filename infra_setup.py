# infra_setup.py
import logging

from botocore.exceptions import ClientError

from aws_config import (
    CONSUMPTION_LOG_TABLE,
    DEFAULT_SNS_TOPIC_NAME,
    INVENTORY_TABLE,
    MENU_TABLE,
    ORDERS_TABLE,
    USERS_TABLE,
    dynamodb_resource,
    sns_client,
)

logger = logging.getLogger(__name__)

# table name -> [(attribute, key type)], hash key first
TABLES = {
    ORDERS_TABLE: [("order_id", "HASH")],
    INVENTORY_TABLE: [("item_id", "HASH")],
    MENU_TABLE: [("menu_item_id", "HASH")],
    USERS_TABLE: [("user_id", "HASH")],
    CONSUMPTION_LOG_TABLE: [("log_date", "HASH"), ("entry_key", "RANGE")],
}


# --- DynamoDB Tables ---
def create_table(ddb, table_name, key_schema):
    """Create a DynamoDB table if it doesn't exist. Returns True when created."""
    try:
        ddb.Table(table_name).load()
        logger.info("Table '%s' already exists.", table_name)
        return False
    except ClientError as e:
        if e.response.get("Error", {}).get("Code") != "ResourceNotFoundException":
            raise

    table = ddb.create_table(
        TableName=table_name,
        AttributeDefinitions=[{"AttributeName": name, "AttributeType": "S"} for name, _ in key_schema],
        KeySchema=[{"AttributeName": name, "KeyType": key_type} for name, key_type in key_schema],
        BillingMode="PAY_PER_REQUEST"
    )
    table.wait_until_exists()
    logger.info("Created table '%s' successfully.", table_name)
    return True


# --- SNS Topic ---
def create_topic(sns, topic_name):
    # create_topic is idempotent and returns the existing ARN
    resp = sns.create_topic(Name=topic_name)
    logger.info("SNS topic '%s': %s", topic_name, resp["TopicArn"])
    return resp["TopicArn"]


def provision(ddb=None, sns=None):
    ddb = ddb or dynamodb_resource()
    sns = sns or sns_client()
    created = [name for name, schema in TABLES.items() if create_table(ddb, name, schema)]
    topic_arn = create_topic(sns, DEFAULT_SNS_TOPIC_NAME)
    return created, topic_arn


# --- Main setup ---
if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format="%(message)s")
    created, topic_arn = provision()
    logger.info("Infrastructure setup completed. New tables: %s", ", ".join(created) or "none")
    logger.info("Alert topic ARN: %s", topic_arn)
