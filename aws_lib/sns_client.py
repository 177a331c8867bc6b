from .base_client import AWSBaseClient


class SNSClient(AWSBaseClient):
    def __init__(self, **kwargs):
        super().__init__("sns", **kwargs)

    def publish(self, topic_arn, message, subject=None):
        params = {"TopicArn": topic_arn, "Message": message}
        if subject:
            # SNS caps subjects at 100 characters
            params["Subject"] = subject[:100]
        return self.client.publish(**params)
