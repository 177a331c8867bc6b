import boto3

from aws_config import AWS_REGION, boto3_config


class AWSBaseClient:
    """
    Base AWS client that creates a NEW boto3 session every time
    so rotated temporary credentials are always picked up.
    """

    def __init__(self, service_name, region_name=AWS_REGION, config=boto3_config):
        self.service_name = service_name
        self.region_name = region_name
        self.config = config

    @property
    def client(self):
        session = boto3.Session()
        return session.client(self.service_name, region_name=self.region_name, config=self.config)

    @property
    def resource(self):
        session = boto3.Session()
        return session.resource(self.service_name, region_name=self.region_name, config=self.config)
