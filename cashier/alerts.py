import logging

from botocore.exceptions import BotoCoreError, ClientError

logger = logging.getLogger(__name__)


class AlertChannel:
    """
    Warning-level signals for operators: always logged, and published to
    the SNS alert topic when one is configured.
    """

    def __init__(self, sns=None, topic_arn=None):
        self.sns = sns
        self.topic_arn = topic_arn

    def warn(self, subject, message):
        logger.warning("%s: %s", subject, message)
        if not (self.sns and self.topic_arn):
            return
        try:
            self.sns.publish(self.topic_arn, message, subject=subject)
        except (ClientError, BotoCoreError):
            # the alert is already in the log; the request itself succeeded
            logger.exception("Failed to publish alert '%s' to SNS", subject)
