# opd_core/notifications/models.py
from django.db import models


class TopicVersion(models.Model):
    """
    Monotonic change counter per invalidation topic.
    Polling clients compare versions and re-fetch when one moves.
    """
    topic = models.CharField(max_length=64, unique=True)
    version = models.PositiveBigIntegerField(default=0)
    bumped_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "notifications_topic_version"
        ordering = ["topic"]

    def __str__(self) -> str:
        return f"{self.topic}@{self.version}"
