from django.db import models


# ---------------------------
# Local key/value storage
# ---------------------------
class LocalBlob(models.Model):
    """
    One serialized collection per key (donors, groups, cloud settings).
    Always read and written whole.
    """
    key = models.CharField(max_length=100, unique=True)
    value = models.TextField(blank=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.key

    class Meta:
        verbose_name = "Local Blob"
        verbose_name_plural = "Local Blobs"
        ordering = ['key']
