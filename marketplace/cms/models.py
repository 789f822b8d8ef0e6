from django.db import models


class HomepageContent(models.Model):
    """Storefront homepage; one row, each section a JSON document"""
    header = models.JSONField(default=dict, blank=True)
    hero_banner = models.JSONField(default=dict, blank=True)
    features_bar = models.JSONField(default=dict, blank=True)
    our_story = models.JSONField(default=dict, blank=True)
    store_locations = models.JSONField(default=dict, blank=True)
    footer = models.JSONField(default=dict, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"Homepage content (updated {self.updated_at:%Y-%m-%d %H:%M})"

    class Meta:
        db_table = 'homepage_content'
        verbose_name_plural = 'homepage content'
