from django.db import models


class AttributeDefinition(models.Model):
    """Schema of a dynamic organization attribute"""
    DATA_TYPE_CHOICES = [
        ('string', 'String'),
        ('number', 'Number'),
        ('boolean', 'Boolean'),
        ('select', 'Select'),
        ('multiselect', 'Multi-select'),
        ('date', 'Date'),
    ]

    key = models.CharField(max_length=100, unique=True)
    label = models.CharField(max_length=255)
    description = models.TextField(blank=True, null=True)
    data_type = models.CharField(max_length=20, choices=DATA_TYPE_CHOICES)
    is_required = models.BooleanField(default=False)
    min_value = models.FloatField(null=True, blank=True)
    max_value = models.FloatField(null=True, blank=True)
    min_length = models.PositiveIntegerField(null=True, blank=True)
    max_length = models.PositiveIntegerField(null=True, blank=True)
    pattern = models.CharField(max_length=255, blank=True, null=True)
    group = models.CharField(max_length=100, blank=True, null=True)
    display_order = models.IntegerField(default=0)
    placeholder = models.CharField(max_length=255, blank=True, null=True)
    help_text = models.TextField(blank=True, null=True)
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"{self.label} ({self.key})"

    class Meta:
        db_table = 'attribute_definitions'
        ordering = ['group', 'display_order', 'key']


class AttributeOption(models.Model):
    definition = models.ForeignKey(AttributeDefinition, on_delete=models.CASCADE, related_name='options')
    value = models.CharField(max_length=255)
    label = models.CharField(max_length=255)
    position = models.IntegerField(default=0)
    is_active = models.BooleanField(default=True)

    class Meta:
        db_table = 'attribute_options'
        ordering = ['position']
        unique_together = [['definition', 'value']]


class AttributeApplicableType(models.Model):
    """Organization types a definition applies to"""
    definition = models.ForeignKey(AttributeDefinition, on_delete=models.CASCADE, related_name='applicable_types')
    organization_type = models.CharField(max_length=50, db_index=True)

    class Meta:
        db_table = 'attribute_applicable_types'
        unique_together = [['definition', 'organization_type']]


class OrganizationAttribute(models.Model):
    """Attribute value of one organization, stored raw and in a typed column"""
    VALUE_TYPE_CHOICES = [
        ('string', 'String'),
        ('number', 'Number'),
        ('boolean', 'Boolean'),
        ('array', 'Array'),
    ]

    organization = models.ForeignKey('organizations.Organization', on_delete=models.CASCADE, related_name='attributes')
    key = models.CharField(max_length=100)
    value = models.TextField()  # JSON encoded
    value_type = models.CharField(max_length=20, choices=VALUE_TYPE_CHOICES)
    value_string = models.TextField(null=True, blank=True)
    value_number = models.FloatField(null=True, blank=True)
    value_boolean = models.BooleanField(null=True, blank=True)
    value_json = models.JSONField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'organization_attributes'
        unique_together = [['organization', 'key']]
        indexes = [
            models.Index(fields=['key', 'value_string']),
            models.Index(fields=['key', 'value_number']),
        ]


class AttributeArrayItem(models.Model):
    attribute = models.ForeignKey(OrganizationAttribute, on_delete=models.CASCADE, related_name='array_items')
    value = models.CharField(max_length=255)
    position = models.IntegerField(default=0)

    class Meta:
        db_table = 'attribute_array_items'
        ordering = ['position']
