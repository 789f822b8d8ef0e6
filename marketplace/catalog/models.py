from django.conf import settings
from django.db import models
from decimal import Decimal


FEE_TYPE_CHOICES = [
    ('percentage', 'Percentage'),
    ('fixed', 'Fixed'),
]


class Category(models.Model):
    """Product categories (tree), optionally carrying a commission override"""
    name = models.CharField(max_length=100, db_index=True)
    slug = models.SlugField(max_length=150, unique=True)
    parent = models.ForeignKey('self', on_delete=models.SET_NULL, null=True, blank=True, related_name='children')
    description = models.TextField(blank=True)
    fee_type = models.CharField(max_length=20, choices=FEE_TYPE_CHOICES, null=True, blank=True)
    fee_amount = models.DecimalField(max_digits=10, decimal_places=2, null=True, blank=True)
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.name

    class Meta:
        db_table = 'categories'
        verbose_name_plural = 'categories'
        ordering = ['name']


class ActiveProductManager(models.Manager):
    def get_queryset(self):
        return super().get_queryset().filter(deleted_at__isnull=True)


class Product(models.Model):
    """Product sold by a vendor organization"""
    organization = models.ForeignKey('organizations.Organization', on_delete=models.CASCADE, related_name='products')
    name = models.CharField(max_length=255, db_index=True)
    slug = models.SlugField(max_length=255, blank=True)
    description = models.TextField(blank=True)
    category = models.ForeignKey(Category, on_delete=models.SET_NULL, null=True, blank=True, related_name='products')
    fee_type = models.CharField(max_length=20, choices=FEE_TYPE_CHOICES, null=True, blank=True)
    fee_amount = models.DecimalField(max_digits=10, decimal_places=2, null=True, blank=True)
    is_active = models.BooleanField(default=True, db_index=True)
    deleted_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = models.Manager()
    available = ActiveProductManager()

    def __str__(self):
        return self.name

    class Meta:
        db_table = 'products'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['organization', 'is_active']),
        ]


class ProductVariant(models.Model):
    """Sellable variant of a product; inventory is tracked per variant"""
    product = models.ForeignKey(Product, on_delete=models.CASCADE, related_name='variants')
    name = models.CharField(max_length=200, blank=True)  # e.g., "Red - Large"
    sku = models.CharField(max_length=50, unique=True)
    price = models.DecimalField(max_digits=12, decimal_places=2)
    compare_at_price = models.DecimalField(max_digits=12, decimal_places=2, null=True, blank=True)
    currency = models.CharField(max_length=3, default='USD')
    barcode = models.CharField(max_length=64, blank=True, null=True)
    weight = models.DecimalField(max_digits=10, decimal_places=3, null=True, blank=True)
    attributes = models.JSONField(default=dict, blank=True)  # e.g., {"color": "red", "size": "L"}
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"{self.product.name} - {self.sku}"

    @property
    def is_sellable(self):
        product = self.product
        return self.is_active and product.is_active and product.deleted_at is None

    class Meta:
        db_table = 'product_variants'
        ordering = ['id']
        constraints = [
            models.CheckConstraint(condition=models.Q(price__gte=Decimal('0')), name='variant_price_non_negative'),
        ]


class ProductImage(models.Model):
    """Gallery image of a product; at most one per product is the main image"""
    product = models.ForeignKey(Product, on_delete=models.CASCADE, related_name='images')
    image_url = models.URLField(max_length=500)
    alt_text = models.CharField(max_length=255, blank=True)
    position = models.PositiveIntegerField(default=1)
    is_main = models.BooleanField(default=False)
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self):
        return f"{self.product.name} image {self.position}"

    class Meta:
        db_table = 'product_images'
        ordering = ['-is_main', 'position', 'id']


class ProductOption(models.Model):
    """Option axis of a product such as Size or Color"""
    product = models.ForeignKey(Product, on_delete=models.CASCADE, related_name='options')
    name = models.CharField(max_length=50)
    position = models.PositiveIntegerField(default=1)

    def __str__(self):
        return f"{self.product.name}: {self.name}"

    class Meta:
        db_table = 'product_options'
        ordering = ['position', 'id']
        constraints = [
            models.UniqueConstraint(fields=['product', 'name'], name='uniq_product_option_name'),
        ]


class OptionValue(models.Model):
    option = models.ForeignKey(ProductOption, on_delete=models.CASCADE, related_name='values')
    value = models.CharField(max_length=100)
    position = models.PositiveIntegerField(default=1)

    def __str__(self):
        return f"{self.option.name}={self.value}"

    class Meta:
        db_table = 'option_values'
        ordering = ['position', 'id']
        constraints = [
            models.UniqueConstraint(fields=['option', 'value'], name='uniq_option_value'),
        ]


class Wishlist(models.Model):
    user = models.OneToOneField(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='wishlist')
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self):
        return f"Wishlist of user {self.user_id}"

    class Meta:
        db_table = 'wishlists'


class WishlistItem(models.Model):
    wishlist = models.ForeignKey(Wishlist, on_delete=models.CASCADE, related_name='items')
    variant = models.ForeignKey(ProductVariant, on_delete=models.CASCADE, related_name='wishlist_items')
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'wishlist_items'
        ordering = ['-created_at', '-id']
        constraints = [
            models.UniqueConstraint(fields=['wishlist', 'variant'], name='uniq_wishlist_variant'),
        ]
