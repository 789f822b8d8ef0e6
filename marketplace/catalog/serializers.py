from rest_framework import serializers
from django.utils.text import slugify
from marketplace.organizations.models import Organization
from .models import Category, Product, ProductVariant, ProductImage, ProductOption, OptionValue, WishlistItem


class CategorySerializer(serializers.ModelSerializer):
    parent_name = serializers.CharField(source='parent.name', read_only=True)

    class Meta:
        model = Category
        fields = ['id', 'name', 'slug', 'parent', 'parent_name', 'description', 'fee_type', 'fee_amount',
                  'is_active', 'created_at', 'updated_at']
        read_only_fields = ['created_at', 'updated_at']

    def validate(self, attrs):
        fee_type = attrs.get('fee_type', getattr(self.instance, 'fee_type', None))
        fee_amount = attrs.get('fee_amount', getattr(self.instance, 'fee_amount', None))
        if fee_type == 'percentage' and fee_amount is not None and fee_amount > 100:
            raise serializers.ValidationError({'fee_amount': 'Percentage fee cannot exceed 100'})
        parent = attrs.get('parent')
        if parent and self.instance and parent.pk == self.instance.pk:
            raise serializers.ValidationError({'parent': 'A category cannot be its own parent'})
        return attrs


class ProductVariantSerializer(serializers.ModelSerializer):
    price = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=0)

    class Meta:
        model = ProductVariant
        fields = ['id', 'product', 'name', 'sku', 'price', 'compare_at_price', 'currency', 'barcode', 'weight',
                  'attributes', 'is_active', 'created_at', 'updated_at']
        read_only_fields = ['product', 'created_at', 'updated_at']


class ProductSerializer(serializers.ModelSerializer):
    organization_id = serializers.PrimaryKeyRelatedField(
        queryset=Organization.objects.all(), source='organization', write_only=True
    )
    organization_name = serializers.CharField(source='organization.name', read_only=True)
    category_name = serializers.CharField(source='category.name', read_only=True)
    variants = ProductVariantSerializer(many=True, read_only=True)

    class Meta:
        model = Product
        fields = ['id', 'organization', 'organization_id', 'organization_name', 'name', 'slug', 'description',
                  'category', 'category_name', 'fee_type', 'fee_amount', 'is_active', 'variants',
                  'created_at', 'updated_at']
        read_only_fields = ['organization', 'created_at', 'updated_at']

    def validate(self, attrs):
        if not attrs.get('slug') and attrs.get('name'):
            attrs['slug'] = slugify(attrs['name'])
        return attrs


class ProductImageSerializer(serializers.ModelSerializer):
    class Meta:
        model = ProductImage
        fields = ['id', 'product', 'image_url', 'alt_text', 'position', 'is_main', 'created_at']
        read_only_fields = ['product', 'created_at']


class OptionValueSerializer(serializers.ModelSerializer):
    position = serializers.IntegerField(min_value=1, required=False)

    class Meta:
        model = OptionValue
        fields = ['id', 'option', 'value', 'position']
        read_only_fields = ['option']


class ProductOptionSerializer(serializers.ModelSerializer):
    position = serializers.IntegerField(min_value=1, required=False)
    values = OptionValueSerializer(many=True, read_only=True)

    class Meta:
        model = ProductOption
        fields = ['id', 'product', 'name', 'position', 'values']
        read_only_fields = ['product']


class ReorderSerializer(serializers.Serializer):
    ids = serializers.ListField(child=serializers.IntegerField(), allow_empty=False)


class WishlistItemSerializer(serializers.ModelSerializer):
    sku = serializers.CharField(source='variant.sku', read_only=True)
    price = serializers.DecimalField(source='variant.price', max_digits=12, decimal_places=2, read_only=True)
    product_id = serializers.IntegerField(source='variant.product_id', read_only=True)
    product_name = serializers.CharField(source='variant.product.name', read_only=True)
    image_url = serializers.SerializerMethodField()

    class Meta:
        model = WishlistItem
        fields = ['id', 'variant', 'sku', 'price', 'product_id', 'product_name', 'image_url', 'created_at']
        read_only_fields = fields

    def get_image_url(self, obj):
        images = getattr(obj.variant.product, 'main_images', None)
        if images is None:
            images = obj.variant.product.images.filter(is_main=True)[:1]
        return images[0].image_url if images else None


class WishlistAddSerializer(serializers.Serializer):
    variant_id = serializers.IntegerField(required=False)
    variant_ids = serializers.ListField(child=serializers.IntegerField(), required=False, allow_empty=False)

    def validate(self, attrs):
        if ('variant_id' in attrs) == ('variant_ids' in attrs):
            raise serializers.ValidationError('Provide exactly one of variant_id or variant_ids')
        return attrs
