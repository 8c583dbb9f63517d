from rest_framework import serializers
from .models import Material


class MaterialSerializer(serializers.ModelSerializer):
    createdAt = serializers.DateTimeField(source='created_at', read_only=True)
    updatedAt = serializers.DateTimeField(source='updated_at', read_only=True)

    class Meta:
        model = Material
        fields = ['id', 'name', 'uom', 'createdAt', 'updatedAt']

    def validate_name(self, value):
        value = value.strip()
        if not value:
            raise serializers.ValidationError('Name is required')
        duplicates = Material.objects.filter(name__iexact=value)
        if self.instance is not None:
            duplicates = duplicates.exclude(pk=self.instance.pk)
        if duplicates.exists():
            raise serializers.ValidationError('A material with this name already exists')
        return value

    def validate_uom(self, value):
        value = value.strip()
        if not value:
            raise serializers.ValidationError('Unit of measure is required')
        return value

    def validate(self, attrs):
        # Reference data is frozen once runs or orders use it
        if self.instance is not None and self.instance.is_referenced():
            changed = [
                field for field in ('name', 'uom')
                if field in attrs and attrs[field] != getattr(self.instance, field)
            ]
            if changed:
                raise serializers.ValidationError({
                    field: 'Cannot change a material that is already used by crusher runs or orders'
                    for field in changed
                })
        return attrs
