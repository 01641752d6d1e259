import bleach
from rest_framework import serializers


def clean(v):
    return bleach.clean((v or '').strip(), strip=True)


class CleanCharField(serializers.CharField):
    """CharField that strips markup from free text before it is stored."""

    def to_internal_value(self, data):
        return clean(super().to_internal_value(data))


class PageQuerySerializer(serializers.Serializer):
    page = serializers.IntegerField(min_value=1, required=False, default=1)
    per_page = serializers.IntegerField(min_value=1, max_value=100, required=False, default=15)


class ExistingIdField(serializers.IntegerField):
    """Primary key that must name a row in ``queryset``."""
    default_error_messages = {
        'does_not_exist': 'Invalid id "{pk_value}" - object does not exist.',
    }

    def __init__(self, queryset, **kwargs):
        kwargs.setdefault('min_value', 1)
        self.queryset = queryset
        super().__init__(**kwargs)

    def to_internal_value(self, data):
        value = super().to_internal_value(data)
        if not self.queryset.filter(pk=value).exists():
            self.fail('does_not_exist', pk_value=value)
        return value
