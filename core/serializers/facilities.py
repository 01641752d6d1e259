from rest_framework import serializers

from core.models import HealthcareFacility
from core.serializers.common import CleanCharField


class FacilityListQuerySerializer(serializers.Serializer):
    region = serializers.CharField(max_length=100, required=False)
    type = serializers.ChoiceField(choices=HealthcareFacility.TYPE_CHOICES, required=False)
    level = serializers.ChoiceField(choices=HealthcareFacility.LEVEL_CHOICES, required=False)
    city = serializers.CharField(max_length=100, required=False)
    services = serializers.CharField(max_length=500, required=False)
    emergency_only = serializers.BooleanField(required=False, default=False)
    philhealth_only = serializers.BooleanField(required=False, default=False)
    accepts_referrals = serializers.BooleanField(required=False, allow_null=True, default=None)
    search = serializers.CharField(max_length=100, required=False)


class NearbyQuerySerializer(serializers.Serializer):
    latitude = serializers.FloatField(min_value=-90, max_value=90)
    longitude = serializers.FloatField(min_value=-180, max_value=180)
    radius = serializers.FloatField(min_value=1, max_value=100, required=False, default=50)


class RadiusQuerySerializer(serializers.Serializer):
    radius = serializers.FloatField(min_value=1, max_value=100, required=False, default=50)


class FacilitySerializer(serializers.ModelSerializer):
    name = CleanCharField(max_length=255)
    address = CleanCharField(max_length=255, required=False, allow_blank=True)
    status_notes = CleanCharField(required=False, allow_blank=True)
    services = serializers.ListField(child=serializers.CharField(max_length=100), required=False)

    class Meta:
        model = HealthcareFacility
        exclude = ['id', 'created_at', 'updated_at', 'created_from_mobile']

    def validate(self, attrs):
        beds = attrs.get('bed_capacity', getattr(self.instance, 'bed_capacity', 0))
        available = attrs.get('current_bed_availability', getattr(self.instance, 'current_bed_availability', 0))
        if available > beds:
            raise serializers.ValidationError({'current_bed_availability': ['Cannot exceed bed capacity.']})
        return attrs


class CapacitySerializer(serializers.Serializer):
    current_bed_availability = serializers.IntegerField(min_value=0)
    bed_capacity = serializers.IntegerField(min_value=0, required=False)
    icu_capacity = serializers.IntegerField(min_value=0, required=False)
