from rest_framework import serializers

from core.models import EducationalContent


class EducationListQuerySerializer(serializers.Serializer):
    category = serializers.ChoiceField(choices=EducationalContent.CATEGORY_CHOICES, required=False)
    language = serializers.ChoiceField(choices=EducationalContent.LANGUAGES, required=False)
    search = serializers.CharField(max_length=255, required=False)
    page = serializers.IntegerField(min_value=1, required=False, default=1)
    per_page = serializers.IntegerField(min_value=1, max_value=200, required=False, default=50)


class LanguageQuerySerializer(serializers.Serializer):
    language = serializers.ChoiceField(choices=EducationalContent.LANGUAGES, required=False)
