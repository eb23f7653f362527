from rest_framework import serializers

from questionbank.models import MedicalRecord

from .models import MAX_QUESTIONS_PER_CATEGORY, Assignment, CategorySetting


class AssignmentSerializer(serializers.ModelSerializer):
    category_name = serializers.CharField(source='category.name', read_only=True)
    record_label = serializers.CharField(source='record.display_label', read_only=True)
    attempts_remaining = serializers.IntegerField(read_only=True)

    class Meta:
        model = Assignment
        fields = [
            'id',
            'record',
            'record_label',
            'category',
            'category_name',
            'status',
            'attempts_used',
            'max_attempts',
            'attempts_remaining',
            'last_attempt_at',
            'created_at',
        ]
        read_only_fields = fields


class QuestionSerializer(serializers.ModelSerializer):
    """Case details a student may see while answering; never the codes."""

    category_name = serializers.CharField(source='category.name', read_only=True)

    class Meta:
        model = MedicalRecord
        fields = [
            'id',
            'category',
            'category_name',
            'patient_name',
            'age',
            'gender',
            'chief_complaints',
            'case_description',
            'difficulty_level',
        ]
        read_only_fields = fields


class CategorySettingSerializer(serializers.ModelSerializer):
    category_name = serializers.CharField(source='category.name', read_only=True)

    class Meta:
        model = CategorySetting
        fields = ['id', 'category', 'category_name', 'questions_count', 'updated_at']
        read_only_fields = fields


class CategorySettingInputSerializer(serializers.Serializer):
    category_id = serializers.IntegerField()
    questions_count = serializers.IntegerField(min_value=0, max_value=MAX_QUESTIONS_PER_CATEGORY)


class CategorySettingsPayloadSerializer(serializers.Serializer):
    settings = CategorySettingInputSerializer(many=True, allow_empty=False)


class AssignAllSerializer(serializers.Serializer):
    category_id = serializers.IntegerField(required=False, allow_null=True)
    include_inactive = serializers.BooleanField(required=False, default=False)
    max_attempts = serializers.IntegerField(required=False, allow_null=True)


class GenerateAssignmentsSerializer(serializers.Serializer):
    max_attempts = serializers.IntegerField(required=False, allow_null=True)


class SubmissionSerializer(serializers.Serializer):
    codes = serializers.ListField(child=serializers.CharField(allow_blank=True, trim_whitespace=False), allow_empty=True)
