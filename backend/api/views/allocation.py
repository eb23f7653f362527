from rest_framework.response import Response
from rest_framework.views import APIView

from accounts.permissions import IsProviderStaff
from practice.allocation import assign_all, generate_for_student, upsert_category_settings
from practice.exceptions import PracticeError
from practice.models import CategorySetting
from practice.serializers import (
    AssignAllSerializer,
    CategorySettingSerializer,
    CategorySettingsPayloadSerializer,
    GenerateAssignmentsSerializer,
)
from .utils import error_response, get_managed_student


class StudentAssignAllView(APIView):
    permission_classes = [IsProviderStaff]

    def post(self, request, student_id):
        serializer = AssignAllSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        try:
            student = get_managed_student(request, student_id)
            result = assign_all(student.id, **serializer.validated_data)
        except PracticeError as exc:
            return error_response(exc)
        return Response({'student_id': student.id, 'provider_id': student.provider_id, **result})


class StudentCategorySettingsView(APIView):
    permission_classes = [IsProviderStaff]

    def get(self, request, student_id):
        try:
            student = get_managed_student(request, student_id)
        except PracticeError as exc:
            return error_response(exc)
        category_settings = CategorySetting.objects.filter(student=student).select_related('category')
        serializer = CategorySettingSerializer(category_settings.order_by('category_id'), many=True)
        return Response({'student_id': student.id, 'settings': serializer.data})

    def put(self, request, student_id):
        payload = CategorySettingsPayloadSerializer(data=request.data)
        payload.is_valid(raise_exception=True)
        try:
            student = get_managed_student(request, student_id)
            saved = upsert_category_settings(student.id, payload.validated_data['settings'])
        except PracticeError as exc:
            return error_response(exc)
        return Response({'student_id': student.id, 'settings': CategorySettingSerializer(saved, many=True).data})


class StudentGenerateAssignmentsView(APIView):
    permission_classes = [IsProviderStaff]

    def post(self, request, student_id):
        serializer = GenerateAssignmentsSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        try:
            student = get_managed_student(request, student_id)
            result = generate_for_student(student.id, max_attempts=serializer.validated_data.get('max_attempts'))
        except PracticeError as exc:
            return error_response(exc)
        return Response(result)
