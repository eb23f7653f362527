from django.shortcuts import get_object_or_404
from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import APIView

from accounts.permissions import IsStudent
from practice.analytics import category_progress
from practice.exceptions import PracticeError, ValidationError
from practice.models import Assignment
from practice.serializers import AssignmentSerializer, QuestionSerializer, SubmissionSerializer
from practice.submission import submit
from .utils import error_response, get_requesting_student, optional_int


class MyAssignmentList(APIView):
    permission_classes = [IsStudent]

    def get(self, request):
        student = get_requesting_student(request)
        assignments = Assignment.objects.filter(student=student).select_related('record', 'category')
        try:
            category_id = optional_int(request, 'category_id')
            status_filter = request.query_params.get('status')
            if status_filter and status_filter not in Assignment.Status.values:
                raise ValidationError(f'status must be one of: {", ".join(Assignment.Status.values)}.')
        except PracticeError as exc:
            return error_response(exc)
        if category_id is not None:
            assignments = assignments.filter(category_id=category_id)
        if status_filter:
            assignments = assignments.filter(status=status_filter)
        serializer = AssignmentSerializer(assignments.order_by('id'), many=True)
        return Response(serializer.data)


class MyCategoryList(APIView):
    permission_classes = [IsStudent]

    def get(self, request):
        student = get_requesting_student(request)
        rows = [row for row in category_progress(student_id=student.id) if row['assigned_total']]
        return Response(rows)


class AssignmentQuestionView(APIView):
    permission_classes = [IsStudent]

    def get(self, request, assignment_id):
        student = get_requesting_student(request)
        assignment = get_object_or_404(
            Assignment.objects.select_related('record__category'),
            id=assignment_id,
            student=student,
        )
        if not assignment.record.is_active:
            return Response({'detail': 'This question is no longer available.'}, status=status.HTTP_410_GONE)
        return Response({
            'assignment': AssignmentSerializer(assignment).data,
            'record': QuestionSerializer(assignment.record).data,
        })


class AssignmentSubmitView(APIView):
    permission_classes = [IsStudent]

    def post(self, request, assignment_id):
        serializer = SubmissionSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        student = get_requesting_student(request)
        try:
            result = submit(assignment_id, student.id, serializer.validated_data['codes'])
        except PracticeError as exc:
            return error_response(exc)
        return Response({
            'result': {
                'is_correct': result['is_correct'],
                'partial_correct': result['partial_correct'],
                'status': result['status'],
                'attempt_no': result['attempt_no'],
                'attempts_used': result['attempts_used'],
                'max_attempts': result['max_attempts'],
                'attempts_remaining': result['attempts_remaining'],
            },
            'submitted_codes': result['submitted_codes'],
            'feedback': result['feedback'],
        })
