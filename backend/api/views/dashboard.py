from rest_framework.response import Response
from rest_framework.views import APIView

from accounts.permissions import IsStudent
from practice import analytics
from practice.exceptions import PracticeError
from .utils import error_response, get_requesting_student, optional_int, window_from_query


class MyDashboardSummaryView(APIView):
    permission_classes = [IsStudent]

    def get(self, request):
        student = get_requesting_student(request)
        try:
            window = window_from_query(request)
            category_id = optional_int(request, 'category_id')
        except PracticeError as exc:
            return error_response(exc)
        return Response({
            'filters': {**window.as_filters(), 'category_id': category_id},
            'cards': analytics.summary(window, category_id=category_id, student_id=student.id),
            'categories': analytics.category_progress(window, category_id=category_id, student_id=student.id),
            'attempt_distribution': analytics.attempt_distribution(
                window, category_id=category_id, student_id=student.id
            ),
        })


class MyDashboardMistakesView(APIView):
    permission_classes = [IsStudent]

    def get(self, request):
        student = get_requesting_student(request)
        kind = request.query_params.get('type', 'both')
        try:
            window = window_from_query(request)
            category_id = optional_int(request, 'category_id')
            result = analytics.mistakes(
                window,
                category_id=category_id,
                student_id=student.id,
                kind=kind,
                limit=request.query_params.get('limit'),
            )
        except PracticeError as exc:
            return error_response(exc)
        return Response({'filters': {**window.as_filters(), 'category_id': category_id, 'type': kind}, **result})
