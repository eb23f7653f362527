from django.urls import path

from .views import (
    AssignmentQuestionView,
    AssignmentSubmitView,
    MyAssignmentList,
    MyCategoryList,
    MyDashboardMistakesView,
    MyDashboardSummaryView,
    StudentAssignAllView,
    StudentCategorySettingsView,
    StudentGenerateAssignmentsView,
)

urlpatterns = [
    path('students/<int:student_id>/assign-all/', StudentAssignAllView.as_view(), name='student-assign-all'),
    path(
        'students/<int:student_id>/category-settings/',
        StudentCategorySettingsView.as_view(),
        name='student-category-settings',
    ),
    path(
        'students/<int:student_id>/generate-assignments/',
        StudentGenerateAssignmentsView.as_view(),
        name='student-generate-assignments',
    ),
    path('my/assignments/', MyAssignmentList.as_view(), name='my-assignments'),
    path('my/categories/', MyCategoryList.as_view(), name='my-categories'),
    path('my/dashboard/summary/', MyDashboardSummaryView.as_view(), name='my-dashboard-summary'),
    path('my/dashboard/mistakes/', MyDashboardMistakesView.as_view(), name='my-dashboard-mistakes'),
    path('assignments/<int:assignment_id>/question/', AssignmentQuestionView.as_view(), name='assignment-question'),
    path('assignments/<int:assignment_id>/submit/', AssignmentSubmitView.as_view(), name='assignment-submit'),
]
