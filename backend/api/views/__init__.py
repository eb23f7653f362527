from .allocation import (
    StudentAssignAllView,
    StudentCategorySettingsView,
    StudentGenerateAssignmentsView,
)
from .gameplay import (
    MyAssignmentList,
    MyCategoryList,
    AssignmentQuestionView,
    AssignmentSubmitView,
)
from .dashboard import MyDashboardSummaryView, MyDashboardMistakesView
