from django.contrib import admin
from .models import Assignment, Attempt, CategorySetting


@admin.register(CategorySetting)
class CategorySettingAdmin(admin.ModelAdmin):
    list_display = ('student', 'category', 'questions_count', 'updated_at')
    list_filter = ('category',)


class AttemptInline(admin.TabularInline):
    model = Attempt
    extra = 0
    readonly_fields = ('attempt_no', 'submitted_codes', 'is_correct', 'wrong_codes', 'missing_codes', 'created_at')
    can_delete = False


@admin.register(Assignment)
class AssignmentAdmin(admin.ModelAdmin):
    list_display = ('id', 'student', 'record', 'category', 'status', 'attempts_used', 'max_attempts')
    list_filter = ('status', 'category')
    search_fields = ('student__user__username',)
    inlines = [AttemptInline]
