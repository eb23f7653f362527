from django.contrib import admin
from .models import RecordCategory, MedicalRecord, RecordCode


class RecordCodeInline(admin.TabularInline):
    model = RecordCode
    extra = 0


@admin.register(RecordCategory)
class RecordCategoryAdmin(admin.ModelAdmin):
    list_display = ('name', 'slug')
    search_fields = ('name', 'slug')


@admin.register(MedicalRecord)
class MedicalRecordAdmin(admin.ModelAdmin):
    list_display = ('id', 'category', 'patient_name', 'difficulty_level', 'is_active')
    list_filter = ('category', 'is_active', 'difficulty_level')
    inlines = [RecordCodeInline]
