from django.contrib import admin
from .models import Member, Provider


@admin.register(Provider)
class ProviderAdmin(admin.ModelAdmin):
    list_display = ('name', 'code', 'created_at')
    search_fields = ('name', 'code')


@admin.register(Member)
class MemberAdmin(admin.ModelAdmin):
    list_display = ('user', 'role', 'provider')
    search_fields = ('user__username', 'user__email')
    list_filter = ('role', 'provider')
