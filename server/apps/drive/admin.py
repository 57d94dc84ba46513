"""Django admin configuration for drive app.

Folder and file changes go through the logic layer, so admin edits take
the owner lock, keep the tree acyclic and keep quota usage in step.
"""

from django import forms
from django.contrib import admin
from django.db.models import QuerySet
from django.http import HttpRequest
from django.utils.html import format_html

from server.apps.drive.infrastructure.metadata import validate_name
from server.apps.drive.logic.file_operations import delete_file
from server.apps.drive.logic.namespace_operations import (
    delete_folder,
    move_file,
    move_folder,
)
from server.apps.drive.logic.quota_operations import get_quota_limit
from server.apps.drive.models import File, Folder, UserQuota

# Usage share at which the quota status turns to a warning
_WARNING_PERCENTAGE = 90


def _format_bytes(size_bytes: int) -> str:
    """Format bytes in human-readable format.

    Args:
        size_bytes: Size in bytes.

    Returns:
        Formatted size string (e.g., '1.5 MB', '234 KB').
    """
    if size_bytes < 1024:
        return f'{size_bytes} B'
    if size_bytes < 1024 * 1024:  # noqa: WPS531
        return f'{size_bytes / 1024:.1f} KB'
    if size_bytes < 1024 * 1024 * 1024:  # noqa: WPS531
        return f'{size_bytes / (1024 * 1024):.1f} MB'
    return f'{size_bytes / (1024 * 1024 * 1024):.1f} GB'


def _used_percentage(used_bytes: int) -> float:
    quota_bytes = get_quota_limit()
    if quota_bytes == 0:
        return 0.0
    return (used_bytes / quota_bytes) * 100


class _RenameForm(forms.ModelForm):  # type: ignore[type-arg]
    """Change form whose only editable field is the name."""

    def clean_name(self) -> str:
        return validate_name(self.cleaned_data['name'])


@admin.register(Folder)
class FolderAdmin(admin.ModelAdmin[Folder]):
    """Admin interface for Folder model."""

    list_display = [
        'name',
        'user',
        'parent',
        'created_at',
        'updated_at',
    ]

    list_filter = [
        'user',
        'created_at',
    ]

    search_fields = [
        'name',
    ]

    readonly_fields = [
        'parent',
        'created_at',
        'updated_at',
    ]

    form = _RenameForm

    def get_queryset(self, request: HttpRequest) -> QuerySet[Folder]:
        """Optimize queryset with select_related.

        Args:
            request: HTTP request.

        Returns:
            Optimized QuerySet.
        """
        return super().get_queryset(request).select_related('user', 'parent')

    def has_add_permission(self, request: HttpRequest) -> bool:
        """Disallow creating folders without an owner."""
        return False

    def save_model(
        self,
        request: HttpRequest,
        obj: Folder,
        form: forms.ModelForm,  # type: ignore[type-arg]
        change: bool,
    ) -> None:
        """Rename the folder through the logic layer."""
        move_folder(obj.user, obj.id, name=obj.name)

    def delete_model(self, request: HttpRequest, obj: Folder) -> None:
        """Delete the folder subtree and release its bytes."""
        delete_folder(obj.user, obj.id)

    def delete_queryset(
        self,
        request: HttpRequest,
        queryset: QuerySet[Folder],
    ) -> None:
        """Delete every selected subtree and release its bytes.

        Selected folders below another selected folder are already gone
        by the time their turn comes and are skipped.

        Args:
            request: HTTP request.
            queryset: Selected folders.
        """
        for folder in list(queryset.select_related('user')):
            if Folder.objects.filter(id=folder.id).exists():
                delete_folder(folder.user, folder.id)


@admin.register(File)
class FileAdmin(admin.ModelAdmin[File]):
    """Admin interface for File model."""

    list_display = [
        'name',
        'user',
        'folder',
        'size_display',
        'mime_type',
        'created_at',
    ]

    list_filter = [
        'mime_type',
        'created_at',
        'user',
    ]

    search_fields = [
        'name',
        'storage_key',
    ]

    readonly_fields = [
        'folder',
        'storage_key',
        'size_bytes',
        'mime_type',
        'created_at',
        'updated_at',
    ]

    form = _RenameForm

    fieldsets = (
        ('File Information', {
            'fields': ('name', 'folder'),
        }),
        ('Storage', {
            'fields': (
                'storage_key',
                'size_bytes',
                'mime_type',
            ),
        }),
        ('Timestamps', {
            'fields': ('created_at', 'updated_at'),
        }),
    )

    def size_display(self, obj: File) -> str:
        """Display file size in human-readable format.

        Args:
            obj: File instance.

        Returns:
            Formatted size string (e.g., '1.5 MB', '234 KB').
        """
        return _format_bytes(obj.size_bytes)
    size_display.short_description = 'Size'  # type: ignore[attr-defined]

    def get_queryset(self, request: HttpRequest) -> QuerySet[File]:
        """Optimize queryset with select_related.

        Args:
            request: HTTP request.

        Returns:
            Optimized QuerySet.
        """
        return super().get_queryset(request).select_related('user', 'folder')

    def has_add_permission(self, request: HttpRequest) -> bool:
        """Disallow creating records without a stored payload."""
        return False

    def save_model(
        self,
        request: HttpRequest,
        obj: File,
        form: forms.ModelForm,  # type: ignore[type-arg]
        change: bool,
    ) -> None:
        """Rename the file through the logic layer."""
        move_file(obj.user, obj.id, name=obj.name)

    def delete_model(self, request: HttpRequest, obj: File) -> None:
        """Delete the file with its links and release its bytes."""
        delete_file(obj.user, obj.id)

    def delete_queryset(
        self,
        request: HttpRequest,
        queryset: QuerySet[File],
    ) -> None:
        """Delete every selected file through the logic layer."""
        for file_instance in list(queryset.select_related('user')):
            delete_file(file_instance.user, file_instance.id)


@admin.register(UserQuota)
class UserQuotaAdmin(admin.ModelAdmin[UserQuota]):
    """Admin interface for UserQuota model.

    Usage is read-only here, the ``recalculate_quota`` command repairs it.
    """

    list_display = [
        'user',
        'quota_display',
        'used_display',
        'percentage_display',
        'status_display',
    ]

    search_fields = [
        'user__username',
        'user__email',
    ]

    readonly_fields = [
        'user',
        'used_bytes',
    ]

    def quota_display(self, obj: UserQuota) -> str:
        """Display the deployment-wide quota in human-readable format."""
        return _format_bytes(get_quota_limit())
    quota_display.short_description = 'Quota'  # type: ignore[attr-defined]

    def used_display(self, obj: UserQuota) -> str:
        """Display used bytes in human-readable format."""
        return _format_bytes(obj.used_bytes)
    used_display.short_description = 'Used'  # type: ignore[attr-defined]

    def percentage_display(self, obj: UserQuota) -> str:
        """Display percentage of quota used."""
        return f'{_used_percentage(obj.used_bytes):.1f}%'
    percentage_display.short_description = '%'  # type: ignore[attr-defined]

    def status_display(self, obj: UserQuota) -> str:
        """Display status indicator based on usage.

        Args:
            obj: UserQuota instance.

        Returns:
            HTML formatted status indicator.
        """
        percentage = _used_percentage(obj.used_bytes)

        if percentage >= 100:
            color = '#dc3545'  # Red - over quota
            status = 'Over Quota'
        elif percentage >= _WARNING_PERCENTAGE:
            color = '#ffc107'  # Yellow - warning
            status = 'Warning'
        else:
            color = '#28a745'  # Green - ok
            status = 'OK'

        return format_html(
            '<span style="color: {color}; font-weight: bold;">'
            '{status}</span>',
            color=color,
            status=status,
        )
    status_display.short_description = 'Status'  # type: ignore[attr-defined]

    def get_queryset(self, request: HttpRequest) -> QuerySet[UserQuota]:
        """Optimize queryset with select_related.

        Args:
            request: HTTP request.

        Returns:
            Optimized QuerySet.
        """
        return super().get_queryset(request).select_related('user')
