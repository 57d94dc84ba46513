"""Django admin configuration for sharing app."""

from django.contrib import admin
from django.db.models import QuerySet
from django.http import HttpRequest

from server.apps.sharing.models import ShareLink


@admin.register(ShareLink)
class ShareLinkAdmin(admin.ModelAdmin[ShareLink]):
    """Admin interface for ShareLink model.

    Links are issued through the logic layer only, admins may inspect,
    adjust expiry or revoke them.
    """

    list_display = [
        'file',
        'user',
        'is_public',
        'expires_at',
        'expired_display',
        'created_at',
    ]

    list_filter = [
        'is_public',
        'created_at',
    ]

    search_fields = [
        'file__name',
        'user__username',
    ]

    readonly_fields = [
        'file',
        'token',
        'created_at',
    ]

    def expired_display(self, obj: ShareLink) -> bool:
        """Whether the link stopped resolving.

        Args:
            obj: ShareLink instance.

        Returns:
            True if the link is expired.
        """
        return obj.is_expired()
    expired_display.short_description = 'Expired'  # type: ignore[attr-defined]
    expired_display.boolean = True  # type: ignore[attr-defined]

    def has_add_permission(self, request: HttpRequest) -> bool:
        """Disallow creating links without a generated token."""
        return False

    def get_queryset(self, request: HttpRequest) -> QuerySet[ShareLink]:
        """Optimize queryset with select_related.

        Args:
            request: HTTP request.

        Returns:
            Optimized QuerySet.
        """
        return super().get_queryset(request).select_related('user', 'file')
