"""
Django admin configuration for wryte.
"""
from django.contrib import admin
from django.db import transaction

from .cache import invalidate_post
from .models import Comment, Identity, Post, PostImage, Reaction, Reply
from .services.discussion import cascade_delete_comment, cascade_delete_reply
from .services.posts import cascade_delete_post


class PostImageInline(admin.TabularInline):
    """Inline for a post's ordered image URLs."""

    model = PostImage
    extra = 1
    fields = ["image_url", "order"]


class ReplyInline(admin.TabularInline):
    model = Reply
    extra = 0
    raw_id_fields = ["author"]
    fields = ["author", "content", "created_at"]
    readonly_fields = ["created_at"]


@admin.register(Post)
class PostAdmin(admin.ModelAdmin):
    list_display = ["title_preview", "slug", "author", "created_at", "updated_at"]
    list_filter = ["created_at"]
    search_fields = ["title", "content", "slug", "author__username", "author__email"]
    raw_id_fields = ["author"]
    date_hierarchy = "created_at"
    inlines = [PostImageInline]
    readonly_fields = ["slug", "created_at", "updated_at"]

    fieldsets = (
        (None, {
            "fields": ("title", "slug", "content", "author")
        }),
        ("Metadata", {
            "fields": ("created_at", "updated_at"),
            "classes": ("collapse",),
        }),
    )

    def title_preview(self, obj):
        """Truncated title for list display."""
        return obj.title[:60] + "..." if len(obj.title) > 60 else obj.title

    title_preview.short_description = "Title"

    def delete_model(self, request, obj):
        pk = obj.pk
        with transaction.atomic():
            cascade_delete_post(obj)
        invalidate_post(pk)

    def delete_queryset(self, request, queryset):
        with transaction.atomic():
            for post in queryset:
                pk = post.pk
                cascade_delete_post(post)
                invalidate_post(pk)


@admin.register(Comment)
class CommentAdmin(admin.ModelAdmin):
    list_display = ["preview", "author", "post", "created_at"]
    list_filter = ["created_at"]
    search_fields = ["content", "author__username", "post__title"]
    raw_id_fields = ["post", "author"]
    readonly_fields = ["created_at", "updated_at"]
    inlines = [ReplyInline]

    def delete_model(self, request, obj):
        with transaction.atomic():
            cascade_delete_comment(obj)

    def delete_queryset(self, request, queryset):
        with transaction.atomic():
            for comment in queryset:
                cascade_delete_comment(comment)


@admin.register(Reply)
class ReplyAdmin(admin.ModelAdmin):
    list_display = ["preview", "author", "comment", "created_at"]
    list_filter = ["created_at"]
    search_fields = ["content", "author__username"]
    raw_id_fields = ["comment", "author"]
    readonly_fields = ["created_at", "updated_at"]

    def delete_model(self, request, obj):
        with transaction.atomic():
            cascade_delete_reply(obj)

    def delete_queryset(self, request, queryset):
        with transaction.atomic():
            for reply in queryset:
                cascade_delete_reply(reply)


@admin.register(Reaction)
class ReactionAdmin(admin.ModelAdmin):
    list_display = ["user", "target_type", "target_id", "reaction_type", "symbol", "created_at"]
    list_filter = ["target_type", "reaction_type", "created_at"]
    search_fields = ["user__username"]
    raw_id_fields = ["user"]


@admin.register(Identity)
class IdentityAdmin(admin.ModelAdmin):
    list_display = ["provider_id", "user", "created_at", "updated_at"]
    search_fields = ["provider_id", "user__username", "user__email"]
    raw_id_fields = ["user"]
    readonly_fields = ["created_at", "updated_at"]
