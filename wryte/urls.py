"""
URL configuration for wryte.

Include in your project urls.py:

    path('blogs/', include('wryte.urls')),
"""
from django.urls import path

from . import views
from .webhooks import IdentityWebhookView

app_name = "wryte"

urlpatterns = [
    # Listings (authenticated)
    path("", views.PostListView.as_view(), name="post_list"),
    path("mine/", views.MyPostListView.as_view(), name="my_posts"),

    # Post CRUD
    path("new/", views.PostCreateView.as_view(), name="post_create"),
    path("api/posts/", views.PostApiView.as_view(), name="post_api_create"),

    # Comments and replies
    path("comments/<int:pk>/edit/", views.CommentUpdateView.as_view(), name="comment_update"),
    path("comments/<int:pk>/delete/", views.CommentDeleteView.as_view(), name="comment_delete"),
    path("comments/<int:pk>/replies/", views.ReplyCreateView.as_view(), name="reply_create"),
    path("replies/<int:pk>/edit/", views.ReplyUpdateView.as_view(), name="reply_update"),
    path("replies/<int:pk>/delete/", views.ReplyDeleteView.as_view(), name="reply_delete"),

    # Reactions
    path(
        "react/<str:target_type>/<int:target_id>/",
        views.ReactionToggleView.as_view(),
        name="reaction_toggle",
    ),

    # Identity provider
    path("webhooks/identity/", IdentityWebhookView.as_view(), name="identity_webhook"),

    # Post detail is public; keep slug routes last
    path("<slug:slug>/", views.PostDetailView.as_view(), name="post_detail"),
    path("<slug:slug>/edit/", views.PostUpdateView.as_view(), name="post_update"),
    path("<slug:slug>/delete/", views.PostDeleteView.as_view(), name="post_delete"),
    path("<slug:slug>/comments/", views.CommentCreateView.as_view(), name="comment_create"),
]
