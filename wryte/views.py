"""
Views for wryte.
"""
import json

from django.contrib import messages
from django.contrib.auth.mixins import LoginRequiredMixin
from django.core.serializers.json import DjangoJSONEncoder
from django.http import Http404, JsonResponse
from django.shortcuts import get_object_or_404, redirect
from django.urls import reverse_lazy
from django.utils.safestring import mark_safe
from django.views import View
from django.views.generic import (
    CreateView,
    DeleteView,
    DetailView,
    ListView,
    UpdateView,
)

from .conf import wryte_settings
from .exceptions import ConstraintViolation, NotFound, Unauthorized, ValidationError
from .forms import CommentForm, PostForm
from .models import Post, TARGET_COMMENT, TARGET_POST, TARGET_REPLY, UPVOTE
from .services import discussion, posts, reactions
from .utils import build_structured_data

RETRY_MESSAGE = "Something went wrong. Please try again."


def wants_json(request):
    return request.headers.get("Accept") == "application/json"


def structured_data_script(data):
    """Serialize JSON-LD safely for inline <script> embedding."""
    payload = json.dumps(data, cls=DjangoJSONEncoder)
    payload = (
        payload.replace("<", "\\u003c").replace(">", "\\u003e").replace("&", "\\u0026")
    )
    return mark_safe(payload)


class PostListView(LoginRequiredMixin, ListView):
    """List every post, newest first, with reaction and comment stats."""

    template_name = "wryte/post_list.html"
    context_object_name = "posts"
    paginate_by = wryte_settings.POSTS_PER_PAGE

    def get_queryset(self):
        return posts.list_posts()

    def get_context_data(self, **kwargs):
        context = super().get_context_data(**kwargs)
        page_posts = context["posts"]
        context["stats"] = reactions.get_post_stats_for(p.pk for p in page_posts)
        context["cache_timeout"] = wryte_settings.CACHE_TIMEOUT
        return context


class MyPostListView(PostListView):
    """List the signed-in user's own posts."""

    template_name = "wryte/my_posts.html"

    def get_queryset(self):
        return posts.list_posts(author=self.request.user)


class PostDetailView(DetailView):
    """Display a single post with its reactions, comments and replies."""

    template_name = "wryte/post_detail.html"
    context_object_name = "post"

    def get_object(self, queryset=None):
        post = posts.get_post_by_slug(self.kwargs["slug"])
        if post is None:
            raise Http404("Post not found")
        return post

    def get_context_data(self, **kwargs):
        context = super().get_context_data(**kwargs)
        post = self.object
        user = self.request.user

        comments = list(discussion.get_comments(post.pk))
        comment_ids = [c.pk for c in comments]
        reply_ids = [r.pk for c in comments for r in c.replies.all()]

        post_counts = reactions.get_reaction_counts(TARGET_POST, post.pk)
        user_reaction = reactions.get_user_reaction(user, TARGET_POST, post.pk)

        context.update({
            "comments": comments,
            "comment_form": CommentForm(),
            "is_author": post.is_owned_by(user),
            "post_counts": post_counts,
            "user_reaction": user_reaction.reaction_type if user_reaction else None,
            "comment_counts": reactions.get_reaction_counts_for(
                TARGET_COMMENT, comment_ids
            ),
            "reply_counts": reactions.get_reaction_counts_for(TARGET_REPLY, reply_ids),
            "comment_reactions": reactions.get_user_reactions_for(
                user, TARGET_COMMENT, comment_ids
            ),
            "reply_reactions": reactions.get_user_reactions_for(
                user, TARGET_REPLY, reply_ids
            ),
            "structured_data": structured_data_script(
                build_structured_data(post, post_counts, len(comments))
            ),
            "cache_timeout": wryte_settings.CACHE_TIMEOUT,
        })
        return context


class PostCreateView(LoginRequiredMixin, CreateView):
    """Create a new post."""

    form_class = PostForm
    template_name = "wryte/post_form.html"

    def form_valid(self, form):
        try:
            self.object = posts.create_post(
                self.request.user,
                form.cleaned_data["title"],
                form.cleaned_data["content"],
                form.cleaned_data["image_urls"],
            )
        except (ValidationError, ConstraintViolation) as exc:
            form.add_error(None, exc.message)
            return self.form_invalid(form)
        return redirect(self.object.get_absolute_url())


class PostOwnerMixin:
    """
    Restrict a slug-addressed post view to its author.

    Non-authors are redirected to the post with an error message.
    """

    def dispatch(self, request, *args, **kwargs):
        self.post_obj = get_object_or_404(Post, slug=kwargs["slug"])
        if not self.post_obj.is_owned_by(request.user):
            messages.error(request, "Only the author can change this post.")
            return redirect(self.post_obj.get_absolute_url())
        return super().dispatch(request, *args, **kwargs)

    def get_object(self, queryset=None):
        return self.post_obj


class PostUpdateView(LoginRequiredMixin, PostOwnerMixin, UpdateView):
    """Edit a post. The slug never changes."""

    form_class = PostForm
    template_name = "wryte/post_form.html"
    context_object_name = "post"

    def form_valid(self, form):
        try:
            self.object = posts.update_post(
                self.request.user,
                self.object.pk,
                form.cleaned_data["title"],
                form.cleaned_data["content"],
                form.cleaned_data["image_urls"],
            )
        except Unauthorized as exc:
            messages.error(self.request, exc.message)
            return redirect(self.object.get_absolute_url())
        except NotFound:
            raise Http404("Post not found")
        except (ValidationError, ConstraintViolation) as exc:
            form.add_error(None, exc.message)
            return self.form_invalid(form)
        messages.success(self.request, "Post updated.")
        return redirect(self.object.get_absolute_url())


class PostDeleteView(LoginRequiredMixin, PostOwnerMixin, DeleteView):
    """Delete a post with its comments, replies, reactions and images."""

    template_name = "wryte/post_confirm_delete.html"
    context_object_name = "post"
    success_url = reverse_lazy("wryte:my_posts")

    def form_valid(self, form):
        try:
            posts.delete_post(self.request.user, self.object.pk)
        except Unauthorized as exc:
            messages.error(self.request, exc.message)
            return redirect(self.object.get_absolute_url())
        except NotFound:
            raise Http404("Post not found")
        except ConstraintViolation:
            messages.error(self.request, RETRY_MESSAGE)
            return redirect(self.object.get_absolute_url())
        messages.success(self.request, f'Deleted "{self.object.title}".')
        return redirect(self.success_url)


class PostApiView(LoginRequiredMixin, View):
    """Create a post from a JSON body: {"title", "content", "imageUrls"}."""

    raise_exception = True

    def post(self, request):
        try:
            data = json.loads(request.body or b"{}")
        except ValueError:
            return JsonResponse({"error": "Invalid JSON body"}, status=400)
        if not isinstance(data, dict):
            return JsonResponse({"error": "Invalid JSON body"}, status=400)

        try:
            post = posts.create_post(
                request.user,
                data.get("title"),
                data.get("content"),
                data.get("imageUrls"),
            )
        except ValidationError as exc:
            return JsonResponse(
                {"error": "Failed to create post", "details": exc.message}, status=400
            )
        except ConstraintViolation as exc:
            return JsonResponse(
                {"error": "Failed to create post", "details": exc.message}, status=409
            )

        return JsonResponse({"postId": post.pk, "slug": post.slug}, status=201)


class DiscussionActionView(LoginRequiredMixin, View):
    """
    Base for POST-only comment and reply actions.

    Subclasses implement get_post() to find the post the action belongs to
    and perform() to call the discussion service. Responses are JSON when
    the client asks for it, otherwise a redirect back to the post.
    """

    http_method_names = ["post"]
    lookup_kwarg = "pk"
    success_message = None
    error_message = RETRY_MESSAGE

    def get_post(self, pk):
        raise NotImplementedError

    def perform(self, request, pk):
        raise NotImplementedError

    def post(self, request, **kwargs):
        key = kwargs[self.lookup_kwarg]
        try:
            post = self.target_post = self.get_post(key)
        except NotFound:
            raise Http404("Not found")

        try:
            payload = self.perform(request, key)
        except NotFound:
            raise Http404("Not found")
        except Unauthorized as exc:
            return self.failure(request, post, exc.message, 403)
        except ValidationError as exc:
            return self.failure(request, post, exc.message, 400)
        except ConstraintViolation:
            return self.failure(request, post, self.error_message, 409)

        if wants_json(request):
            return JsonResponse(payload)
        if self.success_message:
            messages.success(request, self.success_message)
        return redirect(f"{post.get_absolute_url()}#comments")

    def failure(self, request, post, message, status):
        if wants_json(request):
            return JsonResponse({"error": message}, status=status)
        messages.error(request, message)
        return redirect(f"{post.get_absolute_url()}#comments")


def serialize_entry(entry):
    return {
        "id": entry.pk,
        "content": entry.content,
        "author": entry.author.get_username(),
        "created_at": entry.created_at.isoformat(),
        "updated_at": entry.updated_at.isoformat(),
    }


class CommentCreateView(DiscussionActionView):
    """Add a comment to a post."""

    lookup_kwarg = "slug"

    def get_post(self, slug):
        post = posts.get_post_by_slug(slug)
        if post is None:
            raise NotFound("Post not found.")
        return post

    def perform(self, request, slug):
        comment = discussion.create_comment(
            request.user, self.target_post.pk, request.POST.get("content")
        )
        return serialize_entry(comment)


class CommentUpdateView(DiscussionActionView):
    success_message = "Comment updated."

    def get_post(self, pk):
        return discussion.get_comment(pk).post

    def perform(self, request, pk):
        comment = discussion.update_comment(request.user, pk, request.POST.get("content"))
        return serialize_entry(comment)


class CommentDeleteView(DiscussionActionView):
    """Delete a comment together with its replies and their reactions."""

    success_message = "Comment deleted."
    error_message = "Failed to delete comment"

    def get_post(self, pk):
        return discussion.get_comment(pk).post

    def perform(self, request, pk):
        return {"deleted": discussion.delete_comment(request.user, pk)}


class ReplyCreateView(DiscussionActionView):
    def get_post(self, pk):
        return discussion.get_comment(pk).post

    def perform(self, request, pk):
        reply = discussion.create_reply(request.user, pk, request.POST.get("content"))
        data = serialize_entry(reply)
        data["comment_id"] = reply.comment_id
        return data


class ReplyUpdateView(DiscussionActionView):
    success_message = "Reply updated."

    def get_post(self, pk):
        return discussion.get_reply(pk).comment.post

    def perform(self, request, pk):
        reply = discussion.update_reply(request.user, pk, request.POST.get("content"))
        return serialize_entry(reply)


class ReplyDeleteView(DiscussionActionView):
    success_message = "Reply deleted."
    error_message = "Failed to delete reply"

    def get_post(self, pk):
        return discussion.get_reply(pk).comment.post

    def perform(self, request, pk):
        return {"deleted": discussion.delete_reply(request.user, pk)}


class ReactionToggleView(LoginRequiredMixin, View):
    """Toggle the user's upvote/downvote on a post, comment or reply."""

    http_method_names = ["post"]

    def post(self, request, target_type, target_id):
        reaction_type = request.POST.get("reaction_type", UPVOTE)

        try:
            reaction, action, counts = reactions.toggle_reaction(
                request.user, target_type, target_id, reaction_type
            )
        except NotFound:
            raise Http404("Reaction target not found")
        except ValidationError as exc:
            return JsonResponse({"error": exc.message}, status=400)
        except ConstraintViolation:
            if wants_json(request):
                return JsonResponse({"error": RETRY_MESSAGE}, status=409)
            messages.error(request, RETRY_MESSAGE)
            reaction, action, counts = None, None, None

        if wants_json(request):
            return JsonResponse({
                "action": action,
                "reaction_type": reaction.reaction_type if reaction else None,
                "upvotes": counts["upvotes"],
                "downvotes": counts["downvotes"],
            })

        post = reactions.get_target_post(target_type, target_id)
        anchor = "" if target_type == TARGET_POST else f"#{target_type}-{target_id}"
        return redirect(f"{post.get_absolute_url()}{anchor}")

