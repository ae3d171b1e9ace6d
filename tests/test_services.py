"""
Tests for the wryte service layer.
"""
import pytest
from django.contrib.auth import get_user_model
from django.core.cache import cache
from django.db import IntegrityError

from wryte.cache import post_fragment_keys
from wryte.exceptions import ConstraintViolation, NotFound, Unauthorized, ValidationError
from wryte.models import (
    Comment,
    Identity,
    Post,
    PostImage,
    Reaction,
    Reply,
    DOWNVOTE,
    TARGET_COMMENT,
    TARGET_POST,
    TARGET_REPLY,
    UPVOTE,
)
from wryte.services import discussion, identity, posts, reactions
from wryte.utils import build_structured_data

User = get_user_model()


class TestCreatePost:
    """Tests for posts.create_post."""

    def test_create_with_explicit_images(self, db, user):
        post = posts.create_post(
            user,
            "  Hello World  ",
            "<p>Body</p>",
            ["https://img.test/1.png", "https://img.test/2.png"],
        )

        assert post.title == "Hello World"
        assert post.slug.startswith("hello-world-")
        assert list(post.images.values_list("image_url", flat=True)) == [
            "https://img.test/1.png",
            "https://img.test/2.png",
        ]

    def test_images_extracted_from_content(self, db, user):
        content = '<p>One</p><img src="https://img.test/a.png"><img alt="x" src="https://img.test/b.png">'
        post = posts.create_post(user, "Pictures", content)

        assert [i.image_url for i in post.images.all()] == [
            "https://img.test/a.png",
            "https://img.test/b.png",
        ]

    def test_identical_titles_get_distinct_slugs(self, db, user):
        first = posts.create_post(user, "Hello World", "<p>a</p>")
        second = posts.create_post(user, "Hello World", "<p>b</p>")

        assert first.slug != second.slug
        first_token = first.slug.rsplit("-", 1)[1]
        second_token = second.slug.rsplit("-", 1)[1]
        assert first_token != second_token

    @pytest.mark.parametrize("title,content", [
        ("", "<p>Body</p>"),
        ("   ", "<p>Body</p>"),
        ("Title", ""),
        ("Title", "   "),
        ("x" * 256, "<p>Body</p>"),
    ])
    def test_validation(self, db, user, title, content):
        with pytest.raises(ValidationError):
            posts.create_post(user, title, content)
        assert Post.objects.count() == 0

    @pytest.mark.parametrize("title,content,image_urls", [
        (123, "<p>Body</p>", None),
        ("Title", ["<p>Body</p>"], None),
        ("Title", "<p>Body</p>", "https://img.test/1.png"),
        ("Title", "<p>Body</p>", [1, 2]),
    ])
    def test_rejects_wrong_types(self, db, user, title, content, image_urls):
        """Test non-text fields and non-list image URLs are rejected."""
        with pytest.raises(ValidationError):
            posts.create_post(user, title, content, image_urls)
        assert Post.objects.count() == 0
        assert PostImage.objects.count() == 0

    def test_fresh_post_not_edited(self, db, user):
        """Test a new post has one timestamp and no dateModified."""
        post = posts.create_post(user, "Fresh", "<p>new</p>")
        post.refresh_from_db()

        assert post.updated_at == post.created_at
        assert not post.was_edited
        data = build_structured_data(post, {"upvotes": 0, "downvotes": 0}, 0)
        assert "dateModified" not in data


class TestReadPosts:
    def test_get_post_by_slug_missing_returns_none(self, db):
        assert posts.get_post_by_slug("nope-123") is None

    def test_get_post_by_slug(self, db, post):
        assert posts.get_post_by_slug(post.slug) == post

    def test_get_post_missing_raises(self, db):
        with pytest.raises(NotFound):
            posts.get_post(999)

    def test_list_posts_newest_first(self, db, user, other_user):
        first = posts.create_post(user, "First", "<p>1</p>")
        second = posts.create_post(other_user, "Second", "<p>2</p>")

        assert list(posts.list_posts()) == [second, first]
        assert list(posts.list_posts(author=user)) == [first]


class TestUpdatePost:
    """Tests for posts.update_post."""

    def test_title_edit_keeps_slug(self, db, user, post):
        original = post.slug
        updated = posts.update_post(user, post.pk, "Brand New Title", "<p>New</p>")

        assert updated.title == "Brand New Title"
        assert updated.slug == original
        post.refresh_from_db()
        assert post.slug == original
        assert post.content == "<p>New</p>"

    def test_images_fully_replaced(self, db, user, post):
        PostImage.objects.create(post=post, image_url="https://img.test/old.png")
        posts.update_post(user, post.pk, post.title, "<p>x</p>", ["https://img.test/new.png"])

        assert list(post.images.values_list("image_url", flat=True)) == [
            "https://img.test/new.png"
        ]

    def test_non_owner_rejected(self, db, other_user, post):
        with pytest.raises(Unauthorized):
            posts.update_post(other_user, post.pk, "Hijack", "<p>x</p>")
        post.refresh_from_db()
        assert post.title == "Test Post"

    def test_missing_post(self, db, user):
        with pytest.raises(NotFound):
            posts.update_post(user, 999, "Title", "<p>x</p>")

    def test_invalid_input_changes_nothing(self, db, user, post):
        PostImage.objects.create(post=post, image_url="https://img.test/keep.png")
        with pytest.raises(ValidationError):
            posts.update_post(user, post.pk, "", "<p>x</p>", [])
        assert post.images.count() == 1

    def test_invalidates_cached_fragments(
        self, db, user, post, django_capture_on_commit_callbacks
    ):
        keys = post_fragment_keys(post.pk)
        cache.set_many({key: "stale" for key in keys})

        with django_capture_on_commit_callbacks(execute=True):
            posts.update_post(user, post.pk, "Fresh", "<p>fresh</p>")

        assert cache.get_many(keys) == {}

    def test_edit_marks_post_edited(self, db, user, post):
        posts.update_post(user, post.pk, "Edited", "<p>edited</p>")
        post.refresh_from_db()

        assert post.was_edited
        assert post.updated_at > post.created_at
        data = build_structured_data(post, {"upvotes": 0, "downvotes": 0}, 0)
        assert data["dateModified"] == post.updated_at.isoformat()


def build_discussion(post, users):
    """Give a post 3 comments with 2 replies each, all reacted to by every user."""
    for c in range(3):
        comment = Comment.objects.create(
            post=post, author=users[c % len(users)], content=f"comment {c}"
        )
        for u in users:
            Reaction.toggle(u, TARGET_COMMENT, comment.pk, UPVOTE)
        for r in range(2):
            reply = Reply.objects.create(
                comment=comment, author=users[r % len(users)], content=f"reply {r}"
            )
            for u in users:
                Reaction.toggle(u, TARGET_REPLY, reply.pk, DOWNVOTE)
    for u in users:
        Reaction.toggle(u, TARGET_POST, post.pk, UPVOTE)


class TestDeletePost:
    """Tests for the post cascade delete."""

    def test_cascade_leaves_no_orphans(self, db, user, other_user, post):
        PostImage.objects.create(post=post, image_url="https://img.test/1.png")
        build_discussion(post, [user, other_user])
        comment_ids = list(post.comments.values_list("pk", flat=True))
        reply_ids = list(
            Reply.objects.filter(comment_id__in=comment_ids).values_list("pk", flat=True)
        )

        summary = posts.delete_post(user, post.pk)

        assert summary["comments"] == 3
        assert summary["replies"] == 6
        assert summary["post_reactions"] == 2
        assert summary["comment_reactions"] == 6
        assert summary["reply_reactions"] == 12
        assert summary["images"] == 1
        assert not Post.objects.filter(pk=post.pk).exists()
        assert not Comment.objects.filter(post_id=post.pk).exists()
        assert not Reply.objects.filter(pk__in=reply_ids).exists()
        assert not PostImage.objects.filter(post_id=post.pk).exists()
        assert not Reaction.objects.for_target(TARGET_POST, post.pk).exists()
        assert not Reaction.objects.for_targets(TARGET_COMMENT, comment_ids).exists()
        assert not Reaction.objects.for_targets(TARGET_REPLY, reply_ids).exists()

    def test_other_posts_untouched(self, db, user, other_user, post):
        other_post = posts.create_post(other_user, "Other", "<p>other</p>")
        build_discussion(other_post, [user, other_user])
        before = Reaction.objects.count()

        posts.delete_post(user, post.pk)

        assert Reaction.objects.count() == before
        assert other_post.comments.count() == 3

    def test_non_owner_rejected_before_any_delete(self, db, user, other_user, post):
        build_discussion(post, [user, other_user])
        before = Reaction.objects.count()

        with pytest.raises(Unauthorized):
            posts.delete_post(other_user, post.pk)

        assert Post.objects.filter(pk=post.pk).exists()
        assert Reaction.objects.count() == before
        assert post.comments.count() == 3

    def test_missing_post(self, db, user):
        with pytest.raises(NotFound):
            posts.delete_post(user, 999)

    def test_failure_rolls_back(self, db, user, other_user, post, monkeypatch):
        build_discussion(post, [user, other_user])
        before = Reaction.objects.count()

        def broken_delete(self, *args, **kwargs):
            raise RuntimeError("disk on fire")

        monkeypatch.setattr(Post, "delete", broken_delete)

        with pytest.raises(RuntimeError):
            posts.delete_post(user, post.pk)

        assert Reaction.objects.count() == before
        assert Reply.objects.count() == 6
        assert Post.objects.filter(pk=post.pk).exists()


class TestComments:
    """Tests for comment and reply services."""

    def test_create_comment(self, db, user, post):
        comment = discussion.create_comment(user, post.pk, "  Nice!  ")
        assert comment.content == "Nice!"
        assert comment.post_id == post.pk

    def test_create_comment_missing_post(self, db, user):
        with pytest.raises(NotFound):
            discussion.create_comment(user, 999, "Hello")

    def test_create_comment_empty(self, db, user, post):
        with pytest.raises(ValidationError):
            discussion.create_comment(user, post.pk, "   ")

    def test_comment_too_long(self, db, user, post):
        with pytest.raises(ValidationError):
            discussion.create_comment(user, post.pk, "x" * 5001)

    def test_get_comments_newest_first(self, db, user, post):
        first = discussion.create_comment(user, post.pk, "first")
        second = discussion.create_comment(user, post.pk, "second")
        assert list(discussion.get_comments(post.pk)) == [second, first]

    def test_update_comment_owner_only(self, db, user, other_user, comment):
        with pytest.raises(Unauthorized):
            discussion.update_comment(user, comment.pk, "changed")

        updated = discussion.update_comment(other_user, comment.pk, "changed")
        assert updated.content == "changed"

    def test_delete_comment_cascade(self, db, user, other_user, comment):
        reply = discussion.create_reply(user, comment.pk, "a reply")
        Reaction.toggle(user, TARGET_COMMENT, comment.pk, UPVOTE)
        Reaction.toggle(other_user, TARGET_REPLY, reply.pk, DOWNVOTE)

        summary = discussion.delete_comment(other_user, comment.pk)

        assert summary == {
            "reply_reactions": 1,
            "comment_reactions": 1,
            "replies": 1,
            "comments": 1,
        }
        assert not Comment.objects.filter(pk=comment.pk).exists()
        assert not Reply.objects.filter(pk=reply.pk).exists()
        assert Reaction.objects.count() == 0

    def test_delete_comment_non_owner(self, db, user, comment):
        with pytest.raises(Unauthorized):
            discussion.delete_comment(user, comment.pk)
        assert Comment.objects.filter(pk=comment.pk).exists()

    def test_reply_lifecycle(self, db, user, other_user, comment):
        reply = discussion.create_reply(user, comment.pk, "first!")
        assert list(discussion.get_replies(comment.pk)) == [reply]

        with pytest.raises(Unauthorized):
            discussion.update_reply(other_user, reply.pk, "nope")
        assert discussion.update_reply(user, reply.pk, "edited").content == "edited"

        Reaction.toggle(other_user, TARGET_REPLY, reply.pk, UPVOTE)
        with pytest.raises(Unauthorized):
            discussion.delete_reply(other_user, reply.pk)

        assert discussion.delete_reply(user, reply.pk) == {
            "reply_reactions": 1,
            "replies": 1,
        }
        assert Reaction.objects.count() == 0

    def test_reply_to_missing_comment(self, db, user):
        with pytest.raises(NotFound):
            discussion.create_reply(user, 999, "hi")

    def test_delete_comment_failure_rolls_back(self, db, user, other_user, comment, monkeypatch):
        reply = discussion.create_reply(user, comment.pk, "a reply")
        Reaction.toggle(user, TARGET_COMMENT, comment.pk, UPVOTE)
        Reaction.toggle(other_user, TARGET_REPLY, reply.pk, DOWNVOTE)

        def broken_delete(self, *args, **kwargs):
            raise RuntimeError("disk on fire")

        monkeypatch.setattr(Comment, "delete", broken_delete)

        with pytest.raises(RuntimeError):
            discussion.delete_comment(other_user, comment.pk)

        assert Reply.objects.filter(pk=reply.pk).exists()
        assert Reaction.objects.for_target(TARGET_COMMENT, comment.pk).count() == 1
        assert Reaction.objects.for_target(TARGET_REPLY, reply.pk).count() == 1

    def test_delete_reply_integrity_error(self, db, user, reply, monkeypatch):
        def conflicting_cascade(reply):
            raise IntegrityError("conflict")

        monkeypatch.setattr(discussion, "cascade_delete_reply", conflicting_cascade)

        with pytest.raises(ConstraintViolation):
            discussion.delete_reply(user, reply.pk)
        assert Reply.objects.filter(pk=reply.pk).exists()


class TestReactions:
    """Tests for reactions.toggle_reaction and counting."""

    def test_upvote_downvote_undo(self, db, user, comment):
        """A upvotes C, then downvotes C, then downvotes C again."""
        _, action, counts = reactions.toggle_reaction(user, TARGET_COMMENT, comment.pk, UPVOTE)
        assert action == "created"
        assert counts == {"upvotes": 1, "downvotes": 0}

        _, action, counts = reactions.toggle_reaction(user, TARGET_COMMENT, comment.pk, DOWNVOTE)
        assert action == "changed"
        assert counts == {"upvotes": 0, "downvotes": 1}

        reaction, action, counts = reactions.toggle_reaction(
            user, TARGET_COMMENT, comment.pk, DOWNVOTE
        )
        assert reaction is None
        assert action == "removed"
        assert counts == {"upvotes": 0, "downvotes": 0}

    def test_switch_keeps_total(self, db, user, other_user, post):
        reactions.toggle_reaction(other_user, TARGET_POST, post.pk, UPVOTE)
        reactions.toggle_reaction(user, TARGET_POST, post.pk, UPVOTE)
        _, _, before = reactions.toggle_reaction(user, TARGET_POST, post.pk, UPVOTE)
        reactions.toggle_reaction(user, TARGET_POST, post.pk, UPVOTE)
        _, _, after = reactions.toggle_reaction(user, TARGET_POST, post.pk, DOWNVOTE)

        assert before == {"upvotes": 1, "downvotes": 0}
        assert after == {"upvotes": 1, "downvotes": 1}
        assert sum(after.values()) == 2

    def test_at_most_one_row(self, db, user, reply):
        sequence = [UPVOTE, DOWNVOTE, DOWNVOTE, UPVOTE, UPVOTE, UPVOTE, DOWNVOTE]
        for reaction_type in sequence:
            reactions.toggle_reaction(user, TARGET_REPLY, reply.pk, reaction_type)
            rows = Reaction.objects.filter(
                user=user, target_type=TARGET_REPLY, target_id=reply.pk
            ).count()
            assert rows <= 1

    def test_unknown_reaction_type(self, db, user, post):
        with pytest.raises(ValidationError):
            reactions.toggle_reaction(user, TARGET_POST, post.pk, "meh")

    def test_unknown_target_type(self, db, user, post):
        with pytest.raises(ValidationError):
            reactions.toggle_reaction(user, "page", post.pk, UPVOTE)

    def test_missing_target(self, db, user):
        with pytest.raises(NotFound):
            reactions.toggle_reaction(user, TARGET_COMMENT, 999, UPVOTE)
        assert Reaction.objects.count() == 0

    def test_race_becomes_constraint_violation(self, db, user, post, monkeypatch):
        from django.db import IntegrityError

        def racing_toggle(*args, **kwargs):
            raise IntegrityError("UNIQUE constraint failed")

        monkeypatch.setattr(Reaction, "toggle", racing_toggle)
        with pytest.raises(ConstraintViolation):
            reactions.toggle_reaction(user, TARGET_POST, post.pk, UPVOTE)

    def test_get_user_reaction(self, db, user, other_user, post):
        reactions.toggle_reaction(user, TARGET_POST, post.pk, DOWNVOTE)

        assert reactions.get_user_reaction(user, TARGET_POST, post.pk).reaction_type == DOWNVOTE
        assert reactions.get_user_reaction(other_user, TARGET_POST, post.pk) is None

    def test_target_post(self, db, post, comment, reply):
        assert reactions.get_target_post(TARGET_POST, post.pk) == post
        assert reactions.get_target_post(TARGET_COMMENT, comment.pk) == post
        assert reactions.get_target_post(TARGET_REPLY, reply.pk) == post

    def test_post_stats(self, db, user, other_user, post, comment):
        reactions.toggle_reaction(user, TARGET_POST, post.pk, UPVOTE)
        reactions.toggle_reaction(other_user, TARGET_POST, post.pk, UPVOTE)

        assert reactions.get_post_stats(post.pk) == {
            "upvotes": 2,
            "downvotes": 0,
            "comments": 1,
        }

    def test_post_stats_for(self, db, user, post, comment):
        empty = posts.create_post(user, "Empty", "<p>nothing</p>")
        reactions.toggle_reaction(user, TARGET_POST, post.pk, DOWNVOTE)

        stats = reactions.get_post_stats_for([post.pk, empty.pk])
        assert stats[post.pk] == {"upvotes": 0, "downvotes": 1, "comments": 1}
        assert stats[empty.pk] == {"upvotes": 0, "downvotes": 0, "comments": 0}

    def test_user_reactions_for(self, db, user, comment):
        reactions.toggle_reaction(user, TARGET_COMMENT, comment.pk, UPVOTE)
        assert reactions.get_user_reactions_for(user, TARGET_COMMENT, [comment.pk]) == {
            comment.pk: UPVOTE
        }


def provider_user(provider_id="user_2abc", email="ada@example.com", **extra):
    data = {
        "id": provider_id,
        "first_name": "Ada",
        "last_name": "Lovelace",
        "email_addresses": [{"id": "idn_1", "email_address": email}],
    }
    data.update(extra)
    return data


class TestIdentity:
    """Tests for identity sync."""

    def test_create_user(self, db):
        user = identity.create_user(provider_user())

        assert user.username == "user_2abc"
        assert user.first_name == "Ada"
        assert user.email == "ada@example.com"
        assert not user.has_usable_password()
        assert Identity.objects.get(provider_id="user_2abc").user == user

    def test_create_duplicate_email(self, db, user):
        with pytest.raises(ConstraintViolation):
            identity.create_user(provider_user(email="test@example.com"))
        assert not Identity.objects.exists()

    def test_create_duplicate_id(self, db):
        identity.create_user(provider_user())
        with pytest.raises(ConstraintViolation):
            identity.create_user(provider_user(email="another@example.com"))

    def test_update_user(self, db):
        identity.create_user(provider_user())
        user = identity.update_user(
            provider_user(first_name="Augusta", email="augusta@example.com")
        )

        user.refresh_from_db()
        assert user.first_name == "Augusta"
        assert user.email == "augusta@example.com"

    def test_update_unknown_creates(self, db):
        user = identity.update_user(provider_user(provider_id="user_new"))
        assert user.wryte_identity.provider_id == "user_new"

    def test_delete_user_cascades_everything(self, db, other_user):
        author = identity.create_user(provider_user())
        post = posts.create_post(author, "Mine", "<p>mine</p>")
        build_discussion(post, [author, other_user])

        foreign = posts.create_post(other_user, "Foreign", "<p>theirs</p>")
        foreign_comment = discussion.create_comment(author, foreign.pk, "drive-by")
        kept_comment = discussion.create_comment(other_user, foreign.pk, "stays")
        stray_reply = discussion.create_reply(author, kept_comment.pk, "reply")
        reactions.toggle_reaction(other_user, TARGET_COMMENT, foreign_comment.pk, UPVOTE)
        reactions.toggle_reaction(other_user, TARGET_REPLY, stray_reply.pk, UPVOTE)
        reactions.toggle_reaction(author, TARGET_POST, foreign.pk, UPVOTE)

        summary = identity.delete_user({"id": "user_2abc"})

        assert summary["users"] == 1
        assert not User.objects.filter(pk=author.pk).exists()
        assert not Post.objects.filter(pk=post.pk).exists()
        assert not Comment.objects.filter(pk=foreign_comment.pk).exists()
        assert not Reply.objects.filter(pk=stray_reply.pk).exists()
        assert Comment.objects.filter(pk=kept_comment.pk).exists()
        assert not Reaction.objects.filter(user_id=author.pk).exists()
        assert not Reaction.objects.for_target(TARGET_COMMENT, foreign_comment.pk).exists()
        assert not Reaction.objects.for_target(TARGET_REPLY, stray_reply.pk).exists()

    def test_delete_user_failure_rolls_back(self, db, other_user, monkeypatch):
        author = identity.create_user(provider_user())
        post = posts.create_post(author, "Mine", "<p>mine</p>")
        build_discussion(post, [author, other_user])
        before = Reaction.objects.count()

        def broken_delete(self, *args, **kwargs):
            raise RuntimeError("disk on fire")

        monkeypatch.setattr(User, "delete", broken_delete)

        with pytest.raises(RuntimeError):
            identity.delete_user({"id": "user_2abc"})

        assert User.objects.filter(pk=author.pk).exists()
        assert Post.objects.filter(pk=post.pk).exists()
        assert Comment.objects.filter(post=post).count() == 3
        assert Reply.objects.count() == 6
        assert Reaction.objects.count() == before

    def test_delete_unknown_is_noop(self, db):
        assert identity.delete_user({"id": "user_ghost"}) is None

    def test_handle_event_dispatch(self, db):
        assert identity.handle_event({"type": "user.created", "data": provider_user()})
        assert not identity.handle_event({"type": "session.created", "data": {}})
        assert Identity.objects.count() == 1
