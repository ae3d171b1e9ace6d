"""
Shared fixtures for wryte tests.
"""
import pytest
from django.contrib.auth import get_user_model
from django.core.cache import cache

from wryte.models import Comment, Post, Reply

User = get_user_model()


@pytest.fixture(autouse=True)
def clear_cache():
    cache.clear()
    yield
    cache.clear()


@pytest.fixture
def user(db):
    """Create a test user."""
    return User.objects.create_user(
        username="testuser",
        email="test@example.com",
        password="testpass123",
        first_name="Test",
        last_name="User",
    )


@pytest.fixture
def other_user(db):
    return User.objects.create_user(
        username="other",
        email="other@example.com",
        password="testpass123",
    )


@pytest.fixture
def post(db, user):
    """Create a test post."""
    return Post.objects.create(
        title="Test Post",
        content="<p>This is a test post body.</p>",
        author=user,
    )


@pytest.fixture
def comment(db, post, other_user):
    return Comment.objects.create(post=post, author=other_user, content="Great post!")


@pytest.fixture
def reply(db, comment, user):
    return Reply.objects.create(comment=comment, author=user, content="Thanks!")
