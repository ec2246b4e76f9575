"""Shared fixtures for accounts app tests."""

import pytest
from django.contrib.auth import get_user_model

User = get_user_model()


@pytest.fixture
def user(db):
    """Create test user.

    Returns:
        User instance for testing.
    """
    return User.objects.create_user(
        username='testuser',
        password='testpass123',
        email='test@example.com',
    )


@pytest.fixture
def other_user(db):
    """Create second test user.

    Returns:
        Second user instance.
    """
    return User.objects.create_user(
        username='otheruser',
        password='testpass123',
        email='other@example.com',
    )


@pytest.fixture
def admin_user(db):
    """Create a staff user, which counts as administrator.

    Returns:
        Admin user instance.
    """
    return User.objects.create_user(
        username='adminuser',
        password='testpass123',
        is_staff=True,
    )
