"""Tests for accounts signal handlers."""

import pytest

from server.apps.accounts.models import UserProfile


@pytest.mark.django_db
def test_profile_created_with_user(user):
    """Test that every new user gets a profile and a token."""
    profile = UserProfile.objects.get(user=user)

    assert profile.shortener == 'random'
    assert len(profile.token) >= 32
    assert profile.embed_image_directly is False


@pytest.mark.django_db
def test_profile_not_recreated_on_save(user):
    """Test that later saves keep the existing token."""
    token = user.profile.token

    user.first_name = 'Changed'
    user.save()

    assert UserProfile.objects.filter(user=user).count() == 1
    assert UserProfile.objects.get(user=user).token == token


@pytest.mark.django_db
def test_tokens_are_unique(user, other_user):
    """Test that users get distinct credentials."""
    assert user.profile.token != other_user.profile.token
