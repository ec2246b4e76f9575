"""Tests for the admin site wiring."""

import importlib

import pytest
from django.contrib import admin

from server.apps.accounts.models import SignUpToken, UserProfile
from server.apps.files.models import File
from server.apps.links.models import Link


@pytest.mark.parametrize('module_name', [
    'server.apps.accounts.admin',
    'server.apps.files.admin',
    'server.apps.links.admin',
])
def test_admin_modules_import(module_name):
    """Test that admin modules with generic ModelAdmin classes import."""
    assert importlib.import_module(module_name)


@pytest.mark.parametrize('model', [UserProfile, SignUpToken, File, Link])
def test_models_registered(model):
    """Test that every model is registered on the default admin site."""
    assert admin.site.is_registered(model)


def test_generic_model_admin_subscript():
    """Test that ModelAdmin can be subscripted at runtime."""
    assert admin.ModelAdmin[File] is not None


@pytest.mark.django_db
def test_admin_urls_resolve(admin_client):
    """Test that the admin changelist for files renders."""
    response = admin_client.get('/admin/files/file/')

    assert response.status_code == 200
