"""Tests for feedget."""
