"""Tests for bootdisk."""
