"""
Tests for the auth_service package.

Each test runs against a throwaway SQLite database created under pytest's
tmp_path; see conftest.py for the shared fixtures.
"""
