"""
Test support utilities for redeploy tests.

Helpers that are not pytest fixtures but are shared across test modules
live here; see :mod:`tests._support.fake_docker`.
"""
