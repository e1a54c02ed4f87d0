"""
Portal Quote Builder Test Suite
===============================

This package contains tests for the quote builder including:
- Unit tests for the session store, resolution stages, payload and client
- Integration tests for the build, submit and reconcile workflow
"""
