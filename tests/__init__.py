"""
Test Suite

Tests for the pharmasync client core and its dev server.

Structure:
    tests/
    ├── __init__.py                      # This file
    ├── conftest.py                      # Fakes, builders and fixtures
    ├── test_*_gate.py, test_navigation  # Navigation decisions
    ├── test_session_store.py            # Restore/login/logout
    ├── test_notification_store.py       # Feed and optimistic mutations
    ├── test_sync_engine.py              # Polling and alert detection
    └── test_devserver_integration.py    # Full client against the dev server

To run tests:
    pytest tests/
"""
