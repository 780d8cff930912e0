"""
Scripts Module

Utility scripts for poking at a running dev server.

Available scripts:
    - watch_notifications.py: Sign in and print badge/alert events

Usage:
    python -m scripts.watch_notifications <email> <password>
"""
