"""Integration tests for the leadintake package.

These tests run the services against a real SQLite database:
- Notification queue delivery, retries and the scheduler
- Inquiry intake with scoring and queued notifications
- Quote requests through the status workflow
"""
