"""
Notifications module - in-app inbox and the lifecycle notification sink.

API Endpoints:
- /student/notifications - Inbox (student, notifications.router)
"""
