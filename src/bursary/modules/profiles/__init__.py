"""
Student Profiles module - reusable student record, profile documents,
completeness and application eligibility.

API Endpoints:
- /student/profile - Profile CRUD, completeness and documents (student, profiles.router)
"""
