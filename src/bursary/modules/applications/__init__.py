"""
Bursary Applications module - the application lifecycle.

Handles the bursary application workflow:
1. Draft creation, gated by profile completeness, one active application
   per profile and the application window
2. Draft editing with application documents and linked profile documents
3. Submission, which freezes a snapshot of the profile
4. Review: PENDING -> UNDER_REVIEW -> APPROVED | REJECTED, APPROVED -> DISBURSED
5. Scoring, notes, and dashboard statistics for reviewers

API Endpoints:
- /student/applications - Student side (applications.router)
- /admin/applications - Reviewer side (applications.admin_router)
"""
