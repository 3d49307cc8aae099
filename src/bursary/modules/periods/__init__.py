"""
Application Periods module - admin-defined application windows.

API Endpoints:
- /admin/periods - CRUD and activation (admin, periods.admin_router)
- /config/portal - Public portal configuration (periods.router)
"""
