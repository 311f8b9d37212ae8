"""
Services layer - business logic goes here.
Keep services focused on one domain each (users, water services, issues, payments).

DESIGN PRINCIPLE:
- Services contain business logic, NOT routes
- Blocking I/O lives here; routes offload it with run_sync
- Pure rules (issue_lifecycle, asset_health) never touch storage
"""
