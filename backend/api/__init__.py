# Vendor Deduplication API
"""
REST API for vendor records and duplicate management.

Endpoints:
- GET  /api/v1/vendors - Paginated canonical vendors
- GET  /api/v1/vendors/potential-duplicates - Synchronous duplicate scan
- POST /api/v1/vendors/duplicate-analysis - Start a background analysis
- POST /api/v1/vendors/{id}/mark-duplicate - Link a vendor to its canonical vendor
- POST /api/v1/vendors/{id}/mark-canonical - Detach a vendor
"""
