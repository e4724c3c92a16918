"""
Guide marketplace API.

FastAPI service backing the admin, guide and tourist dashboards: bookings,
ratings, notifications, saved guides and guide search on top of a managed
auth service and a Postgres store.
"""
