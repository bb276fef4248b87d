"""Maria Vita clinic application.

Roles and permissions, the REST API (authentication, users, specialists,
appointments, lab studies, contact), the identity WebSocket channel and a
small Python client for the API.
"""
