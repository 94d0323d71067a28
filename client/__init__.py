"""client/ -- Python client for the Curio API.

Holds the session token and the selected collection in a local SQLite file,
keeps the selected collection in sync with the server, and gates navigation
on a resolved identity.

Layer rule: client/ talks to the server over HTTP only. It may import the
plain dataclasses in catalog/models.py, never the stores, api/, or auth/.
"""
