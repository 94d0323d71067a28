"""catalog/ -- Collections and items, always scoped to their owning user.

Layer rule: catalog/ imports only stdlib and third-party libraries.
It does NOT import from api/, auth/, or client/. The owner id every store
method takes is resolved by auth/ and handed over by api/.
"""
