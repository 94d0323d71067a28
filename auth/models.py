"""
auth/models.py -- Domain dataclasses for authentication entities.

Pattern: Data class (pure data container, zero logic). Mirrors catalog/models.py
-- dataclasses own domain shape; stores and routes do the work.

Layer rule: no imports from api/, catalog/, or client/.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass
class User:
    """A registered Curio account.

    hashed_password never leaves the server: response models copy the display
    fields explicitly and the row mapper is the only reader of the column.
    """

    username: str
    hashed_password: str
    firstname: str | None = None
    lastname: str | None = None
    id: int | None = None
    created_at: str | None = None
    last_login: str | None = None
    is_active: bool = True
