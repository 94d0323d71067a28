"""
api/accounts.py -- Account provisioning shared by the admin bootstrap and tests.

A user never exists without at least one collection: provision_account()
creates the account and its default collection together, and seed_admin()
backfills the default collection for an admin created by an older database.

This lives in api/ because it is the only layer allowed to import both auth/
and catalog/.
"""

from __future__ import annotations

import logging

from auth.models import User
from auth.store import UserStore
from auth.tokens import hash_password
from catalog.store import CatalogStore
from core.config import Settings

logger = logging.getLogger("curio.api")


def provision_account(
    user_store: UserStore,
    catalog: CatalogStore,
    username: str,
    password: str,
    firstname: str | None = None,
    lastname: str | None = None,
) -> User:
    """Create a user plus its default collection and return the stored user.

    Raises sqlalchemy.exc.IntegrityError if the username is taken.
    """
    user_id = user_store.create_user(
        User(
            username=username,
            hashed_password=hash_password(password),
            firstname=firstname,
            lastname=lastname,
        )
    )
    catalog.ensure_default_collection(user_id)
    logger.info("Provisioned account '%s' (id=%d)", username, user_id)
    return user_store.get_by_id(user_id)


def seed_admin(user_store: UserStore, catalog: CatalogStore, settings: Settings) -> User | None:
    """Create the configured admin account on first start.

    Does nothing when users already exist (other than making sure the admin
    still has a collection) or when no admin password is configured.
    """
    if user_store.has_users():
        admin = user_store.get_by_username(settings.admin_username)
        if admin is not None and catalog.ensure_default_collection(admin.id) is not None:
            logger.info("Created missing default collection for '%s'", admin.username)
        return None
    if not settings.admin_password:
        logger.warning("No users exist and ADMIN_PASSWORD is not set -- skipping admin bootstrap")
        return None
    return provision_account(
        user_store,
        catalog,
        settings.admin_username,
        settings.admin_password,
        firstname=settings.admin_firstname,
        lastname=settings.admin_lastname,
    )
