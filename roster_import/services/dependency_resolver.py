"""
roster_import/services/dependency_resolver.py

Resolution of descriptive cross-entity references for one import run.

A student row names its parent by name and phone and its class by name.
Resolvers turn those descriptions into stored identifiers, creating the
parent on demand. Each resolver keeps a run-scoped index so an entity
created for one row is reused by every later row of the same run.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Any

from roster_import.domain.records import DEFAULT_STATUS
from roster_import.repositories.errors import PersistenceError, PersistenceUnavailableError
from roster_import.repositories.gateway import EntityStore

logger = logging.getLogger(__name__)


def phone_key(phone: str) -> str:
    return re.sub(r"\D", "", phone)


def class_name_key(name: str) -> str:
    return re.sub(r"\s+", "", name).casefold()


def split_full_name(full_name: str) -> tuple[str, str]:
    """
    Split at the first whitespace run: ("Mary Ann Smith") -> ("Mary", "Ann Smith").
    """

    parts = full_name.strip().split(None, 1)
    if not parts:
        return "", ""
    if len(parts) == 1:
        return parts[0], ""
    return parts[0], parts[1]


def placeholder_email(full_name: str, domain: str) -> str:
    local_part = re.sub(r"\s+", ".", full_name.strip()).lower()
    return f"{local_part}@{domain}"


@dataclass(frozen=True)
class ParentResolution:
    """
    Outcome of resolving one parent reference.

    ``parent_id`` is None when the reference was incomplete or the parent
    could not be created; ``warning`` explains the latter.
    """

    parent_id: Any = None
    created: bool = False
    warning: str | None = None


class ParentResolver:
    """
    Look-up-or-create for parents referenced by name + phone.

    Existing parents are matched on the digits of their phone number.
    Construct one instance per import run.
    """

    def __init__(self, *, store: EntityStore, email_domain: str = "parent.com") -> None:
        self._store = store
        self._email_domain = email_domain
        self._ids_by_phone: dict[str, Any] | None = None

    async def resolve(
        self,
        *,
        parent_name: str | None,
        parent_phone: str | None,
        parent_email: str | None = None,
    ) -> ParentResolution:
        if not parent_name or not parent_phone:
            return ParentResolution()

        key = phone_key(parent_phone)
        try:
            known = await self._phone_index()
            if key in known:
                return ParentResolution(parent_id=known[key])
            created = await self._create_parent(parent_name, parent_phone, parent_email)
        except PersistenceUnavailableError:
            raise
        except PersistenceError as exc:
            logger.warning(
                "Parent resolution failed name=%r phone=%r: %s",
                parent_name,
                parent_phone,
                exc,
            )
            return ParentResolution(warning=f"Parent {parent_name} could not be created: {exc}")

        known[key] = created["id"]
        logger.info("Created parent id=%s for phone=%s", created["id"], parent_phone)
        return ParentResolution(parent_id=created["id"], created=True)

    async def _phone_index(self) -> dict[str, Any]:
        if self._ids_by_phone is None:
            index: dict[str, Any] = {}
            for parent in await self._store.list():
                phone = parent.get("phone")
                if phone:
                    index.setdefault(phone_key(phone), parent["id"])
            self._ids_by_phone = index
        return self._ids_by_phone

    async def _create_parent(
        self,
        parent_name: str,
        parent_phone: str,
        parent_email: str | None,
    ) -> dict[str, Any]:
        first_name, last_name = split_full_name(parent_name)
        email = parent_email or await self._free_placeholder_email(parent_name, parent_phone)
        return await self._store.create(
            {
                "first_name": first_name,
                "last_name": last_name,
                "email": email,
                "phone": parent_phone,
                "status": DEFAULT_STATUS,
            }
        )

    async def _free_placeholder_email(self, parent_name: str, parent_phone: str) -> str:
        email = placeholder_email(parent_name, self._email_domain)
        if not await self._store.exists_by_field("email", email):
            return email
        # Same name, different phone: disambiguate with the phone's last digits.
        local_part, _, domain = email.partition("@")
        return f"{local_part}.{phone_key(parent_phone)[-4:]}@{domain}"


class ClassResolver:
    """
    Lookup-only resolution of a class by name; never creates classes.

    Names match ignoring case and whitespace, so "JSS1A" finds "JSS 1A".
    """

    def __init__(self, *, store: EntityStore) -> None:
        self._store = store
        self._ids_by_name: dict[str, Any] | None = None

    async def resolve(self, class_name: str | None) -> Any:
        if not class_name:
            return None
        if self._ids_by_name is None:
            index: dict[str, Any] = {}
            for school_class in await self._store.list():
                name = school_class.get("name")
                if name:
                    index.setdefault(class_name_key(name), school_class["id"])
            self._ids_by_name = index
        return self._ids_by_name.get(class_name_key(class_name))
