"""
roster_import/services/account_provisioning.py

Login-account provisioning, the secondary effect queued for imported
teachers, parents and (when a username is given) students.
"""

from __future__ import annotations

import re
from typing import Any

from roster_import.domain.records import DEFAULT_STATUS
from roster_import.repositories.errors import DuplicateEntryError
from roster_import.repositories.gateway import EntityStore
from roster_import.services.effect_queue import SecondaryEffectJob


def derive_username(first_name: str, last_name: str) -> str:
    """
    Default username: lowercased first + last name, letters/digits/dots only.
    """

    return re.sub(r"[^a-z0-9.]", "", f"{first_name}{last_name}".lower())


def account_provisioning_job(
    *,
    store: EntityStore,
    entity: dict[str, Any],
    role: str,
    row_number: int,
    username: str | None = None,
    email: str | None = None,
) -> SecondaryEffectJob:
    first_name = entity.get("first_name") or ""
    last_name = entity.get("last_name") or ""
    effective_username = username or derive_username(first_name, last_name)
    payload = {
        "username": effective_username,
        "email": email,
        "role": role,
        "linked_id": entity["id"],
        "first_name": first_name,
        "last_name": last_name,
        "status": DEFAULT_STATUS,
    }

    async def _provision() -> dict[str, Any]:
        try:
            return await store.create(payload)
        except DuplicateEntryError as exc:
            raise DuplicateEntryError(f"Username {effective_username} already exists") from exc

    return SecondaryEffectJob(
        label=f"Row {row_number}: {role} account for {first_name} {last_name}".rstrip(),
        run=_provision,
    )
