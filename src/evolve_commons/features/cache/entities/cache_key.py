"""Cache key value object."""

import logging
from dataclasses import dataclass
from typing import Optional, Union
from uuid import UUID

logger = logging.getLogger(__name__)

KEY_SEPARATOR = "_"


def normalize_user_id(user_id: Union[str, UUID, None]) -> Optional[str]:
    """Lowercased user id usable as a key segment, or None.

    Ids containing the key separator are refused: ``a`` + ``b_res`` and
    ``a_b`` + ``res`` would otherwise render the same key.
    """
    if user_id is None:
        return None
    normalized = str(user_id).strip().lower()
    if not normalized:
        return None
    if KEY_SEPARATOR in normalized:
        logger.warning(f"User id {normalized!r} contains {KEY_SEPARATOR!r}, not caching for this user")
        return None
    return normalized


@dataclass(frozen=True)
class CacheKey:
    """Key for a single user's copy of a logical resource.

    Rendered as ``<namespace>_<user_id>_<resource>`` in lowercase ASCII. Build
    keys through ``for_user`` so no key exists without a resolved user. Neither
    the namespace nor the user id may contain ``_``, so the user segment of a
    rendered key is unambiguous; the resource may (``workout_plan``).
    """

    namespace: str
    user_id: str
    resource: str

    def __post_init__(self):
        for field_name in ("namespace", "user_id", "resource"):
            part = getattr(self, field_name)
            if not part:
                raise ValueError(f"Cache key {field_name} cannot be empty")
            if not part.isascii() or part != part.lower() or any(c.isspace() for c in part):
                raise ValueError(
                    f"Cache key {field_name} must be lowercase ASCII without whitespace: {part!r}"
                )
        for field_name in ("namespace", "user_id"):
            if KEY_SEPARATOR in getattr(self, field_name):
                raise ValueError(f"Cache key {field_name} cannot contain {KEY_SEPARATOR!r}")

    @classmethod
    def for_user(
        cls,
        namespace: str,
        user_id: Union[str, UUID, None],
        resource: str,
    ) -> Optional["CacheKey"]:
        """Build the key for a user's resource.

        Returns None when nobody is signed in, or when the user id cannot be
        used as a key segment; callers then skip the cache.
        """
        normalized = normalize_user_id(user_id)
        if normalized is None:
            return None
        return cls(namespace=namespace.lower(), user_id=normalized, resource=resource.lower())

    @staticmethod
    def user_prefix(namespace: str, user_id: Union[str, UUID]) -> Optional[str]:
        """Prefix shared by every key of one user, or None if the user has no keys."""
        normalized = normalize_user_id(user_id)
        if normalized is None:
            return None
        return f"{namespace.lower()}{KEY_SEPARATOR}{normalized}{KEY_SEPARATOR}"

    @property
    def value(self) -> str:
        return f"{self.namespace}{KEY_SEPARATOR}{self.user_id}{KEY_SEPARATOR}{self.resource}"

    def __str__(self) -> str:
        return self.value
