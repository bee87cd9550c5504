"""
Permission model for Overseer supervisors.

Pure predicate logic over a set of Permission grants. Supervisors hold a
PermissionSet by composition and are expected to respect it themselves;
the supervision manager only consults it when permission enforcement is
switched on in the settings.
"""

from typing import Iterable, Iterator

from overseer.errors import InvalidPermissionError
from overseer.schema import Permission


class PermissionSet:
    """
    An immutable set of permissions with derived capability predicates.

    Usage:
        perms = PermissionSet.parse(["READ_ONLY", "modify_messages"])
        if perms.can_modify_messages:
            # rewrite the message
    """

    __slots__ = ("_permissions",)

    def __init__(self, permissions: Iterable[Permission] = ()) -> None:
        self._permissions = frozenset(permissions)

    @classmethod
    def parse(cls, values: Iterable[Permission | str]) -> "PermissionSet":
        """
        Build a PermissionSet from enum members, values or names.

        Raises:
            InvalidPermissionError: If an entry is not a known permission
        """
        parsed: list[Permission] = []
        for value in values:
            try:
                parsed.append(Permission(value))
            except ValueError as e:
                raise InvalidPermissionError(permission=str(value)) from e
        return cls(parsed)

    def has_permission(self, permission: Permission) -> bool:
        """Check whether a single permission was granted."""
        return permission in self._permissions

    @property
    def can_modify_context(self) -> bool:
        """MODIFY_CONTEXT or FULL_CONTROL."""
        return self.has_permission(Permission.MODIFY_CONTEXT) or self.has_permission(
            Permission.FULL_CONTROL
        )

    @property
    def can_modify_messages(self) -> bool:
        """MODIFY_MESSAGES or FULL_CONTROL."""
        return self.has_permission(Permission.MODIFY_MESSAGES) or self.has_permission(
            Permission.FULL_CONTROL
        )

    @property
    def is_read_only(self) -> bool:
        """True only when the set is exactly {READ_ONLY}."""
        return self._permissions == {Permission.READ_ONLY}

    def to_list(self) -> list[Permission]:
        """Permissions in declaration order of the enum."""
        return [p for p in Permission if p in self._permissions]

    def __contains__(self, permission: object) -> bool:
        return permission in self._permissions

    def __iter__(self) -> Iterator[Permission]:
        return iter(self.to_list())

    def __len__(self) -> int:
        return len(self._permissions)

    def __eq__(self, other: object) -> bool:
        if isinstance(other, PermissionSet):
            return self._permissions == other._permissions
        return NotImplemented

    def __hash__(self) -> int:
        return hash(self._permissions)

    def __repr__(self) -> str:
        names = ", ".join(p.name for p in self.to_list())
        return f"<PermissionSet: [{names}]>"
