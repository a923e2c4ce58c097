from __future__ import annotations

import grp
import pwd

from .errors import IdentityUnresolved


class IdentityLookup:
    """Resolve numeric owner/group ids to names via the system databases."""

    def user_name(self, uid: int) -> str:
        try:
            return pwd.getpwuid(uid).pw_name
        except KeyError as exc:
            raise IdentityUnresolved(f"No user name for uid {uid}") from exc

    def group_name(self, gid: int) -> str:
        try:
            return grp.getgrgid(gid).gr_name
        except KeyError as exc:
            raise IdentityUnresolved(f"No group name for gid {gid}") from exc


DEFAULT_LOOKUP = IdentityLookup()
