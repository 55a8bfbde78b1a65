from __future__ import annotations

import getpass
import sys

from panelcore.core.config import ConfigLoader, ConfigPaths
from panelcore.core.roles import Role
from panelcore.core.users import UserStore


def main() -> None:
    if len(sys.argv) < 2:
        raise SystemExit("Usage: python scripts/set_password.py <username> [viewer|manager|owner]")

    username = sys.argv[1].strip()
    if not username:
        raise SystemExit("Username cannot be empty.")
    role = Role.from_string(sys.argv[2]) if len(sys.argv) >= 3 else Role.UNKNOWN
    if len(sys.argv) >= 3 and role == Role.UNKNOWN:
        raise SystemExit(f"Unknown role: {sys.argv[2]}")

    p1 = getpass.getpass(f"New password for {username}: ")
    p2 = getpass.getpass("Confirm password: ")
    if not p1 or p1 != p2:
        raise SystemExit("Password not set (mismatch/empty).")

    cfg = ConfigLoader(ConfigPaths()).load()
    store = UserStore(cfg.users.users_dir)
    if store.load_user(username) is None:
        if role == Role.UNKNOWN:
            raise SystemExit(f"No such user '{username}'; pass a role to create it.")
        ok = store.add_user(username, p1, role)
    else:
        ok = store.update_password(username, p1)
        if ok and role != Role.UNKNOWN:
            ok = store.update_role(username, role)
    if not ok:
        raise SystemExit("Failed to save the account.")
    print(f"Saved account: {username}")


if __name__ == "__main__":
    main()
